#!/usr/bin/env python
"""Главный модуль для запуска AI Triage из GitHub Actions."""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from openai import OpenAI

from .config import load_config
from .dedupe import open_candidate_source
from .github_client import GitHubClient
from .summarizer import Summarizer
from .triage import TriageOutcome, TriageRunner

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_github_event() -> tuple[str, dict[str, Any]]:
    """Парсить событие GitHub из переменных окружения.

    :return: Кортеж (event_name, event)
    :raises ValueError: Если имя события или файл события недоступны
    """
    event_name = os.environ.get("GITHUB_EVENT_NAME")
    if not event_name:
        raise ValueError("GITHUB_EVENT_NAME не найден в переменных окружения")

    event_path = os.environ.get("GITHUB_EVENT_PATH")
    if not event_path:
        raise ValueError("GITHUB_EVENT_PATH не найден в переменных окружения")

    event_file = Path(event_path)
    if not event_file.exists():
        raise ValueError(f"Файл события не найден: {event_path}")

    with event_file.open("r", encoding="utf-8") as f:
        event = json.load(f)

    return event_name, event


def set_github_output(name: str, value: str) -> None:
    """Установить output для GitHub Actions.

    :param name: Имя переменной
    :param value: Значение переменной
    """
    github_output = os.environ.get("GITHUB_OUTPUT")

    if github_output:
        with Path(github_output).open("a", encoding="utf-8") as f:
            f.write(f"{name}={value}\n")
    else:
        # Старый способ (deprecated, но оставляем для совместимости)
        print(f"::set-output name={name}::{value}")


def write_outputs(outcome: TriageOutcome) -> None:
    set_github_output("duplicate_classification", outcome.classification or "")
    set_github_output("canonical_item", "" if outcome.canonical_item is None else str(outcome.canonical_item))
    set_github_output("readiness_score", "" if outcome.readiness_score is None else str(outcome.readiness_score))
    set_github_output("labels", ",".join(outcome.labels))


def main() -> None:
    """Главная функция для запуска из GitHub Actions."""
    try:
        config = load_config()
        event_name, event = parse_github_event()

        repository = config.repository or event.get("repository", {}).get("full_name")
        if not repository:
            raise ValueError("Не удалось определить репозиторий: GITHUB_REPOSITORY не задан")

        github = GitHubClient(github_token=config.github_token, repository=repository)
        summarizer = Summarizer(
            OpenAI(api_key=config.openai_api_key),
            model=config.model,
            embedding_model=config.embedding_model,
        )

        with open_candidate_source(config, summarizer, github) as candidate_source:
            runner = TriageRunner(config, github, summarizer, candidate_source)
            outcome = runner.handle_event(event_name, event)

        write_outputs(outcome)
        logger.info("AI Triage завершен успешно")

    except Exception as e:
        logger.error(f"Критическая ошибка: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
