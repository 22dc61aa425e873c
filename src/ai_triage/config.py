"""Конфигурация action из входных параметров GitHub Actions."""

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"


class ActionConfig(BaseModel):
    """Параметры запуска action."""

    openai_api_key: str = Field(description="API ключ OpenAI", min_length=1)
    github_token: str = Field(description="Токен для доступа к GitHub API", min_length=1)
    repository: str | None = Field(description="Полное имя репозитория (owner/repo)", default=None)
    database_url: str | None = Field(description="Строка подключения к PostgreSQL с pgvector", default=None)
    similarity_threshold: float = Field(description="Порог косинусной близости", default=0.85, ge=0.0, le=1.0)
    max_candidates: int = Field(description="Максимальное число кандидатов", default=20, ge=1)
    enable_pr_review: bool = Field(description="Включить ревью PR", default=True)
    enable_dedupe: bool = Field(description="Включить поиск дубликатов", default=True)
    label_duplicate: str = "possible-duplicate"
    label_needs_tests: str = "needs-tests"
    label_high_risk: str = "high-risk"
    label_ready: str = "ready-for-review"
    model: str = DEFAULT_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL

    @property
    def stateful(self) -> bool:
        return bool(self.database_url)


def _get_input(environ: Mapping[str, str], *names: str) -> str | None:
    """Получить первое непустое значение среди переменных окружения.

    :param environ: Переменные окружения
    :param names: Имена переменных в порядке приоритета
    :return: Значение без пробелов по краям или None
    """
    for name in names:
        value = environ.get(name, "").strip()
        if value:
            return value
    return None


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() == "true"


def load_config(environ: Mapping[str, str] | None = None) -> ActionConfig:
    """Собрать конфигурацию из INPUT_* переменных окружения.

    :param environ: Переменные окружения (по умолчанию os.environ)
    :return: Проверенная конфигурация
    :raises ValueError: Если не задан обязательный параметр или значение вне диапазона
    """
    if environ is None:
        environ = os.environ

    openai_api_key = _get_input(environ, "INPUT_OPENAI_KEY", "INPUT_OPENAI_API_KEY", "OPENAI_API_KEY")
    if not openai_api_key:
        raise ValueError("OpenAI API ключ не найден. Установите OPENAI_API_KEY или передайте openai_key")

    github_token = _get_input(environ, "INPUT_GITHUB_TOKEN", "GITHUB_TOKEN")
    if not github_token:
        raise ValueError("GitHub токен не найден. Установите GITHUB_TOKEN или передайте github_token")

    values: dict = {
        "openai_api_key": openai_api_key,
        "github_token": github_token,
        "repository": _get_input(environ, "GITHUB_REPOSITORY"),
        "database_url": _get_input(environ, "INPUT_DATABASE_URL"),
        "enable_pr_review": _parse_bool(_get_input(environ, "INPUT_ENABLE_PR_REVIEW"), True),
        "enable_dedupe": _parse_bool(_get_input(environ, "INPUT_ENABLE_DEDUPE"), True),
    }

    optional_inputs = {
        "similarity_threshold": "INPUT_SIMILARITY_THRESHOLD",
        "max_candidates": "INPUT_MAX_CANDIDATES",
        "label_duplicate": "INPUT_LABEL_DUPLICATE",
        "label_needs_tests": "INPUT_LABEL_NEEDS_TESTS",
        "label_high_risk": "INPUT_LABEL_HIGH_RISK",
        "label_ready": "INPUT_LABEL_READY",
        "model": "INPUT_MODEL",
        "embedding_model": "INPUT_EMBEDDING_MODEL",
    }
    for field, name in optional_inputs.items():
        value = _get_input(environ, name)
        if value is not None:
            values[field] = value

    try:
        return ActionConfig(**values)
    except ValidationError as e:
        raise ValueError(f"Некорректная конфигурация action: {e}") from e
