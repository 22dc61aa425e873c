"""Маршрутизация событий GitHub: поиск дубликатов, ревью PR, комментарии и метки."""

import logging
from typing import Any

from pydantic import BaseModel, Field

from .config import ActionConfig
from .dedupe import CandidateSource, DuplicateDetector
from .github_client import GitHubClient, item_from_payload
from .models import DuplicateResult, Item, ItemKind
from .reviewer import PRReviewer, format_review_comment
from .scoring import build_scoring_factors, calculate_score
from .summarizer import Summarizer

logger = logging.getLogger(__name__)

ISSUE_EVENTS = ("issues",)
PULL_REQUEST_EVENTS = ("pull_request", "pull_request_target")
ISSUE_ACTIONS = ("opened", "edited")
PULL_REQUEST_ACTIONS = ("opened", "synchronize")
READY_SCORE = 80


class TriageOutcome(BaseModel):
    """Итог обработки события, публикуется как outputs action."""

    classification: str | None = Field(description="Результат поиска дубликатов", default=None)
    canonical_item: int | None = Field(description="Номер исходного элемента", default=None)
    readiness_score: int | None = Field(description="Оценка готовности PR", default=None)
    labels: list[str] = Field(description="Добавленные метки", default_factory=list)
    skipped: bool = Field(description="Событие пропущено", default=False)


def _confidence_percent(result: DuplicateResult) -> str:
    return f"{result.confidence * 100:.0f}"


def format_duplicate_comment(result: DuplicateResult, kind: ItemKind) -> str:
    """Сформировать комментарий о возможном дубликате."""
    if kind is ItemKind.ISSUE:
        header = "🔍 **Possible Duplicate Detected**"
        subject = "This issue"
    else:
        header = "🔍 **Possible Duplicate PR Detected**"
        subject = "This pull request"

    return (
        f"{header}\n\n"
        f"{subject} appears to be similar to #{result.canonical_item}.\n\n"
        f"**Confidence:** {_confidence_percent(result)}%\n"
        f"**Reasoning:** {result.reasoning}\n\n"
        "Please review to confirm if this is a duplicate."
    )


def format_related_comment(result: DuplicateResult) -> str:
    """Сформировать комментарий о связанном issue."""
    return (
        "🔗 **Related Issue Found**\n\n"
        f"This issue may be related to #{result.canonical_item}.\n\n"
        f"**Reasoning:** {result.reasoning}"
    )


class TriageRunner:
    """Обработка одного события GitHub."""

    def __init__(
        self,
        config: ActionConfig,
        github: GitHubClient,
        summarizer: Summarizer,
        candidate_source: CandidateSource,
    ):
        """Инициализация.

        :param config: Конфигурация action
        :param github: Клиент GitHub
        :param summarizer: Summarizer для запросов к модели
        :param candidate_source: Источник кандидатов в дубликаты
        """
        self.config = config
        self.github = github
        self.detector = DuplicateDetector(summarizer, candidate_source, config.max_candidates)
        self.reviewer = PRReviewer(summarizer)

    def handle_event(self, event_name: str, event: dict[str, Any]) -> TriageOutcome:
        """Обработать событие.

        :param event_name: Имя события (GITHUB_EVENT_NAME)
        :param event: Payload события
        :return: TriageOutcome
        """
        logger.info(f"Событие: {event_name}")
        action = event.get("action")

        if event_name in ISSUE_EVENTS:
            if not self.config.enable_dedupe:
                logger.info("Поиск дубликатов отключен, пропускаем issue")
                return TriageOutcome(skipped=True)
            issue = event.get("issue")
            if not issue:
                logger.warning("В payload нет issue")
                return TriageOutcome(skipped=True)
            if action not in ISSUE_ACTIONS:
                logger.info(f"Пропускаем действие: {action}")
                return TriageOutcome(skipped=True)
            return self.process_issue(item_from_payload(issue))

        if event_name in PULL_REQUEST_EVENTS:
            pr = event.get("pull_request")
            if not pr:
                logger.warning("В payload нет pull_request")
                return TriageOutcome(skipped=True)
            if action not in PULL_REQUEST_ACTIONS:
                logger.info(f"Пропускаем действие: {action}")
                return TriageOutcome(skipped=True)
            return self.process_pull_request(item_from_payload(pr))

        logger.info(f"Событие {event_name} не поддерживается, пропускаем")
        return TriageOutcome(skipped=True)

    def process_issue(self, issue: Item) -> TriageOutcome:
        """Поиск дубликатов для issue.

        :param issue: Открытый или отредактированный issue
        :return: TriageOutcome
        """
        logger.info(f"Обрабатываем issue #{issue.number}: {issue.title}")
        outcome = TriageOutcome()

        result = self.detector.detect(issue, ItemKind.ISSUE)
        if result is None:
            logger.info("Дубликаты не найдены")
            return outcome

        outcome.classification = result.classification
        outcome.canonical_item = result.canonical_item

        if result.classification == "duplicate":
            self.github.create_comment(issue.number, format_duplicate_comment(result, ItemKind.ISSUE))
            outcome.labels = self.github.add_labels(issue.number, [self.config.label_duplicate])
            logger.info(f"Issue #{issue.number} помечен как возможный дубликат #{result.canonical_item}")
        elif result.classification == "related":
            self.github.create_comment(issue.number, format_related_comment(result))
            logger.info(f"Issue #{issue.number} связан с #{result.canonical_item}")
        else:
            logger.info("Дубликаты не найдены")

        return outcome

    def process_pull_request(self, pr: Item) -> TriageOutcome:
        """Поиск дубликатов и ревью для Pull Request.

        :param pr: Открытый или обновленный PR
        :return: TriageOutcome
        """
        logger.info(f"Обрабатываем PR #{pr.number}: {pr.title}")
        outcome = TriageOutcome()

        files = self.github.get_pull_request_files(pr.number)
        filenames = [f.filename for f in files]
        labels_to_apply: list[str] = []

        if self.config.enable_dedupe:
            result = self.detector.detect(pr, ItemKind.PR, filenames)
            if result is not None:
                outcome.classification = result.classification
                outcome.canonical_item = result.canonical_item
                if result.classification == "duplicate":
                    self.github.create_comment(pr.number, format_duplicate_comment(result, ItemKind.PR))
                    labels_to_apply.append(self.config.label_duplicate)

        if self.config.enable_pr_review:
            factors = build_scoring_factors(pr, files, ci_passing=self.github.is_ci_passing(pr.head_sha))
            review = self.reviewer.review_pull_request(pr, files)
            score = calculate_score(factors, review)
            outcome.readiness_score = score

            if review.is_missing("tests"):
                labels_to_apply.append(self.config.label_needs_tests)
            if review.risk_level == "high":
                labels_to_apply.append(self.config.label_high_risk)
            if score >= READY_SCORE:
                labels_to_apply.append(self.config.label_ready)

            self.github.create_comment(pr.number, format_review_comment(review, score))

        if labels_to_apply:
            outcome.labels = self.github.add_labels(pr.number, labels_to_apply)

        return outcome
