"""Ревью Pull Request с помощью модели."""

import logging

from .models import Item, PRFile, PRReviewResult
from .parsing import decode_json, fallback_review, resolve
from .prompts import NEXT_LINE, format_review_prompt
from .summarizer import Summarizer

logger = logging.getLogger(__name__)

REVIEW_INSTRUCTIONS = "You are a helpful assistant that reviews pull requests and responds in JSON format."

MAX_PATCH_CHARS = 2000
MAX_DIFF_SUMMARY_CHARS = 12000

RISK_ICONS = {"low": "🟢", "medium": "🟡", "high": "🔴"}


def build_diff_summary(files: list[PRFile]) -> str:
    """Собрать краткое описание diff для запроса.

    :param files: Файлы PR
    :return: Строка на каждый файл и усеченный patch
    """
    if not files:
        return "No file changes available"

    sections = []
    for f in files:
        section = f"{f.status} {f.filename} (+{f.additions}/-{f.deletions})"
        if f.patch:
            patch = f.patch
            if len(patch) > MAX_PATCH_CHARS:
                patch = patch[:MAX_PATCH_CHARS] + f"{NEXT_LINE}... (truncated)"
            section = f"{section}{NEXT_LINE}{patch}"
        sections.append(section)

    summary = (NEXT_LINE * 2).join(sections)
    if len(summary) > MAX_DIFF_SUMMARY_CHARS:
        summary = summary[:MAX_DIFF_SUMMARY_CHARS] + f"{NEXT_LINE}... (diff truncated)"
    return summary


class PRReviewer:
    """Структурированное ревью PR одним запросом к модели."""

    def __init__(self, summarizer: Summarizer):
        self.summarizer = summarizer

    def review_pull_request(self, item: Item, files: list[PRFile]) -> PRReviewResult:
        """Получить ревью PR.

        :param item: Pull Request
        :param files: Измененные файлы
        :return: PRReviewResult, нейтральное ревью при ошибке
        """
        prompt = format_review_prompt(
            item.title,
            item.body,
            item.changed_files or len(files),
            item.additions,
            item.deletions,
            build_diff_summary(files),
        )
        try:
            raw = self.summarizer.complete_json(REVIEW_INSTRUCTIONS, prompt)
        except Exception as e:
            logger.warning(f"Ошибка при ревью PR #{item.number}: {e}")
            return fallback_review()

        return resolve(decode_json(raw, PRReviewResult), fallback_review(), "ревью PR")


def format_review_comment(review: PRReviewResult, score: int | None = None) -> str:
    """Сформировать markdown комментарий с ревью.

    :param review: Ревью модели
    :param score: Итоговая оценка готовности
    :return: Текст комментария
    """
    missing = ", ".join(review.missing_elements) if review.missing_elements else "None"
    lines = [
        "## 🤖 AI PR Review",
        "",
        f"**Summary:** {review.summary or 'No summary available'}",
        "",
        f"**Risk Level:** {RISK_ICONS[review.risk_level]} {review.risk_level}",
        f"**Design Alignment:** {review.design_alignment}",
        f"**Missing Elements:** {missing}",
        f"**Model Readiness Score:** {review.readiness_score}/100",
    ]
    if score is not None:
        lines.append(f"**Overall Readiness Score:** {score}/100")
    lines.extend(["", "_This review was generated automatically and may be inaccurate._"])
    return NEXT_LINE.join(lines)
