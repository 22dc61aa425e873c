"""Эвристическая оценка готовности Pull Request.

Каждое слагаемое оценки пишется в лог, чтобы по логу запуска можно было
восстановить, из чего сложилась итоговая цифра.
"""

import logging
import math
import re

from .models import Item, PRFile, PRReviewResult, ScoringFactors

logger = logging.getLogger(__name__)

BASE_SCORE = 50
SMALL_DIFF_LINES = 300
LARGE_DIFF_LINES = 1000
DETAILED_DESCRIPTION_CHARS = 300
LLM_WEIGHT = 0.3

HIGH_RISK_KEYWORDS = (
    "auth",
    "security",
    "payment",
    "billing",
    "database",
    "migration",
    "schema",
    "config",
    "env",
    "deployment",
    "infra",
)

TEST_PATTERNS = (
    re.compile(r"\.test\."),
    re.compile(r"\.spec\."),
    re.compile(r"(?:^|/)(?:__tests__|tests?|spec)/"),
)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_score(factors: ScoringFactors, review: PRReviewResult | None = None) -> int:
    """Посчитать итоговую оценку готовности PR.

    :param factors: Эвристические факторы
    :param review: Ревью модели, добавляет поправку в пределах примерно ±15
    :return: Оценка от 0 до 100
    """
    score = BASE_SCORE

    if factors.ci_passing:
        score += 20
        logger.info("Оценка +20: CI проходит")

    if factors.tests_added:
        score += 15
        logger.info("Оценка +15: добавлены тесты")

    if factors.diff_size < SMALL_DIFF_LINES:
        score += 10
        logger.info(f"Оценка +10: небольшой diff (< {SMALL_DIFF_LINES} строк)")

    if factors.description_length > DETAILED_DESCRIPTION_CHARS:
        score += 10
        logger.info("Оценка +10: подробное описание")

    if factors.high_risk_modules:
        score -= 15
        logger.info("Оценка -15: затронуты модули высокого риска")

    if not factors.has_tests:
        score -= 20
        logger.info("Оценка -20: нет тестов")

    if factors.diff_size > LARGE_DIFF_LINES:
        score -= 10
        logger.info(f"Оценка -10: большой diff (> {LARGE_DIFF_LINES} строк)")

    if review is not None:
        adjustment = _round_half_up((review.readiness_score - 50) * LLM_WEIGHT)
        score += adjustment
        logger.info(f"Поправка от модели: {adjustment:+d}")

    score = max(0, min(100, score))
    logger.info(f"Итоговая оценка: {score}")
    return score


def detect_high_risk_modules(files: list[str]) -> bool:
    """Проверить, затрагивает ли PR модули высокого риска.

    :param files: Пути измененных файлов
    :return: True, если хотя бы один путь содержит ключевое слово риска
    """
    for path in files:
        lowered = path.lower()
        for keyword in HIGH_RISK_KEYWORDS:
            if keyword in lowered:
                logger.info(f"Модуль высокого риска: {path}")
                return True
    return False


def detect_tests(files: list[str]) -> bool:
    """Проверить, есть ли среди файлов тесты."""
    for path in files:
        for pattern in TEST_PATTERNS:
            if pattern.search(path):
                logger.info(f"Найден файл тестов: {path}")
                return True
    return False


def build_scoring_factors(item: Item, files: list[PRFile], ci_passing: bool = False) -> ScoringFactors:
    filenames = [f.filename for f in files]
    has_tests = detect_tests(filenames)
    return ScoringFactors(
        ci_passing=ci_passing,
        tests_added=has_tests,
        diff_size=item.additions + item.deletions,
        description_length=len(item.body),
        high_risk_modules=detect_high_risk_modules(filenames),
        has_tests=has_tests,
    )
