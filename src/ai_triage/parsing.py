"""Разбор JSON-ответов модели и политика значений по умолчанию.

Ответ модели считается недоверенным: decode_json никогда не бросает исключение,
а возвращает Decoded либо со значением, либо с причиной ошибки. Подмена
значением по умолчанию происходит только в resolve, чтобы было видно, где и
почему результат был заменен.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from .models import DuplicateResult, ItemSummary, PRReviewResult

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_START = re.compile(r"^```(?:json)?\s*")
_FENCE_END = re.compile(r"\s*```$")


@dataclass(frozen=True)
class Decoded(Generic[ModelT]):
    """Результат разбора: значение или причина ошибки."""

    value: ModelT | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def decode_json(raw: str | None, model_cls: type[ModelT]) -> Decoded[ModelT]:
    """Разобрать ответ модели и проверить его по схеме.

    :param raw: Текст ответа модели
    :param model_cls: Pydantic модель ожидаемого ответа
    :return: Decoded со значением или с причиной ошибки
    """
    if not raw or not raw.strip():
        return Decoded(error="пустой ответ модели")

    cleaned = _FENCE_START.sub("", raw.strip())
    cleaned = _FENCE_END.sub("", cleaned.strip())

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return Decoded(error=f"ответ не является JSON: {e}")

    if not isinstance(data, dict):
        return Decoded(error=f"ожидался JSON объект, получен {type(data).__name__}")

    try:
        return Decoded(value=model_cls.model_validate(data))
    except ValidationError as e:
        return Decoded(error=f"ответ не соответствует схеме {model_cls.__name__}: {e}")


def resolve(decoded: Decoded[ModelT], fallback: ModelT, what: str) -> ModelT:
    """Вернуть разобранное значение или значение по умолчанию.

    :param decoded: Результат decode_json
    :param fallback: Значение по умолчанию
    :param what: Название операции для лога
    :return: Итоговое значение
    """
    if decoded.ok:
        return decoded.value

    logger.warning(f"Не удалось разобрать ответ ({what}): {decoded.error}. Используем значение по умолчанию")
    return fallback


def fallback_summary(title: str, files: list[str] | None = None) -> ItemSummary:
    return ItemSummary(
        problem_statement=title,
        scope="Unknown",
        key_entities=[],
        affected_files=list(files or []),
    )


def fallback_duplicate(reason: str = "Classification failed") -> DuplicateResult:
    return DuplicateResult(classification="distinct", confidence=0.0, canonical_item=None, reasoning=reason)


def fallback_review() -> PRReviewResult:
    # readiness_score=50 дает нулевую поправку к итоговой оценке
    return PRReviewResult(
        summary="",
        risk_level="medium",
        missing_elements=[],
        design_alignment="unknown",
        readiness_score=50,
    )
