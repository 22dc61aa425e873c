"""
Тесты для разбора ответов модели.
"""

import logging

import pytest

from ai_triage.models import DuplicateResult, ItemSummary
from ai_triage.parsing import (
    decode_json,
    fallback_duplicate,
    fallback_review,
    fallback_summary,
    resolve,
)


class TestDecodeJson:
    """Тесты для decode_json."""

    def test_valid_json(self) -> None:
        """Тест корректного ответа."""
        decoded = decode_json('{"problem_statement": "Login fails", "scope": "auth"}', ItemSummary)

        assert decoded.ok
        assert decoded.error is None
        assert decoded.value.problem_statement == "Login fails"
        assert decoded.value.scope == "auth"

    def test_markdown_fence_is_stripped(self) -> None:
        """Тест ответа, обернутого в markdown блок."""
        decoded = decode_json('```json\n{"classification": "related"}\n```', DuplicateResult)

        assert decoded.ok
        assert decoded.value.classification == "related"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_response(self, raw: str | None) -> None:
        """Тест пустого ответа."""
        decoded = decode_json(raw, ItemSummary)

        assert not decoded.ok
        assert decoded.error == "пустой ответ модели"

    def test_invalid_json(self) -> None:
        """Тест ответа, который не является JSON."""
        decoded = decode_json("Sure! Here is your summary.", ItemSummary)

        assert not decoded.ok
        assert "не является JSON" in decoded.error

    def test_non_object_json(self) -> None:
        """Тест JSON, который не является объектом."""
        decoded = decode_json('["a", "b"]', ItemSummary)

        assert not decoded.ok
        assert "list" in decoded.error


class TestResolve:
    """Тесты для resolve."""

    def test_returns_decoded_value(self) -> None:
        """Тест возврата разобранного значения."""
        decoded = decode_json('{"classification": "duplicate", "confidence": 0.9}', DuplicateResult)

        result = resolve(decoded, fallback_duplicate(), "классификация")

        assert result.classification == "duplicate"
        assert result.confidence == 0.9

    def test_returns_fallback_and_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Тест замены значением по умолчанию с предупреждением."""
        decoded = decode_json("not json", DuplicateResult)

        with caplog.at_level(logging.WARNING, logger="ai_triage.parsing"):
            result = resolve(decoded, fallback_duplicate(), "классификация")

        assert result == fallback_duplicate()
        assert "классификация" in caplog.text


class TestFallbacks:
    """Тесты для значений по умолчанию."""

    def test_fallback_summary_uses_title(self) -> None:
        """Тест описания по умолчанию."""
        summary = fallback_summary("Login fails on Safari", ["src/login.ts"])

        assert summary.problem_statement == "Login fails on Safari"
        assert summary.scope == "Unknown"
        assert summary.key_entities == []
        assert summary.affected_files == ["src/login.ts"]

    def test_fallback_duplicate_is_distinct(self) -> None:
        """Тест классификации по умолчанию."""
        result = fallback_duplicate()

        assert result.classification == "distinct"
        assert result.confidence == 0.0
        assert result.canonical_item is None
        assert result.reasoning == "Classification failed"

    def test_fallback_review_is_neutral(self) -> None:
        """Тест нейтрального ревью по умолчанию."""
        review = fallback_review()

        assert review.readiness_score == 50
        assert review.risk_level == "medium"
        assert review.missing_elements == []
