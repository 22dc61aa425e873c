"""
Тесты для Summarizer и косинусной близости.
"""

import json
import math
from unittest.mock import MagicMock, Mock

import pytest

from ai_triage.summarizer import Summarizer, cosine_similarity


def make_completion(content: str | None) -> Mock:
    response = MagicMock()
    response.choices[0].message.content = content
    return response


@pytest.fixture
def mock_openai() -> Mock:
    """Мок для OpenAI API."""
    mock = MagicMock()
    mock.chat.completions.create.return_value = make_completion(
        json.dumps(
            {
                "problem_statement": "Safari users cannot log in",
                "scope": "frontend",
                "key_entities": ["Safari", "login"],
                "affected_files": ["src/login.ts"],
            }
        )
    )
    mock.embeddings.create.return_value.data[0].embedding = [0.1, 0.2, 0.3]
    return mock


class TestGenerateSummary:
    """Тесты для generate_summary."""

    def test_parses_json_response(self, mock_openai: Mock) -> None:
        """Тест разбора структурированного описания."""
        summarizer = Summarizer(mock_openai)

        summary = summarizer.generate_summary("Login fails on Safari", "Safari users cannot log in")

        assert summary.problem_statement == "Safari users cannot log in"
        assert summary.scope == "frontend"
        assert summary.key_entities == ["Safari", "login"]
        assert summary.affected_files == ["src/login.ts"]

    def test_requests_json_mode(self, mock_openai: Mock) -> None:
        """Тест параметров запроса к модели."""
        summarizer = Summarizer(mock_openai, model="gpt-4o-mini")

        summarizer.generate_summary("Title", "Body", ["a.py"])

        kwargs = mock_openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"][0]["role"] == "system"
        assert "Affected Files:\na.py" in kwargs["messages"][1]["content"]

    def test_api_error_returns_default(self, mock_openai: Mock) -> None:
        """Тест описания по умолчанию при ошибке API."""
        mock_openai.chat.completions.create.side_effect = Exception("rate limited")
        summarizer = Summarizer(mock_openai)

        summary = summarizer.generate_summary("Login fails on Safari", "Body", ["src/login.ts"])

        assert summary.problem_statement == "Login fails on Safari"
        assert summary.scope == "Unknown"
        assert summary.key_entities == []
        assert summary.affected_files == ["src/login.ts"]

    def test_malformed_json_returns_default(self, mock_openai: Mock) -> None:
        """Тест описания по умолчанию при некорректном JSON."""
        mock_openai.chat.completions.create.return_value = make_completion("not json at all")
        summarizer = Summarizer(mock_openai)

        summary = summarizer.generate_summary("Login fails on Safari", "Body")

        assert summary.problem_statement == "Login fails on Safari"
        assert summary.affected_files == []

    def test_empty_content_returns_defaults(self, mock_openai: Mock) -> None:
        """Тест пустого ответа модели."""
        mock_openai.chat.completions.create.return_value = make_completion(None)
        summarizer = Summarizer(mock_openai)

        summary = summarizer.generate_summary("Title", "Body")

        assert summary.problem_statement == "No problem statement"
        assert summary.scope == "Unknown"


class TestGenerateEmbedding:
    """Тесты для generate_embedding."""

    def test_returns_vector(self, mock_openai: Mock) -> None:
        """Тест получения эмбеддинга."""
        summarizer = Summarizer(mock_openai, embedding_model="text-embedding-3-small")

        embedding = summarizer.generate_embedding("Login fails on Safari")

        assert embedding == [0.1, 0.2, 0.3]
        mock_openai.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input="Login fails on Safari"
        )

    def test_api_error_is_raised(self, mock_openai: Mock) -> None:
        """Тест проброса ошибки API."""
        mock_openai.embeddings.create.side_effect = RuntimeError("invalid api key")
        summarizer = Summarizer(mock_openai)

        with pytest.raises(RuntimeError, match="invalid api key"):
            summarizer.generate_embedding("text")


class TestCosineSimilarity:
    """Тесты для cosine_similarity."""

    @pytest.mark.parametrize("vector", [[1.0, 2.0, 3.0], [0.5, -0.25], [1e-3] * 1536])
    def test_identical_vectors(self, vector: list[float]) -> None:
        """Тест близости вектора с самим собой."""
        assert cosine_similarity(vector, vector) == pytest.approx(1.0)

    def test_orthogonal_vectors(self) -> None:
        """Тест ортогональных векторов."""
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite_vectors(self) -> None:
        """Тест противоположных векторов."""
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_known_angle(self) -> None:
        """Тест известного угла."""
        similarity = cosine_similarity([1.0, 0.0], [0.6, 0.8])

        assert similarity == pytest.approx(0.6)

    def test_zero_vector(self) -> None:
        """Тест нулевого вектора."""
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_mismatched_lengths(self) -> None:
        """Тест векторов разной длины."""
        with pytest.raises(ValueError, match="одной длины"):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_result_in_range(self) -> None:
        """Тест диапазона значения."""
        similarity = cosine_similarity([3.0, -4.0, 12.0], [-1.0, 7.0, 0.5])

        assert -1.0 <= similarity <= 1.0
        assert not math.isnan(similarity)
