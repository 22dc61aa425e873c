"""Модели данных для работы с GitHub, OpenAI API и хранилищем похожести."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

EMBEDDING_DIMENSIONS = 1536

Classification = Literal["duplicate", "related", "distinct"]
RiskLevel = Literal["low", "medium", "high"]


class ItemKind(str, Enum):
    """Тип элемента трекера."""

    ISSUE = "issue"
    PR = "pr"


def _as_text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(element) for element in value if element is not None]


class Item(BaseModel):
    """Issue или Pull Request из трекера.

    Для issue поля additions/deletions/changed_files остаются нулевыми.
    """

    number: int = Field(description="Номер в репозитории")
    title: str = Field(description="Заголовок")
    body: str = Field(description="Описание", default="")
    state: str = Field(description="Состояние (open/closed)", default="open")
    created_at: str = Field(description="Дата создания", default="")
    html_url: str = Field(description="Ссылка на элемент", default="")
    head_sha: str | None = Field(description="SHA последнего коммита PR", default=None)
    additions: int = Field(description="Количество добавленных строк", default=0)
    deletions: int = Field(description="Количество удаленных строк", default=0)
    changed_files: int = Field(description="Количество измененных файлов", default=0)

    @field_validator("body", mode="before")
    @classmethod
    def _none_body(cls, value: Any) -> Any:
        return value or ""

    @field_validator("additions", "deletions", "changed_files", mode="before")
    @classmethod
    def _none_counter(cls, value: Any) -> Any:
        return value or 0

    @property
    def closed(self) -> bool:
        """Закрытые элементы сохраняются в базе, но не попадают в кандидаты."""
        return self.state == "closed"


class PRFile(BaseModel):
    """Файл, измененный в Pull Request."""

    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None


class ItemSummary(BaseModel):
    """Структурированное описание issue или PR, полученное от модели.

    Модель отвечает произвольным JSON, поэтому каждое поле проверяется
    отдельно и при несоответствии заменяется значением по умолчанию.
    """

    problem_statement: str = Field(description="Суть проблемы или изменения", default="No problem statement")
    scope: str = Field(description="Область изменения", default="Unknown")
    key_entities: list[str] = Field(description="Ключевые сущности", default_factory=list)
    affected_files: list[str] = Field(description="Затронутые файлы", default_factory=list)

    @field_validator("problem_statement", mode="before")
    @classmethod
    def _problem_statement(cls, value: Any) -> str:
        return _as_text(value, "No problem statement")

    @field_validator("scope", mode="before")
    @classmethod
    def _scope(cls, value: Any) -> str:
        return _as_text(value, "Unknown")

    @field_validator("key_entities", "affected_files", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _as_str_list(value)


class SimilarityItem(BaseModel):
    """Запись хранилища похожести, уникальна по (repo, item_id, kind)."""

    repo: str
    item_id: str
    kind: ItemKind
    title: str
    summary: str
    embedding: list[float] = Field(default_factory=list)
    closed: bool = False
    similarity: float | None = None


class Candidate(BaseModel):
    """Кандидат в дубликаты текущего элемента."""

    number: int
    title: str
    summary: str
    similarity: float


class DuplicateResult(BaseModel):
    """Результат классификации пары элементов моделью."""

    classification: Classification = "distinct"
    confidence: float = 0.0
    canonical_item: int | None = None
    reasoning: str = "No reasoning provided"

    @field_validator("classification", mode="before")
    @classmethod
    def _classification(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("duplicate", "related", "distinct"):
            return value.strip().lower()
        return "distinct"

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            return 0.0
        if confidence != confidence:  # NaN
            return 0.0
        return min(1.0, max(0.0, confidence))

    @field_validator("canonical_item", mode="before")
    @classmethod
    def _canonical_item(cls, value: Any) -> int | None:
        number = None
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            number = value
        elif isinstance(value, float) and value.is_integer():
            number = int(value)
        elif isinstance(value, str) and value.strip().lstrip("#").isdigit():
            number = int(value.strip().lstrip("#"))
        # номера issue и PR начинаются с 1
        if number is None or number <= 0:
            return None
        return number

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning(cls, value: Any) -> str:
        return _as_text(value, "No reasoning provided")


class PRReviewResult(BaseModel):
    """Структурированное ревью Pull Request от модели."""

    summary: str = ""
    risk_level: RiskLevel = "medium"
    missing_elements: list[str] = Field(default_factory=list)
    design_alignment: str = "unknown"
    readiness_score: int = 50

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, value: Any) -> str:
        return _as_text(value, "")

    @field_validator("risk_level", mode="before")
    @classmethod
    def _risk_level(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("low", "medium", "high"):
            return value.strip().lower()
        return "medium"

    @field_validator("missing_elements", mode="before")
    @classmethod
    def _missing_elements(cls, value: Any) -> list[str]:
        return _as_str_list(value)

    @field_validator("design_alignment", mode="before")
    @classmethod
    def _design_alignment(cls, value: Any) -> str:
        return _as_text(value, "unknown")

    @field_validator("readiness_score", mode="before")
    @classmethod
    def _readiness_score(cls, value: Any) -> int:
        try:
            score = round(float(value))
        except (TypeError, ValueError, OverflowError):
            return 50
        return min(100, max(0, score))

    def is_missing(self, element: str) -> bool:
        return any(missing.strip().lower() == element for missing in self.missing_elements)


class ScoringFactors(BaseModel):
    """Эвристические факторы оценки готовности PR."""

    ci_passing: bool = False
    tests_added: bool = False
    diff_size: int = 0
    description_length: int = 0
    high_risk_modules: bool = False
    has_tests: bool = False
