"""Поиск дубликатов среди issue и Pull Request.

Кандидаты берутся из одного из двух источников, который выбирается один раз
при запуске: из хранилища pgvector (stateful) или из последних элементов
репозитория (stateless). Модель классифицирует только самого близкого кандидата.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from .config import ActionConfig
from .github_client import GitHubClient
from .models import Candidate, DuplicateResult, Item, ItemKind, ItemSummary, SimilarityItem
from .parsing import decode_json, fallback_duplicate, resolve
from .prompts import format_duplicate_prompt
from .store import SimilarityStore
from .summarizer import Summarizer, cosine_similarity

logger = logging.getLogger(__name__)

CLASSIFY_INSTRUCTIONS = "You are a helpful assistant that identifies duplicate issues and pull requests."


def build_query_text(title: str, summary: ItemSummary) -> str:
    return f"{title} {summary.problem_statement}"


class CandidateSource(ABC):
    """Источник кандидатов в дубликаты."""

    @abstractmethod
    def find_candidates(
        self,
        item: Item,
        kind: ItemKind,
        summary: ItemSummary,
        embedding: list[float],
        limit: int,
    ) -> list[Candidate]:
        """Вернуть кандидатов для текущего элемента, не включая его самого."""


class StatefulCandidateSource(CandidateSource):
    """Кандидаты из хранилища похожести по всей истории репозитория."""

    def __init__(self, store: SimilarityStore, repo: str):
        self.store = store
        self.repo = repo

    def find_candidates(
        self,
        item: Item,
        kind: ItemKind,
        summary: ItemSummary,
        embedding: list[float],
        limit: int,
    ) -> list[Candidate]:
        logger.info("Используем stateful режим (база данных)")
        self.store.upsert(
            SimilarityItem(
                repo=self.repo,
                item_id=str(item.number),
                kind=kind,
                title=item.title,
                summary=summary.problem_statement,
                embedding=embedding,
                closed=item.closed,
            )
        )

        similar_items = self.store.find_similar(embedding, self.repo, kind, limit)
        return [
            Candidate(
                number=int(similar.item_id),
                title=similar.title,
                summary=similar.summary,
                similarity=similar.similarity or 0.0,
            )
            for similar in similar_items
            if similar.item_id != str(item.number)
        ]


class StatelessCandidateSource(CandidateSource):
    """Кандидаты из последних элементов репозитория.

    Каждый кандидат заново описывается и получает эмбеддинг при каждом запуске,
    задержка растет линейно с количеством кандидатов.
    """

    def __init__(self, github: GitHubClient, summarizer: Summarizer, similarity_threshold: float):
        self.github = github
        self.summarizer = summarizer
        self.similarity_threshold = similarity_threshold

    def find_candidates(
        self,
        item: Item,
        kind: ItemKind,
        summary: ItemSummary,
        embedding: list[float],
        limit: int,
    ) -> list[Candidate]:
        logger.info("Используем stateless режим (GitHub API)")
        if kind is ItemKind.ISSUE:
            recent = self.github.get_recent_issues(limit)
        else:
            recent = self.github.get_recent_pull_requests(limit)

        candidates: list[Candidate] = []
        for other in recent:
            if other.number == item.number:
                continue

            other_summary = self.summarizer.generate_summary(other.title, other.body, [])
            other_embedding = self.summarizer.generate_embedding(build_query_text(other.title, other_summary))
            similarity = cosine_similarity(embedding, other_embedding)
            logger.info(f"Близость с #{other.number}: {similarity:.3f}")

            if similarity >= self.similarity_threshold:
                candidates.append(
                    Candidate(
                        number=other.number,
                        title=other.title,
                        summary=other_summary.problem_statement,
                        similarity=similarity,
                    )
                )

        return candidates


@contextmanager
def open_candidate_source(
    config: ActionConfig,
    summarizer: Summarizer,
    github: GitHubClient,
) -> Iterator[CandidateSource]:
    """Выбрать источник кандидатов по конфигурации на время запуска.

    В stateful режиме соединение с базой закрывается при выходе из контекста.

    :param config: Конфигурация action
    :param summarizer: Summarizer для stateless режима
    :param github: Клиент GitHub
    :return: Источник кандидатов
    """
    if config.database_url:
        with SimilarityStore(config.database_url) as store:
            store.initialize()
            yield StatefulCandidateSource(store, github.repository)
    else:
        yield StatelessCandidateSource(github, summarizer, config.similarity_threshold)


class DuplicateDetector:
    """Поиск и классификация дубликатов для одного элемента."""

    def __init__(self, summarizer: Summarizer, source: CandidateSource, max_candidates: int = 20):
        """Инициализация.

        :param summarizer: Summarizer для описаний, эмбеддингов и запросов к модели
        :param source: Источник кандидатов
        :param max_candidates: Максимальное количество кандидатов
        """
        self.summarizer = summarizer
        self.source = source
        self.max_candidates = max_candidates

    def detect(self, item: Item, kind: ItemKind, files: list[str] | None = None) -> DuplicateResult | None:
        """Найти дубликат текущего элемента.

        :param item: Текущий issue или PR
        :param kind: Тип элемента
        :param files: Файлы PR
        :return: Результат классификации или None, если подходящих кандидатов нет
        :raises Exception: Ошибка получения эмбеддинга пробрасывается
        """
        summary = self.summarizer.generate_summary(item.title, item.body, files or [])
        embedding = self.summarizer.generate_embedding(build_query_text(item.title, summary))

        candidates = self.source.find_candidates(item, kind, summary, embedding, self.max_candidates)
        candidates.sort(key=lambda candidate: candidate.similarity, reverse=True)

        if not candidates:
            logger.info("Похожих элементов выше порога не найдено")
            return None

        top = candidates[0]
        logger.info(f"Лучший кандидат: #{top.number} (близость {top.similarity:.3f})")
        return self.classify(item.title, summary.problem_statement, top)

    def classify(self, current_title: str, current_summary: str, candidate: Candidate) -> DuplicateResult:
        """Классифицировать пару моделью.

        :param current_title: Заголовок текущего элемента
        :param current_summary: Суть текущего элемента
        :param candidate: Кандидат
        :return: DuplicateResult, distinct с уверенностью 0 при ошибке
        """
        prompt = format_duplicate_prompt(
            current_title,
            current_summary,
            candidate.number,
            candidate.title,
            candidate.summary,
        )
        try:
            raw = self.summarizer.complete_json(CLASSIFY_INSTRUCTIONS, prompt)
        except Exception as e:
            logger.warning(f"Ошибка при классификации дубликата: {e}")
            return fallback_duplicate()

        result = resolve(decode_json(raw, DuplicateResult), fallback_duplicate(), "классификация дубликата")
        if result.classification != "distinct" and result.canonical_item is None:
            result = result.model_copy(update={"canonical_item": candidate.number})
        return result
