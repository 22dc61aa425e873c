"""Хранилище похожести в PostgreSQL с расширением pgvector.

Соединение принадлежит запуску action: оно открывается при первом обращении
и закрывается при выходе из контекстного менеджера.
"""

import logging
from typing import Any
from urllib.parse import urlparse

import psycopg
from psycopg.rows import dict_row

from .models import EMBEDDING_DIMENSIONS, ItemKind, SimilarityItem

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")

CREATE_EXTENSION_SQL = "CREATE EXTENSION IF NOT EXISTS vector"

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS items (
    id SERIAL PRIMARY KEY,
    repo TEXT NOT NULL,
    github_id TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    summary TEXT NOT NULL,
    embedding vector({EMBEDDING_DIMENSIONS}),
    created_at TIMESTAMP DEFAULT NOW(),
    closed BOOLEAN DEFAULT FALSE,
    UNIQUE (repo, github_id, type)
)
"""

CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS items_embedding_idx
ON items
USING ivfflat (embedding vector_cosine_ops)
WITH (lists = 100)
"""

UPSERT_SQL = """
INSERT INTO items (repo, github_id, type, title, summary, embedding, closed)
VALUES (%s, %s, %s, %s, %s, %s::vector, %s)
ON CONFLICT (repo, github_id, type)
DO UPDATE SET
    title = EXCLUDED.title,
    summary = EXCLUDED.summary,
    embedding = EXCLUDED.embedding,
    closed = EXCLUDED.closed
"""

FIND_SIMILAR_SQL = """
SELECT
    repo,
    github_id,
    type,
    title,
    summary,
    closed,
    1 - (embedding <=> %(embedding)s::vector) AS similarity
FROM items
WHERE repo = %(repo)s AND type = %(type)s AND closed = FALSE
ORDER BY embedding <=> %(embedding)s::vector
LIMIT %(limit)s
"""


def vector_literal(values: list[float]) -> str:
    return "[" + ",".join(str(float(value)) for value in values) + "]"


class SimilarityStore:
    """Таблица items с приблизительным поиском ближайших соседей."""

    def __init__(self, database_url: str):
        """Инициализация без открытия соединения.

        :param database_url: Строка подключения к PostgreSQL
        """
        self.database_url = database_url
        self._conn: psycopg.Connection | None = None

    def __enter__(self) -> "SimilarityStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _connect_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"autocommit": True}
        if "sslmode" in self.database_url:
            return kwargs
        host = urlparse(self.database_url).hostname or ""
        kwargs["sslmode"] = "disable" if host in _LOCAL_HOSTS else "require"
        return kwargs

    @property
    def connection(self) -> psycopg.Connection:
        if self._conn is None or self._conn.closed:
            self._conn = psycopg.connect(self.database_url, **self._connect_kwargs())
        return self._conn

    def close(self) -> None:
        """Закрыть соединение, повторный вызов безопасен."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Соединение с базой данных закрыто")

    def initialize(self) -> None:
        """Создать расширение, таблицу и индекс, если их еще нет."""
        try:
            with self.connection.cursor() as cur:
                cur.execute(CREATE_EXTENSION_SQL)
                cur.execute(CREATE_TABLE_SQL)
                cur.execute(CREATE_INDEX_SQL)
            logger.info("База данных инициализирована")
        except Exception as e:
            logger.warning(f"Ошибка при инициализации базы данных: {e}")

    def upsert(self, item: SimilarityItem) -> None:
        """Сохранить или обновить запись (repo, item_id, kind).

        :param item: Запись для сохранения
        """
        try:
            with self.connection.cursor() as cur:
                cur.execute(
                    UPSERT_SQL,
                    (
                        item.repo,
                        item.item_id,
                        item.kind.value,
                        item.title,
                        item.summary,
                        vector_literal(item.embedding),
                        item.closed,
                    ),
                )
            logger.info(f"Запись {item.kind.value} #{item.item_id} сохранена в базе данных")
        except Exception as e:
            logger.warning(f"Ошибка при сохранении записи {item.kind.value} #{item.item_id}: {e}")

    def find_similar(self, embedding: list[float], repo: str, kind: ItemKind, limit: int) -> list[SimilarityItem]:
        """Найти ближайшие по косинусному расстоянию открытые записи.

        :param embedding: Эмбеддинг запроса
        :param repo: Полное имя репозитория
        :param kind: Тип элементов
        :param limit: Максимальное количество записей
        :return: Записи в порядке убывания близости, пустой список при ошибке
        """
        try:
            with self.connection.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    FIND_SIMILAR_SQL,
                    {"embedding": vector_literal(embedding), "repo": repo, "type": kind.value, "limit": limit},
                )
                rows = cur.fetchall()
        except Exception as e:
            logger.warning(f"Ошибка при поиске похожих записей: {e}")
            return []

        return [
            SimilarityItem(
                repo=row["repo"],
                item_id=str(row["github_id"]),
                kind=ItemKind(row["type"]),
                title=row["title"],
                summary=row["summary"],
                closed=bool(row["closed"]),
                similarity=float(row["similarity"] or 0.0),
            )
            for row in rows
        ]
