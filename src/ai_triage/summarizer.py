"""Структурированные описания и эмбеддинги через OpenAI API."""

import logging
import math

from openai import OpenAI

from .config import DEFAULT_EMBEDDING_MODEL, DEFAULT_MODEL
from .models import ItemSummary
from .parsing import decode_json, fallback_summary, resolve
from .prompts import format_summary_prompt

logger = logging.getLogger(__name__)

SUMMARY_INSTRUCTIONS = "You are a helpful assistant that generates structured summaries in JSON format."


class Summarizer:
    """Обертка над chat и embeddings эндпоинтами OpenAI."""

    TEMPERATURE = 0.2

    def __init__(self, client: OpenAI, model: str = DEFAULT_MODEL, embedding_model: str = DEFAULT_EMBEDDING_MODEL):
        """Инициализация.

        :param client: Клиент OpenAI
        :param model: Модель для chat completions
        :param embedding_model: Модель для эмбеддингов
        """
        self.client = client
        self.model = model
        self.embedding_model = embedding_model

    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        """Выполнить один запрос в JSON-режиме и вернуть текст ответа.

        Повторных попыток нет, ошибки API пробрасываются вызывающему.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or "{}"

    def generate_summary(self, title: str, body: str, files: list[str] | None = None) -> ItemSummary:
        """Получить структурированное описание issue или PR.

        Никогда не бросает исключение: при ошибке API или некорректном JSON
        возвращается описание, где суть проблемы совпадает с заголовком.

        :param title: Заголовок
        :param body: Описание
        :param files: Затронутые файлы
        :return: ItemSummary
        """
        fallback = fallback_summary(title, files)
        try:
            raw = self.complete_json(SUMMARY_INSTRUCTIONS, format_summary_prompt(title, body, files))
        except Exception as e:
            logger.warning(f"Ошибка при генерации описания: {e}")
            return fallback

        return resolve(decode_json(raw, ItemSummary), fallback, "описание")

    def generate_embedding(self, text: str) -> list[float]:
        """Получить эмбеддинг текста.

        :param text: Исходный текст
        :return: Вектор эмбеддинга
        :raises Exception: Ошибка API пробрасывается, без эмбеддинга поиск дубликатов невозможен
        """
        try:
            response = self.client.embeddings.create(model=self.embedding_model, input=text)
            return list(response.data[0].embedding)
        except Exception as e:
            logger.error(f"Ошибка при генерации эмбеддинга: {e}")
            raise


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Косинусная близость двух векторов.

    :param a: Первый вектор
    :param b: Второй вектор
    :return: Значение в диапазоне [-1, 1], 0 если один из векторов нулевой
    :raises ValueError: Если длины векторов различаются
    """
    if len(a) != len(b):
        raise ValueError(f"Векторы должны быть одной длины: {len(a)} != {len(b)}")

    dot_product = math.fsum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return max(-1.0, min(1.0, dot_product / (norm_a * norm_b)))
