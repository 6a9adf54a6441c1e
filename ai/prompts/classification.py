"""
Промпты для классификации цитат.
"""

from typing import Iterable, Optional


CLASSIFICATION_SYSTEM_PROMPT = """Ты — психолог и литературный аналитик.
Ты разбираешь цитаты, которые читатели сохраняют из книг.
Отвечай только валидным JSON без пояснений и markdown."""


def build_classification_prompt(
    text: str,
    author: Optional[str],
    categories: Iterable[str],
) -> str:
    """
    Промпт анализа одной цитаты.

    Args:
        text: Текст цитаты
        author: Автор (None — собственная мысль)
        categories: Имена доступных категорий
    """
    categories_list = ", ".join(categories)

    return f"""Проанализируй эту цитату:

Цитата: "{text}"
Автор: {author or 'Неизвестен'}

Доступные категории: {categories_list}

Верни JSON с анализом:
{{
  "category": "одна из доступных категорий",
  "themes": ["тема1", "тема2"],
  "sentiment": "positive/neutral/negative",
  "insight": "краткий психологический инсайт (1-2 предложения)"
}}"""
