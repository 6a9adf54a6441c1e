"""
Утилиты для парсинга текста цитат.
"""

import re
from dataclasses import dataclass
from typing import Optional


@dataclass
class ParsedQuote:
    """Цитата, разобранная на текст, автора и источник."""
    text: str
    author: Optional[str] = None
    source: Optional[str] = None


OPEN_QUOTES = "\"«“„"
CLOSE_QUOTES = "\"»”“"
DASHES = "-–—"

# Порядок важен: первый совпавший паттерн выигрывает
QUOTE_PATTERNS = [
    # "Цитата" (Автор)
    re.compile(rf"^[{OPEN_QUOTES}]([^{OPEN_QUOTES}{CLOSE_QUOTES}]+)[{CLOSE_QUOTES}]\s*\(([^)]+)\)$"),
    # Цитата (Автор)
    re.compile(r"^([^(]+?)\s*\(([^)]+)\)$"),
    # Цитата — Автор
    re.compile(rf"^(.+)\s+[{DASHES}]\s+([^{DASHES}]+)$"),
    # "Цитата" Автор
    re.compile(rf"^[{OPEN_QUOTES}]([^{OPEN_QUOTES}{CLOSE_QUOTES}]+)[{CLOSE_QUOTES}]\s+(.+)$"),
]

# Автор, «Книга»
SOURCE_PATTERN = re.compile(rf"^(.+?),\s*[{OPEN_QUOTES}]([^{OPEN_QUOTES}{CLOSE_QUOTES}]+)[{CLOSE_QUOTES}]$")

MAX_AUTHOR_LENGTH = 100


def _looks_like_author(value: str) -> bool:
    """Автор начинается с заглавной буквы и не слишком длинный."""
    return bool(value) and len(value) <= MAX_AUTHOR_LENGTH and value[0].isupper()


def _unwrap_quotes(value: str) -> str:
    """Снимает одну пару кавычек, только если они стоят с обеих сторон."""
    if len(value) >= 2 and value[0] in OPEN_QUOTES and value[-1] in CLOSE_QUOTES:
        return value[1:-1].strip()
    return value


def _split_author_source(value: str) -> tuple[str, Optional[str]]:
    match = SOURCE_PATTERN.match(value)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return value, None


def parse_quote_text(raw_text: str) -> ParsedQuote:
    """
    Разбирает сообщение пользователя на текст цитаты, автора и источник.

    Обрабатывает случаи:
    - '"Цитата" (Автор)' -> text="Цитата", author="Автор"
    - 'Цитата (Автор, «Книга»)' -> text="Цитата", author="Автор", source="Книга"
    - 'Цитата — Автор' -> text="Цитата", author="Автор"
    - '«Цитата» Автор' -> text="Цитата", author="Автор"
    - 'Просто мысль' -> text="Просто мысль", author=None
    """
    text = (raw_text or "").strip()

    for pattern in QUOTE_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue

        quote_text = _unwrap_quotes(match.group(1).strip())
        author, source = _split_author_source(match.group(2).strip())

        if quote_text and _looks_like_author(author):
            return ParsedQuote(text=quote_text, author=author, source=source)

    return ParsedQuote(text=text)
