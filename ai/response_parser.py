"""
Разбор ответов модели.
Модель не всегда возвращает чистый JSON: бывают markdown-блоки,
пояснения вокруг объекта и обрезанные ответы.
"""

import json
import re
from typing import Any, Dict, Optional

from loguru import logger

from config.constants import (
    SENTIMENTS,
    SENTIMENT_NEUTRAL,
    MAX_QUOTE_THEMES,
    DEFAULT_THEME,
    DEFAULT_INSIGHT,
)


FENCED_BLOCK_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
INSIGHT_FIELD_PATTERN = re.compile(r'"insights?"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)


def _loads_dict(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(candidate)
    except (ValueError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def _strip_fences(raw: str) -> str:
    blocks = FENCED_BLOCK_PATTERN.findall(raw)
    if blocks:
        return blocks[0].strip()
    return raw.replace("```json", "").replace("```", "").strip()


def _balanced_objects(raw: str):
    """Перебирает сбалансированные подстроки {...} слева направо."""
    start = raw.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(raw)):
            char = raw[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    yield raw[start:index + 1]
                    break
        start = raw.find("{", start + 1)


def extract_json_object(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Достаёт JSON-объект из ответа модели.

    Порядок: прямой разбор, разбор без markdown-обёртки,
    первая сбалансированная подстрока {...}.

    Returns:
        dict или None, если объект найти не удалось
    """
    if not raw or not raw.strip():
        return None

    parsed = _loads_dict(raw.strip())
    if parsed is not None:
        return parsed

    parsed = _loads_dict(_strip_fences(raw))
    if parsed is not None:
        return parsed

    for candidate in _balanced_objects(raw):
        parsed = _loads_dict(candidate)
        if parsed is not None:
            return parsed

    return None


def _coerce_category(value: Any) -> str:
    """Модель иногда возвращает категорию объектом или списком."""
    if isinstance(value, dict):
        for key in ("name", "category", "title"):
            if key in value:
                return _coerce_category(value[key])
        for item in value.values():
            return _coerce_category(item)
        return ""
    if isinstance(value, (list, tuple)):
        return _coerce_category(value[0]) if value else ""
    if value is None:
        return ""
    return str(value).strip()


def normalize_classification(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Приводит сырой объект к записи {category, themes, sentiment, insight}.
    Категория здесь только строка: сверка с каталогом идёт отдельно.
    """
    themes = data.get("themes")
    if isinstance(themes, str):
        themes = [themes]
    if isinstance(themes, (list, tuple)):
        themes = [str(t).strip() for t in themes if str(t).strip()][:MAX_QUOTE_THEMES]
    else:
        themes = []

    sentiment = data.get("sentiment")
    sentiment = sentiment.strip().lower() if isinstance(sentiment, str) else ""
    if sentiment not in SENTIMENTS:
        sentiment = SENTIMENT_NEUTRAL

    insight = data.get("insight")
    if not isinstance(insight, str) or not insight.strip():
        insight = data.get("insights")
    if not isinstance(insight, str) or not insight.strip():
        insight = DEFAULT_INSIGHT

    return {
        "category": _coerce_category(data.get("category")),
        "themes": themes or [DEFAULT_THEME],
        "sentiment": sentiment,
        "insight": insight.strip(),
    }


def parse_classification_response(raw: Optional[str]) -> Dict[str, Any]:
    """
    Разбирает ответ классификации. Никогда не падает.

    1. JSON целиком
    2. JSON внутри ```-блока
    3. первая сбалансированная подстрока {...}
    4. регулярка по полю "insight"/"insights"
    5. статическая заглушка
    """
    parsed = extract_json_object(raw)
    if parsed is not None:
        return normalize_classification(parsed)

    match = INSIGHT_FIELD_PATTERN.search(raw or "")
    if match:
        logger.warning("Classification response is not valid JSON, extracted insight by regex")
        try:
            insight = json.loads(f'"{match.group(1)}"')
        except ValueError:
            insight = match.group(1)
        return normalize_classification({"insight": insight})

    logger.warning("Classification response could not be parsed, using defaults")
    return normalize_classification({})
