"""
Каталог категорий для классификации.
Держит в памяти индекс категорий из БД и сверяет с ним ответы модели.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple

from loguru import logger

from config.constants import CANONICAL_CATEGORIES, CATEGORY_OTHER
from config.settings import settings
from database.repositories.category import CategoryRepository


@dataclass(frozen=True)
class CatalogEntry:
    """Категория в индексе. Ключевые слова в нижнем регистре."""

    name: str
    keywords: Tuple[str, ...] = ()
    synonyms: Tuple[str, ...] = ()
    priority: int = 5


def _entry_from(item: Any) -> CatalogEntry:
    if isinstance(item, dict):
        name = item["name"]
        keywords = item.get("keywords") or []
        synonyms = item.get("synonyms") or []
        priority = item.get("priority", 5)
    else:
        name = item.name
        keywords = item.keywords or []
        synonyms = item.synonyms or []
        priority = item.priority if item.priority is not None else 5

    return CatalogEntry(
        name=name,
        keywords=tuple(k.lower() for k in keywords if k),
        synonyms=tuple(s.lower() for s in synonyms if s),
        priority=priority,
    )


def build_index(items: Iterable[Any]) -> List[CatalogEntry]:
    """Индекс из строк таблицы или словарей, по убыванию приоритета."""
    entries = [_entry_from(item) for item in items]
    return sorted(entries, key=lambda e: -e.priority)


def match_exact(index: List[CatalogEntry], name: str) -> Optional[str]:
    for entry in index:
        if entry.name == name:
            return entry.name
    return None


def match_partial(index: List[CatalogEntry], name: str) -> Optional[str]:
    """Регистронезависимое вхождение названия. Пустая строка ничего не находит."""
    needle = name.strip().lower()
    if not needle:
        return None
    for entry in index:
        if needle in entry.name.lower():
            return entry.name
    return None


def match_keyword(index: List[CatalogEntry], name: str) -> Optional[str]:
    """Название от модели совпало с ключевым словом или синонимом категории."""
    needle = name.strip().lower()
    if not needle:
        return None
    for entry in index:
        if needle in entry.keywords or needle in entry.synonyms:
            return entry.name
    return None


def match_text(index: List[CatalogEntry], text: str) -> Optional[str]:
    """Первая по приоритету категория, чьё ключевое слово встречается в тексте."""
    haystack = (text or "").lower()
    if not haystack:
        return None
    for entry in index:
        if entry.name == CATEGORY_OTHER:
            continue
        for keyword in entry.keywords:
            if keyword in haystack:
                return entry.name
    return None


def resolve_category(index: List[CatalogEntry], model_category: str, text: str) -> str:
    """
    Сверяет категорию модели с каталогом:
    точное совпадение, частичное, по ключевому слову, по тексту цитаты, ДРУГОЕ.
    """
    model_category = model_category or ""
    return (
        match_exact(index, model_category)
        or match_partial(index, model_category)
        or match_keyword(index, model_category)
        or match_text(index, text)
        or CATEGORY_OTHER
    )


class CategoryCatalog:
    """
    Индекс категорий с TTL-кэшем.
    Если таблица пустая или БД недоступна, используется канонический каталог.
    """

    def __init__(
        self,
        repository: Optional[CategoryRepository] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository or CategoryRepository()
        self.ttl_seconds = settings.CATEGORY_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._index: Optional[List[CatalogEntry]] = None
        self._loaded_at: float = 0.0

    async def get_index(self) -> List[CatalogEntry]:
        """Текущий индекс, перечитывается из БД по истечении TTL."""
        now = self._clock()
        if self._index is not None and now - self._loaded_at < self.ttl_seconds:
            return self._index

        try:
            rows = await self.repository.get_active()
        except Exception as e:
            logger.warning(f"Failed to load categories, using canonical catalog: {e}")
            rows = []

        self._index = build_index(rows) if rows else build_index(CANONICAL_CATEGORIES)
        self._loaded_at = now
        return self._index

    async def names(self) -> List[str]:
        return [entry.name for entry in await self.get_index()]

    async def resolve(self, model_category: str, text: str) -> str:
        return resolve_category(await self.get_index(), model_category, text)

    async def match_text(self, text: str) -> str:
        """Категория только по ключевым словам текста."""
        return match_text(await self.get_index(), text) or CATEGORY_OTHER
