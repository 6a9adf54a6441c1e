"""
Category repository.
Каталог категорий для классификации цитат.
"""

from typing import List, Dict, Any
from sqlalchemy import select, func

from database.session import get_session_context
from database.models import Category


class CategoryRepository:
    """Репозиторий для работы с категориями."""

    async def get_active(self) -> List[Category]:
        """Активные категории по убыванию приоритета."""
        async with get_session_context() as session:
            result = await session.execute(
                select(Category)
                .where(Category.is_active == True)
                .order_by(Category.priority.desc(), Category.name)
            )
            return list(result.scalars().all())

    async def seed(self, categories: List[Dict[str, Any]]) -> int:
        """
        Заполнить каталог, если таблица пустая.

        Returns:
            Количество добавленных категорий
        """
        async with get_session_context() as session:
            result = await session.execute(select(func.count(Category.id)))
            if result.scalar():
                return 0

            for item in categories:
                session.add(Category(
                    name=item["name"],
                    keywords=list(item.get("keywords", [])),
                    synonyms=list(item.get("synonyms", [])),
                    priority=item.get("priority", 5),
                    is_active=True,
                ))
            return len(categories)
