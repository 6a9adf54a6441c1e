"""
Quote repository.
Запись и выборки цитат.
"""

from datetime import datetime
from typing import Optional, List, Iterable, Dict, Set
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from database.session import get_session_context, session_scope
from database.models import Quote


class QuoteRepository:
    """Репозиторий для работы с цитатами."""

    async def create(
        self,
        session: AsyncSession,
        user_id: int,
        text: str,
        category: str,
        author: Optional[str] = None,
        source: Optional[str] = None,
        themes: Optional[List[str]] = None,
        sentiment: str = "neutral",
        insight: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Quote:
        """
        Создать цитату в рамках переданной транзакции.
        Коммит остаётся на вызывающем коде.
        """
        quote = Quote(
            user_id=user_id,
            text=text,
            author=author,
            source=source,
            category=category,
            themes=list(themes or []),
            sentiment=sentiment,
            insight=insight,
        )
        if created_at is not None:
            quote.created_at = created_at

        session.add(quote)
        await session.flush()
        return quote

    async def count_between(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Количество цитат пользователя в полуинтервале [start, end)."""
        async with session_scope(session) as s:
            result = await s.execute(
                select(func.count(Quote.id)).where(
                    Quote.user_id == user_id,
                    Quote.created_at >= start,
                    Quote.created_at < end,
                )
            )
            return result.scalar() or 0

    async def count_by_users_between(
        self,
        user_ids: Iterable[int],
        start: datetime,
        end: datetime,
    ) -> Dict[int, int]:
        """Количество цитат за период по каждому пользователю (нулевые не попадают)."""
        ids = list(user_ids)
        if not ids:
            return {}

        async with get_session_context() as session:
            result = await session.execute(
                select(Quote.user_id, func.count(Quote.id))
                .where(
                    Quote.user_id.in_(ids),
                    Quote.created_at >= start,
                    Quote.created_at < end,
                )
                .group_by(Quote.user_id)
            )
            return {user_id: count for user_id, count in result.all()}

    async def get_between(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
    ) -> List[Quote]:
        """Цитаты пользователя за период, от ранних к поздним."""
        async with get_session_context() as session:
            query = (
                select(Quote)
                .where(
                    Quote.user_id == user_id,
                    Quote.created_at >= start,
                    Quote.created_at < end,
                )
                .order_by(Quote.created_at, Quote.id)
            )
            if limit:
                query = query.limit(limit)

            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_user_ids_between(self, start: datetime, end: datetime) -> Set[int]:
        """Пользователи, у которых есть цитаты в полуинтервале [start, end)."""
        async with get_session_context() as session:
            result = await session.execute(
                select(Quote.user_id)
                .where(Quote.created_at >= start, Quote.created_at < end)
                .distinct()
            )
            return set(result.scalars().all())

    async def count_for_user(self, user_id: int, session: Optional[AsyncSession] = None) -> int:
        """Всего цитат у пользователя."""
        async with session_scope(session) as s:
            result = await s.execute(
                select(func.count(Quote.id)).where(Quote.user_id == user_id)
            )
            return result.scalar() or 0

    async def count_by_authors(
        self,
        user_id: int,
        authors: Iterable[str],
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Количество цитат с автором из списка (точное совпадение)."""
        async with session_scope(session) as s:
            result = await s.execute(
                select(func.count(Quote.id)).where(
                    Quote.user_id == user_id,
                    Quote.author.in_(list(authors)),
                )
            )
            return result.scalar() or 0

    async def count_own_thoughts(self, user_id: int, session: Optional[AsyncSession] = None) -> int:
        """Количество цитат без автора (собственные мысли)."""
        async with session_scope(session) as s:
            result = await s.execute(
                select(func.count(Quote.id)).where(
                    Quote.user_id == user_id,
                    or_(Quote.author.is_(None), Quote.author == ""),
                )
            )
            return result.scalar() or 0

    async def count_distinct_categories(
        self,
        user_id: int,
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Количество разных категорий у пользователя."""
        async with session_scope(session) as s:
            result = await s.execute(
                select(func.count(func.distinct(Quote.category))).where(
                    Quote.user_id == user_id
                )
            )
            return result.scalar() or 0
