"""
Achievement repository.
Полученные пользователями достижения.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.session import session_scope
from database.models import UserAchievement


class AchievementRepository:
    """Репозиторий для работы с достижениями пользователей."""

    async def get_unlocked(
        self,
        user_id: int,
        session: Optional[AsyncSession] = None,
    ) -> List[UserAchievement]:
        """Все полученные достижения пользователя."""
        async with session_scope(session) as s:
            result = await s.execute(
                select(UserAchievement)
                .where(UserAchievement.user_id == user_id)
                .order_by(UserAchievement.unlocked_at, UserAchievement.id)
            )
            return list(result.scalars().all())

    async def add(
        self,
        user_id: int,
        achievement_id: str,
        unlocked_at: datetime,
        session: Optional[AsyncSession] = None,
    ) -> UserAchievement:
        """Записать полученное достижение."""
        async with session_scope(session) as s:
            record = UserAchievement(
                user_id=user_id,
                achievement_id=achievement_id,
                unlocked_at=unlocked_at,
            )
            s.add(record)
            await s.flush()
            return record
