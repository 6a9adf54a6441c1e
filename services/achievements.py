"""
Система достижений.
Статический каталог, снимок метрик пользователя и выдача новых достижений.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from config.constants import (
    ACHIEVEMENT_QUOTES_COUNT,
    ACHIEVEMENT_STREAK_DAYS,
    ACHIEVEMENT_CLASSICS_COUNT,
    ACHIEVEMENT_OWN_THOUGHTS,
    ACHIEVEMENT_CATEGORY_DIVERSITY,
    ACHIEVEMENT_DAYS_WITH_BOT,
    CLASSIC_AUTHORS,
)
from database.models import User
from database.repositories.user import UserRepository
from database.repositories.quote import QuoteRepository
from database.repositories.achievement import AchievementRepository
from database.session import session_scope
from utils.time_utils import now_local


@dataclass(frozen=True)
class AchievementMetrics:
    """Снимок метрик пользователя, по которому проверяются условия."""

    total_quotes: int = 0
    current_streak: int = 0
    classics_count: int = 0
    own_thoughts: int = 0
    distinct_categories: int = 0
    days_with_bot: int = 0


@dataclass(frozen=True)
class Achievement:
    """Достижение из каталога."""

    id: str
    name: str
    description: str
    icon: str
    type: str
    target_value: int
    condition: Callable[[AchievementMetrics], bool]

    def current_value(self, metrics: AchievementMetrics) -> int:
        return {
            ACHIEVEMENT_QUOTES_COUNT: metrics.total_quotes,
            ACHIEVEMENT_STREAK_DAYS: metrics.current_streak,
            ACHIEVEMENT_CLASSICS_COUNT: metrics.classics_count,
            ACHIEVEMENT_OWN_THOUGHTS: metrics.own_thoughts,
            ACHIEVEMENT_CATEGORY_DIVERSITY: metrics.distinct_categories,
            ACHIEVEMENT_DAYS_WITH_BOT: metrics.days_with_bot,
        }.get(self.type, 0)


MONTHLY_CONSISTENT_MIN_QUOTES = 15

# Порядок важен: в нём же выдаются новые достижения
ACHIEVEMENTS: List[Achievement] = [
    Achievement(
        id="first_quote",
        name="Первые шаги",
        description="Сохранили первую цитату в дневник мудрости",
        icon="🌱",
        type=ACHIEVEMENT_QUOTES_COUNT,
        target_value=1,
        condition=lambda m: m.total_quotes >= 1,
    ),
    Achievement(
        id="wisdom_collector",
        name="Коллекционер мудрости",
        description="Собрали 25 цитат - настоящая библиотека вдохновения!",
        icon="📚",
        type=ACHIEVEMENT_QUOTES_COUNT,
        target_value=25,
        condition=lambda m: m.total_quotes >= 25,
    ),
    Achievement(
        id="week_philosopher",
        name="Философ недели",
        description="7 дней подряд с цитатами - вы превращаете чтение в привычку",
        icon="🔥",
        type=ACHIEVEMENT_STREAK_DAYS,
        target_value=7,
        condition=lambda m: m.current_streak >= 7,
    ),
    Achievement(
        id="classics_lover",
        name="Любитель классики",
        description="10 цитат классиков - вы цените вечные истины",
        icon="📖",
        type=ACHIEVEMENT_CLASSICS_COUNT,
        target_value=10,
        condition=lambda m: m.classics_count >= 10,
    ),
    Achievement(
        id="thinker",
        name="Мыслитель",
        description="10 собственных мыслей - вы не только читаете, но и размышляете",
        icon="💭",
        type=ACHIEVEMENT_OWN_THOUGHTS,
        target_value=10,
        condition=lambda m: m.own_thoughts >= 10,
    ),
    Achievement(
        id="marathon_reader",
        name="Марафонец чтения",
        description="50 цитат - вы настоящий ценитель мудрости",
        icon="🏃‍♀️",
        type=ACHIEVEMENT_QUOTES_COUNT,
        target_value=50,
        condition=lambda m: m.total_quotes >= 50,
    ),
    Achievement(
        id="diverse_reader",
        name="Разносторонний читатель",
        description="Цитаты из 5 разных категорий - широкий кругозор!",
        icon="🌈",
        type=ACHIEVEMENT_CATEGORY_DIVERSITY,
        target_value=5,
        condition=lambda m: m.distinct_categories >= 5,
    ),
    Achievement(
        id="monthly_consistent",
        name="Постоянство",
        description="Месяц с ботом и активное использование",
        icon="⭐",
        type=ACHIEVEMENT_DAYS_WITH_BOT,
        target_value=30,
        condition=lambda m: m.days_with_bot >= 30 and m.total_quotes >= MONTHLY_CONSISTENT_MIN_QUOTES,
    ),
]

ACHIEVEMENTS_BY_ID: Dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def get_achievement(achievement_id: str) -> Optional[Achievement]:
    return ACHIEVEMENTS_BY_ID.get(achievement_id)


def format_achievement_notification(achievement: Achievement) -> str:
    """Текст поздравления (Markdown)."""
    return (
        f"🎉 *Поздравляю!*\n\n"
        f"Вы получили достижение:\n"
        f"{achievement.icon} *{achievement.name}*\n"
        f"{achievement.description}\n\n"
        f"Продолжайте собирать моменты вдохновения! 📖"
    )


class AchievementEngine:
    """Проверка и выдача достижений."""

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        quote_repo: Optional[QuoteRepository] = None,
        achievement_repo: Optional[AchievementRepository] = None,
    ):
        self.user_repo = user_repo or UserRepository()
        self.quote_repo = quote_repo or QuoteRepository()
        self.achievement_repo = achievement_repo or AchievementRepository()

    async def collect_metrics(
        self,
        user: User,
        session: AsyncSession,
        now: Optional[datetime] = None,
    ) -> AchievementMetrics:
        """Один снимок метрик для всех условий."""
        now = now or now_local()
        registered_at = user.registered_at or now

        return AchievementMetrics(
            total_quotes=await self.quote_repo.count_for_user(user.id, session=session),
            current_streak=user.current_streak or 0,
            classics_count=await self.quote_repo.count_by_authors(
                user.id, CLASSIC_AUTHORS, session=session
            ),
            own_thoughts=await self.quote_repo.count_own_thoughts(user.id, session=session),
            distinct_categories=await self.quote_repo.count_distinct_categories(
                user.id, session=session
            ),
            days_with_bot=max((now - registered_at).days, 0),
        )

    async def evaluate(
        self,
        user_id: int,
        session: Optional[AsyncSession] = None,
        now: Optional[datetime] = None,
    ) -> List[Achievement]:
        """
        Проверяет каталог и записывает новые достижения.

        Args:
            user_id: ID пользователя
            session: Сессия внешней транзакции (при сохранении цитаты)
            now: Текущее время (для тестов)

        Returns:
            Только что полученные достижения, в порядке каталога
        """
        now = now or now_local()

        async with session_scope(session) as s:
            user = await self.user_repo.get(user_id, session=s)
            if not user:
                return []

            unlocked = {
                record.achievement_id
                for record in await self.achievement_repo.get_unlocked(user_id, session=s)
            }
            pending = [a for a in ACHIEVEMENTS if a.id not in unlocked]
            if not pending:
                return []

            metrics = await self.collect_metrics(user, s, now)

            new_achievements: List[Achievement] = []
            for achievement in pending:
                if achievement.condition(metrics):
                    await self.achievement_repo.add(user_id, achievement.id, now, session=s)
                    new_achievements.append(achievement)

        if new_achievements:
            logger.info(
                f"User {user_id} unlocked achievements: "
                f"{', '.join(a.id for a in new_achievements)}"
            )
        return new_achievements

    async def get_progress(self, user_id: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Прогресс по всем достижениям. Ничего не записывает.

        Returns:
            [{"id", "name", "description", "icon", "isUnlocked", "currentValue",
              "targetValue", "progress", "unlockedAt"}, ...]
        """
        now = now or now_local()

        async with session_scope() as session:
            user = await self.user_repo.get(user_id, session=session)
            if not user:
                return []

            unlocked = {
                record.achievement_id: record.unlocked_at
                for record in await self.achievement_repo.get_unlocked(user_id, session=session)
            }
            metrics = await self.collect_metrics(user, session, now)

        progress = []
        for achievement in ACHIEVEMENTS:
            current = achievement.current_value(metrics)
            is_unlocked = achievement.id in unlocked
            percent = 100 if is_unlocked else min(100, round(current * 100 / achievement.target_value))
            progress.append({
                "id": achievement.id,
                "name": achievement.name,
                "description": achievement.description,
                "icon": achievement.icon,
                "isUnlocked": is_unlocked,
                "currentValue": current,
                "targetValue": achievement.target_value,
                "progress": percent,
                "unlockedAt": unlocked.get(achievement.id),
            })
        return progress
