"""
Приём цитат.
Проверка, разбор, классификация, сохранение, статистика и достижения.
Сохранение, статистика и достижения идут одной транзакцией.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from loguru import logger

from ai.classification import ClassificationGateway, build_classification_gateway
from config.constants import MAX_FAVORITE_AUTHORS
from config.settings import settings
from database.models import Quote, User
from database.repositories.user import UserRepository
from database.repositories.quote import QuoteRepository
from database.session import get_session_context
from services.achievements import Achievement, AchievementEngine
from utils.errors import ValidationError, LimitReached, IntakeFailed
from utils.text_parser import ParsedQuote, parse_quote_text
from utils.time_utils import day_bounds, now_local


class IntakeStatus(str, Enum):
    SAVED = "saved"
    LIMIT_REACHED = "limit_reached"


@dataclass
class IntakeResult:
    """Результат приёма цитаты."""

    status: IntakeStatus
    quote: Optional[Quote] = None
    new_achievements: List[Achievement] = field(default_factory=list)
    today_count: int = 0


def compute_streak(
    last_quote_at: Optional[datetime],
    now: datetime,
    current_streak: int,
    longest_streak: int,
) -> Tuple[int, int]:
    """
    Серия дней подряд с цитатами.

    Тот же день — без изменений, вчера — +1, иначе серия начинается заново.

    Returns:
        (current_streak, longest_streak)
    """
    today = now.date()
    if last_quote_at is not None and last_quote_at.date() == today:
        current = current_streak or 1
    elif last_quote_at is not None and last_quote_at.date() == today - timedelta(days=1):
        current = (current_streak or 0) + 1
    else:
        current = 1

    return current, max(longest_streak or 0, current)


def update_favorite_authors(authors: Optional[List[str]], author: Optional[str]) -> List[str]:
    """Добавляет нового автора в конец, хранит последних MAX_FAVORITE_AUTHORS."""
    result = list(authors or [])
    if author and author not in result:
        result.append(author)
    return result[-MAX_FAVORITE_AUTHORS:]


def increment_monthly_count(counts: Optional[List[Dict[str, int]]], month: int, year: int) -> List[Dict[str, int]]:
    """+1 к счётчику месяца, запись создаётся при первой цитате месяца."""
    result = [dict(item) for item in counts or []]
    for item in result:
        if item.get("month") == month and item.get("year") == year:
            item["count"] = item.get("count", 0) + 1
            return result

    result.append({"month": month, "year": year, "count": 1})
    return result


def apply_quote_statistics(user: User, author: Optional[str], now: datetime) -> None:
    """Обновляет статистику профиля после новой цитаты."""
    user.total_quotes = (user.total_quotes or 0) + 1
    # JSON-колонки: присваиваем новые списки, иначе ORM не увидит изменений
    user.favorite_authors = update_favorite_authors(user.favorite_authors, author)
    user.monthly_counts = increment_monthly_count(user.monthly_counts, now.month, now.year)
    user.current_streak, user.longest_streak = compute_streak(
        user.last_quote_at, now, user.current_streak, user.longest_streak
    )
    user.last_quote_at = now


class QuoteIntake:
    """Сервис приёма цитат."""

    def __init__(
        self,
        gateway: Optional[ClassificationGateway] = None,
        user_repo: Optional[UserRepository] = None,
        quote_repo: Optional[QuoteRepository] = None,
        achievement_engine: Optional[AchievementEngine] = None,
        daily_limit: Optional[int] = None,
        max_length: Optional[int] = None,
    ):
        self.gateway = gateway or build_classification_gateway()
        self.user_repo = user_repo or UserRepository()
        self.quote_repo = quote_repo or QuoteRepository()
        self.achievement_engine = achievement_engine or AchievementEngine(
            user_repo=self.user_repo, quote_repo=self.quote_repo
        )
        self.daily_limit = daily_limit or settings.DAILY_QUOTE_LIMIT
        self.max_length = max_length or settings.QUOTE_MAX_LENGTH
        self._locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: int) -> AsyncIterator[None]:
        """Блокировка на пользователя. Удаляется, когда её никто не держит и не ждёт."""
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id]:
                del self._lock_users[user_id]
                del self._locks[user_id]

    async def get_today_count(self, user_id: int, now: Optional[datetime] = None) -> int:
        """Количество цитат пользователя за текущие сутки."""
        now = now or now_local()
        start, end = day_bounds(now.date())
        return await self.quote_repo.count_between(user_id, start, end)

    async def submit(self, user_id: int, raw_text: str, now: Optional[datetime] = None) -> IntakeResult:
        """
        Принимает цитату от пользователя.

        Args:
            user_id: ID пользователя в БД
            raw_text: Текст сообщения как есть
            now: Текущее время (для тестов)

        Returns:
            IntakeResult со статусом SAVED или LIMIT_REACHED

        Raises:
            ValidationError: пустой или слишком длинный текст, неизвестный пользователь
            IntakeFailed: не удалось сохранить, статистика не изменена
        """
        now = now or now_local()
        text = (raw_text or "").strip()

        if not text:
            raise ValidationError("Quote text is empty")
        if len(text) > self.max_length:
            raise ValidationError(f"Quote is longer than {self.max_length} characters")

        async with self._user_lock(user_id):
            user = await self.user_repo.get(user_id)
            if not user:
                raise ValidationError(f"User {user_id} not found")

            today_count = await self.get_today_count(user_id, now)
            if today_count >= self.daily_limit:
                logger.info(f"User {user_id} reached daily limit ({today_count}/{self.daily_limit})")
                return IntakeResult(status=IntakeStatus.LIMIT_REACHED, today_count=today_count)

            parsed = parse_quote_text(text)
            classification = await self.gateway.classify(parsed.text, parsed.author)

            try:
                return await self._persist(user_id, parsed, classification, now)
            except LimitReached as e:
                logger.info(f"User {user_id} reached daily limit inside transaction")
                return IntakeResult(status=IntakeStatus.LIMIT_REACHED, today_count=e.limit)
            except ValidationError:
                raise
            except Exception as e:
                logger.error(f"Failed to save quote for user {user_id}: {e}")
                raise IntakeFailed(f"Quote for user {user_id} was not saved") from e

    async def _persist(
        self,
        user_id: int,
        parsed: ParsedQuote,
        classification: Any,
        now: datetime,
    ) -> IntakeResult:
        start, end = day_bounds(now.date())

        async with get_session_context() as session:
            user = await self.user_repo.get_for_update(user_id, session)
            if not user:
                raise ValidationError(f"User {user_id} not found")

            # Повторная проверка под блокировкой строки
            today_count = await self.quote_repo.count_between(user_id, start, end, session=session)
            if today_count >= self.daily_limit:
                raise LimitReached(self.daily_limit)

            quote = await self.quote_repo.create(
                session,
                user_id=user_id,
                text=parsed.text,
                author=parsed.author,
                source=parsed.source,
                category=classification.category,
                themes=classification.themes,
                sentiment=classification.sentiment,
                insight=classification.insight,
                created_at=now,
            )

            apply_quote_statistics(user, parsed.author, now)
            await session.flush()

            new_achievements = await self.achievement_engine.evaluate(
                user_id, session=session, now=now
            )

        logger.info(
            f"Saved quote {quote.id} for user {user_id}: "
            f"category={quote.category}, author={quote.author}"
        )

        return IntakeResult(
            status=IntakeStatus.SAVED,
            quote=quote,
            new_achievements=new_achievements,
            today_count=today_count + 1,
        )

    async def get_user_stats(self, user_id: int, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """Статистика для /stats. None, если пользователя нет."""
        now = now or now_local()
        user = await self.user_repo.get(user_id)
        if not user:
            return None

        registered_at = user.registered_at or now
        authors = list(user.favorite_authors or [])

        return {
            "name": user.name,
            "total_quotes": user.total_quotes or 0,
            "current_streak": user.current_streak or 0,
            "longest_streak": user.longest_streak or 0,
            "favorite_authors": list(reversed(authors))[:3],
            "days_since_registration": max((now - registered_at).days, 0),
            "today_count": await self.get_today_count(user_id, now),
            "daily_limit": self.daily_limit,
        }
