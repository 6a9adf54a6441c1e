"""
User repository.
CRUD операции для профилей читателей.
"""

from datetime import datetime
from typing import Optional, List, Tuple, Iterable
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.session import get_session_context, session_scope, async_session
from database.models import User
from utils.time_utils import now_local


class UserRepository:
    """Репозиторий для работы с пользователями."""

    async def get(self, user_id: int, session: Optional[AsyncSession] = None) -> Optional[User]:
        """Получить пользователя по ID."""
        async with session_scope(session) as s:
            result = await s.execute(
                select(User).where(User.id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        """Получить пользователя по Telegram ID."""
        async with get_session_context() as session:
            result = await session.execute(
                select(User).where(User.telegram_id == telegram_id)
            )
            return result.scalar_one_or_none()

    async def get_for_update(self, user_id: int, session: AsyncSession) -> Optional[User]:
        """
        Получить пользователя с блокировкой строки (SELECT ... FOR UPDATE).
        Блокировка держится до конца транзакции переданной сессии.
        """
        result = await session.execute(
            select(User).where(User.id == user_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        telegram_id: int,
        username: Optional[str] = None,
        name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[User, bool]:
        """
        Получить или создать пользователя.
        Возвращает (user, created).
        """
        async with get_session_context() as session:
            result = await session.execute(
                select(User).where(User.telegram_id == telegram_id)
            )
            user = result.scalar_one_or_none()

            if user:
                if username and user.username != username:
                    user.username = username
                if name and user.name != name:
                    user.name = name
                return user, False

        registered_at = now or now_local()
        async with async_session() as session:
            user = User(
                telegram_id=telegram_id,
                username=username,
                name=name or "",
                registered_at=registered_at,
                created_at=registered_at,
                favorite_authors=[],
                monthly_counts=[],
                reminder_times=[],
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                # Параллельный /start уже создал профиль
                await session.rollback()
                existing = await self.get_by_telegram_id(telegram_id)
                return existing, False
            await session.refresh(user)
            return user, True

    async def update(self, user_id: int, **kwargs) -> Optional[User]:
        """Обновить данные пользователя."""
        async with get_session_context() as session:
            result = await session.execute(
                select(User).where(User.id == user_id)
            )
            user = result.scalar_one_or_none()

            if not user:
                return None

            for key, value in kwargs.items():
                if hasattr(user, key):
                    setattr(user, key, value)

            return user

    async def complete_onboarding(self, user_id: int) -> Optional[User]:
        """Отметить онбординг пройденным."""
        return await self.update(user_id, onboarding_completed=True)

    async def set_reminder_frequency(self, user_id: int, frequency: str) -> Optional[User]:
        """Сменить частоту напоминаний. off выключает напоминания."""
        return await self.update(
            user_id,
            reminder_frequency=frequency,
            reminder_enabled=frequency != "off",
        )

    async def get_notification_recipients(self) -> List[User]:
        """
        Пользователи, которым вообще можно слать уведомления:
        активен, не заблокирован, онбординг пройден, напоминания включены.
        """
        async with get_session_context() as session:
            result = await session.execute(
                select(User).where(
                    User.is_active == True,
                    User.is_blocked == False,
                    User.onboarding_completed == True,
                    User.reminder_enabled == True,
                ).order_by(User.id)
            )
            return list(result.scalars().all())

    async def get_report_candidates(self, registered_before: Optional[datetime] = None) -> List[User]:
        """Активные пользователи с пройденным онбордингом (кандидаты на отчёты)."""
        async with get_session_context() as session:
            query = select(User).where(
                User.is_active == True,
                User.onboarding_completed == True,
            )
            if registered_before is not None:
                query = query.where(User.registered_at <= registered_before)

            result = await session.execute(query.order_by(User.id))
            return list(result.scalars().all())

    async def disable_reminders(self, user_id: int) -> None:
        """Выключить напоминания (пользователь заблокировал бота)."""
        async with get_session_context() as session:
            await session.execute(
                update(User)
                .where(User.id == user_id)
                .values(reminder_enabled=False)
            )

    async def mark_reminders_sent(self, user_ids: Iterable[int], sent_at: datetime) -> None:
        """Проставить время последней отправки напоминания."""
        ids = list(user_ids)
        if not ids:
            return

        async with get_session_context() as session:
            await session.execute(
                update(User)
                .where(User.id.in_(ids))
                .values(reminder_last_sent_at=sent_at)
            )
