"""
Weekly report repository.
Еженедельные отчёты. Уникальность (user_id, week_number, year) обеспечивает БД.
"""

from datetime import datetime
from typing import Optional, List, Set, Tuple, Iterable
from sqlalchemy import select, and_, or_, update
from sqlalchemy.exc import IntegrityError
from loguru import logger

from database.session import get_session_context, async_session
from database.models import WeeklyReport
from config.constants import MIN_FEEDBACK_RATING, MAX_FEEDBACK_RATING
from utils.errors import PersistenceConflict, ValidationError


class WeeklyReportRepository:
    """Репозиторий для работы с еженедельными отчётами."""

    async def get(self, report_id: int) -> Optional[WeeklyReport]:
        """Получить отчёт по ID."""
        async with get_session_context() as session:
            result = await session.execute(
                select(WeeklyReport).where(WeeklyReport.id == report_id)
            )
            return result.scalar_one_or_none()

    async def get_by_period(self, user_id: int, week_number: int, year: int) -> Optional[WeeklyReport]:
        """Отчёт пользователя за ISO-неделю."""
        async with get_session_context() as session:
            result = await session.execute(
                select(WeeklyReport).where(
                    WeeklyReport.user_id == user_id,
                    WeeklyReport.week_number == week_number,
                    WeeklyReport.year == year,
                )
            )
            return result.scalar_one_or_none()

    async def get_for_weeks(
        self,
        user_id: int,
        weeks: Iterable[Tuple[int, int]],
    ) -> List[WeeklyReport]:
        """
        Отчёты пользователя за набор недель.

        Args:
            weeks: Пары (номер недели, ISO-год)
        """
        pairs = list(weeks)
        if not pairs:
            return []

        async with get_session_context() as session:
            result = await session.execute(
                select(WeeklyReport)
                .where(
                    WeeklyReport.user_id == user_id,
                    or_(*[
                        and_(WeeklyReport.week_number == week, WeeklyReport.year == year)
                        for week, year in pairs
                    ]),
                )
                .order_by(WeeklyReport.year, WeeklyReport.week_number)
            )
            return list(result.scalars().all())

    async def get_user_ids_for_period(self, week_number: int, year: int) -> Set[int]:
        """Пользователи, у которых уже есть отчёт за ISO-неделю."""
        async with get_session_context() as session:
            result = await session.execute(
                select(WeeklyReport.user_id).where(
                    WeeklyReport.week_number == week_number,
                    WeeklyReport.year == year,
                )
            )
            return set(result.scalars().all())

    async def create(self, **fields) -> WeeklyReport:
        """
        Сохранить новый отчёт.

        Raises:
            PersistenceConflict: отчёт за этот период уже есть (в .existing)
        """
        async with async_session() as session:
            report = WeeklyReport(**fields)
            session.add(report)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await self.get_by_period(
                    fields["user_id"], fields["week_number"], fields["year"]
                )
                logger.info(
                    f"Weekly report {fields['week_number']}/{fields['year']} "
                    f"for user {fields['user_id']} already exists"
                )
                raise PersistenceConflict(existing=existing)

            await session.refresh(report)
            return report

    async def mark_sent(self, report_id: int, sent_at: datetime) -> None:
        """Отметить отчёт отправленным."""
        async with get_session_context() as session:
            await session.execute(
                update(WeeklyReport)
                .where(WeeklyReport.id == report_id)
                .values(sent_at=sent_at)
            )

    async def add_feedback(
        self,
        report_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> Optional[WeeklyReport]:
        """
        Сохранить оценку отчёта (1-5).
        Вызывается со стороны админки и мини-приложения, в боте обработчика нет.
        """
        if not MIN_FEEDBACK_RATING <= rating <= MAX_FEEDBACK_RATING:
            raise ValidationError(
                f"Rating must be between {MIN_FEEDBACK_RATING} and {MAX_FEEDBACK_RATING}, got {rating}"
            )

        async with get_session_context() as session:
            result = await session.execute(
                select(WeeklyReport).where(WeeklyReport.id == report_id)
            )
            report = result.scalar_one_or_none()
            if not report:
                return None

            report.feedback_rating = rating
            report.feedback_comment = comment
            return report
