"""
Monthly report repository.
Месячные отчёты. Уникальность (user_id, month, year) обеспечивает БД.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from loguru import logger

from database.session import get_session_context, async_session
from database.models import MonthlyReport
from config.constants import MIN_FEEDBACK_RATING, MAX_FEEDBACK_RATING
from utils.errors import PersistenceConflict, ValidationError


class MonthlyReportRepository:
    """Репозиторий для работы с месячными отчётами."""

    async def get(self, report_id: int) -> Optional[MonthlyReport]:
        """Получить отчёт по ID."""
        async with get_session_context() as session:
            result = await session.execute(
                select(MonthlyReport).where(MonthlyReport.id == report_id)
            )
            return result.scalar_one_or_none()

    async def get_by_period(self, user_id: int, month: int, year: int) -> Optional[MonthlyReport]:
        """Отчёт пользователя за месяц."""
        async with get_session_context() as session:
            result = await session.execute(
                select(MonthlyReport).where(
                    MonthlyReport.user_id == user_id,
                    MonthlyReport.month == month,
                    MonthlyReport.year == year,
                )
            )
            return result.scalar_one_or_none()

    async def create(self, **fields) -> MonthlyReport:
        """
        Сохранить новый отчёт.

        Raises:
            PersistenceConflict: отчёт за этот месяц уже есть (в .existing)
        """
        async with async_session() as session:
            report = MonthlyReport(**fields)
            session.add(report)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await self.get_by_period(
                    fields["user_id"], fields["month"], fields["year"]
                )
                logger.info(
                    f"Monthly report {fields['month']}/{fields['year']} "
                    f"for user {fields['user_id']} already exists"
                )
                raise PersistenceConflict(existing=existing)

            await session.refresh(report)
            return report

    async def mark_sent(self, report_id: int, sent_at: datetime) -> None:
        """Отметить отчёт отправленным."""
        async with get_session_context() as session:
            await session.execute(
                update(MonthlyReport)
                .where(MonthlyReport.id == report_id)
                .values(sent_at=sent_at)
            )

    async def add_feedback(
        self,
        report_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> Optional[MonthlyReport]:
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
                select(MonthlyReport).where(MonthlyReport.id == report_id)
            )
            report = result.scalar_one_or_none()
            if not report:
                return None

            report.feedback_rating = rating
            report.feedback_comment = comment
            return report
