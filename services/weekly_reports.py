"""
Еженедельные отчёты.
Один отчёт на пользователя и ISO-неделю, повторная генерация возвращает существующий.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ai.report_analyzer import ReportAnalyzer
from config.settings import settings
from database.models import WeeklyReport
from database.repositories.user import UserRepository
from database.repositories.quote import QuoteRepository
from database.repositories.weekly_report import WeeklyReportRepository
from utils.errors import PersistenceConflict
from utils.time_utils import iso_week, iso_week_bounds, now_local, previous_iso_weeks


@dataclass
class BatchStats:
    """Итоги пакетной генерации."""

    total: int = 0
    generated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    reports: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "generated": self.generated,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def weekly_metrics(quotes: Sequence[Any]) -> Dict[str, int]:
    """Количество цитат, разных авторов и активных дней."""
    authors = {q.author for q in quotes if q.author}
    days = {q.created_at.date() for q in quotes}
    return {
        "quotes": len(quotes),
        "uniqueAuthors": len(authors),
        "activeDays": len(days),
    }


class WeeklyReportService:
    """Генерация еженедельных отчётов."""

    def __init__(
        self,
        analyzer: Optional[ReportAnalyzer] = None,
        user_repo: Optional[UserRepository] = None,
        quote_repo: Optional[QuoteRepository] = None,
        report_repo: Optional[WeeklyReportRepository] = None,
    ):
        self.analyzer = analyzer or ReportAnalyzer()
        self.user_repo = user_repo or UserRepository()
        self.quote_repo = quote_repo or QuoteRepository()
        self.report_repo = report_repo or WeeklyReportRepository()

    async def generate(
        self,
        user_id: int,
        week_number: Optional[int] = None,
        year: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[WeeklyReport]:
        """
        Отчёт за ISO-неделю (по умолчанию текущую).

        Returns:
            Новый или уже существующий отчёт; None, если генерировать нечего
        """
        report, _ = await self._generate(user_id, week_number, year, now)
        return report

    async def _generate(
        self,
        user_id: int,
        week_number: Optional[int],
        year: Optional[int],
        now: Optional[datetime],
    ) -> Tuple[Optional[WeeklyReport], bool]:
        now = now or now_local()
        if week_number is None or year is None:
            week_number, year = iso_week(now.date())

        user = await self.user_repo.get(user_id)
        if not user or not user.onboarding_completed:
            logger.info(f"User {user_id} not found or onboarding incomplete, skipping weekly report")
            return None, False

        existing = await self.report_repo.get_by_period(user_id, week_number, year)
        if existing:
            logger.info(f"Weekly report for user {user_id} week {week_number}/{year} already exists")
            return existing, False

        start, end = iso_week_bounds(week_number, year)
        quotes = await self.quote_repo.get_between(user_id, start, end)
        if not quotes:
            logger.info(f"No quotes for user {user_id} week {week_number}/{year}")
            return None, False

        metrics = weekly_metrics(quotes)
        analysis = await self.analyzer.analyze_week(user.name, quotes)

        try:
            report = await self.report_repo.create(
                user_id=user_id,
                week_number=week_number,
                year=year,
                quote_ids=[q.id for q in quotes],
                quotes_count=metrics["quotes"],
                unique_authors=metrics["uniqueAuthors"],
                active_days=metrics["activeDays"],
                summary=analysis["summary"],
                dominant_themes=analysis["dominantThemes"],
                emotional_tone=analysis["emotionalTone"],
                insights=analysis["insights"],
                created_at=now,
            )
        except PersistenceConflict as e:
            return e.existing, False

        logger.info(
            f"Weekly report {report.id} generated for user {user_id} "
            f"week {week_number}/{year}: {metrics['quotes']} quotes"
        )
        return report, True

    async def generate_for_all_users(
        self,
        now: Optional[datetime] = None,
        week_number: Optional[int] = None,
        year: Optional[int] = None,
    ) -> BatchStats:
        """
        Отчёты для всех пользователей с пройденным онбордингом.
        Ошибка одного пользователя не останавливает пакет.
        """
        now = now or now_local()
        if week_number is None or year is None:
            week_number, year = iso_week(now.date())

        stats = BatchStats()
        users = await self.user_repo.get_report_candidates()
        stats.total = len(users)

        logger.info(f"Generating weekly reports for {stats.total} users, week {week_number}/{year}")

        for user in users:
            await self._generate_into(stats, user.id, week_number, year, now)

        logger.info(
            f"Weekly reports done: generated={stats.generated}, "
            f"skipped={stats.skipped}, failed={stats.failed}"
        )
        return stats

    async def generate_missing(
        self,
        now: Optional[datetime] = None,
        lookback_weeks: Optional[int] = None,
    ) -> BatchStats:
        """
        Догоняет пропущенные отчёты за прошедшие ISO-недели.

        Берёт завершённые недели перед текущей и генерирует отчёт каждому
        пользователю, у которого в неделе есть цитаты, но нет отчёта.
        Такое бывает, если воскресная задача не отработала или цитаты
        пришли после неё.
        """
        now = now or now_local()
        lookback_weeks = lookback_weeks or settings.WEEKLY_CATCHUP_LOOKBACK_WEEKS

        stats = BatchStats()
        for week_number, year in previous_iso_weeks(now.date(), lookback_weeks):
            start, end = iso_week_bounds(week_number, year)
            with_quotes = await self.quote_repo.get_user_ids_between(start, end)
            if not with_quotes:
                continue

            reported = await self.report_repo.get_user_ids_for_period(week_number, year)
            missing = sorted(with_quotes - reported)
            if not missing:
                continue

            logger.info(f"Catching up week {week_number}/{year} for {len(missing)} users")
            stats.total += len(missing)
            for user_id in missing:
                await self._generate_into(stats, user_id, week_number, year, now)

        logger.info(
            f"Weekly catch-up done: generated={stats.generated}, "
            f"skipped={stats.skipped}, failed={stats.failed}"
        )
        return stats

    async def _generate_into(
        self,
        stats: BatchStats,
        user_id: int,
        week_number: int,
        year: int,
        now: datetime,
    ) -> None:
        try:
            report, created = await self._generate(user_id, week_number, year, now)
        except Exception as e:
            stats.failed += 1
            stats.errors.append({"userId": user_id, "week": week_number, "year": year, "error": str(e)})
            logger.error(f"Failed to generate weekly report for user {user_id} week {week_number}/{year}: {e}")
            return

        if created:
            stats.generated += 1
            stats.reports.append(report)
        else:
            stats.skipped += 1
