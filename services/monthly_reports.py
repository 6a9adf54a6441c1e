"""
Месячные отчёты.
Основной путь — агрегация недельных отчётов, запасной — анализ цитат месяца.
Один отчёт на пользователя и месяц.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ai.report_analyzer import ReportAnalyzer, emotional_trend, top_themes
from config.constants import (
    GENERATION_METHOD_WEEKLY,
    GENERATION_METHOD_TOP_QUOTES,
    TREND_MIXED,
    MAX_OFFER_BOOKS,
    PROMO_CODES,
)
from config.settings import settings
from database.models import MonthlyReport, User
from database.repositories.user import UserRepository
from database.repositories.quote import QuoteRepository
from database.repositories.weekly_report import WeeklyReportRepository
from database.repositories.monthly_report import MonthlyReportRepository
from services.weekly_reports import BatchStats
from utils.errors import PersistenceConflict
from utils.time_utils import (
    iso_week,
    month_bounds,
    month_iso_weeks,
    now_local,
    previous_month,
    shift_months,
)


def aggregate_weekly_metrics(weekly_reports: Sequence[Any]) -> Dict[str, Any]:
    """Метрики месяца как сумма недельных. Недели должны идти по порядку."""
    return {
        "totalQuotes": sum(r.quotes_count or 0 for r in weekly_reports),
        "uniqueAuthors": sum(r.unique_authors or 0 for r in weekly_reports),
        "activeDays": sum(r.active_days or 0 for r in weekly_reports),
        "weeksActive": len(weekly_reports),
        "topThemes": top_themes(r.dominant_themes or [] for r in weekly_reports),
        "emotionalTrend": emotional_trend(r.emotional_tone for r in weekly_reports),
    }


def quote_metrics(quotes: Sequence[Any]) -> Dict[str, Any]:
    """Метрики месяца по самим цитатам (когда недельных отчётов мало)."""
    return {
        "totalQuotes": len(quotes),
        "uniqueAuthors": len({q.author for q in quotes if q.author}),
        "activeDays": len({q.created_at.date() for q in quotes}),
        "weeksActive": len({iso_week(q.created_at.date()) for q in quotes}),
        "topThemes": top_themes(q.themes or [] for q in quotes),
        "emotionalTrend": TREND_MIXED,
    }


def pick_promo_code(user_id: int, month: int) -> str:
    """Промокод детерминирован: повторная генерация даёт тот же код."""
    return PROMO_CODES[(user_id + month) % len(PROMO_CODES)]


class MonthlyReportService:
    """Генерация месячных отчётов."""

    def __init__(
        self,
        analyzer: Optional[ReportAnalyzer] = None,
        user_repo: Optional[UserRepository] = None,
        quote_repo: Optional[QuoteRepository] = None,
        weekly_repo: Optional[WeeklyReportRepository] = None,
        report_repo: Optional[MonthlyReportRepository] = None,
        min_weekly_reports: Optional[int] = None,
    ):
        self.analyzer = analyzer or ReportAnalyzer()
        self.user_repo = user_repo or UserRepository()
        self.quote_repo = quote_repo or QuoteRepository()
        self.weekly_repo = weekly_repo or WeeklyReportRepository()
        self.report_repo = report_repo or MonthlyReportRepository()
        self.min_weekly_reports = min_weekly_reports or settings.MONTHLY_MIN_WEEKLY_REPORTS

    async def generate(
        self,
        user_id: int,
        month: Optional[int] = None,
        year: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[MonthlyReport]:
        """
        Отчёт за календарный месяц (по умолчанию предыдущий).

        Returns:
            Новый или уже существующий отчёт; None, если отчёт не положен
        """
        report, _ = await self._generate(user_id, month, year, now)
        return report

    async def _generate(
        self,
        user_id: int,
        month: Optional[int],
        year: Optional[int],
        now: Optional[datetime],
    ) -> Tuple[Optional[MonthlyReport], bool]:
        now = now or now_local()
        if month is None or year is None:
            month, year = previous_month(now)

        user = await self.user_repo.get(user_id)
        if not user:
            logger.info(f"User {user_id} not found, skipping monthly report")
            return None, False

        existing = await self.report_repo.get_by_period(user_id, month, year)
        if existing:
            logger.info(f"Monthly report for user {user_id} {month}/{year} already exists")
            return existing, False

        if user.registered_at and user.registered_at > shift_months(now, -1):
            logger.info(f"User {user_id} registered less than a month ago, skipping monthly report")
            return None, False

        weekly_reports = await self.weekly_repo.get_for_weeks(user_id, month_iso_weeks(month, year))

        start, end = month_bounds(month, year)
        month_quotes = await self.quote_repo.get_between(user_id, start, end)

        if not weekly_reports and not month_quotes:
            logger.info(f"No data for user {user_id} {month}/{year}, skipping monthly report")
            return None, False

        if len(weekly_reports) >= self.min_weekly_reports:
            fields = await self._from_weekly_reports(user, month, weekly_reports)
        elif month_quotes:
            logger.info(
                f"Only {len(weekly_reports)} weekly reports for user {user_id}, "
                f"using top quotes"
            )
            fields = await self._from_quotes(user, month, month_quotes)
        else:
            logger.info(f"No quotes for user {user_id} {month}/{year}, skipping monthly report")
            return None, False

        books = list(fields["analysis"].get("bookSuggestions") or [])[:MAX_OFFER_BOOKS]

        try:
            report = await self.report_repo.create(
                user_id=user_id,
                month=month,
                year=year,
                offer_discount=settings.SPECIAL_OFFER_DISCOUNT,
                offer_valid_until=now + timedelta(days=settings.SPECIAL_OFFER_DAYS),
                offer_promo_code=pick_promo_code(user_id, month),
                offer_books=books,
                created_at=now,
                **fields,
            )
        except PersistenceConflict as e:
            return e.existing, False

        logger.info(
            f"Monthly report {report.id} generated for user {user_id} {month}/{year} "
            f"(method: {report.generation_method})"
        )
        return report, True

    async def _from_weekly_reports(
        self,
        user: User,
        month: int,
        weekly_reports: Sequence[Any],
    ) -> Dict[str, Any]:
        metrics = aggregate_weekly_metrics(weekly_reports)
        analysis = await self.analyzer.analyze_month_from_weekly(user.name, month, weekly_reports, metrics)
        return self._report_fields(
            GENERATION_METHOD_WEEKLY,
            metrics,
            analysis,
            weekly_report_ids=[r.id for r in weekly_reports],
        )

    async def _from_quotes(
        self,
        user: User,
        month: int,
        month_quotes: Sequence[Any],
    ) -> Dict[str, Any]:
        top_quotes = list(month_quotes)[:settings.MONTHLY_TOP_QUOTES_LIMIT]
        metrics = quote_metrics(month_quotes)
        analysis = await self.analyzer.analyze_month_from_quotes(user.name, month, top_quotes)
        return self._report_fields(GENERATION_METHOD_TOP_QUOTES, metrics, analysis, weekly_report_ids=[])

    @staticmethod
    def _report_fields(
        method: str,
        metrics: Dict[str, Any],
        analysis: Dict[str, Any],
        weekly_report_ids: List[int],
    ) -> Dict[str, Any]:
        return {
            "generation_method": method,
            "weekly_report_ids": weekly_report_ids,
            "monthly_metrics": metrics,
            "evolution": {
                "weeklyChanges": analysis.get("monthlyEvolution", ""),
                "deepPatterns": analysis.get("deepPatterns", ""),
                "psychologicalInsight": analysis.get("psychologicalInsight", ""),
            },
            "analysis": {
                "profile": analysis.get("psychologicalInsight") or analysis.get("deepPatterns", ""),
                "growth": analysis.get("monthlyEvolution", ""),
                "recommendations": analysis.get("recommendations", ""),
                "bookSuggestions": list(analysis.get("bookSuggestions") or []),
            },
        }

    async def generate_for_all_eligible_users(self, now: Optional[datetime] = None) -> BatchStats:
        """
        Отчёты за предыдущий месяц для всех, кто с ботом не меньше месяца.
        Ошибка одного пользователя не останавливает пакет.
        """
        now = now or now_local()
        month, year = previous_month(now)

        stats = BatchStats()
        users = await self.user_repo.get_report_candidates(registered_before=shift_months(now, -1))
        stats.total = len(users)

        logger.info(f"Generating monthly reports for {stats.total} users, period {month}/{year}")

        for user in users:
            try:
                report, created = await self._generate(user.id, month, year, now)
            except Exception as e:
                stats.failed += 1
                stats.errors.append({"userId": user.id, "error": str(e)})
                logger.error(f"Failed to generate monthly report for user {user.id}: {e}")
                continue

            if created:
                stats.generated += 1
                stats.reports.append(report)
            else:
                stats.skipped += 1

        logger.info(
            f"Monthly reports done: generated={stats.generated}, "
            f"skipped={stats.skipped}, failed={stats.failed}"
        )
        return stats
