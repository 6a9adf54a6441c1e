"""
Tests for services.weekly_reports module.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from database.repositories.quote import QuoteRepository
from database.repositories.weekly_report import WeeklyReportRepository
from database.session import get_session_context
from services.weekly_reports import WeeklyReportService, weekly_metrics
from utils.errors import PersistenceConflict


ANALYSIS = {
    "summary": "Неделя поиска смысла",
    "dominantThemes": ["любовь", "смысл"],
    "emotionalTone": "задумчивый",
    "insights": "Вы ищете опору в словах классиков",
}


async def add_quote(user_id, created_at, author=None, text="Мысль"):
    async with get_session_context() as session:
        return await QuoteRepository().create(
            session,
            user_id=user_id,
            text=text,
            category="ЛЮБОВЬ",
            author=author,
            themes=["любовь"],
            created_at=created_at,
        )


@pytest.fixture
def analyzer():
    """Report analyzer with a fixed weekly analysis."""
    mock = Mock()
    mock.analyze_week = AsyncMock(return_value=dict(ANALYSIS))
    return mock


@pytest.fixture
def service(analyzer):
    return WeeklyReportService(analyzer=analyzer)


class TestWeeklyMetrics:
    """Tests for weekly_metrics function."""

    def test_counts(self):
        """Should count quotes, distinct authors and active days."""
        quotes = [
            Mock(author="Толстой", created_at=datetime(2025, 10, 13, 9)),
            Mock(author="Толстой", created_at=datetime(2025, 10, 13, 20)),
            Mock(author=None, created_at=datetime(2025, 10, 15, 9)),
        ]
        assert weekly_metrics(quotes) == {"quotes": 3, "uniqueAuthors": 1, "activeDays": 2}


class TestWeeklyReportService:
    """Tests for WeeklyReportService class."""

    async def test_generate(self, service, analyzer, make_user, now):
        """Should build a report for the current ISO week."""
        user = await make_user()
        await add_quote(user.id, datetime(2025, 10, 13, 9), author="Толстой")
        await add_quote(user.id, datetime(2025, 10, 14, 9), author="Чехов")
        await add_quote(user.id, datetime(2025, 10, 14, 21))
        # Прошлая неделя в отчёт не попадает
        await add_quote(user.id, datetime(2025, 10, 12, 23, 59))

        report = await service.generate(user.id, now=now)

        assert (report.week_number, report.year) == (42, 2025)
        assert report.quotes_count == 3
        assert report.unique_authors == 2
        assert report.active_days == 2
        assert report.emotional_tone == "задумчивый"
        assert report.dominant_themes == ["любовь", "смысл"]
        assert len(report.quote_ids) == 3
        assert report.metrics == {"quotes": 3, "uniqueAuthors": 2, "activeDays": 2}

        quotes = analyzer.analyze_week.await_args.args[1]
        assert [q.created_at for q in quotes] == sorted(q.created_at for q in quotes)

    async def test_idempotent(self, service, analyzer, make_user, now):
        """Should return the existing report on repeated generation."""
        user = await make_user()
        await add_quote(user.id, now)

        first = await service.generate(user.id, 42, 2025, now=now)
        second = await service.generate(user.id, 42, 2025, now=now)

        assert first.id == second.id
        assert analyzer.analyze_week.await_count == 1

    async def test_no_quotes(self, service, make_user, now):
        """Should skip a week without quotes."""
        user = await make_user()
        await add_quote(user.id, now - timedelta(days=14))

        assert await service.generate(user.id, now=now) is None
        assert await WeeklyReportRepository().get_by_period(user.id, 42, 2025) is None

    async def test_onboarding_incomplete(self, service, make_user, now):
        """Should skip users who have not finished onboarding."""
        user = await make_user(onboarding_completed=False)
        await add_quote(user.id, now)

        assert await service.generate(user.id, now=now) is None

    async def test_iso_year_boundary(self, service, make_user):
        """Should attribute late December days to week 1 of the next ISO year."""
        user = await make_user()
        moment = datetime(2024, 12, 30, 12)
        await add_quote(user.id, moment)

        report = await service.generate(user.id, now=moment)

        assert (report.week_number, report.year) == (1, 2025)

    async def test_batch(self, service, analyzer, make_user, now):
        """Should count generated, skipped and failed users."""
        active = await make_user(name="Анна")
        broken = await make_user(name="Борис")
        await make_user(name="Вера")
        await add_quote(active.id, now)
        await add_quote(broken.id, now)

        async def analyze_week(user_name, quotes):
            if user_name == "Борис":
                raise RuntimeError("boom")
            return dict(ANALYSIS)

        analyzer.analyze_week = AsyncMock(side_effect=analyze_week)

        stats = await service.generate_for_all_users(now=now)

        assert stats.total == 3
        assert stats.generated == 1
        assert stats.skipped == 1
        assert stats.failed == 1
        assert stats.errors[0]["userId"] == broken.id
        assert [r.user_id for r in stats.reports] == [active.id]

        again = await service.generate_for_all_users(now=now)
        assert again.generated == 0


class StaleReadRepository(WeeklyReportRepository):
    """Repository whose first period lookup misses an existing report."""

    def __init__(self):
        self.misses = 1

    async def get_by_period(self, user_id, week_number, year):
        if self.misses:
            self.misses -= 1
            return None
        return await super().get_by_period(user_id, week_number, year)


class TestReportConflicts:
    """Tests for the unique (user, week, year) conflict path."""

    async def test_concurrent_generation_returns_one_report(self, service, make_user, now):
        """Should return the same report to every concurrent caller."""
        user = await make_user()
        await add_quote(user.id, now)

        reports = await asyncio.gather(*(
            service.generate(user.id, 42, 2025, now=now) for _ in range(4)
        ))

        assert len({r.id for r in reports}) == 1
        assert len(await WeeklyReportRepository().get_for_weeks(user.id, [(42, 2025)])) == 1

    async def test_stale_read_resolves_to_existing(self, analyzer, make_user, now):
        """Should return the stored report when the early lookup misses it."""
        user = await make_user()
        await add_quote(user.id, now)
        first = await WeeklyReportService(analyzer=analyzer).generate(user.id, 42, 2025, now=now)

        second = await WeeklyReportService(
            analyzer=analyzer, report_repo=StaleReadRepository()
        ).generate(user.id, 42, 2025, now=now)

        assert second.id == first.id
        assert analyzer.analyze_week.await_count == 2

    async def test_repository_conflict_carries_existing(self, make_user):
        """Should raise PersistenceConflict holding the stored record."""
        user = await make_user()
        repo = WeeklyReportRepository()
        fields = dict(user_id=user.id, week_number=42, year=2025, quotes_count=1)
        first = await repo.create(**fields)

        with pytest.raises(PersistenceConflict) as error:
            await repo.create(**fields)

        assert error.value.existing.id == first.id


class TestGenerateMissing:
    """Tests for catching up missed weekly reports."""

    async def test_generates_only_missing_weeks(self, service, make_user):
        """Should fill past weeks that have quotes but no report."""
        user = await make_user()
        other = await make_user()
        await add_quote(user.id, datetime(2025, 10, 8, 9))    # неделя 41
        await add_quote(user.id, datetime(2025, 10, 19, 20))  # неделя 42, после воскресной задачи
        await add_quote(other.id, datetime(2025, 10, 16, 9))  # неделя 42
        await service.generate(other.id, 42, 2025, now=datetime(2025, 10, 19, 11))

        stats = await service.generate_missing(now=datetime(2025, 10, 21, 4), lookback_weeks=8)

        assert stats.total == 2
        assert stats.generated == 2
        assert sorted((r.user_id, r.week_number) for r in stats.reports) == [
            (user.id, 41), (user.id, 42),
        ]

        again = await service.generate_missing(now=datetime(2025, 10, 21, 4), lookback_weeks=8)
        assert again.total == 0

    async def test_skips_current_and_old_weeks(self, service, make_user):
        """Should ignore the running week and weeks beyond the lookback."""
        user = await make_user()
        await add_quote(user.id, datetime(2025, 10, 20, 9))  # текущая неделя 43
        await add_quote(user.id, datetime(2025, 9, 1, 9))    # неделя 36, вне окна

        stats = await service.generate_missing(now=datetime(2025, 10, 21, 4), lookback_weeks=4)

        assert stats.total == 0
        assert await WeeklyReportRepository().get_by_period(user.id, 43, 2025) is None

    async def test_crosses_iso_year(self, service, make_user):
        """Should look back into the previous ISO year."""
        user = await make_user()
        await add_quote(user.id, datetime(2025, 12, 24, 9))  # неделя 52 2025

        stats = await service.generate_missing(now=datetime(2026, 1, 7, 4), lookback_weeks=2)

        assert [(r.week_number, r.year) for r in stats.reports] == [(52, 2025)]
