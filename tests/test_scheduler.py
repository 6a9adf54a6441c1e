"""
Tests for services.scheduler and services.health modules.
"""

import json
from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest

from database.repositories.quote import QuoteRepository
from database.repositories.weekly_report import WeeklyReportRepository
from database.session import get_session_context
from services import scheduler as scheduler_module
from services.health import HealthCheckServer
from utils.errors import CollaboratorError


@pytest.fixture
def app(monkeypatch):
    """Telegram application with a mocked bot."""
    application = Mock()
    application.bot = AsyncMock()
    monkeypatch.setattr(scheduler_module, "app", application)
    return application


@pytest.fixture
def offline_claude(monkeypatch, mock_claude):
    """Claude that is always unavailable."""
    mock_claude.analyze.side_effect = CollaboratorError("offline")
    monkeypatch.setattr("ai.report_analyzer.get_claude_client", lambda: mock_claude)
    return mock_claude


class TestScheduler:
    """Tests for scheduler jobs."""

    async def test_jobs_registered(self, monkeypatch):
        """Should register every slot and report job."""
        monkeypatch.setattr(scheduler_module, "scheduler", None)
        scheduler_module.start_scheduler(Mock())
        try:
            job_ids = {job.id for job in scheduler_module.scheduler.get_jobs()}
        finally:
            scheduler_module.stop_scheduler()

        assert job_ids == {
            "slot_morning",
            "slot_day",
            "slot_evening",
            "slot_report",
            "slot_monthlyReport",
            "weekly_reports",
            "weekly_reports_catchup",
            "monthly_reports",
        }

    async def test_jobs_without_application(self, monkeypatch):
        """Should do nothing before the bot is started."""
        monkeypatch.setattr(scheduler_module, "app", None)

        assert await scheduler_module.dispatch_slot("morning") == {}
        assert await scheduler_module.run_weekly_reports() == {}
        assert await scheduler_module.run_monthly_reports() == {}

    async def test_dispatch_slot_reports_stats(self, app, make_user):
        """Should return delivery statistics for the slot."""
        await make_user()

        result = await scheduler_module.dispatch_slot("morning", now=datetime(2025, 10, 14, 9))

        assert result["sent"] == 0
        app.bot.send_message.assert_not_awaited()

    async def test_weekly_job(self, app, offline_claude, make_user):
        """Should generate and deliver weekly reports with fallback analysis."""
        user = await make_user()
        now = datetime(2025, 10, 19, 11)
        async with get_session_context() as session:
            await QuoteRepository().create(
                session, user_id=user.id, text="Мысль", category="ЛЮБОВЬ", created_at=now
            )

        result = await scheduler_module.run_weekly_reports(now=now)

        assert result["generated"] == 1
        assert result["delivery"]["sent"] == 1
        report = await WeeklyReportRepository().get_by_period(user.id, 42, 2025)
        assert report.sent_at == now
        assert report.emotional_tone == "позитивный"
        app.bot.send_message.assert_awaited_once()


    async def test_weekly_catchup_job(self, offline_claude, make_user):
        """Should generate a missed report for a past week without sending it."""
        user = await make_user()
        async with get_session_context() as session:
            await QuoteRepository().create(
                session, user_id=user.id, text="Поздняя мысль", category="ЛЮБОВЬ",
                created_at=datetime(2025, 10, 19, 20),
            )

        result = await scheduler_module.run_weekly_catchup(now=datetime(2025, 10, 21, 4))

        assert result["generated"] == 1
        report = await WeeklyReportRepository().get_by_period(user.id, 42, 2025)
        assert report.sent_at is None


class TestHealthCheck:
    """Tests for HealthCheckServer class."""

    async def test_healthy(self):
        """Should report healthy when the bot runs and the database answers."""
        server = HealthCheckServer(port=0)
        server.set_bot_running(True)

        response = await server._health_handler(Mock())
        payload = json.loads(response.text)

        assert response.status == 200
        assert payload["checks"]["database"]["healthy"] is True

    async def test_bot_stopped(self):
        """Should report unhealthy when the bot is not running."""
        server = HealthCheckServer(port=0)

        response = await server._health_handler(Mock())

        assert response.status == 503
