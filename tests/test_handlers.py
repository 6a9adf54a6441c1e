"""
Tests for bot handlers.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from ai.category_catalog import CategoryCatalog
from ai.classification import FallbackClassificationGateway
from bot.handlers import commands, quotes
from bot.handlers.start import help_command, start_command
from database.repositories.user import UserRepository
from services.quote_intake import QuoteIntake


@pytest.fixture
def intake(monkeypatch):
    """Keyword-only intake installed into the quote handler."""
    repo = Mock()
    repo.get_active = AsyncMock(return_value=[])
    service = QuoteIntake(
        gateway=FallbackClassificationGateway(CategoryCatalog(repository=repo)),
        daily_limit=2,
    )
    monkeypatch.setattr(quotes, "_quote_intake", service)
    return service


def last_reply(update):
    return update.message.reply_text.await_args.args[0]


class TestStart:
    """Tests for /start and /help."""

    async def test_registers_user(self, mock_update, mock_context):
        """Should create an onboarded profile and greet."""
        await start_command(mock_update, mock_context)

        user = await UserRepository().get_by_telegram_id(12345)
        assert user.onboarding_completed is True
        assert user.name == "Анна"
        assert "Здравствуйте, Анна" in last_reply(mock_update)

    async def test_returning_user(self, mock_update, mock_context):
        """Should greet a returning user."""
        await start_command(mock_update, mock_context)
        await start_command(mock_update, mock_context)

        assert "С возвращением" in last_reply(mock_update)

    async def test_help(self, mock_update, mock_context):
        await help_command(mock_update, mock_context)
        assert "/reminders" in last_reply(mock_update)


class TestQuoteHandler:
    """Tests for the quote message handler."""

    async def test_requires_start(self, intake, mock_update, mock_context):
        """Should ask unknown users to press /start."""
        await quotes.handle_quote(mock_update, mock_context)

        assert "/start" in last_reply(mock_update)

    async def test_saves_and_congratulates(self, intake, mock_update, mock_context):
        """Should confirm the quote and announce the first achievement."""
        await start_command(mock_update, mock_context)
        mock_update.message.text = '"Любовь — это решение любить" (Эрих Фромм)'

        await quotes.handle_quote(mock_update, mock_context)

        replies = [c.args[0] for c in mock_update.message.reply_text.await_args_list]
        assert "Цитата сохранена" in replies[-2]
        assert "Эрих Фромм" in replies[-2]
        assert "Первые шаги" in replies[-1]

    async def test_limit_message(self, intake, mock_update, mock_context):
        """Should explain the daily limit."""
        await start_command(mock_update, mock_context)
        for i in range(3):
            mock_update.message.text = f"Мысль {i}"
            await quotes.handle_quote(mock_update, mock_context)

        assert "дневной лимит" in last_reply(mock_update)

    async def test_too_long(self, intake, mock_update, mock_context):
        """Should reject too long quotes."""
        await start_command(mock_update, mock_context)
        mock_update.message.text = "я" * 1001

        await quotes.handle_quote(mock_update, mock_context)

        assert "Не получилось сохранить" in last_reply(mock_update)


class TestCommands:
    """Tests for /stats, /achievements and /reminders."""

    async def test_reminders_change(self, mock_update, mock_context):
        """Should switch reminder frequency."""
        await start_command(mock_update, mock_context)
        mock_context.args = ["rare"]

        await commands.reminders_command(mock_update, mock_context)

        user = await UserRepository().get_by_telegram_id(12345)
        assert user.reminder_frequency == "rare"
        assert user.reminder_enabled is True

    async def test_reminders_off(self, mock_update, mock_context):
        """Should disable reminders with off."""
        await start_command(mock_update, mock_context)
        mock_context.args = ["off"]

        await commands.reminders_command(mock_update, mock_context)

        user = await UserRepository().get_by_telegram_id(12345)
        assert user.reminder_enabled is False

    async def test_reminders_invalid(self, mock_update, mock_context):
        """Should list valid options for an unknown value."""
        await start_command(mock_update, mock_context)
        mock_context.args = ["hourly"]

        await commands.reminders_command(mock_update, mock_context)

        assert "off, rare, standard, often" in last_reply(mock_update)

    async def test_stats(self, intake, mock_update, mock_context):
        """Should show totals after saving a quote."""
        await start_command(mock_update, mock_context)
        mock_update.message.text = "Мысль (Сенека)"
        await quotes.handle_quote(mock_update, mock_context)

        await commands.stats_command(mock_update, mock_context)

        text = last_reply(mock_update)
        assert "Цитат всего: 1" in text
        assert "Сенека" in text

    async def test_achievements(self, mock_update, mock_context):
        """Should list all achievements with progress."""
        await start_command(mock_update, mock_context)

        await commands.achievements_command(mock_update, mock_context)

        text = last_reply(mock_update)
        assert "Первые шаги" in text
        assert "0/1" in text
