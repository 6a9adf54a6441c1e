"""
Tests for services.notifications module.
"""

from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from bot.transport import Button, DeliveryStatus
from config.constants import ALL_SLOTS, REMINDER_SLOTS
from database.repositories.notification_template import NotificationTemplateRepository
from database.repositories.quote import QuoteRepository
from database.repositories.user import UserRepository
from database.session import get_session_context
from services.notifications import (
    NotificationScheduler,
    build_notification_text,
    should_send_for_frequency,
)
from utils.errors import ValidationError
from utils.rate_limiter import AsyncRateLimiter


# Вторник
TUESDAY = datetime(2025, 10, 14, 9, 0)


@pytest.fixture
def templates():
    return NotificationTemplateRepository()


@pytest.fixture
def scheduler(mock_transport, tmp_path):
    return NotificationScheduler(
        mock_transport,
        rate_limiter=AsyncRateLimiter(0),
        assets_dir=str(tmp_path),
        daily_limit=10,
        concurrency=2,
    )


async def add_quotes(user_id, count, moment):
    async with get_session_context() as session:
        for i in range(count):
            await QuoteRepository().create(
                session, user_id=user_id, text=f"Мысль {i}", category="ЛЮБОВЬ", created_at=moment
            )


class TestFrequencyMatrix:
    """Tests for should_send_for_frequency function."""

    def test_off(self):
        """Should never send reminders when off."""
        assert not any(should_send_for_frequency("off", slot, 2) for slot in REMINDER_SLOTS)

    def test_often(self):
        """Should send every reminder slot."""
        assert all(should_send_for_frequency("often", slot, 3) for slot in REMINDER_SLOTS)

    def test_standard(self):
        """Should send only the morning slot."""
        assert should_send_for_frequency("standard", "morning", 3)
        assert not should_send_for_frequency("standard", "day", 3)
        assert not should_send_for_frequency("standard", "evening", 3)

    def test_unknown_is_standard(self):
        """Should treat unknown frequency as standard."""
        assert should_send_for_frequency("weird", "morning", 1)
        assert not should_send_for_frequency(None, "evening", 1)

    def test_report_slots_ignore_frequency(self):
        """Should always pass report slots."""
        assert should_send_for_frequency("off", "report", 7)
        assert should_send_for_frequency("rare", "monthlyReport", 1)

    def test_rare_over_a_month(self):
        """Should send rare reminders only on Tuesday and Friday evenings."""
        sent = []
        day = date(2025, 10, 1)
        while day.month == 10:
            for slot in REMINDER_SLOTS:
                if should_send_for_frequency("rare", slot, day.isoweekday()):
                    sent.append((day, slot))
            day += timedelta(days=1)

        assert {slot for _, slot in sent} == {"evening"}
        assert {d.isoweekday() for d, _ in sent} == {2, 5}
        assert len(sent) == 9


class TestBuildNotificationText:
    """Tests for build_notification_text function."""

    def test_counter_for_reminders(self):
        """Should append today's quote count to reminders."""
        text = build_notification_text("Время читать", "morning", 3)
        assert text.startswith("Время читать")
        assert "3" in text.splitlines()[-1]

    def test_no_counter_when_zero_or_report(self):
        """Should not append the counter for zero or report slots."""
        assert build_notification_text("Текст", "day", 0) == "Текст"
        assert build_notification_text("Отчёт готов", "report", 5) == "Отчёт готов"

    def test_empty(self):
        """Should return None for empty text."""
        assert build_notification_text("  ", "morning", 1) is None


class TestNotificationScheduler:
    """Tests for NotificationScheduler class."""

    async def test_unknown_slot(self, scheduler):
        """Should reject unknown slots."""
        with pytest.raises(ValidationError):
            await scheduler.dispatch_slot("midnight", now=TUESDAY)

    async def test_no_template(self, scheduler, make_user, mock_transport):
        """Should send nothing without a template."""
        await make_user()

        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)

        assert stats.to_dict() == {"sent": 0, "skipped": 0, "failed": 0, "disabled": 0, "errors": []}
        mock_transport.send_text.assert_not_awaited()

    async def test_frequency_filter(self, scheduler, templates, make_user, mock_transport):
        """Should deliver only to users whose frequency allows the slot."""
        standard = await make_user(reminder_frequency="standard")
        often = await make_user(reminder_frequency="often")
        await make_user(reminder_frequency="rare")
        await make_user(reminder_frequency="off", reminder_enabled=False)
        await templates.upsert("2025-10-14", "day", text="Дневная пауза")

        stats = await scheduler.dispatch_slot("day", now=TUESDAY)

        assert stats.sent == 1
        assert stats.skipped == 2
        chat_ids = [c.args[0] for c in mock_transport.send_text.await_args_list]
        assert chat_ids == [often.telegram_id]
        assert standard.telegram_id not in chat_ids

    async def test_rare_simulated_week(self, scheduler, templates, make_user, mock_transport):
        """Should reach a rare user only on Tuesday and Friday evenings."""
        user = await make_user(reminder_frequency="rare")
        monday = datetime(2025, 10, 13)
        received = []

        for offset in range(7):
            day = monday + timedelta(days=offset)
            for slot, hour in (("morning", 9), ("day", 15), ("evening", 21)):
                await templates.upsert(day.strftime("%Y-%m-%d"), slot, text=f"{slot} {offset}")
                stats = await scheduler.dispatch_slot(slot, now=day.replace(hour=hour))
                if stats.sent:
                    received.append((day.isoweekday(), slot))

        assert received == [(2, "evening"), (5, "evening")]
        assert mock_transport.send_text.await_count == 2
        stored = await UserRepository().get(user.id)
        assert stored.reminder_last_sent_at == datetime(2025, 10, 17, 21)

    async def test_daily_limit_skips(self, scheduler, templates, make_user, mock_transport):
        """Should skip users who already reached the daily limit."""
        busy = await make_user()
        idle = await make_user()
        await add_quotes(busy.id, 10, TUESDAY - timedelta(hours=1))
        await templates.upsert("2025-10-14", "morning", text="Доброе утро")

        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)

        assert stats.sent == 1
        assert stats.skipped == 1
        mock_transport.send_text.assert_awaited_once()
        assert mock_transport.send_text.await_args.args[0] == idle.telegram_id

    async def test_today_counter(self, scheduler, templates, make_user, mock_transport):
        """Should append today's count to the reminder text."""
        user = await make_user()
        await add_quotes(user.id, 2, TUESDAY - timedelta(hours=1))
        await templates.upsert("2025-10-14", "morning", text="Доброе утро")

        await scheduler.dispatch_slot("morning", now=TUESDAY)

        text = mock_transport.send_text.await_args.args[1]
        assert text.startswith("Доброе утро")
        assert "Сегодня вы сохранили цитат: 2" in text

    async def test_blocked_user_disabled(self, scheduler, templates, make_user, mock_transport):
        """Should disable reminders for users who blocked the bot."""
        blocked = await make_user()
        await make_user()
        await templates.upsert("2025-10-14", "morning", text="Доброе утро")

        async def send_text(chat_id, text, button=None):
            if chat_id == blocked.telegram_id:
                return DeliveryStatus.BLOCKED
            return DeliveryStatus.OK

        mock_transport.send_text = AsyncMock(side_effect=send_text)

        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)

        assert stats.sent == 1
        assert stats.disabled == 1
        stored = await UserRepository().get(blocked.id)
        assert stored.reminder_enabled is False

        mock_transport.send_text.reset_mock()
        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)
        assert stats.sent == 1
        assert stats.disabled == 0

    async def test_errors_do_not_stop_batch(self, scheduler, templates, make_user, mock_transport):
        """Should count failures and keep sending to others."""
        first = await make_user()
        await make_user()
        await templates.upsert("2025-10-14", "morning", text="Доброе утро")

        async def send_text(chat_id, text, button=None):
            if chat_id == first.telegram_id:
                raise RuntimeError("network")
            return DeliveryStatus.OK

        mock_transport.send_text = AsyncMock(side_effect=send_text)

        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)

        assert stats.sent == 1
        assert stats.failed == 1
        assert stats.errors[0]["userId"] == first.id

    async def test_image_with_button(self, scheduler, templates, make_user, mock_transport, tmp_path):
        """Should send the image with caption and deep-link button."""
        user = await make_user()
        (tmp_path / "morning.png").write_bytes(b"\x89PNG")
        await templates.upsert(
            "2025-10-14",
            "morning",
            text="Доброе утро",
            image_ref="morning.png",
            button_text="Открыть",
            button_target="diary",
        )

        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)

        assert stats.sent == 1
        call = mock_transport.send_image.await_args
        assert call.args[0] == user.telegram_id
        assert call.args[1] == tmp_path / "morning.png"
        assert call.kwargs["caption"] == "Доброе утро"
        assert call.kwargs["button"] == Button(text="Открыть", target_ref="diary")
        mock_transport.send_text.assert_not_awaited()

    async def test_missing_image_falls_back_to_text(self, scheduler, templates, make_user, mock_transport):
        """Should send text when the image file is missing."""
        await make_user()
        await templates.upsert("2025-10-14", "morning", text="Доброе утро", image_ref="missing.png")

        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)

        assert stats.sent == 1
        mock_transport.send_image.assert_not_awaited()
        mock_transport.send_text.assert_awaited_once()

    async def test_missing_image_without_text(self, scheduler, templates, make_user, mock_transport):
        """Should skip everyone when the only content is a missing image."""
        await make_user()
        await make_user()
        await templates.upsert("2025-10-14", "morning", image_ref="missing.png")

        stats = await scheduler.dispatch_slot("morning", now=TUESDAY)

        assert stats.sent == 0
        assert stats.skipped == 2
        mock_transport.send_image.assert_not_awaited()
        mock_transport.send_text.assert_not_awaited()

    @pytest.mark.parametrize("slot", ["report", "monthlyReport"])
    async def test_report_slots_reach_everyone(self, scheduler, templates, make_user, mock_transport, slot):
        """Should send report slots regardless of frequency."""
        await make_user(reminder_frequency="rare")
        await make_user(reminder_frequency="standard")
        await templates.upsert("2025-10-14", slot, text="Ваш отчёт готов")

        stats = await scheduler.dispatch_slot(slot, now=TUESDAY)

        assert stats.sent == 2
        assert slot in ALL_SLOTS
