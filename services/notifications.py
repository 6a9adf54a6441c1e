"""
Рассылка уведомлений по слотам.
Кто получает какое сообщение в какой день: шаблон на дату, частота
напоминаний пользователя и его дневной лимит цитат.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from bot.transport import Button, ChatTransport, DeliveryStatus
from config.constants import (
    ALL_SLOTS,
    REPORT_SLOTS,
    SLOT_MORNING,
    SLOT_EVENING,
    FREQUENCY_OFF,
    FREQUENCY_RARE,
    FREQUENCY_STANDARD,
    FREQUENCY_OFTEN,
    RARE_WEEKDAYS,
    EMOJI_BOOK,
)
from config.settings import settings
from database.models import NotificationTemplate, User
from database.repositories.user import UserRepository
from database.repositories.quote import QuoteRepository
from database.repositories.notification_template import NotificationTemplateRepository
from utils.errors import ValidationError
from utils.rate_limiter import AsyncRateLimiter
from utils.time_utils import date_key as make_date_key, day_bounds, now_local


def should_send_for_frequency(frequency: Optional[str], slot: str, iso_weekday: int) -> bool:
    """
    Матрица частоты для слотов напоминаний.

    off — никогда; often — все слоты; standard — только утро;
    rare — только вечер по вторникам и пятницам.
    Слоты отчётов частотой не фильтруются.
    """
    if slot in REPORT_SLOTS:
        return True

    frequency = frequency or FREQUENCY_STANDARD
    if frequency == FREQUENCY_OFF:
        return False
    if frequency == FREQUENCY_OFTEN:
        return True
    if frequency == FREQUENCY_RARE:
        return slot == SLOT_EVENING and iso_weekday in RARE_WEEKDAYS
    # standard и неизвестные значения
    return slot == SLOT_MORNING


@dataclass
class DeliveryStats:
    """Итоги рассылки слота."""

    sent: int = 0
    skipped: int = 0
    failed: int = 0
    disabled: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
            "disabled": self.disabled,
            "errors": list(self.errors),
        }


def build_notification_text(template_text: Optional[str], slot: str, today_count: int) -> Optional[str]:
    """Текст уведомления; для напоминаний добавляется счётчик цитат за сегодня."""
    text = (template_text or "").strip()
    if not text:
        return None
    if slot not in REPORT_SLOTS and today_count > 0:
        text += f"\n\n{EMOJI_BOOK} Сегодня вы сохранили цитат: {today_count}"
    return text


class NotificationScheduler:
    """Рассылка шаблона слота подходящим пользователям."""

    def __init__(
        self,
        transport: ChatTransport,
        user_repo: Optional[UserRepository] = None,
        quote_repo: Optional[QuoteRepository] = None,
        template_repo: Optional[NotificationTemplateRepository] = None,
        concurrency: Optional[int] = None,
        rate_limiter: Optional[AsyncRateLimiter] = None,
        assets_dir: Optional[str] = None,
        daily_limit: Optional[int] = None,
    ):
        self.transport = transport
        self.user_repo = user_repo or UserRepository()
        self.quote_repo = quote_repo or QuoteRepository()
        self.template_repo = template_repo or NotificationTemplateRepository()
        self.concurrency = max(1, concurrency or settings.NOTIFICATION_CONCURRENCY)
        self.rate_limiter = rate_limiter or AsyncRateLimiter(settings.NOTIFICATION_RATE_PER_SECOND)
        self.assets_dir = Path(assets_dir or settings.NOTIFICATION_ASSETS_DIR)
        self.daily_limit = daily_limit or settings.DAILY_QUOTE_LIMIT

    def resolve_image(self, image_ref: Optional[str]) -> Optional[Path]:
        """Путь к картинке шаблона или None, если файла нет."""
        if not image_ref or not image_ref.strip():
            return None
        path = Path(image_ref)
        if not path.is_absolute():
            path = self.assets_dir / path
        if not path.is_file():
            logger.warning(f"Notification image not found: {path}")
            return None
        return path

    async def dispatch_slot(
        self,
        slot: str,
        date_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DeliveryStats:
        """
        Рассылает шаблон слота на дату.

        Args:
            slot: morning / day / evening / report / monthlyReport
            date_key: Дата шаблона YYYY-MM-DD (по умолчанию сегодня)
            now: Текущее время (для тестов)

        Raises:
            ValidationError: неизвестный слот
        """
        if slot not in ALL_SLOTS:
            raise ValidationError(f"Unknown notification slot: {slot}")

        now = now or now_local()
        key = date_key or make_date_key(now)
        stats = DeliveryStats()

        template = await self.template_repo.get(key, slot)
        if not template or not template.has_content:
            logger.info(f"No template for {key}/{slot}, nothing to send")
            return stats

        recipients = await self.user_repo.get_notification_recipients()
        eligible = [
            user for user in recipients
            if should_send_for_frequency(user.reminder_frequency, slot, now.isoweekday())
        ]
        stats.skipped += len(recipients) - len(eligible)

        start, end = day_bounds(now.date())
        today_counts = await self.quote_repo.count_by_users_between(
            [user.id for user in eligible], start, end
        )
        under_limit = [u for u in eligible if today_counts.get(u.id, 0) < self.daily_limit]
        stats.skipped += len(eligible) - len(under_limit)

        image_path = self.resolve_image(template.image_ref)
        if image_path is None and not (template.text or "").strip():
            logger.warning(f"Template {key}/{slot} has only a missing image, skipping")
            stats.skipped += len(under_limit)
            return stats

        button = None
        if template.button_text and template.button_target:
            button = Button(text=template.button_text, target_ref=template.button_target)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(user: User) -> Optional[str]:
            async with semaphore:
                await self.rate_limiter.acquire()
                text = build_notification_text(template.text, slot, today_counts.get(user.id, 0))
                return await self._deliver(user, text, image_path, button)

        results = await asyncio.gather(
            *(worker(user) for user in under_limit),
            return_exceptions=True,
        )

        sent_ids: List[int] = []
        for user, result in zip(under_limit, results):
            if isinstance(result, BaseException):
                stats.failed += 1
                stats.errors.append({"userId": user.id, "error": str(result)})
                logger.error(f"Notification to user {user.id} failed: {result}")
            elif result == DeliveryStatus.OK:
                stats.sent += 1
                sent_ids.append(user.id)
            elif result == DeliveryStatus.BLOCKED:
                stats.disabled += 1
                await self._disable(user)
            else:
                stats.failed += 1
                stats.errors.append({"userId": user.id, "error": "delivery error"})

        try:
            await self.user_repo.mark_reminders_sent(sent_ids, now)
        except Exception as e:
            logger.warning(f"Failed to update reminder_last_sent_at: {e}")

        logger.info(
            f"Slot {slot} ({key}): sent={stats.sent}, skipped={stats.skipped}, "
            f"failed={stats.failed}, disabled={stats.disabled}"
        )
        return stats

    async def _deliver(
        self,
        user: User,
        text: Optional[str],
        image_path: Optional[Path],
        button: Optional[Button],
    ) -> DeliveryStatus:
        if image_path is not None:
            return await self.transport.send_image(user.telegram_id, image_path, caption=text, button=button)
        return await self.transport.send_text(user.telegram_id, text, button=button)

    async def _disable(self, user: User) -> None:
        try:
            await self.user_repo.disable_reminders(user.id)
            logger.info(f"Reminders disabled for user {user.id}: bot blocked")
        except Exception as e:
            logger.error(f"Failed to disable reminders for user {user.id}: {e}")
