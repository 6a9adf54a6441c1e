"""
Доставка отчётов.
Форматирует недельные и месячные отчёты и отправляет их пользователю.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from bot.transport import Button, ChatTransport, DeliveryStatus
from config.constants import EMOJI_BOOK, EMOJI_CHART, EMOJI_SPARKLE, EMOJI_STAR
from database.models import MonthlyReport, WeeklyReport
from database.repositories.user import UserRepository
from database.repositories.weekly_report import WeeklyReportRepository
from database.repositories.monthly_report import MonthlyReportRepository
from utils.time_utils import MONTH_NAMES, now_local


def format_weekly_report(report: WeeklyReport, user_name: str) -> str:
    """Текст недельного отчёта."""
    themes = ", ".join(report.dominant_themes or []) or "размышления"
    return (
        f"{EMOJI_CHART} Ваш отчёт за неделю {report.week_number}\n\n"
        f"Здравствуйте, {user_name or 'читатель'}!\n\n"
        f"За эту неделю вы сохранили цитат: {report.quotes_count}, "
        f"авторов: {report.unique_authors}, активных дней: {report.active_days}.\n\n"
        f"{EMOJI_SPARKLE} {report.summary or ''}\n\n"
        f"Главные темы: {themes}\n"
        f"Настроение недели: {report.emotional_tone or 'нейтральный'}\n\n"
        f"{report.insights or ''}"
    ).strip()


def format_monthly_report(report: MonthlyReport, user_name: str) -> str:
    """Текст месячного отчёта со спецпредложением."""
    metrics: Dict[str, Any] = report.monthly_metrics or {}
    evolution: Dict[str, Any] = report.evolution or {}
    analysis: Dict[str, Any] = report.analysis or {}
    offer = report.special_offer

    lines = [
        f"{EMOJI_STAR} Месячный отчёт: {MONTH_NAMES.get(report.month, '')} {report.year}",
        "",
        f"{user_name or 'Читатель'}, вот итоги месяца:",
        f"Цитат: {metrics.get('totalQuotes', 0)}, авторов: {metrics.get('uniqueAuthors', 0)}, "
        f"активных дней: {metrics.get('activeDays', 0)}",
    ]
    if metrics.get("topThemes"):
        lines.append(f"Главные темы: {', '.join(metrics['topThemes'])}")
    lines.append(f"Эмоциональная динамика: {metrics.get('emotionalTrend', '')}")

    for title, value in (
        ("Эволюция месяца", evolution.get("weeklyChanges")),
        ("Глубинные паттерны", evolution.get("deepPatterns")),
        ("Рекомендации", analysis.get("recommendations")),
    ):
        if value:
            lines.extend(["", f"{title}:", value])

    if offer["books"]:
        lines.extend(["", f"{EMOJI_BOOK} Книги для вас:"])
        lines.extend(f"• {book}" for book in offer["books"])

    if offer["discount"] and offer["validUntil"]:
        lines.extend([
            "",
            f"Скидка {offer['discount']}% по промокоду {offer['promoCode']} "
            f"до {offer['validUntil'].strftime('%d.%m.%Y')}",
        ])

    return "\n".join(lines)


class ReportDelivery:
    """Отправка сгенерированных отчётов."""

    def __init__(
        self,
        transport: ChatTransport,
        user_repo: Optional[UserRepository] = None,
        weekly_repo: Optional[WeeklyReportRepository] = None,
        monthly_repo: Optional[MonthlyReportRepository] = None,
    ):
        self.transport = transport
        self.user_repo = user_repo or UserRepository()
        self.weekly_repo = weekly_repo or WeeklyReportRepository()
        self.monthly_repo = monthly_repo or MonthlyReportRepository()

    async def deliver_weekly(self, report: WeeklyReport, now: Optional[datetime] = None) -> Optional[DeliveryStatus]:
        """Отправляет недельный отчёт. Уже отправленный не дублируется."""
        if report.sent_at:
            return None

        user = await self.user_repo.get(report.user_id)
        if not user or user.is_blocked:
            return None

        status = await self.transport.send_text(
            user.telegram_id,
            format_weekly_report(report, user.name),
            button=Button(text="Открыть дневник", target_ref="reports"),
        )
        await self._after_send(status, user.id, lambda: self.weekly_repo.mark_sent(report.id, now or now_local()))
        return status

    async def deliver_monthly(self, report: MonthlyReport, now: Optional[datetime] = None) -> Optional[DeliveryStatus]:
        """Отправляет месячный отчёт. Уже отправленный не дублируется."""
        if report.sent_at:
            return None

        user = await self.user_repo.get(report.user_id)
        if not user or user.is_blocked:
            return None

        status = await self.transport.send_text(
            user.telegram_id,
            format_monthly_report(report, user.name),
            button=Button(text="Подробнее", target_ref="monthly"),
        )
        await self._after_send(status, user.id, lambda: self.monthly_repo.mark_sent(report.id, now or now_local()))
        return status

    async def _after_send(self, status: DeliveryStatus, user_id: int, mark_sent) -> None:
        if status == DeliveryStatus.OK:
            await mark_sent()
        elif status == DeliveryStatus.BLOCKED:
            await self.user_repo.disable_reminders(user_id)
            logger.info(f"Reminders disabled for user {user_id}: bot blocked")

    async def deliver_many(self, reports: Sequence[Any], monthly: bool = False, now: Optional[datetime] = None) -> Dict[str, int]:
        """Отправляет пачку отчётов, ошибки одного не останавливают остальные."""
        result = {"sent": 0, "blocked": 0, "failed": 0}
        deliver = self.deliver_monthly if monthly else self.deliver_weekly

        for report in reports:
            try:
                status = await deliver(report, now)
            except Exception as e:
                result["failed"] += 1
                logger.error(f"Failed to deliver report {report.id}: {e}")
                continue

            if status == DeliveryStatus.OK:
                result["sent"] += 1
            elif status == DeliveryStatus.BLOCKED:
                result["blocked"] += 1
            elif status == DeliveryStatus.ERROR:
                result["failed"] += 1

        return result
