"""
Scheduler Service.
Планировщик рассылок и генерации отчётов.
Все задачи считаются в бизнес-часовом поясе.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from telegram.ext import Application
from loguru import logger

from bot.transport import ChatTransport
from config.constants import (
    SLOT_MORNING,
    SLOT_DAY,
    SLOT_EVENING,
    SLOT_REPORT,
    SLOT_MONTHLY_REPORT,
)
from services.monthly_reports import MonthlyReportService
from services.notifications import NotificationScheduler
from services.report_delivery import ReportDelivery
from services.weekly_reports import WeeklyReportService
from utils.time_utils import get_timezone, now_local


# Глобальный планировщик
scheduler: AsyncIOScheduler = None
app: Application = None


def start_scheduler(application: Application) -> None:
    """Запускает планировщик задач."""
    global scheduler, app

    app = application
    scheduler = AsyncIOScheduler(timezone=get_timezone())

    # Напоминания: утро, день, вечер
    for slot, hour in ((SLOT_MORNING, 9), (SLOT_DAY, 15), (SLOT_EVENING, 21)):
        scheduler.add_job(
            dispatch_slot,
            trigger=CronTrigger(hour=hour, minute=0),
            args=[slot],
            id=f"slot_{slot}",
            replace_existing=True,
        )

    # Еженедельные отчёты: воскресенье 11:00
    scheduler.add_job(
        run_weekly_reports,
        trigger=CronTrigger(day_of_week="sun", hour=11, minute=0),
        id="weekly_reports",
        replace_existing=True,
    )

    # Догоняющая генерация пропущенных недельных отчётов: ежедневно 04:00
    scheduler.add_job(
        run_weekly_catchup,
        trigger=CronTrigger(hour=4, minute=0),
        id="weekly_reports_catchup",
        replace_existing=True,
    )

    # Уведомление слота report: воскресенье 12:00
    scheduler.add_job(
        dispatch_slot,
        trigger=CronTrigger(day_of_week="sun", hour=12, minute=0),
        args=[SLOT_REPORT],
        id=f"slot_{SLOT_REPORT}",
        replace_existing=True,
    )

    # Месячные отчёты: 1 числа в 12:00
    scheduler.add_job(
        run_monthly_reports,
        trigger=CronTrigger(day=1, hour=12, minute=0),
        id="monthly_reports",
        replace_existing=True,
    )

    # Уведомление слота monthlyReport: 1 числа в 12:30
    scheduler.add_job(
        dispatch_slot,
        trigger=CronTrigger(day=1, hour=12, minute=30),
        args=[SLOT_MONTHLY_REPORT],
        id=f"slot_{SLOT_MONTHLY_REPORT}",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Останавливает планировщик."""
    global scheduler

    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def _transport() -> Optional[ChatTransport]:
    if not app:
        return None
    return ChatTransport(app.bot)


async def dispatch_slot(slot: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Рассылка шаблона слота на сегодня."""
    transport = _transport()
    if not transport:
        return {}

    try:
        stats = await NotificationScheduler(transport).dispatch_slot(slot, now=now or now_local())
    except Exception as e:
        logger.error(f"Slot {slot} dispatch failed: {e}")
        return {"error": str(e)}
    return stats.to_dict()


async def run_weekly_reports(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Генерация и отправка недельных отчётов."""
    transport = _transport()
    if not transport:
        return {}

    now = now or now_local()
    stats = await WeeklyReportService().generate_for_all_users(now)
    delivery = await ReportDelivery(transport).deliver_many(stats.reports, now=now)

    result = stats.to_dict()
    result["delivery"] = delivery
    logger.info(f"Weekly reports job complete: {result['generated']} generated, {delivery['sent']} sent")
    return result


async def run_weekly_catchup(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Генерация пропущенных недельных отчётов за прошедшие недели. Без отправки."""
    try:
        stats = await WeeklyReportService().generate_missing(now or now_local())
    except Exception as e:
        logger.error(f"Weekly catch-up failed: {e}")
        return {"error": str(e)}

    result = stats.to_dict()
    logger.info(f"Weekly catch-up job complete: {result['generated']} generated")
    return result


async def run_monthly_reports(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Генерация и отправка месячных отчётов за прошлый месяц."""
    transport = _transport()
    if not transport:
        return {}

    now = now or now_local()
    stats = await MonthlyReportService().generate_for_all_eligible_users(now)
    delivery = await ReportDelivery(transport).deliver_many(stats.reports, monthly=True, now=now)

    result = stats.to_dict()
    result["delivery"] = delivery
    logger.info(f"Monthly reports job complete: {result['generated']} generated, {delivery['sent']} sent")
    return result
