"""
Command handlers.
/stats, /achievements, /reminders.
"""

from telegram import Update
from telegram.ext import ContextTypes
from loguru import logger

from bot.handlers.quotes import get_quote_intake
from config.constants import REMINDER_FREQUENCIES, FREQUENCY_OFF
from database.repositories.user import UserRepository
from services.achievements import AchievementEngine


user_repo = UserRepository()
achievement_engine = AchievementEngine()

FREQUENCY_LABELS = {
    "off": "выключены",
    "rare": "редко (вторник и пятница вечером)",
    "standard": "стандартно (каждое утро)",
    "often": "часто (утро, день и вечер)",
}


async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик команды /stats."""
    user = await user_repo.get_by_telegram_id(update.effective_user.id)
    if not user:
        await update.message.reply_text("Сначала нажмите /start.")
        return

    stats = await get_quote_intake().get_user_stats(user.id)
    authors = ", ".join(stats["favorite_authors"]) or "пока нет"

    await update.message.reply_text(
        f"📊 Ваша статистика\n\n"
        f"Цитат всего: {stats['total_quotes']}\n"
        f"Сегодня: {stats['today_count']}/{stats['daily_limit']}\n"
        f"Серия дней: {stats['current_streak']} (рекорд {stats['longest_streak']})\n"
        f"Любимые авторы: {authors}\n"
        f"Дней с ботом: {stats['days_since_registration']}"
    )


async def achievements_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик команды /achievements."""
    user = await user_repo.get_by_telegram_id(update.effective_user.id)
    if not user:
        await update.message.reply_text("Сначала нажмите /start.")
        return

    progress = await achievement_engine.get_progress(user.id)

    lines = ["🏆 Достижения\n"]
    for item in progress:
        if item["isUnlocked"]:
            lines.append(f"{item['icon']} {item['name']} ✅")
        else:
            lines.append(
                f"▫️ {item['name']}: {item['currentValue']}/{item['targetValue']} "
                f"({item['progress']}%)"
            )

    await update.message.reply_text("\n".join(lines))


async def reminders_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Обработчик команды /reminders.
    Без аргумента показывает текущую частоту, с аргументом — меняет.
    """
    user = await user_repo.get_by_telegram_id(update.effective_user.id)
    if not user:
        await update.message.reply_text("Сначала нажмите /start.")
        return

    if not context.args:
        current = user.reminder_frequency if user.reminder_enabled else FREQUENCY_OFF
        await update.message.reply_text(
            f"Напоминания: {FREQUENCY_LABELS.get(current, current)}\n"
            f"Изменить: /reminders off|rare|standard|often"
        )
        return

    frequency = context.args[0].strip().lower()
    if frequency not in REMINDER_FREQUENCIES:
        await update.message.reply_text("Доступные варианты: off, rare, standard, often")
        return

    await user_repo.set_reminder_frequency(user.id, frequency)
    logger.info(f"User {user.id} set reminder frequency to {frequency}")
    await update.message.reply_text(f"Готово! Напоминания: {FREQUENCY_LABELS[frequency]}")
