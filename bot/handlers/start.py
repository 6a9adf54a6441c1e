"""
Start command handler.
Регистрация читателя и справка.
"""

from telegram import Update
from telegram.ext import ContextTypes
from loguru import logger

from config.settings import settings
from database.repositories.user import UserRepository


user_repo = UserRepository()


HELP_TEXT = """📖 Как пользоваться дневником цитат

Просто пришлите цитату сообщением. Можно с автором:
• "Любовь — это решение любить" (Эрих Фромм)
• Жизнь — это то, что с нами происходит — Джон Леннон
• Или собственную мысль, без автора

Команды:
/stats — ваша статистика
/achievements — достижения
/reminders off|rare|standard|often — частота напоминаний

В воскресенье приходит отчёт за неделю, первого числа — за месяц."""


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Обработчик команды /start.
    Создаёт профиль и приветствует пользователя.
    """
    user_tg = update.effective_user

    user, created = await user_repo.get_or_create(
        telegram_id=user_tg.id,
        username=user_tg.username,
        name=user_tg.first_name,
    )

    if not user.onboarding_completed:
        await user_repo.complete_onboarding(user.id)

    if created:
        text = (
            f"Здравствуйте, {user.name or 'читатель'}!\n\n"
            f"Я помогу собирать цитаты из книг и раз в неделю расскажу, "
            f"что они говорят о Вас.\n\n"
            f"Лимит — {settings.DAILY_QUOTE_LIMIT} цитат в день. "
            f"Пришлите первую цитату прямо сейчас."
        )
    else:
        text = f"С возвращением, {user.name or 'читатель'}! Жду новых цитат 📖"

    await update.message.reply_text(text)
    logger.info(f"User {user_tg.id} started bot (created={created})")


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик команды /help."""
    await update.message.reply_text(HELP_TEXT)
