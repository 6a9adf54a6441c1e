"""
Quote message handler.
Любое текстовое сообщение — это цитата.
"""

from typing import Optional

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes
from loguru import logger

from database.repositories.user import UserRepository
from services.achievements import format_achievement_notification
from services.quote_intake import IntakeStatus, QuoteIntake
from utils.errors import ValidationError, IntakeFailed


user_repo = UserRepository()
_quote_intake: Optional[QuoteIntake] = None


def get_quote_intake() -> QuoteIntake:
    global _quote_intake
    if _quote_intake is None:
        _quote_intake = QuoteIntake()
    return _quote_intake


async def handle_quote(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Сохраняет цитату и отвечает анализом."""
    user_tg = update.effective_user
    message = update.message

    user = await user_repo.get_by_telegram_id(user_tg.id)
    if not user:
        await message.reply_text("Сначала нажмите /start, чтобы создать дневник.")
        return

    intake = get_quote_intake()

    try:
        result = await intake.submit(user.id, message.text)
    except ValidationError as e:
        logger.info(f"Rejected quote from user {user.id}: {e}")
        await message.reply_text(
            f"Не получилось сохранить: цитата пустая или длиннее {intake.max_length} символов."
        )
        return
    except IntakeFailed:
        await message.reply_text("Не удалось сохранить цитату. Попробуйте ещё раз чуть позже.")
        return

    if result.status == IntakeStatus.LIMIT_REACHED:
        await message.reply_text(
            f"Сегодня уже сохранено {intake.daily_limit} цитат — это дневной лимит. "
            f"Возвращайтесь завтра 📖"
        )
        return

    quote = result.quote
    author_line = f"\nАвтор: {quote.author}" if quote.author else ""
    await message.reply_text(
        f"✅ Цитата сохранена ({result.today_count}/{intake.daily_limit} сегодня)"
        f"{author_line}\n"
        f"Категория: {quote.category}\n\n"
        f"💭 {quote.insight}"
    )

    for achievement in result.new_achievements:
        await message.reply_text(
            format_achievement_notification(achievement),
            parse_mode=ParseMode.MARKDOWN,
        )
