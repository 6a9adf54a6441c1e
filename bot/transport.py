"""
Chat transport.
Отправка сообщений в Telegram с результатом ok / blocked / error.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import Forbidden, TelegramError

from config.constants import MAX_MESSAGE_LENGTH, MAX_CAPTION_LENGTH
from config.settings import settings


class DeliveryStatus(str, Enum):
    OK = "ok"
    BLOCKED = "blocked"
    ERROR = "error"


@dataclass(frozen=True)
class Button:
    """Кнопка под сообщением, открывает мини-приложение."""

    text: str
    target_ref: str


def build_deep_link(target_ref: str) -> str:
    """Ссылка на мини-приложение с параметром startapp."""
    return f"https://t.me/{settings.BOT_USERNAME}/{settings.WEBAPP_NAME}?startapp={target_ref}"


def build_button_markup(button: Optional[Button]) -> Optional[InlineKeyboardMarkup]:
    if not button:
        return None
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(button.text, url=build_deep_link(button.target_ref))
    ]])


def _truncate(text: Optional[str], limit: int) -> Optional[str]:
    if text is None or len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def is_blocked_error(error: Exception) -> bool:
    """Пользователь заблокировал бота или удалил аккаунт."""
    if isinstance(error, Forbidden):
        return True
    message = str(error).lower()
    return "bot was blocked" in message or "user is deactivated" in message


class ChatTransport:
    """Тонкая обёртка над telegram.Bot."""

    def __init__(self, bot: Bot):
        self.bot = bot

    def _status_for(self, chat_id: int, error: Exception) -> DeliveryStatus:
        if is_blocked_error(error):
            logger.info(f"Chat {chat_id} blocked the bot")
            return DeliveryStatus.BLOCKED
        logger.error(f"Failed to deliver to chat {chat_id}: {error}")
        return DeliveryStatus.ERROR

    async def send_text(
        self,
        chat_id: int,
        text: str,
        button: Optional[Button] = None,
        parse_mode: Optional[str] = None,
    ) -> DeliveryStatus:
        """Отправляет текст."""
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=_truncate(text, MAX_MESSAGE_LENGTH),
                reply_markup=build_button_markup(button),
                parse_mode=parse_mode,
            )
            return DeliveryStatus.OK
        except TelegramError as e:
            return self._status_for(chat_id, e)

    async def send_image(
        self,
        chat_id: int,
        image_path: Union[str, Path],
        caption: Optional[str] = None,
        button: Optional[Button] = None,
    ) -> DeliveryStatus:
        """Отправляет картинку с необязательной подписью."""
        try:
            with open(image_path, "rb") as photo:
                await self.bot.send_photo(
                    chat_id=chat_id,
                    photo=photo,
                    caption=_truncate(caption, MAX_CAPTION_LENGTH),
                    reply_markup=build_button_markup(button),
                )
            return DeliveryStatus.OK
        except TelegramError as e:
            return self._status_for(chat_id, e)
        except OSError as e:
            logger.error(f"Cannot read image {image_path}: {e}")
            return DeliveryStatus.ERROR
