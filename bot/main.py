"""
Main bot entry point.
Запуск и конфигурация Telegram бота.
"""

import asyncio
import signal
import sys
import os
import fcntl
from pathlib import Path
from telegram import Update, BotCommand
from telegram.ext import (
    Application,
    CommandHandler,
    MessageHandler,
    filters,
)
from loguru import logger

from config.constants import CANONICAL_CATEGORIES
from config.settings import settings
from database import init_db, close_db
from database.repositories.category import CategoryRepository
from bot.handlers.start import start_command, help_command
from bot.handlers.quotes import handle_quote
from bot.handlers.commands import stats_command, achievements_command, reminders_command
from services.scheduler import start_scheduler, stop_scheduler
from services.health import health_server


# Глобальный экземпляр приложения
application: Application = None

_shutdown_in_progress = False
_shutdown_timeout = 30  # секунд на завершение pending запросов

# PID-файл для контроля одного экземпляра
PID_FILE = Path(__file__).parent.parent / "reader_bot.pid"
_lock_file = None


def acquire_lock() -> bool:
    """
    Захватывает блокировку PID-файла.
    Два экземпляра дублировали бы все рассылки.

    Returns:
        True если блокировка получена, False если уже запущен другой экземпляр
    """
    global _lock_file

    try:
        _lock_file = open(PID_FILE, "a+")
        fcntl.flock(_lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        _lock_file.seek(0)
        _lock_file.truncate()
        _lock_file.write(str(os.getpid()))
        _lock_file.flush()
        logger.info(f"PID lock acquired: {os.getpid()}")
        return True
    except OSError as e:
        if _lock_file:
            _lock_file.close()
            _lock_file = None
        logger.error(f"Another bot instance is already running! Error: {e}")
        return False


def release_lock() -> None:
    """Освобождает блокировку PID-файла."""
    global _lock_file

    if _lock_file:
        try:
            fcntl.flock(_lock_file.fileno(), fcntl.LOCK_UN)
            _lock_file.close()
            PID_FILE.unlink(missing_ok=True)
            logger.info("PID lock released")
        except OSError as e:
            logger.error(f"Error releasing lock: {e}")


async def post_init(app: Application) -> None:
    """Инициализация после запуска бота."""
    logger.info("Initializing bot...")

    try:
        await app.bot.set_my_commands([
            BotCommand("start", "Начать дневник цитат"),
            BotCommand("help", "Как пользоваться"),
            BotCommand("stats", "Моя статистика"),
            BotCommand("achievements", "Мои достижения"),
            BotCommand("reminders", "Частота напоминаний"),
        ])
        logger.info("Bot commands menu configured")
    except Exception as e:
        logger.warning(f"Failed to set bot commands: {e}")

    await init_db()

    seeded = await CategoryRepository().seed(CANONICAL_CATEGORIES)
    if seeded:
        logger.info(f"Seeded {seeded} quote categories")

    start_scheduler(app)

    try:
        await health_server.start()
        health_server.set_bot_running(True)
    except Exception as e:
        logger.warning(f"Failed to start health check server: {e}")

    logger.info("Bot initialized successfully")


async def post_shutdown(app: Application) -> None:
    """Очистка при остановке бота."""
    global _shutdown_in_progress

    if _shutdown_in_progress:
        logger.warning("Shutdown already in progress, skipping...")
        return

    _shutdown_in_progress = True
    logger.info("Shutting down bot gracefully...")

    health_server.set_bot_running(False)

    try:
        await health_server.stop()
    except Exception as e:
        logger.error(f"Error stopping health server: {e}")

    try:
        stop_scheduler()
    except Exception as e:
        logger.error(f"Error stopping scheduler: {e}")

    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database: {e}")

    logger.info("Bot shutdown complete")


def _handle_signal(signum: int, frame) -> None:
    """Обработчик сигналов SIGTERM и SIGINT."""
    signal_name = signal.Signals(signum).name
    logger.info(f"Received signal {signal_name}, initiating graceful shutdown...")

    if application and application.running:
        asyncio.create_task(_graceful_stop())
    else:
        logger.info("Application not running, exiting immediately")
        sys.exit(0)


async def _graceful_stop() -> None:
    """Корректная остановка приложения."""
    if not application:
        return

    try:
        logger.info(f"Waiting up to {_shutdown_timeout}s for pending requests...")
        await application.stop()
        await asyncio.sleep(1)
        await application.shutdown()
        logger.info("Graceful stop completed")
    except Exception as e:
        logger.error(f"Error during graceful stop: {e}")
    finally:
        sys.exit(0)


def create_application() -> Application:
    """Создаёт и конфигурирует приложение бота."""
    global application

    application = (
        Application.builder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("stats", stats_command))
    application.add_handler(CommandHandler("achievements", achievements_command))
    application.add_handler(CommandHandler("reminders", reminders_command))

    # Любой текст без команды считается цитатой (должен быть последним)
    application.add_handler(MessageHandler(
        filters.TEXT & ~filters.COMMAND,
        handle_quote
    ))

    return application


def main() -> None:
    """Точка входа."""
    logger.add(
        "logs/bot_{time}.log",
        rotation="1 day",
        retention="30 days",
        level=settings.LOG_LEVEL,
    )

    logger.info("Starting Reader Bot...")
    logger.info(f"Using Claude model: {settings.CLAUDE_MODEL}")

    if sys.platform != "win32":
        if not acquire_lock():
            logger.error("Bot is already running! Exiting.")
            sys.exit(1)

        signal.signal(signal.SIGTERM, _handle_signal)
        signal.signal(signal.SIGINT, _handle_signal)
        logger.info("Signal handlers registered (SIGTERM, SIGINT)")
    else:
        signal.signal(signal.SIGINT, _handle_signal)

    app = create_application()

    try:
        app.run_polling(
            allowed_updates=Update.ALL_TYPES,
            drop_pending_updates=True,
        )
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received, shutting down...")
    except Exception as e:
        logger.error(f"Unexpected error in main loop: {e}")
    finally:
        if sys.platform != "win32":
            release_lock()
        logger.info("Bot stopped")


if __name__ == "__main__":
    main()
