"""
Database session management.
Настройка подключения к БД и управление сессиями.
Поддерживает PostgreSQL (asyncpg) и SQLite (aiosqlite).
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from config.settings import settings
from loguru import logger


is_sqlite = settings.DATABASE_URL.startswith("sqlite")

engine_kwargs = {
    "echo": False,
}

if is_sqlite:
    # Одно соединение на процесс, иначе in-memory база теряется между сессиями
    engine_kwargs["poolclass"] = StaticPool
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
    engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
    engine_kwargs["pool_timeout"] = settings.DB_POOL_TIMEOUT
    engine_kwargs["pool_recycle"] = settings.DB_POOL_RECYCLE
    engine_kwargs["pool_pre_ping"] = True

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    **engine_kwargs
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Контекстный менеджер для сессий.
    Коммитит при успехе, откатывает при исключении.

    Использование:
        async with get_session_context() as session:
            ...
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def session_scope(
    session: Optional[AsyncSession] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Переиспользует внешнюю сессию или открывает собственную.

    Если сессия передана, коммит и откат остаются на вызывающем коде:
    так несколько репозиториев работают в одной транзакции.
    """
    if session is not None:
        yield session
        return

    async with get_session_context() as own_session:
        yield own_session


async def init_db() -> None:
    """
    Инициализация базы данных.
    Создаёт все таблицы если их нет.
    """
    from database.models import Base

    logger.info("Initializing database...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not is_sqlite:
        logger.info(
            f"Database pool initialized: "
            f"size={settings.DB_POOL_SIZE}, "
            f"max_overflow={settings.DB_MAX_OVERFLOW}, "
            f"timeout={settings.DB_POOL_TIMEOUT}s, "
            f"recycle={settings.DB_POOL_RECYCLE}s"
        )

    logger.info("Database initialized successfully")


async def drop_db() -> None:
    """Удаляет все таблицы. Используется в тестах."""
    from database.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_db() -> None:
    """
    Закрытие подключения к БД.
    Вызывается при остановке приложения.
    """
    logger.info("Closing database connection...")
    await engine.dispose()
    logger.info("Database connection closed")


async def check_db_connection() -> bool:
    """
    Проверка подключения к БД.
    Возвращает True если подключение успешно.
    """
    from sqlalchemy import text

    try:
        async with async_session() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


def get_pool_status() -> dict:
    """
    Возвращает статистику пула соединений.
    Только для PostgreSQL (не SQLite).
    """
    if is_sqlite:
        return {"type": "sqlite", "pooling": False}

    pool = engine.pool
    return {
        "type": "postgresql",
        "pooling": True,
        "pool_size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
    }
