"""
Pytest fixtures and configuration.
"""

import os

# Настройки читаются при импорте config.settings, окружение задаётся до импортов проекта
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["USE_LIVE_CLASSIFIER"] = "false"

from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest

from bot.transport import DeliveryStatus
from database.session import engine, init_db, drop_db
from database.repositories.user import UserRepository


@pytest.fixture(autouse=True)
async def database():
    """Чистая in-memory база на каждый тест."""
    await init_db()
    yield
    await drop_db()
    # Соединение привязано к event loop теста
    await engine.dispose()


@pytest.fixture
def now():
    """Среда, 15 октября 2025, 10:00 по Москве."""
    return datetime(2025, 10, 15, 10, 0)


@pytest.fixture
def make_user():
    """Фабрика пользователей с пройденным онбордингом."""
    repo = UserRepository()
    counter = {"telegram_id": 1000}

    async def _make_user(
        registered_at: datetime = datetime(2025, 1, 1),
        name: str = "Анна",
        **fields,
    ):
        counter["telegram_id"] += 1
        user, _ = await repo.get_or_create(
            telegram_id=counter["telegram_id"],
            username=f"user{counter['telegram_id']}",
            name=name,
            now=registered_at,
        )
        updates = {"onboarding_completed": True}
        updates.update(fields)
        return await repo.update(user.id, **updates)

    return _make_user


@pytest.fixture
def mock_transport():
    """Транспорт, который всегда доставляет."""
    transport = Mock()
    transport.send_text = AsyncMock(return_value=DeliveryStatus.OK)
    transport.send_image = AsyncMock(return_value=DeliveryStatus.OK)
    return transport


@pytest.fixture
def mock_claude():
    """Клиент Claude с заданным ответом."""
    client = Mock()
    client.analyze = AsyncMock(return_value="{}")
    return client


@pytest.fixture
def mock_update():
    """Mock Telegram Update."""
    update = Mock()
    update.effective_user = Mock()
    update.effective_user.id = 12345
    update.effective_user.username = "testuser"
    update.effective_user.first_name = "Анна"
    update.message = Mock()
    update.message.text = "Test message"
    update.message.reply_text = AsyncMock()
    update.effective_chat = Mock()
    update.effective_chat.id = 12345
    return update


@pytest.fixture
def mock_context():
    """Mock Telegram Context."""
    context = Mock()
    context.bot = AsyncMock()
    context.args = []
    context.user_data = {}
    return context
