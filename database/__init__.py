"""
Database package.
Содержит модели, репозитории и сессии для работы с БД.
"""

from database.session import (
    async_session,
    engine,
    get_session_context,
    session_scope,
    init_db,
    close_db,
)
from database.models import (
    Base,
    User,
    Quote,
    Category,
    UserAchievement,
    WeeklyReport,
    MonthlyReport,
    NotificationTemplate,
)

__all__ = [
    # Session
    "async_session",
    "engine",
    "get_session_context",
    "session_scope",
    "init_db",
    "close_db",
    # Models
    "Base",
    "User",
    "Quote",
    "Category",
    "UserAchievement",
    "WeeklyReport",
    "MonthlyReport",
    "NotificationTemplate",
]
