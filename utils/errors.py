"""
Ошибки приложения.
Таксономия ошибок конвейера цитат, отчётов и уведомлений.
"""

from typing import Any, Optional


class ReaderBotError(Exception):
    """Базовый класс ошибок бота."""
    pass


class ValidationError(ReaderBotError):
    """Некорректный ввод. Отклоняется до любых побочных эффектов."""
    pass


class LimitReached(ReaderBotError):
    """Превышен дневной лимит цитат."""

    def __init__(self, limit: int, message: Optional[str] = None):
        self.limit = limit
        super().__init__(message or f"Daily limit of {limit} quotes reached")


class CollaboratorError(ReaderBotError):
    """Внешний сервис (Claude и т.д.) вернул ошибку."""
    pass


class CollaboratorTimeout(CollaboratorError):
    """Внешний сервис не ответил вовремя."""
    pass


class PersistenceConflict(ReaderBotError):
    """Нарушение уникальности при записи. Разрешается чтением существующей записи."""

    def __init__(self, existing: Any = None, message: str = "Record already exists"):
        self.existing = existing
        super().__init__(message)


class PersistenceFailure(ReaderBotError):
    """Неожиданная ошибка хранилища."""
    pass


class IntakeFailed(PersistenceFailure):
    """Цитату не удалось сохранить. Статистика пользователя не изменена."""
    pass
