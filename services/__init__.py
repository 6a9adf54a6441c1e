"""
Services package.
Бизнес-логика приложения.
"""

from services.scheduler import start_scheduler, stop_scheduler

__all__ = [
    "start_scheduler",
    "stop_scheduler",
]
