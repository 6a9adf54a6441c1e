"""
Database repositories package.
"""

from database.repositories.user import UserRepository
from database.repositories.quote import QuoteRepository
from database.repositories.category import CategoryRepository
from database.repositories.achievement import AchievementRepository
from database.repositories.weekly_report import WeeklyReportRepository
from database.repositories.monthly_report import MonthlyReportRepository
from database.repositories.notification_template import NotificationTemplateRepository

__all__ = [
    "UserRepository",
    "QuoteRepository",
    "CategoryRepository",
    "AchievementRepository",
    "WeeklyReportRepository",
    "MonthlyReportRepository",
    "NotificationTemplateRepository",
]
