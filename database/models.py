"""
SQLAlchemy Models.
Определение всех таблиц базы данных.
Поддерживает PostgreSQL и SQLite.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy import (
    BigInteger,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    func,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Используем JSON вместо JSONB для совместимости с SQLite
# При работе с PostgreSQL можно заменить на JSONB для лучшей производительности
JSONB = JSON


class Base(DeclarativeBase):
    """Базовый класс для всех моделей."""
    pass


class User(Base):
    """Профиль читателя: статистика, настройки напоминаний, статус."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255), default="")

    registered_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Статус
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    # Статистика
    total_quotes: Mapped[int] = mapped_column(Integer, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    favorite_authors: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    # [{"month": 10, "year": 2026, "count": 12}, ...]
    monthly_counts: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    last_quote_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Напоминания
    reminder_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    reminder_frequency: Mapped[str] = mapped_column(String(20), default="standard")
    reminder_times: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    reminder_last_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Метаданные
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<User(id={self.id}, telegram_id={self.telegram_id}, name={self.name})>"


class Category(Base):
    """Категория цитат (каталог для AI-классификации)."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    keywords: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    synonyms: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    priority: Mapped[int] = mapped_column(Integer, default=5)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"


class Quote(Base):
    """Цитата пользователя после классификации. Не изменяется после создания."""

    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(String(255))
    source: Mapped[Optional[str]] = mapped_column(String(255))

    # Анализ
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    themes: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    sentiment: Mapped[str] = mapped_column(String(20), default="neutral")
    insight: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (
        Index("idx_quotes_user_created", "user_id", "created_at"),
        Index("idx_quotes_user_category", "user_id", "category"),
    )

    def __repr__(self) -> str:
        return f"<Quote(id={self.id}, user_id={self.user_id}, author={self.author})>"


class UserAchievement(Base):
    """Полученное достижение. Один id достижения на пользователя."""

    __tablename__ = "user_achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    achievement_id: Mapped[str] = mapped_column(String(50), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    def __repr__(self) -> str:
        return f"<UserAchievement(user_id={self.user_id}, achievement_id={self.achievement_id})>"


class WeeklyReport(Base):
    """Еженедельный отчёт. Один на (пользователь, ISO-неделя, ISO-год)."""

    __tablename__ = "weekly_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    quote_ids: Mapped[Optional[list]] = mapped_column(JSONB, default=list)

    # Метрики
    quotes_count: Mapped[int] = mapped_column(Integer, default=0)
    unique_authors: Mapped[int] = mapped_column(Integer, default=0)
    active_days: Mapped[int] = mapped_column(Integer, default=0)

    # Анализ
    summary: Mapped[Optional[str]] = mapped_column(Text)
    dominant_themes: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    emotional_tone: Mapped[Optional[str]] = mapped_column(String(50))
    insights: Mapped[Optional[str]] = mapped_column(Text)

    # Доставка и обратная связь
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    feedback_rating: Mapped[Optional[int]] = mapped_column(Integer)
    feedback_comment: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "week_number", "year", name="uq_weekly_report_period"),
    )

    @property
    def metrics(self) -> Dict[str, int]:
        return {
            "quotes": self.quotes_count or 0,
            "uniqueAuthors": self.unique_authors or 0,
            "activeDays": self.active_days or 0,
        }

    @property
    def analysis(self) -> Dict[str, Any]:
        return {
            "summary": self.summary or "",
            "dominantThemes": list(self.dominant_themes or []),
            "emotionalTone": self.emotional_tone or "",
            "insights": self.insights or "",
        }

    def __repr__(self) -> str:
        return f"<WeeklyReport(id={self.id}, user_id={self.user_id}, week={self.week_number}/{self.year})>"


class MonthlyReport(Base):
    """Месячный отчёт. Один на (пользователь, месяц, год)."""

    __tablename__ = "monthly_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    weekly_report_ids: Mapped[Optional[list]] = mapped_column(JSONB, default=list)
    generation_method: Mapped[str] = mapped_column(String(20), nullable=False)

    # {"totalQuotes", "uniqueAuthors", "activeDays", "weeksActive", "topThemes", "emotionalTrend"}
    monthly_metrics: Mapped[Optional[dict]] = mapped_column(JSONB, default=dict)
    # {"weeklyChanges", "deepPatterns", "psychologicalInsight"}
    evolution: Mapped[Optional[dict]] = mapped_column(JSONB, default=dict)
    # {"profile", "growth", "recommendations", "bookSuggestions"}
    analysis: Mapped[Optional[dict]] = mapped_column(JSONB, default=dict)

    # Спецпредложение
    offer_discount: Mapped[int] = mapped_column(Integer, default=0)
    offer_valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime)
    offer_promo_code: Mapped[Optional[str]] = mapped_column(String(50))
    offer_books: Mapped[Optional[list]] = mapped_column(JSONB, default=list)

    # Доставка и обратная связь
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    feedback_rating: Mapped[Optional[int]] = mapped_column(Integer)
    feedback_comment: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "month", "year", name="uq_monthly_report_period"),
    )

    @property
    def special_offer(self) -> Dict[str, Any]:
        return {
            "discount": self.offer_discount,
            "validUntil": self.offer_valid_until,
            "promoCode": self.offer_promo_code,
            "books": list(self.offer_books or []),
        }

    def __repr__(self) -> str:
        return f"<MonthlyReport(id={self.id}, user_id={self.user_id}, period={self.month}/{self.year})>"


class NotificationTemplate(Base):
    """Шаблон уведомления на конкретную дату и слот."""

    __tablename__ = "notification_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date_key: Mapped[str] = mapped_column(String(10), nullable=False)  # "2026-10-19"
    slot: Mapped[str] = mapped_column(String(20), nullable=False)

    text: Mapped[Optional[str]] = mapped_column(Text)
    image_ref: Mapped[Optional[str]] = mapped_column(String(255))
    button_text: Mapped[Optional[str]] = mapped_column(String(100))
    button_target: Mapped[Optional[str]] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (
        UniqueConstraint("date_key", "slot", name="uq_template_date_slot"),
    )

    @property
    def has_content(self) -> bool:
        return bool((self.text or "").strip() or (self.image_ref or "").strip())

    def __repr__(self) -> str:
        return f"<NotificationTemplate(date={self.date_key}, slot={self.slot})>"
