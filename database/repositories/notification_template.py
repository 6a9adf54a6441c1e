"""
Notification template repository.
Шаблоны уведомлений по (дата, слот).
"""

from typing import Optional
from sqlalchemy import select

from database.session import get_session_context
from database.models import NotificationTemplate


class NotificationTemplateRepository:
    """Репозиторий для работы с шаблонами уведомлений."""

    async def get(self, date_key: str, slot: str) -> Optional[NotificationTemplate]:
        """Шаблон на дату и слот."""
        async with get_session_context() as session:
            result = await session.execute(
                select(NotificationTemplate).where(
                    NotificationTemplate.date_key == date_key,
                    NotificationTemplate.slot == slot,
                )
            )
            return result.scalar_one_or_none()

    async def upsert(
        self,
        date_key: str,
        slot: str,
        text: Optional[str] = None,
        image_ref: Optional[str] = None,
        button_text: Optional[str] = None,
        button_target: Optional[str] = None,
    ) -> NotificationTemplate:
        """Создать или заменить шаблон."""
        async with get_session_context() as session:
            result = await session.execute(
                select(NotificationTemplate).where(
                    NotificationTemplate.date_key == date_key,
                    NotificationTemplate.slot == slot,
                )
            )
            template = result.scalar_one_or_none()

            if template is None:
                template = NotificationTemplate(date_key=date_key, slot=slot)
                session.add(template)

            template.text = text
            template.image_ref = image_ref
            template.button_text = button_text
            template.button_target = button_target

            await session.flush()
            return template
