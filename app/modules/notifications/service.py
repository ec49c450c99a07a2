"""
NotificationService - creation contract used by transition side effects,
plus the read side for the notification bell.
"""

from typing import List, Optional
from sqlalchemy import select, update, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from .models import Notification, NotificationType, ResourceType


def _visible_to(user_id: int):
    """Global notifications plus the ones addressed to user_id."""
    return or_(
        Notification.type == NotificationType.global_,
        and_(
            Notification.type == NotificationType.user_specific,
            Notification.user_id == user_id,
        ),
    )


class NotificationService:
    """
    Notifications are created once and only ever flipped to read.
    """

    @staticmethod
    async def create_global(
        db: AsyncSession,
        title: str,
        description: str,
        resource_type: ResourceType = ResourceType.other,
        resource_id: Optional[int] = None,
    ) -> Notification:
        notification = Notification(
            title=title,
            description=description,
            type=NotificationType.global_,
            resource_type=resource_type,
            resource_id=resource_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def create_for_user(
        db: AsyncSession,
        user_id: int,
        title: str,
        description: str,
        resource_type: ResourceType = ResourceType.other,
        resource_id: Optional[int] = None,
    ) -> Notification:
        """
        Raises:
            ValidationError: If no user id is given
        """
        if user_id is None:
            raise ValidationError("User-specific notification requires a user id")

        notification = Notification(
            title=title,
            description=description,
            type=NotificationType.user_specific,
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: int) -> List[Notification]:
        """User-specific notifications merged with global ones, newest first."""
        result = await db.execute(
            select(Notification)
            .where(_visible_to(user_id))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_global(db: AsyncSession) -> List[Notification]:
        result = await db.execute(
            select(Notification)
            .where(Notification.type == NotificationType.global_)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def mark_as_read(
        db: AsyncSession, notification_id: int, user_id: int
    ) -> Notification:
        """
        Raises:
            NotFoundError: If the notification is not visible to the user
        """
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id, _visible_to(user_id)
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", notification_id)

        notification.is_read = True
        await db.flush()
        return notification

    @staticmethod
    async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
        """
        Returns:
            Number of notifications flipped to read
        """
        result = await db.execute(
            update(Notification)
            .where(_visible_to(user_id), Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
