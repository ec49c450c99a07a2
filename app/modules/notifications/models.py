import enum
from sqlalchemy import String, Text, Boolean, Integer, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column
from typing import Optional

from app.core.db.base import BaseModel


class NotificationType(str, enum.Enum):
    global_ = "global"
    user_specific = "user-specific"


class ResourceType(str, enum.Enum):
    equipment = "equipment"
    transaction = "transaction"
    application = "application"
    other = "other"
    category = "category"


class Notification(BaseModel):
    """
    Notification model. Global notifications are visible to everyone;
    user-specific ones only to user_id.
    """

    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notification_type_user", "type", "user_id"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    type: Mapped[NotificationType] = mapped_column(
        SQLEnum(
            NotificationType,
            name="notification_type_enum",
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )

    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE", name="fk_notification_user_id"),
        nullable=True,
        default=None,
    )

    resource_type: Mapped[ResourceType] = mapped_column(
        SQLEnum(ResourceType, name="notification_resource_type_enum", native_enum=False),
        nullable=False,
        default=ResourceType.other,
    )

    # Plain id: the referenced transaction may later be hard-deleted
    resource_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)

    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type={self.type.value}, user_id={self.user_id}, title='{self.title}')>"
