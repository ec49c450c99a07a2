import enum
from sqlalchemy import String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from typing import Optional

from app.core.db.base import BaseModel


class Role(str, enum.Enum):
    """User role enum. ADMIN and STAFF approve requests; BORROWER borrows."""

    ADMIN = "ADMIN"
    STAFF = "STAFF"
    BORROWER = "BORROWER"


class User(BaseModel):
    """
    User model. Only identity fields live here: the lending core needs the
    borrower's display name and e-mail for notifications.
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, default=None
    )

    role: Mapped[Role] = mapped_column(
        SQLEnum(
            Role,
            name="users_role_enum",
            native_enum=False,
        ),
        nullable=False,
        default=Role.BORROWER,
        server_default=Role.BORROWER.value,
    )

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, username='{self.username}', role={self.role.value})>"
        )
