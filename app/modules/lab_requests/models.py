import enum
from datetime import datetime
from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional, TYPE_CHECKING

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.users.models import User


class LabRequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    declined = "declined"
    cancelled = "cancelled"


class LabRequest(BaseModel):
    """
    LabRequest model - a borrower's reservation of a lab room for a time
    window. Lab names are free text so renamed or admin-managed labs stay
    valid on old requests.
    """

    __tablename__ = "lab_requests"

    __table_args__ = (
        Index("idx_lab_request_lab_status", "lab", "status"),
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE", name="fk_lab_request_user_id"),
        nullable=False,
        index=True,
    )

    lab: Mapped[str] = mapped_column(String(255), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    status: Mapped[LabRequestStatus] = mapped_column(
        SQLEnum(LabRequestStatus, name="lab_request_status_enum", native_enum=False),
        nullable=False,
        default=LabRequestStatus.pending,
        server_default=LabRequestStatus.pending.value,
    )

    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    # Approver who decided the request; plain reference
    decided_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)

    date_approved: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, default=None
    )

    requester: Mapped["User"] = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<LabRequest(id={self.id}, lab='{self.lab}', status={self.status.value})>"
