from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from typing import Any, Dict, List, Optional

from app.core.db.base import BaseModel


class LogbookEntry(BaseModel):
    """
    LogbookEntry model - append-only audit row, one per status change.
    Holds a full copy of the transaction at that moment so the history
    survives edits to equipment and hard deletion of the transaction.
    transaction_id and cart_id are plain references for the same reason.
    """

    __tablename__ = "logbook"

    __table_args__ = (
        Index("idx_logbook_transaction_created", "transaction_id", "created_at"),
    )

    transaction_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, index=True
    )

    cart_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # approved, declined, borrowed, returned, deleted, restored, overdue, snapshot
    action: Mapped[str] = mapped_column(String(32), nullable=False)

    last_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    current_status: Mapped[str] = mapped_column(String(32), nullable=False)

    items: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    date_applied: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_approved: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    pick_up_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_borrowed: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    return_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_returned: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_archived: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    def __repr__(self) -> str:
        return f"<LogbookEntry(id={self.id}, transaction_id={self.transaction_id}, {self.last_status} -> {self.current_status})>"
