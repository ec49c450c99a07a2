import enum
from datetime import datetime
from sqlalchemy import (
    String,
    Integer,
    Boolean,
    Text,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, List, Optional, Tuple

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.carts.models import Cart
    from app.modules.users.models import User


class TransactionStatus(str, enum.Enum):
    """Lifecycle states of a borrow request"""

    applying = "applying"
    approved = "approved"
    borrowed = "borrowed"
    returned = "returned"
    pending = "pending"  # overdue, entered only by the daily sweep
    declined = "declined"
    deleted = "deleted"


ARCHIVED_STATUSES = (TransactionStatus.declined, TransactionStatus.deleted)


class Transaction(BaseModel):
    """
    Transaction model - a submitted borrow request and its lifecycle.
    Extends BaseModel which provides: id, created_at, updated_at, deleted_at
    """

    __tablename__ = "borrow_transactions"

    __table_args__ = (
        Index("idx_borrow_transaction_status", "current_status"),
        Index("idx_borrow_transaction_status_return", "current_status", "return_date"),
    )

    # The borrower is resolved through the cart that spawned the request
    cart_id: Mapped[int] = mapped_column(
        ForeignKey("carts.id", name="fk_borrow_transaction_cart_id"),
        nullable=False,
        index=True,
    )

    current_status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(TransactionStatus, name="transaction_status_enum", native_enum=False),
        nullable=False,
        default=TransactionStatus.applying,
    )

    # Single-level undo for restore
    last_status: Mapped[Optional[TransactionStatus]] = mapped_column(
        SQLEnum(TransactionStatus, name="transaction_status_enum", native_enum=False),
        nullable=True,
        default=None,
    )

    # True while this request holds units deducted from equipment stock
    stock_reserved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    date_applied: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_approved: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    pick_up_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_borrowed: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    return_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_returned: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    date_archived: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    # Relationships
    cart: Mapped["Cart"] = relationship("Cart", lazy="joined")

    items: Mapped[List["BorrowedItem"]] = relationship(
        "BorrowedItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="BorrowedItem.id",
        lazy="selectin",
    )

    @property
    def borrower(self) -> Optional["User"]:
        return self.cart.user if self.cart is not None else None

    def stock_lines(self) -> List[Tuple[int, int]]:
        """(equipment_id, quantity) pairs from the original snapshot."""
        return [(item.equipment_id, item.quantity) for item in self.items]

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, status={self.current_status.value}, last={self.last_status})>"


class BorrowedItem(BaseModel):
    """
    BorrowedItem model - immutable snapshot of one cart line at submission.
    equipment_id carries no foreign key so the snapshot outlives the
    equipment row it was taken from.
    """

    __tablename__ = "borrowed_items"

    transaction_id: Mapped[int] = mapped_column(
        ForeignKey(
            "borrow_transactions.id",
            ondelete="CASCADE",
            name="fk_borrowed_item_transaction_id",
        ),
        nullable=False,
        index=True,
    )

    equipment_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    equipment_name: Mapped[str] = mapped_column(String(255), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    date_ordered: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    returned_quantity: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    transaction: Mapped["Transaction"] = relationship(
        "Transaction", back_populates="items"
    )

    def snapshot(self) -> dict:
        """JSON-safe copy used by logbook entries."""
        return {
            "equipment_id": self.equipment_id,
            "equipment_name": self.equipment_name,
            "quantity": self.quantity,
            "date_ordered": self.date_ordered.isoformat() if self.date_ordered else None,
            "returned_quantity": self.returned_quantity,
        }

    def __repr__(self) -> str:
        return f"<BorrowedItem(id={self.id}, transaction_id={self.transaction_id}, equipment_id={self.equipment_id}, qty={self.quantity})>"
