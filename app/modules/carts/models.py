from datetime import datetime
from sqlalchemy import Integer, ForeignKey, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from app.core.db.base import BaseModel

if TYPE_CHECKING:
    from app.modules.users.models import User
    from app.modules.equipment.models import Equipment


class Cart(BaseModel):
    """
    Cart model - a borrower's pending selection before submission.
    One cart per borrower; the row survives submission and only its lines
    are cleared.
    """

    __tablename__ = "carts"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", name="fk_cart_user_id"),
        nullable=False,
        unique=True,
        index=True,
    )

    user: Mapped["User"] = relationship("User", lazy="joined")

    items: Mapped[list["CartItem"]] = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Cart(id={self.id}, user_id={self.user_id})>"


class CartItem(BaseModel):
    """
    CartItem model - one equipment line in a cart, unique per equipment.
    """

    __tablename__ = "cart_items"

    __table_args__ = (
        Index("idx_cart_item_cart_equipment", "cart_id", "equipment_id", unique=True),
    )

    cart_id: Mapped[int] = mapped_column(
        ForeignKey("carts.id", ondelete="CASCADE", name="fk_cart_item_cart_id"),
        nullable=False,
        index=True,
    )

    equipment_id: Mapped[int] = mapped_column(
        ForeignKey("equipment.id", ondelete="CASCADE", name="fk_cart_item_equipment_id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    date_ordered: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), server_default=func.now(), nullable=False
    )

    cart: Mapped["Cart"] = relationship("Cart", back_populates="items")

    equipment: Mapped["Equipment"] = relationship("Equipment", lazy="joined")

    def __repr__(self) -> str:
        return f"<CartItem(id={self.id}, cart_id={self.cart_id}, equipment_id={self.equipment_id}, qty={self.quantity})>"
