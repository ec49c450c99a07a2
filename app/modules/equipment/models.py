from sqlalchemy import String, Integer, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from typing import Optional

from app.core.db.base import BaseModel


class Equipment(BaseModel):
    """
    Equipment model - one borrowable item type in the lab inventory.
    `stock` is the available-to-borrow count and can never go negative.
    """

    __tablename__ = "equipment"

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_equipment_stock_non_negative"),
    )

    # Categories are managed elsewhere; only the reference is kept
    category_id: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, default=None, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Equipment(id={self.id}, name='{self.name}', stock={self.stock})>"
