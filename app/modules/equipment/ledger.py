"""
StockLedger - available-to-borrow quantities per equipment item.

Every mutation is a single conditional UPDATE so two approvals racing for the
same item cannot both pass a stale read. Reads used for pre-checks always
bypass the session identity map.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from .models import Equipment

logger = logging.getLogger(__name__)

# (equipment_id, quantity)
StockLine = Tuple[int, int]


def _aggregate(lines: Iterable[StockLine]) -> Dict[int, int]:
    """Sum quantities per equipment id, keeping first-seen order."""
    totals: Dict[int, int] = {}
    for equipment_id, quantity in lines:
        totals[equipment_id] = totals.get(equipment_id, 0) + quantity
    return totals


class StockLedger:
    """
    Reserve/release operations on Equipment.stock.
    """

    @staticmethod
    async def get(db: AsyncSession, equipment_id: int) -> Equipment:
        """
        Fetch a live equipment row with fresh column values.

        Raises:
            NotFoundError: If the equipment does not exist or was removed
        """
        result = await db.execute(
            select(Equipment)
            .where(Equipment.id == equipment_id, Equipment.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        equipment = result.scalar_one_or_none()
        if not equipment:
            raise NotFoundError("Equipment", equipment_id)
        return equipment

    @staticmethod
    async def load_many(
        db: AsyncSession, equipment_ids: List[int]
    ) -> Dict[int, Equipment]:
        """
        Resolve equipment ids to rows in one query.
        Ids that no longer resolve are absent from the returned map.
        """
        if not equipment_ids:
            return {}
        result = await db.execute(
            select(Equipment)
            .where(Equipment.id.in_(equipment_ids), Equipment.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        return {equipment.id: equipment for equipment in result.scalars().all()}

    @staticmethod
    async def stock_of(db: AsyncSession, equipment_id: int) -> int:
        """Current stock straight from the database."""
        result = await db.execute(
            select(Equipment.stock).where(
                Equipment.id == equipment_id, Equipment.deleted_at.is_(None)
            )
        )
        stock = result.scalar_one_or_none()
        if stock is None:
            raise NotFoundError("Equipment", equipment_id)
        return stock

    @staticmethod
    async def reserve(
        db: AsyncSession, equipment_id: int, quantity: int, name: Optional[str] = None
    ) -> None:
        """
        Decrement stock by `quantity` iff stock >= quantity.

        Raises:
            ValidationError: If quantity is not positive
            NotFoundError: If the equipment does not exist
            InsufficientStockError: If stock cannot cover the quantity
        """
        if quantity <= 0:
            raise ValidationError("Reserved quantity must be positive")

        stmt = (
            update(Equipment)
            .where(
                Equipment.id == equipment_id,
                Equipment.deleted_at.is_(None),
                Equipment.stock >= quantity,
            )
            .values(stock=Equipment.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)

        if result.rowcount == 0:
            available = await StockLedger.stock_of(db, equipment_id)
            raise InsufficientStockError(
                name or f"equipment #{equipment_id}", available, quantity
            )

        logger.debug("Reserved %s of equipment %s", quantity, equipment_id)

    @staticmethod
    async def reserve_all(db: AsyncSession, lines: Iterable[StockLine]) -> None:
        """
        All-or-nothing reservation for a whole request.

        Every line is checked before the first UPDATE runs. If a concurrent
        approval still wins the race, the conditional UPDATE fails and the
        caller's database transaction is rolled back with the raised error.

        Raises:
            NotFoundError: If any equipment is missing
            InsufficientStockError: If any equipment cannot cover its total
        """
        totals = _aggregate(lines)
        equipment_map = await StockLedger.load_many(db, list(totals))

        # Pre-check pass: nothing is mutated until every line passes
        for equipment_id, quantity in totals.items():
            equipment = equipment_map.get(equipment_id)
            if equipment is None:
                raise NotFoundError("Equipment", equipment_id)
            if equipment.stock < quantity:
                raise InsufficientStockError(equipment.name, equipment.stock, quantity)

        for equipment_id, quantity in totals.items():
            await StockLedger.reserve(
                db, equipment_id, quantity, name=equipment_map[equipment_id].name
            )

    @staticmethod
    async def release(db: AsyncSession, equipment_id: int, quantity: int) -> bool:
        """
        Increment stock unconditionally.

        Returns:
            False when the equipment no longer exists (logged and skipped)
        """
        stmt = (
            update(Equipment)
            .where(Equipment.id == equipment_id, Equipment.deleted_at.is_(None))
            .values(stock=Equipment.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)

        if result.rowcount == 0:
            logger.warning(
                "Equipment %s not found while restocking %s unit(s); skipped",
                equipment_id,
                quantity,
            )
            return False
        return True

    @staticmethod
    async def release_all(db: AsyncSession, lines: Iterable[StockLine]) -> int:
        """
        Release every line, tolerating equipment that has since been removed.

        Returns:
            Number of lines that were restocked
        """
        restocked = 0
        for equipment_id, quantity in lines:
            if await StockLedger.release(db, equipment_id, quantity):
                restocked += 1
        return restocked
