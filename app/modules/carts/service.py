"""
CartsService - a borrower's selection and its conversion into a borrow request.
"""

import logging
from typing import Iterable, List, Optional, Tuple
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.utils import utcnow, ensure_not_in_past
from app.modules.equipment.ledger import StockLedger
from app.modules.equipment.models import Equipment
from app.modules.transactions.models import Transaction, TransactionStatus, BorrowedItem
from .models import Cart, CartItem

logger = logging.getLogger(__name__)


def _check_requested(equipment: Equipment, quantity: int, minimum: int = 1) -> None:
    """Soft stock check; the authoritative one happens at approval."""
    if quantity < minimum:
        raise ValidationError(f"Quantity must be at least {minimum}")
    if quantity > equipment.stock:
        raise ValidationError(
            f"Requested quantity for '{equipment.name}' exceeds available stock ({equipment.stock})"
        )


class CartsService:
    """
    Cart mutations. Stock is never reserved here.
    """

    @staticmethod
    async def _find_cart(db: AsyncSession, user_id: int) -> Optional[Cart]:
        result = await db.execute(
            select(Cart).where(Cart.user_id == user_id, Cart.deleted_at.is_(None))
        )
        return result.unique().scalar_one_or_none()

    @staticmethod
    async def _get_or_create_cart(db: AsyncSession, user_id: int) -> Cart:
        cart = await CartsService._find_cart(db, user_id)
        if cart is None:
            cart = Cart(user_id=user_id, items=[])
            db.add(cart)
            await db.flush()
            logger.info("Created cart %s for user %s", cart.id, user_id)
        return cart

    @staticmethod
    async def get_cart(db: AsyncSession, user_id: int) -> Cart:
        """Existing cart, or an unsaved empty one when the user has none yet."""
        cart = await CartsService._find_cart(db, user_id)
        return cart if cart is not None else Cart(user_id=user_id, items=[])

    @staticmethod
    async def add_item(
        db: AsyncSession, user_id: int, equipment_id: int, quantity: int
    ) -> Cart:
        """
        Add equipment to the cart, merging into an existing line.

        Raises:
            NotFoundError: If the equipment does not exist
            ValidationError: If quantity is not positive or exceeds stock
        """
        equipment = await StockLedger.get(db, equipment_id)
        _check_requested(equipment, quantity)

        cart = await CartsService._get_or_create_cart(db, user_id)
        line = next((i for i in cart.items if i.equipment_id == equipment_id), None)
        if line is not None:
            line.quantity += quantity
        else:
            cart.items.append(
                CartItem(equipment_id=equipment_id, equipment=equipment, quantity=quantity)
            )

        await db.flush()
        return cart

    @staticmethod
    async def remove_items(
        db: AsyncSession, user_id: int, equipment_ids: List[int]
    ) -> Cart:
        """
        Drop lines from the cart. Nothing is restocked.

        Raises:
            ValidationError: If no ids are given
            NotFoundError: If the user has no cart
        """
        if not equipment_ids:
            raise ValidationError("No equipment selected for removal")

        cart = await CartsService._find_cart(db, user_id)
        if cart is None:
            raise NotFoundError("Cart", user_id)

        targets = set(equipment_ids)
        for line in [i for i in cart.items if i.equipment_id in targets]:
            cart.items.remove(line)

        await db.flush()
        return cart

    @staticmethod
    async def set_quantity(
        db: AsyncSession, user_id: int, equipment_id: int, quantity: int
    ) -> Cart:
        """
        Raises:
            NotFoundError: If there is no cart or no line for the equipment
            ValidationError: If quantity is outside 1..stock
        """
        cart = await CartsService._find_cart(db, user_id)
        if cart is None:
            raise NotFoundError("Cart", user_id)

        line = next((i for i in cart.items if i.equipment_id == equipment_id), None)
        if line is None:
            raise NotFoundError("Cart item", equipment_id)

        equipment = await StockLedger.get(db, equipment_id)
        _check_requested(equipment, quantity)

        line.quantity = quantity
        await db.flush()
        return cart

    @staticmethod
    async def submit(
        db: AsyncSession, user_id: int, pick_up_date: Optional[datetime] = None
    ) -> Transaction:
        """
        Turn the cart into a borrow request in `applying`.

        Business Logic:
        1. Cart must have at least one line
        2. pick_up_date, if given, must not be in the past
        3. Each line is snapshotted (equipment id, name, quantity, date ordered)
        4. Cart lines are cleared; the cart row is kept for reuse

        Raises:
            ValidationError: If the cart is empty or pick_up_date is in the past
        """
        cart = await CartsService._find_cart(db, user_id)
        if cart is None or not cart.items:
            raise ValidationError("Cart is empty")

        pick_up_date = ensure_not_in_past(pick_up_date, "Pick-up date")

        transaction = Transaction(
            cart=cart,
            current_status=TransactionStatus.applying,
            stock_reserved=False,
            date_applied=utcnow(),
            pick_up_date=pick_up_date,
            items=[
                BorrowedItem(
                    equipment_id=line.equipment_id,
                    equipment_name=line.equipment.name if line.equipment else f"Equipment #{line.equipment_id}",
                    quantity=line.quantity,
                    date_ordered=line.date_ordered,
                    returned_quantity=0,
                )
                for line in cart.items
            ],
        )
        db.add(transaction)
        cart.items.clear()
        await db.flush()

        logger.info(
            "Cart %s submitted as transaction %s with %s line(s)",
            cart.id,
            transaction.id,
            len(transaction.items),
        )
        return transaction

    @staticmethod
    async def merge_items(
        db: AsyncSession, user_id: int, lines: Iterable[Tuple[int, int]]
    ) -> Cart:
        """
        Put (equipment_id, quantity) lines back into the user's cart.
        Equipment that no longer exists is skipped.
        """
        lines = list(lines)
        cart = await CartsService._get_or_create_cart(db, user_id)
        equipment_map = await StockLedger.load_many(db, [eid for eid, _ in lines])

        for equipment_id, quantity in lines:
            equipment = equipment_map.get(equipment_id)
            if equipment is None:
                logger.warning(
                    "Equipment %s no longer exists; not merged into cart %s",
                    equipment_id,
                    cart.id,
                )
                continue
            line = next((i for i in cart.items if i.equipment_id == equipment_id), None)
            if line is not None:
                line.quantity += quantity
            else:
                cart.items.append(
                    CartItem(equipment_id=equipment_id, equipment=equipment, quantity=quantity)
                )

        await db.flush()
        return cart
