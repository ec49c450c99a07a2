"""
Carts Router - the borrower's own cart and its submission.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.modules.users.auth import TokenData, require_any_role
from app.modules.transactions.schemas import TransactionResponse
from .service import CartsService
from .schemas import (
    AddCartItemDto,
    SetQuantityDto,
    RemoveCartItemsDto,
    SubmitCartDto,
    CartResponse,
)

router = APIRouter(prefix="/carts", tags=["Carts"])


@router.get("/me", response_model=CartResponse)
async def get_my_cart(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await CartsService.get_cart(db, current_user.user_id)


@router.post("/me/items", response_model=CartResponse, status_code=201)
async def add_cart_item(
    item_data: AddCartItemDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """
    Add equipment to the cart. Adding an item already in the cart
    increases its quantity.
    """
    return await CartsService.add_item(
        db, current_user.user_id, item_data.equipment_id, item_data.quantity
    )


@router.patch("/me/items/{equipment_id}", response_model=CartResponse)
async def set_cart_item_quantity(
    equipment_id: int,
    quantity_data: SetQuantityDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await CartsService.set_quantity(
        db, current_user.user_id, equipment_id, quantity_data.quantity
    )


@router.delete("/me/items", response_model=CartResponse)
async def remove_cart_items(
    remove_data: RemoveCartItemsDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await CartsService.remove_items(
        db, current_user.user_id, remove_data.equipment_ids
    )


@router.post("/submit", response_model=TransactionResponse, status_code=201)
async def submit_cart(
    submit_data: SubmitCartDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """
    Submit the cart as a borrow request.

    The request starts in `applying`; no stock is reserved until an
    approver confirms it.
    """
    return await CartsService.submit(db, current_user.user_id, submit_data.pick_up_date)
