"""
Transactions Router - approver transitions, borrower actions and the
overdue sweep.

Transitions commit before their notification/e-mail is queued, so a
delivery failure can never undo a status change.
"""

from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.core.exceptions import ForbiddenError
from app.modules.users.auth import TokenData, require_approver, require_any_role
from app.modules.users.models import Role
from app.modules.carts.schemas import CartResponse
from .models import TransactionStatus
from .service import TransactionsService, TransitionResult
from .side_effects import SideEffectDispatcher, get_side_effect_dispatcher
from .schemas import (
    TransactionResponse,
    ConfirmApplicationDto,
    RemarksDto,
    ConfirmBorrowedDto,
    ConfirmReturnDto,
    UpdatePickUpDateDto,
    OverdueSweepResponse,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


async def _commit_and_queue(
    db: AsyncSession,
    result: TransitionResult,
    background_tasks: BackgroundTasks,
    dispatcher: SideEffectDispatcher,
):
    await db.commit()
    if result.event is not None:
        background_tasks.add_task(dispatcher.dispatch, result.event)
    return result.transaction


# ============================================================================
# Reads
# ============================================================================


@router.get("", response_model=List[TransactionResponse])
async def list_transactions(
    status: Optional[TransactionStatus] = Query(None, description="Filter by current status"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    """
    List borrow requests, newest first.

    Examples:
    - GET /transactions - every request
    - GET /transactions?status=applying - requests waiting for approval
    - GET /transactions?status=pending - overdue loans
    """
    return await TransactionsService.list_by_status(db, status)


@router.get("/mine", response_model=List[TransactionResponse])
async def list_my_transactions(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await TransactionsService.list_for_borrower(db, current_user.user_id)


@router.post("/overdue-sweep", response_model=OverdueSweepResponse)
async def run_overdue_sweep(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    """
    Mark borrowed loans past their return date as `pending`.
    Safe to call repeatedly (e.g. from an external cron).
    """
    sweep = await TransactionsService.mark_overdue_as_pending(db)
    await db.commit()
    if sweep.events:
        background_tasks.add_task(dispatcher.dispatch_many, sweep.events)
    return OverdueSweepResponse(updated_count=sweep.updated_count)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Borrowers can only read their own requests."""
    transaction = await TransactionsService.get_transaction(db, transaction_id)
    if current_user.role == Role.BORROWER.value and transaction.cart.user_id != current_user.user_id:
        raise ForbiddenError("You can only view your own borrow requests")
    return transaction


# ============================================================================
# Approver transitions
# ============================================================================


@router.put("/{transaction_id}/confirm-application", response_model=TransactionResponse)
async def confirm_application(
    transaction_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[ConfirmApplicationDto] = None,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    """
    Approve a request and reserve its stock.

    Fails with 409 and leaves every stock level untouched if any item
    cannot be covered.
    """
    result = await TransactionsService.confirm_application(
        db, transaction_id, body.pick_up_date if body else None
    )
    return await _commit_and_queue(db, result, background_tasks, dispatcher)


@router.put("/{transaction_id}/decline-application", response_model=TransactionResponse)
async def decline_application(
    transaction_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[RemarksDto] = None,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    result = await TransactionsService.decline_application(
        db, transaction_id, body.remarks if body else None
    )
    return await _commit_and_queue(db, result, background_tasks, dispatcher)


@router.put("/{transaction_id}/confirm-borrowed", response_model=TransactionResponse)
async def confirm_borrowed(
    transaction_id: int,
    body: ConfirmBorrowedDto,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    result = await TransactionsService.confirm_borrowed_status(
        db, transaction_id, body.return_date
    )
    return await _commit_and_queue(db, result, background_tasks, dispatcher)


@router.put("/{transaction_id}/decline-approval", response_model=TransactionResponse)
async def decline_approval(
    transaction_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[RemarksDto] = None,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    result = await TransactionsService.decline_approval(
        db, transaction_id, body.remarks if body else None
    )
    return await _commit_and_queue(db, result, background_tasks, dispatcher)


@router.put("/{transaction_id}/return", response_model=TransactionResponse)
async def confirm_return(
    transaction_id: int,
    body: ConfirmReturnDto,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    result = await TransactionsService.confirm_return(
        db, transaction_id, body.date_returned, body.remarks
    )
    return await _commit_and_queue(db, result, background_tasks, dispatcher)


@router.put("/{transaction_id}/remove", response_model=TransactionResponse)
async def remove_record(
    transaction_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[RemarksDto] = None,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    result = await TransactionsService.remove_borrowed_records(
        db, transaction_id, body.remarks if body else None
    )
    return await _commit_and_queue(db, result, background_tasks, dispatcher)


@router.put("/{transaction_id}/restore", response_model=TransactionResponse)
async def restore_record(
    transaction_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[RemarksDto] = None,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
    dispatcher: SideEffectDispatcher = Depends(get_side_effect_dispatcher),
):
    """Return a declined/deleted record to the status it had before archiving."""
    result = await TransactionsService.restore_archived_record(
        db, transaction_id, body.remarks if body else None
    )
    return await _commit_and_queue(db, result, background_tasks, dispatcher)


# ============================================================================
# Borrower actions
# ============================================================================


@router.delete("/{transaction_id}", status_code=204)
async def cancel_application(
    transaction_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Withdraw your own request. Declined requests cannot be cancelled."""
    await TransactionsService.cancel_application(db, transaction_id, current_user.user_id)


@router.post("/{transaction_id}/reset", response_model=CartResponse)
async def reset_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Move the request's items back into your cart for editing."""
    return await TransactionsService.reset_transaction(
        db, transaction_id, current_user.user_id
    )


@router.patch("/{transaction_id}/pick-up-date", response_model=TransactionResponse)
async def update_pick_up_date(
    transaction_id: int,
    body: UpdatePickUpDateDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await TransactionsService.update_pick_up_date(
        db, transaction_id, current_user.user_id, body.pick_up_date
    )
