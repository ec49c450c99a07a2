"""
TransactionsService - lifecycle of a borrow request.

Each transition checks its source status, applies its stock effect through
the StockLedger, writes one logbook entry built from the pre-transition state
plus the pending update, then mutates the transaction. Notifications and
e-mail are returned as a TransitionEvent for the caller to dispatch after
commit.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, NamedTuple, Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.utils import utcnow, to_naive_utc, start_of_today, ensure_not_in_past
from app.modules.carts.models import Cart
from app.modules.carts.service import CartsService
from app.modules.equipment.ledger import StockLedger
from app.modules.logbook.service import LogbookService
from .models import Transaction, TransactionStatus, ARCHIVED_STATUSES
from .side_effects import TransitionEvent, TransitionKind

logger = logging.getLogger(__name__)

DEFAULT_REMARKS = "No remarks provided"

REMOVABLE_STATUSES = (
    TransactionStatus.applying,
    TransactionStatus.approved,
    TransactionStatus.borrowed,
    TransactionStatus.pending,
    TransactionStatus.returned,
)
RETURNABLE_STATUSES = (TransactionStatus.borrowed, TransactionStatus.pending)
CANCELLABLE_STATUSES = (
    TransactionStatus.applying,
    TransactionStatus.approved,
    TransactionStatus.borrowed,
)
OWNER_EDITABLE_STATUSES = (TransactionStatus.applying, TransactionStatus.approved)


class TransitionResult(NamedTuple):
    transaction: Transaction
    event: Optional[TransitionEvent]


class SweepResult(NamedTuple):
    updated_count: int
    events: List[TransitionEvent]


def _require_status(
    transaction: Transaction, allowed: Iterable[TransactionStatus], action: str
) -> None:
    if transaction.current_status not in tuple(allowed):
        raise InvalidTransitionError(
            f"Cannot {action} a transaction that is {transaction.current_status.value}"
        )


def _require_owner(transaction: Transaction, user_id: int) -> None:
    if transaction.cart is None or transaction.cart.user_id != user_id:
        raise ForbiddenError("You can only modify your own borrow requests")


def _overdue_filter(cutoff: datetime) -> tuple:
    return (
        Transaction.current_status == TransactionStatus.borrowed,
        Transaction.return_date.is_not(None),
        Transaction.return_date < cutoff,
        Transaction.deleted_at.is_(None),
    )


class TransactionsService:
    """
    Borrow request state machine.
    """

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def get_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        """
        Raises:
            NotFoundError: If the transaction does not exist
        """
        result = await db.execute(
            select(Transaction).where(
                Transaction.id == transaction_id, Transaction.deleted_at.is_(None)
            )
        )
        transaction = result.unique().scalar_one_or_none()
        if not transaction:
            raise NotFoundError("Transaction", transaction_id)
        return transaction

    @staticmethod
    async def _apply(
        db: AsyncSession,
        transaction: Transaction,
        pending_update: Dict[str, Any],
        new_status: TransactionStatus,
        action: Optional[str] = None,
    ) -> Transaction:
        """
        Log the transition, then write it. The previous status is kept in
        last_status for restore.
        """
        await LogbookService.log_status_change(
            db, transaction, pending_update, new_status, action
        )

        previous_status = transaction.current_status
        for field_name, value in pending_update.items():
            setattr(transaction, field_name, value)
        transaction.last_status = previous_status
        transaction.current_status = new_status

        await db.flush()
        logger.info(
            "Transaction %s: %s -> %s",
            transaction.id,
            previous_status.value,
            new_status.value,
        )
        return transaction

    @staticmethod
    async def _release_if_reserved(db: AsyncSession, transaction: Transaction) -> None:
        """Return the snapshot quantities to stock once, if this request holds them."""
        if not transaction.stock_reserved:
            return
        restocked = await StockLedger.release_all(db, transaction.stock_lines())
        logger.info(
            "Transaction %s released stock for %s/%s line(s)",
            transaction.id,
            restocked,
            len(transaction.items),
        )

    # ------------------------------------------------------------------
    # Approver transitions
    # ------------------------------------------------------------------

    @staticmethod
    async def confirm_application(
        db: AsyncSession,
        transaction_id: int,
        pick_up_date: Optional[datetime] = None,
    ) -> TransitionResult:
        """
        Approve a request and reserve its stock.

        Business Logic:
        1. Request must be `applying`
        2. Every line is checked against stock before any line is reserved
        3. Stock is decremented per line with a conditional update
        4. Logbook entry (applying -> approved)

        Raises:
            NotFoundError: If the transaction or any equipment is missing
            InsufficientStockError: If any line cannot be covered
            InvalidTransitionError: If the request is not `applying`
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_status(transaction, [TransactionStatus.applying], "approve")

        new_pick_up = ensure_not_in_past(pick_up_date, "Pick-up date")

        await StockLedger.reserve_all(db, transaction.stock_lines())

        pending_update = {
            "date_approved": utcnow(),
            "pick_up_date": new_pick_up or transaction.pick_up_date,
            "stock_reserved": True,
        }
        await TransactionsService._apply(
            db, transaction, pending_update, TransactionStatus.approved
        )
        return TransitionResult(
            transaction, TransitionEvent.from_transaction(TransitionKind.approved, transaction)
        )

    @staticmethod
    async def decline_application(
        db: AsyncSession, transaction_id: int, remarks: Optional[str] = None
    ) -> TransitionResult:
        """Decline a request that never held stock."""
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_status(transaction, [TransactionStatus.applying], "decline")

        pending_update = {
            "date_archived": utcnow(),
            "remarks": remarks or DEFAULT_REMARKS,
        }
        await TransactionsService._apply(
            db, transaction, pending_update, TransactionStatus.declined
        )
        return TransitionResult(
            transaction,
            TransitionEvent.from_transaction(TransitionKind.declined_application, transaction),
        )

    @staticmethod
    async def confirm_borrowed_status(
        db: AsyncSession, transaction_id: int, return_date: Optional[datetime]
    ) -> TransitionResult:
        """
        Hand approved items over to the borrower.

        Raises:
            ValidationError: If return_date is missing
            InvalidTransitionError: If the request is not `approved`
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_status(transaction, [TransactionStatus.approved], "mark as borrowed")

        if return_date is None:
            raise ValidationError("Return date is required")

        pending_update = {
            "date_borrowed": utcnow(),
            "return_date": to_naive_utc(return_date),
        }
        await TransactionsService._apply(
            db, transaction, pending_update, TransactionStatus.borrowed
        )
        return TransitionResult(
            transaction, TransitionEvent.from_transaction(TransitionKind.borrowed, transaction)
        )

    @staticmethod
    async def decline_approval(
        db: AsyncSession, transaction_id: int, remarks: Optional[str] = None
    ) -> TransitionResult:
        """Withdraw an approval and return the reserved stock."""
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_status(transaction, [TransactionStatus.approved], "decline the approval of")

        await TransactionsService._release_if_reserved(db, transaction)

        pending_update = {
            "date_archived": utcnow(),
            "remarks": remarks or DEFAULT_REMARKS,
            "stock_reserved": False,
        }
        await TransactionsService._apply(
            db, transaction, pending_update, TransactionStatus.declined
        )
        return TransitionResult(
            transaction,
            TransitionEvent.from_transaction(TransitionKind.declined_approval, transaction),
        )

    @staticmethod
    async def confirm_return(
        db: AsyncSession,
        transaction_id: int,
        date_returned: Optional[datetime],
        remarks: Optional[str],
    ) -> TransitionResult:
        """
        Close a loan. Overdue (`pending`) loans are returned the same way.
        Every line is restocked with its original quantity.

        Raises:
            ValidationError: If date_returned or remarks is missing
            InvalidTransitionError: If the request is not borrowed or pending
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_status(transaction, RETURNABLE_STATUSES, "return")

        if date_returned is None or not (remarks and remarks.strip()):
            raise ValidationError("Return date and remarks are required")

        await TransactionsService._release_if_reserved(db, transaction)

        # Item copies in the logbook entry must already carry the returned counts
        for item in transaction.items:
            item.returned_quantity = item.quantity

        pending_update = {
            "date_returned": to_naive_utc(date_returned),
            "remarks": remarks,
            "stock_reserved": False,
        }
        await TransactionsService._apply(
            db, transaction, pending_update, TransactionStatus.returned
        )

        return TransitionResult(
            transaction, TransitionEvent.from_transaction(TransitionKind.returned, transaction)
        )

    @staticmethod
    async def remove_borrowed_records(
        db: AsyncSession, transaction_id: int, remarks: Optional[str] = None
    ) -> TransitionResult:
        """
        Archive a record as `deleted`, restocking whatever it still holds.

        Stock goes back only when stock_reserved is set, so removing an
        `applying` request (which never reserved) restocks nothing.
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_status(transaction, REMOVABLE_STATUSES, "remove")

        await TransactionsService._release_if_reserved(db, transaction)

        pending_update = {
            "date_archived": utcnow(),
            "remarks": remarks or DEFAULT_REMARKS,
            "stock_reserved": False,
        }
        await TransactionsService._apply(
            db, transaction, pending_update, TransactionStatus.deleted
        )
        return TransitionResult(transaction, None)

    @staticmethod
    async def restore_archived_record(
        db: AsyncSession, transaction_id: int, remarks: Optional[str] = None
    ) -> TransitionResult:
        """
        Bring a declined/deleted record back to the status it had before.

        current_status and last_status are swapped, so restoring twice in a
        row is not possible: the second call finds a non-archived record.
        Stock is not reserved again.

        Raises:
            InvalidTransitionError: If the record is not archived or has no
                previous status
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        if transaction.current_status not in ARCHIVED_STATUSES:
            raise InvalidTransitionError("Transaction is not archived.")
        if transaction.last_status is None:
            raise InvalidTransitionError("Transaction has no previous status to restore")

        target_status = transaction.last_status

        pending_update: Dict[str, Any] = {"date_archived": None}
        if remarks:
            pending_update["remarks"] = remarks

        await TransactionsService._apply(
            db, transaction, pending_update, target_status, action="restored"
        )
        return TransitionResult(
            transaction, TransitionEvent.from_transaction(TransitionKind.restored, transaction)
        )

    # ------------------------------------------------------------------
    # Borrower actions
    # ------------------------------------------------------------------

    @staticmethod
    async def cancel_application(
        db: AsyncSession, transaction_id: int, user_id: int
    ) -> None:
        """
        Hard-delete the borrower's own request. Logbook entries written
        earlier stay in place.

        Raises:
            ForbiddenError: If the user does not own the request
            InvalidTransitionError: If the request is declined or past borrowing
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_owner(transaction, user_id)

        if transaction.current_status == TransactionStatus.declined:
            raise InvalidTransitionError("Cannot cancel a declined transaction")
        _require_status(transaction, CANCELLABLE_STATUSES, "cancel")

        await db.delete(transaction)
        await db.flush()
        logger.info("Transaction %s cancelled by user %s", transaction_id, user_id)

    @staticmethod
    async def reset_transaction(
        db: AsyncSession, transaction_id: int, user_id: int
    ) -> Cart:
        """
        Move the request's items back into the borrower's cart and delete it.

        Raises:
            ForbiddenError: If the user does not own the request
            InvalidTransitionError: If the request is declined or already borrowed
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_owner(transaction, user_id)

        if transaction.current_status == TransactionStatus.declined:
            raise InvalidTransitionError("Cannot reset a declined transaction")
        _require_status(transaction, OWNER_EDITABLE_STATUSES, "reset")

        lines = transaction.stock_lines()
        await db.delete(transaction)
        await db.flush()

        cart = await CartsService.merge_items(db, user_id, lines)
        logger.info(
            "Transaction %s reset into cart %s by user %s", transaction_id, cart.id, user_id
        )
        return cart

    @staticmethod
    async def update_pick_up_date(
        db: AsyncSession, transaction_id: int, user_id: int, pick_up_date: datetime
    ) -> Transaction:
        """
        Raises:
            ForbiddenError: If the user does not own the request
            ValidationError: If the date is in the past
            InvalidTransitionError: If the request is already borrowed or closed
        """
        transaction = await TransactionsService.get_transaction(db, transaction_id)
        _require_owner(transaction, user_id)
        _require_status(transaction, OWNER_EDITABLE_STATUSES, "reschedule")

        transaction.pick_up_date = ensure_not_in_past(pick_up_date, "Pick-up date")
        await db.flush()
        return transaction

    # ------------------------------------------------------------------
    # System
    # ------------------------------------------------------------------

    @staticmethod
    async def _find_overdue(db: AsyncSession, cutoff: datetime) -> List[Transaction]:
        result = await db.execute(select(Transaction).where(*_overdue_filter(cutoff)))
        return list(result.unique().scalars().all())

    @staticmethod
    async def mark_overdue_as_pending(
        db: AsyncSession, now: Optional[datetime] = None
    ) -> SweepResult:
        """
        Flip every `borrowed` loan whose return date is before today to
        `pending`.

        The UPDATE repeats the selection predicate and returns the ids it
        actually flipped. Only those loans get a logbook entry and an event,
        so a second run (or a concurrent change to a selected loan) produces
        nothing for rows that were not flipped here.

        Returns:
            SweepResult with the number of rows updated and one overdue
            event per flipped loan
        """
        cutoff = start_of_today(now)

        candidates = await TransactionsService._find_overdue(db, cutoff)
        if not candidates:
            logger.info("Overdue sweep: nothing to update")
            return SweepResult(0, [])

        result = await db.execute(
            update(Transaction)
            .where(Transaction.id.in_([t.id for t in candidates]), *_overdue_filter(cutoff))
            .values(
                current_status=TransactionStatus.pending,
                last_status=TransactionStatus.borrowed,
            )
            .returning(Transaction.id)
            .execution_options(synchronize_session=False)
        )
        flipped_ids = set(result.scalars().all())
        flipped = [t for t in candidates if t.id in flipped_ids]

        events = []
        for transaction in flipped:
            await LogbookService.log_status_change(
                db, transaction, {}, TransactionStatus.pending, action="overdue"
            )
            # Mirror the row already written by the UPDATE
            set_committed_value(transaction, "last_status", TransactionStatus.borrowed)
            set_committed_value(transaction, "current_status", TransactionStatus.pending)
            events.append(TransitionEvent.from_transaction(TransitionKind.overdue, transaction))

        if len(flipped) < len(candidates):
            logger.warning(
                "Overdue sweep: %s loan(s) changed before the update and were skipped",
                len(candidates) - len(flipped),
            )
        logger.info("Overdue sweep: %s transaction(s) marked pending", len(flipped))
        return SweepResult(len(flipped), events)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def list_by_status(
        db: AsyncSession, status: Optional[TransactionStatus] = None
    ) -> List[Transaction]:
        """All requests, optionally filtered by status, newest first."""
        query = select(Transaction).where(Transaction.deleted_at.is_(None))
        if status is not None:
            query = query.where(Transaction.current_status == status)
        query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())

        result = await db.execute(query)
        return list(result.unique().scalars().all())

    @staticmethod
    async def list_for_borrower(db: AsyncSession, user_id: int) -> List[Transaction]:
        result = await db.execute(
            select(Transaction)
            .join(Cart, Transaction.cart_id == Cart.id)
            .where(Cart.user_id == user_id, Transaction.deleted_at.is_(None))
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        return list(result.unique().scalars().all())
