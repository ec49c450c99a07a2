"""
LogbookService - append-only audit trail of transaction status changes.
"""

import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.carts.models import Cart
from app.modules.transactions.models import Transaction, TransactionStatus
from .models import LogbookEntry

logger = logging.getLogger(__name__)

DATE_FIELDS = (
    "date_applied",
    "date_approved",
    "pick_up_date",
    "date_borrowed",
    "return_date",
    "date_returned",
    "date_archived",
)


def _status_value(status: Optional[Any]) -> Optional[str]:
    if status is None:
        return None
    return status.value if isinstance(status, TransactionStatus) else str(status)


class LogbookService:
    """
    Writes one entry per transition and serves the history views.
    Entries are never updated or deleted here.
    """

    @staticmethod
    async def log_status_change(
        db: AsyncSession,
        transaction: Transaction,
        pending_update: Dict[str, Any],
        new_status: TransactionStatus,
        action: Optional[str] = None,
    ) -> LogbookEntry:
        """
        Record a transition before it is applied to the transaction.

        The entry is the pre-transition transaction overlaid with the fields
        about to be written, so it shows the values the transaction is about
        to take. A key present in pending_update wins even when its value is
        None (restore clears date_archived that way).

        Args:
            db: Database session
            transaction: Transaction in its pre-transition state
            pending_update: Attribute values the transition is about to set
            new_status: Status the transaction moves to
            action: Label for the entry, defaults to the new status

        Returns:
            The flushed logbook entry
        """
        def _field(name: str):
            if name in pending_update:
                return pending_update[name]
            return getattr(transaction, name)

        entry = LogbookEntry(
            transaction_id=transaction.id,
            cart_id=transaction.cart_id,
            action=action or _status_value(new_status),
            last_status=_status_value(transaction.current_status),
            current_status=_status_value(new_status),
            items=[item.snapshot() for item in transaction.items],
            remarks=_field("remarks"),
            **{name: _field(name) for name in DATE_FIELDS},
        )
        db.add(entry)
        await db.flush()

        logger.info(
            "Logbook: transaction %s %s -> %s (%s)",
            transaction.id,
            entry.last_status,
            entry.current_status,
            entry.action,
        )
        return entry

    @staticmethod
    async def create_snapshot(db: AsyncSession, transaction: Transaction) -> LogbookEntry:
        """
        Point-in-time copy of a transaction, independent of any transition.
        """
        entry = LogbookEntry(
            transaction_id=transaction.id,
            cart_id=transaction.cart_id,
            action="snapshot",
            last_status=_status_value(transaction.last_status),
            current_status=_status_value(transaction.current_status),
            items=[item.snapshot() for item in transaction.items],
            remarks=transaction.remarks,
            **{name: getattr(transaction, name) for name in DATE_FIELDS},
        )
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def snapshot_all(db: AsyncSession) -> int:
        """
        Snapshot every transaction that is not deleted.

        Returns:
            Number of transactions snapshotted
        """
        result = await db.execute(
            select(Transaction).where(
                Transaction.current_status != TransactionStatus.deleted,
                Transaction.deleted_at.is_(None),
            )
        )
        transactions = result.scalars().unique().all()

        for transaction in transactions:
            await LogbookService.create_snapshot(db, transaction)

        logger.info("Logbook snapshot written for %s transaction(s)", len(transactions))
        return len(transactions)

    @staticmethod
    async def get_history(db: AsyncSession, transaction_id: int) -> List[LogbookEntry]:
        """
        All entries for one transaction, oldest first.
        Works after the transaction itself has been hard-deleted.
        """
        result = await db.execute(
            select(LogbookEntry)
            .where(LogbookEntry.transaction_id == transaction_id)
            .order_by(LogbookEntry.created_at, LogbookEntry.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_history_for_user(db: AsyncSession, user_id: int) -> List[LogbookEntry]:
        """All entries for transactions submitted from the user's cart, oldest first."""
        cart_ids = select(Cart.id).where(Cart.user_id == user_id)
        result = await db.execute(
            select(LogbookEntry)
            .where(LogbookEntry.cart_id.in_(cart_ids))
            .order_by(LogbookEntry.created_at, LogbookEntry.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_all(db: AsyncSession, limit: int = 200) -> List[LogbookEntry]:
        """Most recent entries across all transactions, newest first."""
        result = await db.execute(
            select(LogbookEntry)
            .order_by(LogbookEntry.created_at.desc(), LogbookEntry.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
