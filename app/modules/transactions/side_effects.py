"""
Post-commit side effects of transaction transitions: borrower notifications
and transactional e-mail.

Events are captured inside the request, then dispatched as FastAPI background
tasks once the transition has been committed. Each effect runs in its own
session with a bounded retry; a failure is logged and never reaches the
transition that produced it.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import config
from app.core.db.engine import AsyncSessionLocal
from app.core.email import EmailService, email_service
from app.modules.notifications.models import ResourceType
from app.modules.notifications.service import NotificationService
from .models import Transaction

logger = logging.getLogger(__name__)


class TransitionKind(str, enum.Enum):
    approved = "approved"
    declined_application = "declined_application"
    borrowed = "borrowed"
    declined_approval = "declined_approval"
    returned = "returned"
    restored = "restored"
    overdue = "overdue"


@dataclass
class TransitionEvent:
    """Everything a side effect needs, captured before the session closes."""

    kind: TransitionKind
    transaction_id: int
    user_id: Optional[int]
    borrower_email: Optional[str] = None
    borrower_name: Optional[str] = None
    items: List[Dict[str, Any]] = field(default_factory=list)
    pick_up_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    remarks: Optional[str] = None

    @classmethod
    def from_transaction(cls, kind: TransitionKind, transaction: Transaction) -> "TransitionEvent":
        borrower = transaction.borrower
        return cls(
            kind=kind,
            transaction_id=transaction.id,
            user_id=borrower.id if borrower else None,
            borrower_email=borrower.email if borrower else None,
            borrower_name=(borrower.name or borrower.username) if borrower else None,
            items=[item.snapshot() for item in transaction.items],
            pick_up_date=transaction.pick_up_date,
            return_date=transaction.return_date,
            remarks=transaction.remarks,
        )


def _notification_text(event: TransitionEvent) -> Optional[tuple]:
    """(title, description) for the borrower, or None when nothing is sent."""
    remarks = event.remarks or "No remarks provided"
    if event.kind == TransitionKind.approved:
        return "Borrow Request Approved", "Your borrow request has been approved."
    if event.kind == TransitionKind.declined_application:
        return "Borrow Request Declined", f"Your borrow request has been declined. Remarks: {remarks}"
    if event.kind == TransitionKind.borrowed:
        due = event.return_date.strftime("%Y-%m-%d") if event.return_date else "the agreed date"
        return (
            "Items Borrowed",
            f"You have successfully borrowed the items. Please return them by {due}.",
        )
    if event.kind == TransitionKind.declined_approval:
        return "Approval Declined", f"Your approval request was declined. Remarks: {remarks}"
    if event.kind == TransitionKind.returned:
        return "Items Returned", f"Your return has been confirmed. Remarks: {remarks}"
    if event.kind == TransitionKind.restored:
        suffix = f" Remarks: {event.remarks}" if event.remarks else ""
        return "Transaction Restored", f"Your transaction has been restored.{suffix}"
    if event.kind == TransitionKind.overdue:
        return (
            "Items Overdue",
            "The items you borrowed are past their return date. Please return them as soon as possible.",
        )
    return None


class SideEffectDispatcher:
    """
    Delivers the notification and e-mail for a TransitionEvent.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        email: Optional[EmailService] = None,
        max_attempts: Optional[int] = None,
        retry_delay: float = 0.5,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.email = email or email_service
        self.max_attempts = max(1, max_attempts or config.side_effect_max_attempts)
        self.retry_delay = retry_delay

    async def dispatch(self, event: TransitionEvent) -> None:
        """Run every effect of one event; never raises."""
        await self._with_retry("notification", self._notify, event)
        if self._has_email(event):
            await self._with_retry("email", self._send_email, event)

    async def dispatch_many(self, events: List[TransitionEvent]) -> None:
        for event in events:
            await self.dispatch(event)

    async def _with_retry(
        self,
        label: str,
        effect: Callable[[TransitionEvent], Awaitable[None]],
        event: TransitionEvent,
    ) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await effect(event)
                return True
            except Exception:
                if attempt == self.max_attempts:
                    logger.exception(
                        "Side effect %s failed for transaction %s (%s) after %s attempt(s)",
                        label,
                        event.transaction_id,
                        event.kind.value,
                        attempt,
                    )
                    return False
                logger.warning(
                    "Side effect %s failed for transaction %s, attempt %s/%s",
                    label,
                    event.transaction_id,
                    attempt,
                    self.max_attempts,
                )
                if self.retry_delay:
                    await asyncio.sleep(self.retry_delay * attempt)
        return False

    async def _notify(self, event: TransitionEvent) -> None:
        text = _notification_text(event)
        if text is None or event.user_id is None:
            return
        title, description = text
        async with self.session_factory() as session:
            await NotificationService.create_for_user(
                session,
                event.user_id,
                title,
                description,
                resource_type=ResourceType.transaction,
                resource_id=event.transaction_id,
            )
            await session.commit()

    @staticmethod
    def _has_email(event: TransitionEvent) -> bool:
        return bool(event.borrower_email) and event.kind in (
            TransitionKind.approved,
            TransitionKind.declined_application,
            TransitionKind.borrowed,
            TransitionKind.overdue,
        )

    async def _send_email(self, event: TransitionEvent) -> None:
        name = event.borrower_name or "Borrower"
        if event.kind == TransitionKind.approved:
            await self.email.send_approved(
                event.borrower_email, name, event.transaction_id, event.items, event.pick_up_date
            )
        elif event.kind == TransitionKind.declined_application:
            await self.email.send_rejected(
                event.borrower_email, name, event.transaction_id, event.remarks
            )
        elif event.kind == TransitionKind.borrowed:
            await self.email.send_borrowed(
                event.borrower_email, name, event.transaction_id, event.items, event.return_date
            )
        elif event.kind == TransitionKind.overdue:
            await self.email.send_overdue_reminder(
                event.borrower_email, name, event.transaction_id, event.items, event.return_date
            )


side_effect_dispatcher = SideEffectDispatcher()


def get_side_effect_dispatcher() -> SideEffectDispatcher:
    return side_effect_dispatcher
