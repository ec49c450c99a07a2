from datetime import timedelta

from app.core.utils import utcnow
from app.modules.notifications.service import NotificationService
from app.modules.transactions.service import TransactionsService
from app.modules.transactions.side_effects import (
    SideEffectDispatcher,
    TransitionEvent,
    TransitionKind,
)
from tests.factories import FakeEmailService, make_equipment, submit_request


async def _approved_event(db, borrower):
    scope = await make_equipment(db, "Microscope", 5)
    txn = await submit_request(db, borrower, [(scope, 2)])
    result = await TransactionsService.confirm_application(db, txn.id)
    await db.commit()
    return result.event


async def test_event_captures_borrower_and_items(db, borrower) -> None:
    event = await _approved_event(db, borrower)

    assert event.kind == TransitionKind.approved
    assert event.user_id == borrower.id
    assert event.borrower_email == "alice@lab.example.edu"
    assert event.borrower_name == "Alice"
    assert event.items[0]["equipment_name"] == "Microscope"
    assert event.items[0]["quantity"] == 2


async def test_dispatch_notifies_and_emails(db, borrower, dispatcher, fake_email, session_factory) -> None:
    event = await _approved_event(db, borrower)

    await dispatcher.dispatch(event)

    assert [kind for kind, _ in fake_email.sent] == ["approved"]
    async with session_factory() as session:
        notes = await NotificationService.list_for_user(session, borrower.id)
    assert [n.title for n in notes] == ["Borrow Request Approved"]
    assert notes[0].resource_id == event.transaction_id


async def test_email_failure_is_retried_then_succeeds(db, borrower, session_factory) -> None:
    event = await _approved_event(db, borrower)
    flaky = FakeEmailService(failures=1)
    dispatcher = SideEffectDispatcher(session_factory, flaky, max_attempts=3, retry_delay=0)

    await dispatcher.dispatch(event)

    assert flaky.attempts == 2
    assert len(flaky.sent) == 1


async def test_persistent_email_failure_is_swallowed(db, borrower, session_factory) -> None:
    event = await _approved_event(db, borrower)
    broken = FakeEmailService(failures=10)
    dispatcher = SideEffectDispatcher(session_factory, broken, max_attempts=2, retry_delay=0)

    await dispatcher.dispatch(event)

    assert broken.attempts == 2
    assert broken.sent == []
    # the notification still went out
    async with session_factory() as session:
        assert len(await NotificationService.list_for_user(session, borrower.id)) == 1


async def test_kinds_without_email_only_notify(db, borrower, dispatcher, fake_email, session_factory) -> None:
    scope = await make_equipment(db, "Microscope", 5)
    txn = await submit_request(db, borrower, [(scope, 1)])
    await TransactionsService.confirm_application(db, txn.id)
    await TransactionsService.confirm_borrowed_status(db, txn.id, utcnow() + timedelta(days=1))
    result = await TransactionsService.confirm_return(db, txn.id, utcnow(), "fine")
    await db.commit()

    await dispatcher.dispatch(result.event)

    assert fake_email.sent == []
    async with session_factory() as session:
        notes = await NotificationService.list_for_user(session, borrower.id)
    assert [n.title for n in notes] == ["Items Returned"]
    assert "fine" in notes[0].description


async def test_event_without_borrower_email_skips_mail(dispatcher, fake_email) -> None:
    event = TransitionEvent(kind=TransitionKind.borrowed, transaction_id=1, user_id=None)

    await dispatcher.dispatch(event)

    assert fake_email.attempts == 0
