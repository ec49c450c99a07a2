import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.modules.notifications.models import NotificationType, ResourceType
from app.modules.notifications.service import NotificationService
from tests.factories import make_user


async def test_user_sees_own_and_global_notifications(db, borrower) -> None:
    other = await make_user(db, "bob")
    await NotificationService.create_global(db, "Lab closed", "Closed on Friday")
    await NotificationService.create_for_user(
        db, borrower.id, "Approved", "Your request was approved",
        resource_type=ResourceType.transaction, resource_id=7,
    )
    await NotificationService.create_for_user(db, other.id, "Declined", "Not today")

    visible = await NotificationService.list_for_user(db, borrower.id)

    assert sorted(n.title for n in visible) == ["Approved", "Lab closed"]
    global_only = await NotificationService.list_global(db)
    assert [n.type for n in global_only] == [NotificationType.global_]


async def test_create_for_user_requires_user(db) -> None:
    with pytest.raises(ValidationError):
        await NotificationService.create_for_user(db, None, "t", "d")


async def test_mark_as_read(db, borrower) -> None:
    other = await make_user(db, "bob")
    note = await NotificationService.create_for_user(db, borrower.id, "Approved", "ok")

    with pytest.raises(NotFoundError):
        await NotificationService.mark_as_read(db, note.id, other.id)

    updated = await NotificationService.mark_as_read(db, note.id, borrower.id)
    assert updated.is_read is True


async def test_mark_all_as_read_counts_unread(db, borrower) -> None:
    await NotificationService.create_global(db, "Lab closed", "Friday")
    await NotificationService.create_for_user(db, borrower.id, "Approved", "ok")

    assert await NotificationService.mark_all_as_read(db, borrower.id) == 2
    assert await NotificationService.mark_all_as_read(db, borrower.id) == 0
