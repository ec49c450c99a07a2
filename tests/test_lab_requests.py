from datetime import timedelta

import pytest

from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    ValidationError,
)
from app.core.utils import utcnow
from app.modules.lab_requests.models import LabRequestStatus
from app.modules.lab_requests.service import LabRequestsService
from tests.factories import auth_headers, make_user


async def _request(db, user, lab="Chem Lab 1", start_in=1, hours=2, title="Titration practical"):
    start = utcnow() + timedelta(days=start_in)
    return await LabRequestsService.create_request(
        db, user.id, lab, title, start, start + timedelta(hours=hours)
    )


async def test_create_request_starts_pending(db, borrower) -> None:
    lab_request = await _request(db, borrower)

    assert lab_request.status == LabRequestStatus.pending
    assert lab_request.requester.username == "alice"


async def test_create_rejects_inverted_window_and_blank_fields(db, borrower) -> None:
    start = utcnow() + timedelta(days=1)

    with pytest.raises(ValidationError):
        await LabRequestsService.create_request(
            db, borrower.id, "Chem Lab 1", "Practical", start, start - timedelta(hours=1)
        )
    with pytest.raises(ValidationError):
        await LabRequestsService.create_request(
            db, borrower.id, "  ", "Practical", start, start + timedelta(hours=1)
        )


async def test_approve_rejects_overlapping_booking(db, borrower, approver) -> None:
    first = await _request(db, borrower)
    overlapping = await _request(db, borrower, hours=3)
    other_lab = await _request(db, borrower, lab="Physics Lab")

    await LabRequestsService.approve_request(db, first.id, approver.id)
    with pytest.raises(ConflictError):
        await LabRequestsService.approve_request(db, overlapping.id, approver.id)
    approved = await LabRequestsService.approve_request(db, other_lab.id, approver.id, "ok")

    assert approved.status == LabRequestStatus.approved
    assert approved.decided_by == approver.id
    assert approved.date_approved is not None
    assert overlapping.status == LabRequestStatus.pending


async def test_decline_defaults_remarks_and_is_final(db, borrower, approver) -> None:
    lab_request = await _request(db, borrower)

    declined = await LabRequestsService.decline_request(db, lab_request.id, approver.id)

    assert declined.status == LabRequestStatus.declined
    assert declined.remarks == "No remarks provided"
    with pytest.raises(InvalidTransitionError):
        await LabRequestsService.approve_request(db, lab_request.id, approver.id)


async def test_schedule_lists_approved_for_everyone_and_own_requests(db, borrower, approver) -> None:
    other = await make_user(db, "bob")
    booked = await _request(db, other)
    await LabRequestsService.approve_request(db, booked.id, approver.id)
    mine = await _request(db, borrower, lab="Physics Lab")

    schedule = await LabRequestsService.get_schedule(db, borrower.id)

    assert [r.id for r in schedule.approved] == [booked.id]
    assert [r.id for r in schedule.mine] == [mine.id]


async def test_delete_own_unapproved_request_only(db, borrower, approver) -> None:
    other = await make_user(db, "bob")
    pending = await _request(db, borrower)
    approved = await _request(db, borrower, lab="Physics Lab")
    await LabRequestsService.approve_request(db, approved.id, approver.id)

    with pytest.raises(ForbiddenError):
        await LabRequestsService.delete_request(db, pending.id, other.id)
    with pytest.raises(InvalidTransitionError):
        await LabRequestsService.delete_request(db, approved.id, borrower.id)

    await LabRequestsService.delete_request(db, pending.id, borrower.id)
    schedule = await LabRequestsService.get_schedule(db, borrower.id)
    assert [r.id for r in schedule.mine] == [approved.id]


async def test_cancel_approved_booking_frees_the_slot(db, borrower, approver) -> None:
    first = await _request(db, borrower)
    second = await _request(db, borrower)
    await LabRequestsService.approve_request(db, first.id, approver.id)

    cancelled = await LabRequestsService.cancel_request(db, first.id, borrower.id)
    approved = await LabRequestsService.approve_request(db, second.id, approver.id)

    assert cancelled.status == LabRequestStatus.cancelled
    assert approved.status == LabRequestStatus.approved


async def test_lab_request_endpoints(client, db, borrower, approver) -> None:
    await db.commit()
    start = utcnow() + timedelta(days=2)
    body = {
        "lab": "Chem Lab 1",
        "title": "Titration practical",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(hours=2)).isoformat(),
    }

    response = await client.post("/api/lab-requests", json=body, headers=auth_headers(borrower))
    assert response.status_code == 201
    request_id = response.json()["id"]
    assert response.json()["requester"]["username"] == "alice"

    response = await client.put(
        f"/api/lab-requests/{request_id}/approve", headers=auth_headers(borrower)
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/lab-requests/{request_id}/approve", headers=auth_headers(approver)
    )
    assert response.json()["status"] == "approved"

    response = await client.get("/api/lab-requests/schedule", headers=auth_headers(borrower))
    assert [r["id"] for r in response.json()["approved"]] == [request_id]

    response = await client.delete(
        f"/api/lab-requests/{request_id}", headers=auth_headers(borrower)
    )
    assert response.status_code == 409
