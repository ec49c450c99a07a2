"""
LabRequestsService - reservations of lab rooms.
"""

import logging
from datetime import datetime
from typing import List, NamedTuple, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.utils import utcnow, to_naive_utc
from .models import LabRequest, LabRequestStatus

logger = logging.getLogger(__name__)


class LabSchedule(NamedTuple):
    approved: List[LabRequest]
    mine: List[LabRequest]


class LabRequestsService:
    """
    Borrowers file and withdraw requests; approvers approve or decline them.
    """

    @staticmethod
    async def get_request(db: AsyncSession, request_id: int) -> LabRequest:
        result = await db.execute(
            select(LabRequest).where(
                LabRequest.id == request_id, LabRequest.deleted_at.is_(None)
            )
        )
        lab_request = result.unique().scalar_one_or_none()
        if not lab_request:
            raise NotFoundError("Lab request", request_id)
        return lab_request

    @staticmethod
    async def create_request(
        db: AsyncSession,
        user_id: int,
        lab: str,
        title: str,
        start_date: datetime,
        end_date: datetime,
        description: Optional[str] = None,
    ) -> LabRequest:
        """
        File a `pending` lab reservation.

        Raises:
            ValidationError: If lab or title is blank, or the window ends
                before it starts
        """
        if not (lab and lab.strip()) or not (title and title.strip()):
            raise ValidationError("Lab and title are required")

        start = to_naive_utc(start_date)
        end = to_naive_utc(end_date)
        if start > end:
            raise ValidationError("Invalid start/end date")

        lab_request = LabRequest(
            user_id=user_id,
            lab=lab.strip(),
            title=title.strip(),
            description=description,
            start_date=start,
            end_date=end,
            status=LabRequestStatus.pending,
        )
        db.add(lab_request)
        await db.flush()
        await db.refresh(lab_request, ["requester"])

        logger.info(
            "Lab request %s filed by user %s for %s", lab_request.id, user_id, lab_request.lab
        )
        return lab_request

    @staticmethod
    async def get_schedule(db: AsyncSession, user_id: int) -> LabSchedule:
        """Approved bookings by start time, plus the user's own requests newest first."""
        approved = await db.execute(
            select(LabRequest)
            .where(
                LabRequest.status == LabRequestStatus.approved,
                LabRequest.deleted_at.is_(None),
            )
            .order_by(LabRequest.start_date)
        )
        mine = await db.execute(
            select(LabRequest)
            .where(LabRequest.user_id == user_id, LabRequest.deleted_at.is_(None))
            .order_by(LabRequest.created_at.desc(), LabRequest.id.desc())
        )
        return LabSchedule(
            approved=list(approved.unique().scalars().all()),
            mine=list(mine.unique().scalars().all()),
        )

    @staticmethod
    async def list_requests(
        db: AsyncSession, status: Optional[LabRequestStatus] = None
    ) -> List[LabRequest]:
        query = select(LabRequest).where(LabRequest.deleted_at.is_(None))
        if status is not None:
            query = query.where(LabRequest.status == status)
        query = query.order_by(LabRequest.start_date, LabRequest.id)

        result = await db.execute(query)
        return list(result.unique().scalars().all())

    @staticmethod
    async def delete_request(db: AsyncSession, request_id: int, user_id: int) -> None:
        """
        Hard-delete the user's own request.

        Raises:
            ForbiddenError: If the user does not own the request
            InvalidTransitionError: If the request is approved
        """
        lab_request = await LabRequestsService.get_request(db, request_id)
        if lab_request.user_id != user_id:
            raise ForbiddenError("Not authorized to delete this request")
        if lab_request.status == LabRequestStatus.approved:
            raise InvalidTransitionError("Cannot delete an approved request")

        await db.delete(lab_request)
        await db.flush()
        logger.info("Lab request %s deleted by user %s", request_id, user_id)

    @staticmethod
    async def cancel_request(db: AsyncSession, request_id: int, user_id: int) -> LabRequest:
        """Withdraw an approved booking; it stays on record as `cancelled`."""
        lab_request = await LabRequestsService.get_request(db, request_id)
        if lab_request.user_id != user_id:
            raise ForbiddenError("Not authorized to cancel this request")
        if lab_request.status != LabRequestStatus.approved:
            raise InvalidTransitionError(
                f"Cannot cancel a lab request that is {lab_request.status.value}"
            )

        lab_request.status = LabRequestStatus.cancelled
        await db.flush()
        return lab_request

    @staticmethod
    async def approve_request(
        db: AsyncSession,
        request_id: int,
        approver_id: int,
        remarks: Optional[str] = None,
    ) -> LabRequest:
        """
        Approve a pending request.

        Business Logic:
        1. Request must be `pending`
        2. No other approved booking of the same lab may overlap the window
           (touching end/start boundaries count as overlapping)
        3. Record the deciding approver and approval date

        Raises:
            InvalidTransitionError: If the request is not pending
            ConflictError: If the lab is already booked in that window
        """
        lab_request = await LabRequestsService.get_request(db, request_id)
        if lab_request.status != LabRequestStatus.pending:
            raise InvalidTransitionError(
                f"Cannot approve a lab request that is {lab_request.status.value}"
            )

        clash = await db.execute(
            select(LabRequest.id).where(
                LabRequest.lab == lab_request.lab,
                LabRequest.status == LabRequestStatus.approved,
                LabRequest.deleted_at.is_(None),
                LabRequest.id != lab_request.id,
                LabRequest.start_date <= lab_request.end_date,
                LabRequest.end_date >= lab_request.start_date,
            ).limit(1)
        )
        if clash.scalar_one_or_none() is not None:
            raise ConflictError(f"{lab_request.lab} is already booked for that time")

        lab_request.status = LabRequestStatus.approved
        lab_request.decided_by = approver_id
        lab_request.date_approved = utcnow()
        if remarks:
            lab_request.remarks = remarks
        await db.flush()

        logger.info("Lab request %s approved by user %s", request_id, approver_id)
        return lab_request

    @staticmethod
    async def decline_request(
        db: AsyncSession,
        request_id: int,
        approver_id: int,
        remarks: Optional[str] = None,
    ) -> LabRequest:
        lab_request = await LabRequestsService.get_request(db, request_id)
        if lab_request.status != LabRequestStatus.pending:
            raise InvalidTransitionError(
                f"Cannot decline a lab request that is {lab_request.status.value}"
            )

        lab_request.status = LabRequestStatus.declined
        lab_request.decided_by = approver_id
        lab_request.remarks = remarks or "No remarks provided"
        await db.flush()

        logger.info("Lab request %s declined by user %s", request_id, approver_id)
        return lab_request
