"""
Lab Requests Router - borrower reservations of lab rooms and their approval.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.modules.users.auth import TokenData, require_approver, require_any_role
from .models import LabRequestStatus
from .service import LabRequestsService
from .schemas import (
    CreateLabRequestDto,
    LabDecisionDto,
    LabRequestResponse,
    LabScheduleResponse,
)

router = APIRouter(prefix="/lab-requests", tags=["Lab Requests"])


@router.post("", response_model=LabRequestResponse, status_code=201)
async def create_lab_request(
    data: CreateLabRequestDto,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await LabRequestsService.create_request(
        db,
        current_user.user_id,
        data.lab,
        data.title,
        data.start_date,
        data.end_date,
        data.description,
    )


@router.get("/schedule", response_model=LabScheduleResponse)
async def get_lab_schedule(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Approved bookings of every lab plus your own requests in any status."""
    schedule = await LabRequestsService.get_schedule(db, current_user.user_id)
    return LabScheduleResponse(
        approved=[LabRequestResponse.model_validate(r) for r in schedule.approved],
        mine=[LabRequestResponse.model_validate(r) for r in schedule.mine],
    )


@router.get("", response_model=List[LabRequestResponse])
async def list_lab_requests(
    status: Optional[LabRequestStatus] = Query(None, description="Filter by status"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    return await LabRequestsService.list_requests(db, status)


@router.put("/{request_id}/approve", response_model=LabRequestResponse)
async def approve_lab_request(
    request_id: int,
    data: Optional[LabDecisionDto] = None,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    """Approve a pending request. Fails with 409 if the lab is already booked."""
    return await LabRequestsService.approve_request(
        db, request_id, current_user.user_id, data.remarks if data else None
    )


@router.put("/{request_id}/decline", response_model=LabRequestResponse)
async def decline_lab_request(
    request_id: int,
    data: Optional[LabDecisionDto] = None,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    return await LabRequestsService.decline_request(
        db, request_id, current_user.user_id, data.remarks if data else None
    )


@router.put("/{request_id}/cancel", response_model=LabRequestResponse)
async def cancel_lab_request(
    request_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Withdraw your own approved booking."""
    return await LabRequestsService.cancel_request(db, request_id, current_user.user_id)


@router.delete("/{request_id}", status_code=204)
async def delete_lab_request(
    request_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Delete your own request. Approved requests must be cancelled instead."""
    await LabRequestsService.delete_request(db, request_id, current_user.user_id)
