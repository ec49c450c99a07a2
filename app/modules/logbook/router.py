"""
Logbook Router - read-only history views plus the consistency snapshot.
"""

from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.modules.users.auth import TokenData, require_approver
from .service import LogbookService
from .schemas import LogbookEntryResponse, SnapshotResponse

router = APIRouter(prefix="/logbook", tags=["Logbook"])


@router.get("", response_model=List[LogbookEntryResponse])
async def get_all_entries(
    limit: int = Query(200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    """Most recent logbook entries, newest first."""
    return await LogbookService.get_all(db, limit)


@router.get("/transactions/{transaction_id}", response_model=List[LogbookEntryResponse])
async def get_transaction_history(
    transaction_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    """
    Status history of one transaction, oldest first.
    Still available after the transaction was cancelled.
    """
    return await LogbookService.get_history(db, transaction_id)


@router.get("/users/{user_id}", response_model=List[LogbookEntryResponse])
async def get_user_history(
    user_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    """Status history of every request a borrower submitted."""
    return await LogbookService.get_history_for_user(db, user_id)


@router.post("/snapshot", response_model=SnapshotResponse, status_code=201)
async def create_system_snapshot(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    """Write a snapshot entry for every transaction that is not deleted."""
    count = await LogbookService.snapshot_all(db)
    return SnapshotResponse(transactions_snapshotted=count)
