"""
Notifications Router
"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.modules.users.auth import TokenData, require_any_role
from .service import NotificationService
from .schemas import NotificationResponse, MarkAllReadResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def get_my_notifications(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Notifications for the current user, merged with global ones."""
    return await NotificationService.list_for_user(db, current_user.user_id)


@router.get("/global", response_model=List[NotificationResponse])
async def get_global_notifications(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await NotificationService.list_global(db)


@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_as_read(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    count = await NotificationService.mark_all_as_read(db, current_user.user_id)
    return MarkAllReadResponse(updated_count=count)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_as_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    return await NotificationService.mark_as_read(
        db, notification_id, current_user.user_id
    )
