"""
Dashboard Router - FastAPI endpoint for borrowing statistics.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.engine import get_db_util
from app.modules.users.auth import TokenData, require_approver
from .service import DashboardService
from .schemas import DashboardResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_approver),
):
    """
    Get all dashboard data in a single API call.

    Returns:
        - stats: borrower counts and units out / returned
        - equipment_usage: borrowed and returned units per equipment item
        - equipment_per_category: equipment count per category
        - monthly_borrowers: distinct borrowers per month of hand-over
    """
    return await DashboardService.get_dashboard_data(db)
