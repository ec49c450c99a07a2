"""
Dashboard DTOs (Data Transfer Objects)
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class DashboardStatsResponse(BaseModel):
    """Headline counts for the approver dashboard"""

    borrower_count: int = Field(..., description="Registered borrowers")
    active_borrower_count: int = Field(
        ..., description="Borrowers with at least one borrowed or overdue loan"
    )
    total_borrowed: int = Field(..., description="Units currently out (borrowed or overdue)")
    total_returned: int = Field(..., description="Units on returned loans")


class EquipmentUsageResponse(BaseModel):
    """Borrowed/returned units of one equipment item"""

    equipment_id: int
    equipment_name: str
    borrowed: int
    returned: int


class CategoryCountResponse(BaseModel):
    category_id: Optional[int] = Field(None, description="None groups uncategorised equipment")
    equipment_count: int


class MonthlyBorrowersResponse(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    borrower_count: int


class DashboardResponse(BaseModel):
    """Complete dashboard data response"""

    stats: DashboardStatsResponse
    equipment_usage: List[EquipmentUsageResponse]
    equipment_per_category: List[CategoryCountResponse]
    monthly_borrowers: List[MonthlyBorrowersResponse]
