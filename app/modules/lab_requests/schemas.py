"""
Lab Request DTOs
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.modules.users.schemas import BorrowerResponse
from .models import LabRequestStatus


# ---------- Requests ----------

class CreateLabRequestDto(BaseModel):
    lab: str = Field(..., min_length=1, max_length=255, description="Lab room name")
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime


class LabDecisionDto(BaseModel):
    remarks: Optional[str] = None


# ---------- Responses ----------

class LabRequestResponse(BaseModel):
    id: int
    lab: str
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: LabRequestStatus
    remarks: Optional[str] = None
    decided_by: Optional[int] = None
    date_approved: Optional[datetime] = None
    created_at: datetime
    requester: Optional[BorrowerResponse] = None

    model_config = {"from_attributes": True}


class LabScheduleResponse(BaseModel):
    """Approved bookings visible to everyone, plus the caller's own requests"""

    approved: List[LabRequestResponse]
    mine: List[LabRequestResponse]
