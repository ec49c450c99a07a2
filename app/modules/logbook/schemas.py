"""
Logbook DTOs
"""

from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class LogbookItemResponse(BaseModel):
    equipment_id: int
    equipment_name: str
    quantity: int
    date_ordered: Optional[datetime] = None
    returned_quantity: int = 0


class LogbookEntryResponse(BaseModel):
    """Response schema for one logbook entry."""

    id: int
    transaction_id: Optional[int]
    cart_id: int
    action: str
    last_status: Optional[str]
    current_status: str
    items: List[LogbookItemResponse]
    date_applied: Optional[datetime]
    date_approved: Optional[datetime]
    pick_up_date: Optional[datetime]
    date_borrowed: Optional[datetime]
    return_date: Optional[datetime]
    date_returned: Optional[datetime]
    date_archived: Optional[datetime]
    remarks: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class SnapshotResponse(BaseModel):
    transactions_snapshotted: int
