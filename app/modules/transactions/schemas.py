"""
Transaction DTOs (Data Transfer Objects)
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from .models import TransactionStatus
from app.modules.users.schemas import BorrowerResponse


# ============================================================================
# Request DTOs
# ============================================================================


class ConfirmApplicationDto(BaseModel):
    pick_up_date: Optional[datetime] = Field(
        None, description="Pick-up date; keeps the borrower's date when omitted"
    )


class RemarksDto(BaseModel):
    """Body for decline, remove and restore"""

    remarks: Optional[str] = Field(None, max_length=1000)


class ConfirmBorrowedDto(BaseModel):
    return_date: Optional[datetime] = Field(None, description="Date the items are due back")


class ConfirmReturnDto(BaseModel):
    date_returned: Optional[datetime] = Field(None, description="Date the items came back")
    remarks: Optional[str] = Field(None, max_length=1000)


class UpdatePickUpDateDto(BaseModel):
    pick_up_date: datetime = Field(..., description="New pick-up date, today or later")


# ============================================================================
# Response DTOs
# ============================================================================


class BorrowedItemResponse(BaseModel):
    id: int
    equipment_id: int
    equipment_name: str
    quantity: int
    returned_quantity: int
    date_ordered: Optional[datetime]

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    """Full borrow request with its item snapshot"""

    id: int
    cart_id: int
    current_status: TransactionStatus
    last_status: Optional[TransactionStatus]
    stock_reserved: bool
    date_applied: Optional[datetime]
    date_approved: Optional[datetime]
    pick_up_date: Optional[datetime]
    date_borrowed: Optional[datetime]
    return_date: Optional[datetime]
    date_returned: Optional[datetime]
    date_archived: Optional[datetime]
    remarks: Optional[str]
    borrower: Optional[BorrowerResponse] = None
    items: List[BorrowedItemResponse]

    model_config = {"from_attributes": True}


class OverdueSweepResponse(BaseModel):
    updated_count: int
