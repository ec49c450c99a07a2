"""
Cart DTOs
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ============================================================================
# Request DTOs
# ============================================================================


class AddCartItemDto(BaseModel):
    equipment_id: int = Field(..., gt=0, description="Equipment ID")
    quantity: int = Field(..., gt=0, description="Quantity to add")


class SetQuantityDto(BaseModel):
    quantity: int = Field(..., ge=1, description="New quantity for the line")


class RemoveCartItemsDto(BaseModel):
    equipment_ids: List[int] = Field(..., description="Equipment IDs to drop from the cart")


class SubmitCartDto(BaseModel):
    pick_up_date: Optional[datetime] = Field(None, description="Requested pick-up date")


# ============================================================================
# Response DTOs
# ============================================================================


class CartEquipmentResponse(BaseModel):
    id: int
    name: str
    stock: int

    model_config = {"from_attributes": True}


class CartItemResponse(BaseModel):
    id: int
    equipment_id: int
    quantity: int
    date_ordered: Optional[datetime]
    equipment: Optional[CartEquipmentResponse] = None

    model_config = {"from_attributes": True}


class CartResponse(BaseModel):
    id: Optional[int] = None
    user_id: int
    items: List[CartItemResponse] = []

    model_config = {"from_attributes": True}
