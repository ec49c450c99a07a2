"""
User DTOs
"""

from pydantic import BaseModel
from typing import Optional
from .models import Role


class BorrowerResponse(BaseModel):
    """Borrower summary embedded in transaction and logbook responses"""

    id: int
    username: str
    name: str
    email: Optional[str] = None
    role: Role

    class Config:
        from_attributes = True
