# Import all models here to ensure they're loaded together
# This prevents circular import issues with relationships

from app.core.db.base import Base, BaseModel
from app.modules.users.models import User
from app.modules.equipment.models import Equipment
from app.modules.carts.models import Cart, CartItem
from app.modules.transactions.models import Transaction, BorrowedItem
from app.modules.logbook.models import LogbookEntry
from app.modules.notifications.models import Notification
from app.modules.lab_requests.models import LabRequest

# Export for easy importing
__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Equipment",
    "Cart",
    "CartItem",
    "Transaction",
    "BorrowedItem",
    "LogbookEntry",
    "Notification",
    "LabRequest",
]
