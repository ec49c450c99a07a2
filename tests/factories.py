"""Seed helpers and fakes shared by the test modules."""

from datetime import timedelta
from typing import List, Optional, Tuple

from app.core.utils import utcnow
from app.modules.carts.service import CartsService
from app.modules.equipment.models import Equipment
from app.modules.transactions.models import Transaction
from app.modules.users.auth import AuthService
from app.modules.users.models import Role, User


class FakeEmailService:
    """Records every send; fails the first `failures` calls."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.sent: List[Tuple[str, tuple]] = []
        self.attempts = 0

    async def _record(self, kind: str, *args):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("mail relay unavailable")
        self.sent.append((kind, args))

    async def send_approved(self, *args):
        await self._record("approved", *args)

    async def send_rejected(self, *args):
        await self._record("rejected", *args)

    async def send_borrowed(self, *args):
        await self._record("borrowed", *args)

    async def send_overdue_reminder(self, *args):
        await self._record("overdue", *args)


async def make_user(db, username: str, role: Role = Role.BORROWER) -> User:
    user = User(
        username=username,
        name=username.title(),
        email=f"{username}@lab.example.edu",
        role=role,
    )
    db.add(user)
    await db.flush()
    return user


async def make_equipment(db, name: str, stock: int) -> Equipment:
    equipment = Equipment(name=name, stock=stock)
    db.add(equipment)
    await db.flush()
    return equipment


async def submit_request(
    db, user: User, lines: List[Tuple[Equipment, int]], pick_up_days: Optional[int] = 1
) -> Transaction:
    """Fill the user's cart and submit it as an `applying` request."""
    for equipment, quantity in lines:
        await CartsService.add_item(db, user.id, equipment.id, quantity)
    pick_up = utcnow() + timedelta(days=pick_up_days) if pick_up_days is not None else None
    return await CartsService.submit(db, user.id, pick_up)


def auth_headers(user: User) -> dict:
    token = AuthService.create_access_token(
        {"sub": user.username, "user_id": user.id, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}
