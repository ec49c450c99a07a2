"""
DashboardService - borrowing statistics for approvers.
Every figure is a single aggregate query over the lending tables.
"""

from typing import List
from sqlalchemy import select, func, case, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from .schemas import (
    DashboardResponse,
    DashboardStatsResponse,
    EquipmentUsageResponse,
    CategoryCountResponse,
    MonthlyBorrowersResponse,
)
from app.modules.carts.models import Cart
from app.modules.equipment.models import Equipment
from app.modules.logbook.models import LogbookEntry
from app.modules.transactions.models import BorrowedItem, Transaction, TransactionStatus
from app.modules.users.models import Role, User

OUT_STATUSES = (TransactionStatus.borrowed, TransactionStatus.pending)


def _year_month(db: AsyncSession, column):
    """YYYY-MM of a datetime column in the bound database's dialect."""
    if db.get_bind().dialect.name == "postgresql":
        return func.to_char(column, "YYYY-MM")
    return func.strftime("%Y-%m", column)


class DashboardService:
    """
    Dashboard service for aggregating borrowing statistics.
    """

    @staticmethod
    async def get_dashboard_data(db: AsyncSession) -> DashboardResponse:
        usage = await DashboardService.get_equipment_usage(db)

        stats = DashboardStatsResponse(
            borrower_count=await DashboardService.count_borrowers(db),
            active_borrower_count=await DashboardService.count_active_borrowers(db),
            total_borrowed=sum(row.borrowed for row in usage),
            total_returned=sum(row.returned for row in usage),
        )

        return DashboardResponse(
            stats=stats,
            equipment_usage=usage,
            equipment_per_category=await DashboardService.count_equipment_per_category(db),
            monthly_borrowers=await DashboardService.count_monthly_borrowers(db),
        )

    @staticmethod
    async def count_borrowers(db: AsyncSession) -> int:
        count = await db.scalar(
            select(func.count(User.id)).where(
                User.role == Role.BORROWER, User.deleted_at.is_(None)
            )
        )
        return count or 0

    @staticmethod
    async def count_active_borrowers(db: AsyncSession) -> int:
        """Distinct borrowers holding at least one borrowed or overdue loan."""
        count = await db.scalar(
            select(func.count(distinct(Cart.user_id)))
            .select_from(Transaction)
            .join(Cart, Transaction.cart_id == Cart.id)
            .where(
                Transaction.current_status.in_(OUT_STATUSES),
                Transaction.deleted_at.is_(None),
            )
        )
        return count or 0

    @staticmethod
    async def get_equipment_usage(db: AsyncSession) -> List[EquipmentUsageResponse]:
        """
        Units per equipment item on loans that are out (borrowed or pending)
        and on loans that were returned. Names come from the item snapshots,
        so equipment deleted since is still reported.
        """
        borrowed = func.coalesce(
            func.sum(
                case(
                    (Transaction.current_status.in_(OUT_STATUSES), BorrowedItem.quantity),
                    else_=0,
                )
            ),
            0,
        )
        returned = func.coalesce(
            func.sum(
                case(
                    (
                        Transaction.current_status == TransactionStatus.returned,
                        BorrowedItem.quantity,
                    ),
                    else_=0,
                )
            ),
            0,
        )

        result = await db.execute(
            select(
                BorrowedItem.equipment_id,
                func.max(BorrowedItem.equipment_name),
                borrowed,
                returned,
            )
            .join(Transaction, BorrowedItem.transaction_id == Transaction.id)
            .where(
                Transaction.current_status.in_(OUT_STATUSES + (TransactionStatus.returned,)),
                Transaction.deleted_at.is_(None),
            )
            .group_by(BorrowedItem.equipment_id)
            .order_by(BorrowedItem.equipment_id)
        )
        return [
            EquipmentUsageResponse(
                equipment_id=equipment_id,
                equipment_name=name,
                borrowed=int(borrowed_units),
                returned=int(returned_units),
            )
            for equipment_id, name, borrowed_units, returned_units in result.all()
        ]

    @staticmethod
    async def count_equipment_per_category(db: AsyncSession) -> List[CategoryCountResponse]:
        result = await db.execute(
            select(Equipment.category_id, func.count(Equipment.id))
            .where(Equipment.deleted_at.is_(None))
            .group_by(Equipment.category_id)
            .order_by(Equipment.category_id)
        )
        return [
            CategoryCountResponse(category_id=category_id, equipment_count=count)
            for category_id, count in result.all()
        ]

    @staticmethod
    async def count_monthly_borrowers(db: AsyncSession) -> List[MonthlyBorrowersResponse]:
        """
        Distinct borrowers per month of hand-over, taken from the logbook so
        cancelled and later-removed loans still count.
        """
        month = _year_month(db, LogbookEntry.date_borrowed)
        result = await db.execute(
            select(month.label("month"), func.count(distinct(LogbookEntry.cart_id)))
            .where(
                LogbookEntry.action == TransactionStatus.borrowed.value,
                LogbookEntry.date_borrowed.is_not(None),
            )
            .group_by(month)
            .order_by(month)
        )
        return [
            MonthlyBorrowersResponse(month=month_key, borrower_count=count)
            for month_key, count in result.all()
        ]
