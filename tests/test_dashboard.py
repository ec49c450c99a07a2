from datetime import timedelta

from app.core.utils import start_of_today, utcnow
from app.modules.dashboard.service import DashboardService
from app.modules.transactions.service import TransactionsService
from tests.factories import auth_headers, make_equipment, make_user, submit_request


async def _borrow(db, user, lines, return_date):
    txn = await submit_request(db, user, lines)
    await TransactionsService.confirm_application(db, txn.id)
    await TransactionsService.confirm_borrowed_status(db, txn.id, return_date)
    return txn


async def _seed_loans(db, borrower):
    bob = await make_user(db, "bob")
    await make_user(db, "carol")
    scope = await make_equipment(db, "Microscope", 10)
    burner = await make_equipment(db, "Bunsen burner", 10)

    await _borrow(db, borrower, [(scope, 2), (burner, 1)], utcnow() + timedelta(days=5))
    overdue = await _borrow(db, bob, [(scope, 1)], start_of_today() - timedelta(days=1))
    await TransactionsService.mark_overdue_as_pending(db)
    returned = await _borrow(db, bob, [(burner, 4)], utcnow() + timedelta(days=5))
    await TransactionsService.confirm_return(db, returned.id, utcnow(), "ok")
    # still applying: not counted anywhere
    await submit_request(db, borrower, [(scope, 3)])
    return scope, burner, overdue


async def test_borrower_counts(db, borrower, approver) -> None:
    await _seed_loans(db, borrower)

    assert await DashboardService.count_borrowers(db) == 3
    assert await DashboardService.count_active_borrowers(db) == 2


async def test_equipment_usage_counts_out_and_returned_units(db, borrower) -> None:
    scope, burner, _ = await _seed_loans(db, borrower)

    usage = await DashboardService.get_equipment_usage(db)

    assert [(u.equipment_id, u.equipment_name, u.borrowed, u.returned) for u in usage] == [
        (scope.id, "Microscope", 3, 0),
        (burner.id, "Bunsen burner", 1, 4),
    ]


async def test_monthly_borrowers_counts_distinct_borrowers(db, borrower) -> None:
    await _seed_loans(db, borrower)

    monthly = await DashboardService.count_monthly_borrowers(db)

    assert [(m.month, m.borrower_count) for m in monthly] == [(utcnow().strftime("%Y-%m"), 2)]


async def test_equipment_per_category(db) -> None:
    await make_equipment(db, "Microscope", 1)
    await make_equipment(db, "Beaker", 1)

    counts = await DashboardService.count_equipment_per_category(db)

    assert [(c.category_id, c.equipment_count) for c in counts] == [(None, 2)]


async def test_dashboard_endpoint(client, db, borrower, approver) -> None:
    await _seed_loans(db, borrower)
    await db.commit()

    response = await client.get("/api/dashboard", headers=auth_headers(borrower))
    assert response.status_code == 403

    response = await client.get("/api/dashboard", headers=auth_headers(approver))
    body = response.json()
    assert body["stats"] == {
        "borrower_count": 3,
        "active_borrower_count": 2,
        "total_borrowed": 4,
        "total_returned": 4,
    }
    assert len(body["equipment_usage"]) == 2
