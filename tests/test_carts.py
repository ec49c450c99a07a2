from datetime import timedelta

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.core.utils import utcnow
from app.modules.carts.service import CartsService
from app.modules.equipment.ledger import StockLedger
from app.modules.transactions.models import TransactionStatus
from tests.factories import make_equipment


async def test_get_cart_without_cart_returns_empty(db, borrower) -> None:
    cart = await CartsService.get_cart(db, borrower.id)

    assert cart.id is None
    assert cart.items == []


async def test_add_item_creates_cart_and_merges_lines(db, borrower) -> None:
    beaker = await make_equipment(db, "Beaker", 5)

    await CartsService.add_item(db, borrower.id, beaker.id, 2)
    cart = await CartsService.add_item(db, borrower.id, beaker.id, 3)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 5
    # cart additions never reserve stock
    assert await StockLedger.stock_of(db, beaker.id) == 5


@pytest.mark.parametrize("quantity", [0, -1, 6])
async def test_add_item_enforces_quantity_bounds(db, borrower, quantity) -> None:
    beaker = await make_equipment(db, "Beaker", 5)

    with pytest.raises(ValidationError):
        await CartsService.add_item(db, borrower.id, beaker.id, quantity)


async def test_add_unknown_equipment_is_not_found(db, borrower) -> None:
    with pytest.raises(NotFoundError):
        await CartsService.add_item(db, borrower.id, 404, 1)


async def test_set_quantity(db, borrower) -> None:
    beaker = await make_equipment(db, "Beaker", 5)
    await CartsService.add_item(db, borrower.id, beaker.id, 1)

    cart = await CartsService.set_quantity(db, borrower.id, beaker.id, 4)
    assert cart.items[0].quantity == 4

    with pytest.raises(ValidationError):
        await CartsService.set_quantity(db, borrower.id, beaker.id, 0)
    with pytest.raises(ValidationError):
        await CartsService.set_quantity(db, borrower.id, beaker.id, 9)
    with pytest.raises(NotFoundError):
        await CartsService.set_quantity(db, borrower.id, 999, 1)


async def test_remove_items(db, borrower) -> None:
    beaker = await make_equipment(db, "Beaker", 5)
    burner = await make_equipment(db, "Bunsen burner", 5)
    await CartsService.add_item(db, borrower.id, beaker.id, 1)
    await CartsService.add_item(db, borrower.id, burner.id, 1)

    cart = await CartsService.remove_items(db, borrower.id, [beaker.id])

    assert [line.equipment_id for line in cart.items] == [burner.id]
    with pytest.raises(ValidationError):
        await CartsService.remove_items(db, borrower.id, [])


async def test_remove_items_without_cart_is_not_found(db, borrower) -> None:
    with pytest.raises(NotFoundError):
        await CartsService.remove_items(db, borrower.id, [1])


async def test_submit_snapshots_lines_and_clears_cart(db, borrower) -> None:
    beaker = await make_equipment(db, "Beaker", 5)
    burner = await make_equipment(db, "Bunsen burner", 5)
    await CartsService.add_item(db, borrower.id, beaker.id, 2)
    await CartsService.add_item(db, borrower.id, burner.id, 1)
    pick_up = utcnow() + timedelta(days=1)

    txn = await CartsService.submit(db, borrower.id, pick_up)

    assert txn.current_status == TransactionStatus.applying
    assert txn.date_applied is not None
    assert txn.pick_up_date == pick_up
    assert txn.stock_reserved is False
    assert [(i.equipment_name, i.quantity) for i in txn.items] == [("Beaker", 2), ("Bunsen burner", 1)]
    assert all(i.returned_quantity == 0 for i in txn.items)

    cart = await CartsService.get_cart(db, borrower.id)
    assert cart.id == txn.cart_id
    assert cart.items == []


async def test_submit_empty_cart_fails(db, borrower) -> None:
    with pytest.raises(ValidationError, match="empty"):
        await CartsService.submit(db, borrower.id)


async def test_submit_rejects_past_pick_up_date(db, borrower) -> None:
    beaker = await make_equipment(db, "Beaker", 5)
    await CartsService.add_item(db, borrower.id, beaker.id, 1)

    with pytest.raises(ValidationError):
        await CartsService.submit(db, borrower.id, utcnow() - timedelta(days=1))

    cart = await CartsService.get_cart(db, borrower.id)
    assert len(cart.items) == 1


async def test_merge_items_skips_unknown_equipment(db, borrower) -> None:
    beaker = await make_equipment(db, "Beaker", 5)

    cart = await CartsService.merge_items(db, borrower.id, [(beaker.id, 2), (9999, 1)])

    assert [(line.equipment_id, line.quantity) for line in cart.items] == [(beaker.id, 2)]
