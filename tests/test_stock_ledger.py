import pytest

from app.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from app.modules.equipment.ledger import StockLedger
from tests.factories import make_equipment


async def test_reserve_decrements_when_stock_covers(db) -> None:
    scope = await make_equipment(db, "Microscope", 5)

    await StockLedger.reserve(db, scope.id, 3)

    assert await StockLedger.stock_of(db, scope.id) == 2


async def test_reserve_exact_stock_reaches_zero(db) -> None:
    scope = await make_equipment(db, "Microscope", 2)

    await StockLedger.reserve(db, scope.id, 2)

    assert await StockLedger.stock_of(db, scope.id) == 0


async def test_reserve_more_than_stock_leaves_stock_unchanged(db) -> None:
    scope = await make_equipment(db, "Microscope", 2)

    with pytest.raises(InsufficientStockError) as exc_info:
        await StockLedger.reserve(db, scope.id, 10, name=scope.name)

    assert exc_info.value.available == 2
    assert exc_info.value.requested == 10
    assert await StockLedger.stock_of(db, scope.id) == 2


async def test_reserve_rejects_non_positive_quantity(db) -> None:
    scope = await make_equipment(db, "Microscope", 2)

    with pytest.raises(ValidationError):
        await StockLedger.reserve(db, scope.id, 0)


async def test_reserve_missing_equipment_is_not_found(db) -> None:
    with pytest.raises(NotFoundError):
        await StockLedger.reserve(db, 999, 1)


async def test_reserve_all_is_all_or_nothing(db) -> None:
    beaker = await make_equipment(db, "Beaker", 10)
    burner = await make_equipment(db, "Bunsen burner", 1)

    with pytest.raises(InsufficientStockError):
        await StockLedger.reserve_all(db, [(beaker.id, 4), (burner.id, 2)])

    assert await StockLedger.stock_of(db, beaker.id) == 10
    assert await StockLedger.stock_of(db, burner.id) == 1


async def test_reserve_all_aggregates_repeated_equipment(db) -> None:
    beaker = await make_equipment(db, "Beaker", 5)

    with pytest.raises(InsufficientStockError):
        await StockLedger.reserve_all(db, [(beaker.id, 3), (beaker.id, 3)])

    await StockLedger.reserve_all(db, [(beaker.id, 2), (beaker.id, 3)])
    assert await StockLedger.stock_of(db, beaker.id) == 0


async def test_reserve_all_missing_line_mutates_nothing(db) -> None:
    beaker = await make_equipment(db, "Beaker", 5)

    with pytest.raises(NotFoundError):
        await StockLedger.reserve_all(db, [(beaker.id, 1), (4242, 1)])

    assert await StockLedger.stock_of(db, beaker.id) == 5


async def test_release_is_unbounded(db) -> None:
    pipette = await make_equipment(db, "Pipette", 0)

    assert await StockLedger.release(db, pipette.id, 7) is True
    assert await StockLedger.stock_of(db, pipette.id) == 7


async def test_release_all_skips_missing_equipment(db) -> None:
    pipette = await make_equipment(db, "Pipette", 1)

    restocked = await StockLedger.release_all(db, [(pipette.id, 2), (31337, 5)])

    assert restocked == 1
    assert await StockLedger.stock_of(db, pipette.id) == 3


async def test_load_many_omits_unknown_ids(db) -> None:
    pipette = await make_equipment(db, "Pipette", 1)

    found = await StockLedger.load_many(db, [pipette.id, 777])

    assert list(found) == [pipette.id]
    assert found[pipette.id].name == "Pipette"
