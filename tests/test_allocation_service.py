"""
Allocation ledger: quantity conservation and line remainders
"""
import pytest
from decimal import Decimal

from logiledger.core.exceptions import (
    OverAllocation, OrderNotEditable, InvalidQuantity, InvalidAmount, InvalidCurrency, InvalidUnit
)
from logiledger.models import Allocation, AuditLog, OrderStatus
from logiledger.schemas import AllocationSpec, OrderLineCreate
from logiledger.services import AllocationService, OrderService


def test_scenario_a_over_allocation_is_rejected(db, locked_order, supplier_x, supplier_y, user):
    """10 t line: 6 t to X, then 5 t to Y fails, 4 t to Y fits exactly"""
    line = locked_order.lines[0]

    AllocationService.allocate(db, line, supplier_x.id, Decimal("6"), "t", Decimal("100"), "USD", user.id)
    with pytest.raises(OverAllocation) as exc:
        AllocationService.allocate(db, line, supplier_y.id, Decimal("5"), "t", Decimal("100"), "USD", user.id)
    assert exc.value.details["attempted_in_tons"] == "5"
    assert db.query(Allocation).count() == 1

    AllocationService.allocate(db, line, supplier_y.id, Decimal("4"), "t", Decimal("100"), "USD", user.id)
    assert AllocationService.remaining_for_line(db, line) == 0
    assert AllocationService.is_fully_allocated(db, locked_order)


def test_remaining_plus_allocated_equals_requested(db, locked_order, supplier_x, supplier_y):
    line = locked_order.lines[0]
    AllocationService.allocate(db, line, supplier_x.id, Decimal("3333"), "kg", Decimal("10"), "USD")
    AllocationService.allocate(db, line, supplier_y.id, Decimal("0.1"), "t", Decimal("10"), "USD")

    allocated = AllocationService.allocated_for_line(db, line)
    remaining = AllocationService.remaining_for_line(db, line)
    assert allocated == Decimal("3.433")
    assert remaining + allocated == line.quantity_in_tons


def test_total_sum_uses_tons(db, locked_order, supplier_x):
    allocation = AllocationService.allocate(
        db, locked_order.lines[0], supplier_x.id, Decimal("2500"), "kg", Decimal("120.50"), "UZS"
    )
    assert allocation.quantity_in_tons == Decimal("2.5")
    assert allocation.total_sum == Decimal("301.25")
    assert allocation.currency == "UZS"
    assert allocation.item_id == locked_order.lines[0].item_id


def test_container_allocation_uses_order_tonnage(db, make_order, supplier_x):
    order = OrderService.lock(db, make_order((2, "container"), container_tonnage=Decimal("27")))
    allocation = AllocationService.allocate(
        db, order.lines[0], supplier_x.id, Decimal("1"), "container", Decimal("10"), "USD"
    )
    assert allocation.quantity_in_tons == Decimal("27")
    assert AllocationService.remaining_for_line(db, order.lines[0]) == Decimal("27")


def test_allocation_needs_locked_order(db, make_order, supplier_x):
    draft = make_order((10, "t"))
    with pytest.raises(OrderNotEditable):
        AllocationService.allocate(db, draft.lines[0], supplier_x.id, Decimal("1"), "t", Decimal("1"), "USD")


@pytest.mark.parametrize("quantity,price,currency,unit,error", [
    (Decimal("0"), Decimal("10"), "USD", "t", InvalidQuantity),
    (Decimal("-1"), Decimal("10"), "USD", "t", InvalidQuantity),
    (Decimal("1"), Decimal("0"), "USD", "t", InvalidAmount),
    (Decimal("1"), Decimal("10"), "EUR", "t", InvalidCurrency),
    (Decimal("1"), Decimal("10"), "USD", "bags", InvalidUnit),
])
def test_allocation_input_guards(db, locked_order, supplier_x, quantity, price, currency, unit, error):
    with pytest.raises(error):
        AllocationService.allocate(db, locked_order.lines[0], supplier_x.id, quantity, unit, price, currency)
    assert db.query(Allocation).count() == 0


def test_replace_allocation_excludes_old_contribution(db, locked_order, supplier_x, supplier_y, user):
    line = locked_order.lines[0]
    first = AllocationService.allocate(db, line, supplier_x.id, Decimal("6"), "t", Decimal("100"), "USD")
    AllocationService.allocate(db, line, supplier_y.id, Decimal("4"), "t", Decimal("100"), "USD")

    # 6 -> 5 fits because the old 6 t no longer counts
    replaced = AllocationService.replace_allocation(
        db, first,
        AllocationSpec(supplier_id=supplier_x.id, quantity=Decimal("5"), price_per_ton=Decimal("110")),
        performed_by=user.id
    )
    assert replaced.id != first.id
    assert replaced.total_sum == Decimal("550")
    assert AllocationService.remaining_for_line(db, line) == Decimal("1")
    assert db.query(Allocation).count() == 2

    audit = db.query(AuditLog).filter(AuditLog.action == "REPLACE_ALLOCATION").one()
    assert audit.entity_id == str(replaced.id)


def test_failed_replace_keeps_existing_allocation(db, locked_order, supplier_x, supplier_y):
    line = locked_order.lines[0]
    first = AllocationService.allocate(db, line, supplier_x.id, Decimal("6"), "t", Decimal("100"), "USD")
    AllocationService.allocate(db, line, supplier_y.id, Decimal("4"), "t", Decimal("100"), "USD")

    with pytest.raises(OverAllocation):
        AllocationService.replace_allocation(
            db, first,
            AllocationSpec(supplier_id=supplier_x.id, quantity=Decimal("7"), price_per_ton=Decimal("100"))
        )
    assert AllocationService.require_allocation(db, first.id).quantity_in_tons == Decimal("6")


def test_deallocate_frees_quantity(db, locked_order, supplier_x, user):
    line = locked_order.lines[0]
    allocation = AllocationService.allocate(db, line, supplier_x.id, Decimal("10"), "t", Decimal("1"), "USD")
    AllocationService.deallocate(db, allocation, user.id)

    assert AllocationService.remaining_for_line(db, line) == Decimal("10")
    assert db.query(AuditLog).filter(AuditLog.action == "DELETE_ALLOCATION").count() == 1


def test_scenario_e_partially_allocated_order(db, make_order, second_item, supplier_x):
    order = make_order((10, "t"))
    OrderService.add_line(db, order, OrderLineCreate(item_id=second_item.id, quantity=Decimal("5"), unit="t"))
    OrderService.lock(db, order)

    first, second = sorted(order.lines, key=lambda line: line.quantity_in_tons, reverse=True)
    AllocationService.allocate(db, first, supplier_x.id, Decimal("10"), "t", Decimal("1"), "USD")
    AllocationService.allocate(db, second, supplier_x.id, Decimal("2"), "t", Decimal("1"), "USD")

    assert not AllocationService.is_fully_allocated(db, order)


def test_zero_quantity_lines_are_trivially_allocated(db, make_order):
    order = OrderService.lock(db, make_order((0, "t")))
    assert AllocationService.is_fully_allocated(db, order)


def test_supplier_exposure_groups_split_by_currency(db, make_order, supplier_x, supplier_y):
    order = OrderService.lock(db, make_order((10, "t")))
    line = order.lines[0]
    AllocationService.allocate(db, line, supplier_x.id, Decimal("2"), "t", Decimal("100"), "USD")
    AllocationService.allocate(db, line, supplier_x.id, Decimal("3"), "t", Decimal("1000"), "UZS")
    AllocationService.allocate(db, line, supplier_y.id, Decimal("1"), "t", Decimal("100"), "usd")

    groups = AllocationService.supplier_exposure_groups(db, order)
    assert set(groups) == {(supplier_x.id, "USD"), (supplier_x.id, "UZS"), (supplier_y.id, "USD")}
    assert groups[(supplier_x.id, "UZS")][0].total_sum == Decimal("3000")


def test_locked_order_status_is_unchanged_by_allocation(db, locked_order, supplier_x):
    AllocationService.allocate(db, locked_order.lines[0], supplier_x.id, Decimal("10"), "t", Decimal("1"), "USD")
    db.refresh(locked_order)
    assert locked_order.status == OrderStatus.LOCKED.value
