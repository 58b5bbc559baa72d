"""
Settlement ledger: money conservation, legacy/current payment merge, currency isolation
"""
import pytest
from datetime import date
from decimal import Decimal

from logiledger.core.exceptions import AmountExceedsRemaining, InvalidAmount, InvalidCurrency, NotFound
from logiledger.models import AuditLog, OrderStatus, PaymentOperation, PaymentType
from logiledger.services import (
    AllocationService, LifecycleService, OrderService, SettlementService,
    LegacyAllocationTarget, SupplierOrderTarget
)


def supplier_target(order, supplier, currency="USD"):
    return SupplierOrderTarget(supplier_id=supplier.id, order_id=order.id, currency=currency)


def test_scenario_c_prepay_then_payoff_settles_order(db, distributed_order, supplier_x, user):
    target = supplier_target(distributed_order, supplier_x)
    assert SettlementService.exposure(db, target) == Decimal("1000")

    SettlementService.record_payment(
        db, target, PaymentType.PREPAYMENT, Decimal("400"), "USD", date(2024, 3, 1), user.id
    )
    assert SettlementService.remaining_for_supplier(db, distributed_order, supplier_x.id, "USD") == Decimal("600")
    assert distributed_order.status == OrderStatus.DISTRIBUTED.value

    SettlementService.record_payment(
        db, target, PaymentType.PAYOFF, Decimal("600"), "USD", date(2024, 3, 5), user.id
    )
    assert SettlementService.remaining_for_supplier(db, distributed_order, supplier_x.id, "USD") == 0
    assert SettlementService.is_fully_settled(db, distributed_order)

    db.refresh(distributed_order)
    assert distributed_order.status == OrderStatus.FINANCIAL.value

    actions = [a.action for a in db.query(AuditLog).all()]
    assert actions.count("CREATE_PAYMENT") == 2
    assert actions.count("UPDATE_ORDER_STATUS") == 3  # lock, distribute, financial


def test_scenario_d_amount_exceeding_remaining(db, distributed_order, supplier_x):
    target = supplier_target(distributed_order, supplier_x)
    SettlementService.record_payment(db, target, PaymentType.PREPAYMENT, Decimal("400"), "USD")

    with pytest.raises(AmountExceedsRemaining) as exc:
        SettlementService.record_payment(db, target, PaymentType.PAYOFF, Decimal("700"), "USD")
    assert exc.value.details["remaining"] == "600"
    assert db.query(PaymentOperation).count() == 1


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_non_positive_amount_rejected(db, distributed_order, supplier_x, amount):
    with pytest.raises(InvalidAmount):
        SettlementService.record_payment(
            db, supplier_target(distributed_order, supplier_x), PaymentType.PREPAYMENT, amount, "USD"
        )


def test_unsupported_currency_rejected(db, distributed_order, supplier_x):
    with pytest.raises(InvalidCurrency):
        SettlementService.record_payment(
            db, supplier_target(distributed_order, supplier_x, "EUR"), PaymentType.PREPAYMENT, Decimal("1")
        )


def test_payment_to_unknown_order(db, supplier_x):
    from uuid import uuid4
    target = SupplierOrderTarget(supplier_id=supplier_x.id, order_id=uuid4(), currency="USD")
    with pytest.raises(NotFound):
        SettlementService.record_payment(db, target, PaymentType.PREPAYMENT, Decimal("1"))


def test_supplier_without_exposure_cannot_be_paid(db, distributed_order, supplier_y):
    with pytest.raises(AmountExceedsRemaining):
        SettlementService.record_payment(
            db, supplier_target(distributed_order, supplier_y), PaymentType.PREPAYMENT, Decimal("1"), "USD"
        )


class TestLegacyPayments:
    def test_legacy_and_current_payments_merge(self, db, distributed_order, supplier_x):
        allocation = AllocationService.get_allocations(db, distributed_order.id)[0]

        SettlementService.record_payment(
            db, LegacyAllocationTarget(allocation.id), PaymentType.PREPAYMENT, Decimal("300")
        )
        assert SettlementService.paid_so_far(db, supplier_x.id, distributed_order.id, "USD") == Decimal("300")

        SettlementService.record_payment(
            db, supplier_target(distributed_order, supplier_x), PaymentType.PAYOFF, Decimal("700"), "USD"
        )
        assert SettlementService.paid_so_far(db, supplier_x.id, distributed_order.id, "USD") == Decimal("1000")
        assert SettlementService.is_fully_settled(db, distributed_order)

        legacy = db.query(PaymentOperation).filter(PaymentOperation.allocation_id == allocation.id).one()
        assert legacy.is_legacy
        assert legacy.supplier_id is None
        assert legacy.order_id is None

    def test_legacy_payment_limited_by_group_remainder(self, db, distributed_order, supplier_x):
        allocation = AllocationService.get_allocations(db, distributed_order.id)[0]
        SettlementService.record_payment(
            db, supplier_target(distributed_order, supplier_x), PaymentType.PREPAYMENT, Decimal("900"), "USD"
        )

        # The allocation alone still shows 1000 unpaid, but the supplier is owed only 100
        with pytest.raises(AmountExceedsRemaining):
            SettlementService.record_payment(
                db, LegacyAllocationTarget(allocation.id), PaymentType.PAYOFF, Decimal("200")
            )

    def test_legacy_payment_in_wrong_currency(self, db, distributed_order):
        allocation = AllocationService.get_allocations(db, distributed_order.id)[0]
        with pytest.raises(InvalidCurrency):
            SettlementService.record_payment(
                db, LegacyAllocationTarget(allocation.id), PaymentType.PREPAYMENT, Decimal("1"), "UZS"
            )

    def test_legacy_rows_without_currency_count_as_usd(self, db, distributed_order, supplier_x):
        allocation = AllocationService.get_allocations(db, distributed_order.id)[0]
        db.add(PaymentOperation(
            payment_type=PaymentType.PREPAYMENT.value,
            amount=Decimal("250"),
            currency=None,
            payment_date=date(2023, 12, 1),
            allocation_id=allocation.id
        ))
        db.commit()

        assert SettlementService.paid_so_far(db, supplier_x.id, distributed_order.id, "USD") == Decimal("250")
        assert SettlementService.paid_so_far(db, supplier_x.id, distributed_order.id, "UZS") == 0


def test_currencies_never_mix(db, make_order, supplier_x, user):
    order = OrderService.lock(db, make_order((10, "t")))
    line = order.lines[0]
    AllocationService.allocate(db, line, supplier_x.id, Decimal("5"), "t", Decimal("100"), "USD")
    AllocationService.allocate(db, line, supplier_x.id, Decimal("5"), "t", Decimal("12000"), "UZS")
    LifecycleService.mark_distributed(db, order, user.id)

    SettlementService.record_payment(db, supplier_target(order, supplier_x, "USD"), PaymentType.PAYOFF, Decimal("500"), "USD")
    assert SettlementService.remaining_for_supplier(db, order, supplier_x.id, "USD") == 0
    assert SettlementService.remaining_for_supplier(db, order, supplier_x.id, "UZS") == Decimal("60000")
    assert not SettlementService.is_fully_settled(db, order)
    db.refresh(order)
    assert order.status == OrderStatus.DISTRIBUTED.value

    # A USD payment can never settle the UZS group
    with pytest.raises(AmountExceedsRemaining):
        SettlementService.record_payment(
            db, supplier_target(order, supplier_x, "USD"), PaymentType.PAYOFF, Decimal("1"), "USD"
        )

    SettlementService.record_payment(
        db, supplier_target(order, supplier_x, "UZS"), PaymentType.PAYOFF, Decimal("60000"), "UZS"
    )
    db.refresh(order)
    assert order.status == OrderStatus.FINANCIAL.value


def test_settlement_summary(db, make_order, supplier_x, supplier_y, user):
    order = OrderService.lock(db, make_order((10, "t")))
    line = order.lines[0]
    AllocationService.allocate(db, line, supplier_x.id, Decimal("4"), "t", Decimal("100"), "USD")
    AllocationService.allocate(db, line, supplier_y.id, Decimal("3"), "t", Decimal("50"), "USD")
    AllocationService.allocate(db, line, supplier_y.id, Decimal("3"), "t", Decimal("1000"), "UZS")
    LifecycleService.mark_distributed(db, order, user.id)

    SettlementService.record_payment(db, supplier_target(order, supplier_x), PaymentType.PAYOFF, Decimal("400"), "USD")
    SettlementService.record_payment(db, supplier_target(order, supplier_y), PaymentType.PREPAYMENT, Decimal("50"), "USD")

    summary = SettlementService.settlement_summary(db, order)
    rows = {(row["supplier_id"], row["currency"]): row for row in summary["suppliers"]}

    assert rows[(supplier_x.id, "USD")]["status"] == "PAID"
    assert rows[(supplier_y.id, "USD")]["status"] == "PARTIAL"
    assert rows[(supplier_y.id, "USD")]["remaining"] == Decimal("100")
    assert rows[(supplier_y.id, "UZS")]["status"] == "UNPAID"

    assert summary["totals_by_currency"]["USD"] == {
        "total": Decimal("550"), "paid": Decimal("450"), "remaining": Decimal("100")
    }
    assert summary["totals_by_currency"]["UZS"]["remaining"] == Decimal("3000")
    assert summary["fully_settled"] is False


def test_get_payments_covers_both_modes(db, distributed_order, supplier_x):
    allocation = AllocationService.get_allocations(db, distributed_order.id)[0]
    SettlementService.record_payment(
        db, LegacyAllocationTarget(allocation.id), PaymentType.PREPAYMENT, Decimal("100"), payment_date=date(2024, 1, 1)
    )
    SettlementService.record_payment(
        db, supplier_target(distributed_order, supplier_x), PaymentType.PREPAYMENT, Decimal("100"), "USD",
        payment_date=date(2024, 1, 2)
    )

    payments = SettlementService.get_payments(db, distributed_order)
    assert [p.is_legacy for p in payments] == [True, False]


def test_money_is_conserved_across_payments(db, distributed_order, supplier_x):
    """paid + remaining == exposure after every accepted payment"""
    target = supplier_target(distributed_order, supplier_x)
    exposure = SettlementService.exposure(db, target)
    for amount in ["0.01", "99.99", "250", "649.99"]:
        SettlementService.record_payment(db, target, PaymentType.PREPAYMENT, Decimal(amount), "USD")
        paid = SettlementService.paid_so_far(db, supplier_x.id, distributed_order.id, "USD")
        remaining = SettlementService.remaining_for_supplier(db, distributed_order, supplier_x.id, "USD")
        assert paid + remaining == exposure
        assert remaining >= 0
    assert remaining == 0
