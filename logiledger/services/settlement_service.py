"""
Settlement Service - supplier payments per order and currency

Payments address either a single allocation (legacy rows) or a
supplier + order + currency group (current rows). Both kinds are merged
into one view of what has been paid for a group. USD and UZS are separate
ledgers and are never added together.
"""
from dataclasses import dataclass
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional, Union
from uuid import UUID
from datetime import date
from decimal import Decimal
import logging

from logiledger.core import commit_or_conflict, flush_or_conflict
from logiledger.core.exceptions import InvalidAmount, InvalidCurrency, AmountExceedsRemaining, NotFound
from logiledger.models import OrderHeader, Allocation, PaymentOperation, PaymentType
from .allocation_service import AllocationService, normalize_currency, touch_order
from .audit_service import AuditService
from .units import to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class LegacyAllocationTarget:
    """Payment against one allocation"""
    allocation_id: UUID


@dataclass(frozen=True)
class SupplierOrderTarget:
    """Payment against everything a supplier is owed on an order in one currency"""
    supplier_id: UUID
    order_id: UUID
    currency: str


PaymentTarget = Union[LegacyAllocationTarget, SupplierOrderTarget]


class SettlementService:
    """Settlement ledger business logic"""

    # ===================== EXPOSURE =====================

    @staticmethod
    def group_allocations(db: Session, order_id: UUID, supplier_id: UUID, currency: str) -> List[Allocation]:
        """Allocations of one supplier on one order in one currency"""
        return [
            a for a in AllocationService.get_allocations(db, order_id)
            if a.supplier_id == supplier_id and a.effective_currency == currency
        ]

    @staticmethod
    def group_exposure(db: Session, order_id: UUID, supplier_id: UUID, currency: str) -> Decimal:
        return sum(
            (a.total_sum for a in SettlementService.group_allocations(db, order_id, supplier_id, currency)),
            ZERO
        )

    @staticmethod
    def exposure(db: Session, target: PaymentTarget) -> Decimal:
        """What the target is worth: one allocation, or the whole supplier/currency group"""
        if isinstance(target, LegacyAllocationTarget):
            return AllocationService.require_allocation(db, target.allocation_id).total_sum
        return SettlementService.group_exposure(db, target.order_id, target.supplier_id, target.currency)

    # ===================== PAID =====================

    @staticmethod
    def allocation_paid(db: Session, allocation_id: UUID) -> Decimal:
        """Legacy payments recorded directly against one allocation"""
        payments = db.query(PaymentOperation).filter(PaymentOperation.allocation_id == allocation_id).all()
        return sum((p.amount for p in payments), ZERO)

    @staticmethod
    def paid_so_far(db: Session, supplier_id: UUID, order_id: UUID, currency: str) -> Decimal:
        """
        Merge both addressing modes into one figure:
        supplier-level payments for the group plus legacy payments
        against each allocation in the group.
        """
        current = db.query(PaymentOperation).filter(
            PaymentOperation.allocation_id.is_(None),
            PaymentOperation.supplier_id == supplier_id,
            PaymentOperation.order_id == order_id,
            PaymentOperation.currency == currency
        ).all()
        paid = sum((p.amount for p in current), ZERO)

        allocation_ids = [a.id for a in SettlementService.group_allocations(db, order_id, supplier_id, currency)]
        if allocation_ids:
            legacy = db.query(PaymentOperation).filter(PaymentOperation.allocation_id.in_(allocation_ids)).all()
            paid += sum((p.amount for p in legacy), ZERO)
        return paid

    # ===================== REMAINING =====================

    @staticmethod
    def remaining_for_supplier(db: Session, order: OrderHeader, supplier_id: UUID, currency: str) -> Decimal:
        """Exposure minus paid for one supplier/currency group"""
        code = normalize_currency(currency)
        return SettlementService.group_exposure(db, order.id, supplier_id, code) \
            - SettlementService.paid_so_far(db, supplier_id, order.id, code)

    @staticmethod
    def remaining_for_target(db: Session, target: PaymentTarget) -> Decimal:
        if isinstance(target, LegacyAllocationTarget):
            allocation = AllocationService.require_allocation(db, target.allocation_id)
            own = allocation.total_sum - SettlementService.allocation_paid(db, allocation.id)
            # The group may already be covered by supplier-level payments
            group = SettlementService.remaining_for_supplier(
                db, allocation.order, allocation.supplier_id, allocation.effective_currency
            )
            return min(own, group)
        return SettlementService.group_exposure(db, target.order_id, target.supplier_id, target.currency) \
            - SettlementService.paid_so_far(db, target.supplier_id, target.order_id, target.currency)

    @staticmethod
    def is_fully_settled(db: Session, order: OrderHeader) -> bool:
        """True when every supplier/currency group with exposure is paid in full"""
        for (supplier_id, currency), allocations in AllocationService.supplier_exposure_groups(db, order).items():
            total = sum((a.total_sum for a in allocations), ZERO)
            if total == 0:
                continue
            if total - SettlementService.paid_so_far(db, supplier_id, order.id, currency) != 0:
                return False
        return True

    # ===================== PAYMENTS =====================

    @staticmethod
    def _resolve_target(
        db: Session,
        target: PaymentTarget,
        currency: Optional[str]
    ) -> tuple:
        """Return (order, normalized target, currency) for a payment target"""
        if isinstance(target, LegacyAllocationTarget):
            allocation = AllocationService.require_allocation(db, target.allocation_id)
            code = allocation.effective_currency
            if currency and normalize_currency(currency) != code:
                raise InvalidCurrency(
                    f"Allocation is priced in {code}, payment was given in {currency}",
                    details={"allocation_currency": code, "payment_currency": currency}
                )
            return allocation.order, target, code

        code = normalize_currency(currency or target.currency)
        if code != normalize_currency(target.currency):
            raise InvalidCurrency(f"Payment currency {currency} does not match target currency {target.currency}")
        order = db.query(OrderHeader).filter(OrderHeader.id == target.order_id).first()
        if not order:
            raise NotFound(f"Order {target.order_id} not found")
        return order, SupplierOrderTarget(target.supplier_id, target.order_id, code), code

    @staticmethod
    def record_payment(
        db: Session,
        target: PaymentTarget,
        payment_type: Union[PaymentType, str],
        amount,
        currency: Optional[str] = None,
        payment_date: Optional[date] = None,
        performed_by: Optional[UUID] = None,
        comment: Optional[str] = None
    ) -> PaymentOperation:
        """Append a prepayment or payoff; advances DISTRIBUTED -> FINANCIAL once everything is paid"""
        from .lifecycle_service import LifecycleService

        value = to_decimal(amount, "amount")
        if value <= 0:
            raise InvalidAmount(f"Payment amount must be positive: {value}")
        kind = PaymentType(payment_type)

        order, target, code = SettlementService._resolve_target(db, target, currency)
        remaining = SettlementService.remaining_for_target(db, target)
        if value > remaining:
            logger.warning(f"Payment of {value} {code} rejected on {order.order_number}: remaining {remaining}")
            raise AmountExceedsRemaining(
                "Amount exceeds the remaining balance",
                details={"amount": str(value), "remaining": str(remaining), "currency": code}
            )

        payment = PaymentOperation(
            payment_type=kind.value,
            amount=value,
            currency=code,
            payment_date=payment_date or date.today(),
            comment=comment,
            created_by=performed_by
        )
        if isinstance(target, LegacyAllocationTarget):
            payment.allocation_id = target.allocation_id
        else:
            payment.supplier_id = target.supplier_id
            payment.order_id = target.order_id
        db.add(payment)
        touch_order(order)
        flush_or_conflict(db)

        AuditService.log(
            db, "CREATE_PAYMENT", "PaymentOperation", payment.id, performed_by,
            {
                "order_id": str(order.id),
                "supplier_id": str(payment.supplier_id) if payment.supplier_id else None,
                "allocation_id": str(payment.allocation_id) if payment.allocation_id else None,
                "type": kind.value,
                "amount": str(value),
                "currency": code,
            }
        )

        LifecycleService.advance_after_payment(db, order, performed_by, commit=False)

        commit_or_conflict(db)
        db.refresh(payment)

        logger.info(f"Recorded {kind.value} of {value} {code} on {order.order_number}")
        return payment

    @staticmethod
    def get_payments(db: Session, order: OrderHeader) -> List[PaymentOperation]:
        """Payments of an order in both addressing modes, oldest first"""
        allocation_ids = [a.id for a in AllocationService.get_allocations(db, order.id)]
        conditions = [PaymentOperation.order_id == order.id]
        if allocation_ids:
            conditions.append(PaymentOperation.allocation_id.in_(allocation_ids))
        return db.query(PaymentOperation).filter(or_(*conditions))\
            .order_by(PaymentOperation.payment_date, PaymentOperation.created_at).all()

    # ===================== SUMMARY =====================

    @staticmethod
    def settlement_summary(db: Session, order: OrderHeader) -> Dict[str, Any]:
        """Per supplier/currency balances plus per-currency order totals"""
        suppliers = []
        totals: Dict[str, Dict[str, Decimal]] = {}

        for (supplier_id, currency), allocations in AllocationService.supplier_exposure_groups(db, order).items():
            total = sum((a.total_sum for a in allocations), ZERO)
            paid = SettlementService.paid_so_far(db, supplier_id, order.id, currency)
            remaining = total - paid

            if remaining == 0:
                status = "PAID"
            elif paid == 0:
                status = "UNPAID"
            else:
                status = "PARTIAL"

            suppliers.append({
                "supplier_id": supplier_id,
                "currency": currency,
                "total": total,
                "paid": paid,
                "remaining": remaining,
                "status": status,
            })

            bucket = totals.setdefault(currency, {"total": ZERO, "paid": ZERO, "remaining": ZERO})
            bucket["total"] += total
            bucket["paid"] += paid
            bucket["remaining"] += remaining

        return {
            "order_id": order.id,
            "order_status": order.status,
            "fully_settled": SettlementService.is_fully_settled(db, order),
            "suppliers": suppliers,
            "totals_by_currency": totals,
        }
