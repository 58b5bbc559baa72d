"""
Allocation Service - distribute order lines across suppliers

Invariant: for every order line, the allocated tons never exceed the
requested tons. Edits are delete-then-recreate so total_sum always matches
quantity_in_tons * price_per_ton.
"""
from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Tuple
from uuid import UUID, uuid4
from datetime import datetime, timezone
from decimal import Decimal
import logging

from logiledger.core import commit_or_conflict
from logiledger.core.exceptions import (
    InvalidQuantity, InvalidAmount, InvalidCurrency, OrderNotEditable, OverAllocation, NotFound
)
from logiledger.models import (
    OrderHeader, OrderLine, OrderStatus, Allocation, PaymentOperation, SUPPORTED_CURRENCIES
)
from logiledger.schemas.allocation import AllocationSpec
from .audit_service import AuditService
from .units import to_canonical, to_decimal, normalize_unit

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def normalize_currency(currency: Optional[str]) -> str:
    code = (currency or "").strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise InvalidCurrency(f"Unsupported currency: {currency!r}", details={"currency": currency})
    return code


def touch_order(order: OrderHeader) -> None:
    """Dirty the header so the commit runs the version check"""
    order.updated_at = datetime.now(timezone.utc)


class AllocationService:
    """Allocation ledger business logic"""

    # Distribution happens between locking and settlement
    ALLOCATABLE_STATUSES = (OrderStatus.LOCKED.value, OrderStatus.DISTRIBUTED.value)

    @staticmethod
    def get_allocations(db: Session, order_id: UUID) -> List[Allocation]:
        """All allocations of an order"""
        return db.query(Allocation).filter(Allocation.order_id == order_id)\
            .order_by(Allocation.created_at).all()

    @staticmethod
    def get_line_allocations(db: Session, line_id: UUID) -> List[Allocation]:
        return db.query(Allocation).filter(Allocation.order_line_id == line_id).all()

    @staticmethod
    def require_allocation(db: Session, allocation_id: UUID) -> Allocation:
        allocation = db.query(Allocation).filter(Allocation.id == allocation_id).first()
        if not allocation:
            raise NotFound(f"Allocation {allocation_id} not found")
        return allocation

    @staticmethod
    def allocated_for_line(db: Session, line: OrderLine, exclude_id: Optional[UUID] = None) -> Decimal:
        """Tons already allocated to a line, optionally ignoring one allocation"""
        total = ZERO
        for allocation in AllocationService.get_line_allocations(db, line.id):
            if exclude_id is not None and allocation.id == exclude_id:
                continue
            total += allocation.quantity_in_tons
        return total

    @staticmethod
    def remaining_for_line(db: Session, line: OrderLine) -> Decimal:
        """Requested tons minus allocated tons; never negative"""
        return line.quantity_in_tons - AllocationService.allocated_for_line(db, line)

    @staticmethod
    def is_fully_allocated(db: Session, order: OrderHeader) -> bool:
        """True when every line has nothing left to allocate"""
        return all(AllocationService.remaining_for_line(db, line) == 0 for line in order.lines)

    @staticmethod
    def supplier_exposure_groups(db: Session, order: OrderHeader) -> Dict[Tuple[UUID, str], List[Allocation]]:
        """Order allocations grouped by (supplier, currency)"""
        groups: Dict[Tuple[UUID, str], List[Allocation]] = {}
        for allocation in AllocationService.get_allocations(db, order.id):
            key = (allocation.supplier_id, allocation.effective_currency)
            groups.setdefault(key, []).append(allocation)
        return groups

    @staticmethod
    def allocate(
        db: Session,
        line: OrderLine,
        supplier_id: UUID,
        quantity,
        unit: str,
        price_per_ton,
        currency: str = "USD",
        performed_by: Optional[UUID] = None
    ) -> Allocation:
        """Assign part of a line to a supplier at a price"""
        return AllocationService._allocate(
            db, line, supplier_id, quantity, unit, price_per_ton, currency, performed_by
        )

    @staticmethod
    def replace_allocation(
        db: Session,
        allocation: Allocation,
        spec: AllocationSpec,
        performed_by: Optional[UUID] = None
    ) -> Allocation:
        """Edit an allocation: delete and recreate in one transaction"""
        return AllocationService._allocate(
            db, allocation.order_line, spec.supplier_id, spec.quantity, spec.unit,
            spec.price_per_ton, spec.currency, performed_by, replacing=allocation
        )

    @staticmethod
    def _allocate(
        db: Session,
        line: OrderLine,
        supplier_id: UUID,
        quantity,
        unit: str,
        price_per_ton,
        currency: str,
        performed_by: Optional[UUID],
        replacing: Optional[Allocation] = None
    ) -> Allocation:
        order = line.order
        if order.status not in AllocationService.ALLOCATABLE_STATUSES:
            raise OrderNotEditable(
                f"Order {order.order_number} is {order.status}, allocations need a LOCKED or DISTRIBUTED order"
            )

        qty = to_decimal(quantity)
        if qty <= 0:
            raise InvalidQuantity(f"Allocation quantity must be positive: {qty}")
        price = to_decimal(price_per_ton, "price")
        if price <= 0:
            raise InvalidAmount(f"Price per ton must be positive: {price}")
        code = normalize_currency(currency)
        normalized_unit = normalize_unit(unit)
        qty_in_tons = to_canonical(qty, normalized_unit, order.effective_container_tonnage)

        already = AllocationService.allocated_for_line(
            db, line, exclude_id=replacing.id if replacing is not None else None
        )
        if already + qty_in_tons > line.quantity_in_tons:
            logger.warning(
                f"Over-allocation rejected on {order.order_number}: "
                f"{already} + {qty_in_tons} > {line.quantity_in_tons}"
            )
            raise OverAllocation(
                "Allocated quantity exceeds the ordered quantity",
                details={
                    "order_line_id": str(line.id),
                    "requested_in_tons": str(line.quantity_in_tons),
                    "already_allocated_in_tons": str(already),
                    "attempted_in_tons": str(qty_in_tons),
                }
            )

        if replacing is not None:
            AllocationService._warn_on_legacy_payments(db, replacing)
            db.delete(replacing)

        allocation = Allocation(
            id=uuid4(),
            order_id=order.id,
            order_line_id=line.id,
            supplier_id=supplier_id,
            item_id=line.item_id,
            quantity=qty,
            unit=normalized_unit.value,
            quantity_in_tons=qty_in_tons,
            price_per_ton=price,
            currency=code,
            total_sum=qty_in_tons * price,
            created_by=performed_by
        )
        db.add(allocation)
        touch_order(order)

        details = {
            "order_id": str(order.id),
            "order_line_id": str(line.id),
            "supplier_id": str(supplier_id),
            "quantity_in_tons": str(qty_in_tons),
            "price_per_ton": str(price),
            "currency": code,
        }
        if replacing is not None:
            details["replaced_allocation_id"] = str(replacing.id)
        AuditService.log(
            db, "REPLACE_ALLOCATION" if replacing is not None else "CREATE_ALLOCATION",
            "Allocation", allocation.id, performed_by, details
        )
        commit_or_conflict(db)
        db.refresh(allocation)

        logger.info(
            f"Allocated {qty_in_tons} t of {order.order_number} to supplier {supplier_id} "
            f"at {price} {code}/t"
        )
        return allocation

    @staticmethod
    def deallocate(db: Session, allocation: Allocation, performed_by: Optional[UUID] = None) -> None:
        """Remove an allocation. Callers must not retract allocations that already carry payments."""
        allocation_id = allocation.id
        AllocationService._warn_on_legacy_payments(db, allocation)
        AuditService.log(
            db, "DELETE_ALLOCATION", "Allocation", allocation_id, performed_by,
            {
                "order_id": str(allocation.order_id),
                "order_line_id": str(allocation.order_line_id),
                "supplier_id": str(allocation.supplier_id),
            }
        )
        db.delete(allocation)
        commit_or_conflict(db)
        logger.info(f"Removed allocation {allocation_id}")

    @staticmethod
    def _warn_on_legacy_payments(db: Session, allocation: Allocation) -> None:
        count = db.query(PaymentOperation).filter(PaymentOperation.allocation_id == allocation.id).count()
        if count:
            logger.warning(f"Allocation {allocation.id} is removed with {count} legacy payments attached")
