"""
Order Service - Order header, requested lines and order numbering
"""
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging
import re

from logiledger.core import settings, commit_or_conflict
from logiledger.core.exceptions import OrderNotEditable, InvalidQuantity, InvalidTransition, NotFound
from logiledger.models import OrderHeader, OrderLine, OrderStatus
from logiledger.schemas.order import OrderCreate, OrderLineCreate
from .audit_service import AuditService
from .units import to_canonical, to_decimal, normalize_unit

logger = logging.getLogger(__name__)


class OrderNumberSequence:
    """
    Monotonic order-number generator (ORD-001, ORD-002, ...).
    Seeded once at startup from the highest persisted number.
    """

    def __init__(self, prefix: Optional[str] = None, start: int = 1):
        self.prefix = prefix or settings.ORDER_NUMBER_PREFIX
        self._next = start
        self._pattern = re.compile(rf"^{re.escape(self.prefix)}-(\d+)$")

    def initialize(self, db: Session) -> None:
        """Scan persisted orders and continue after the highest number"""
        highest = 0
        for (number,) in db.query(OrderHeader.order_number).all():
            match = self._pattern.match(number or "")
            if match:
                highest = max(highest, int(match.group(1)))
        self._next = max(self._next, highest + 1)
        logger.info(f"Order number sequence starts at {self.prefix}-{self._next:03d}")

    def peek(self) -> str:
        return f"{self.prefix}-{self._next:03d}"

    def next_number(self) -> str:
        number = self.peek()
        self._next += 1
        return number

    def release(self, number: str) -> None:
        """Hand back a number whose create failed, if nothing was issued after it"""
        if number == f"{self.prefix}-{self._next - 1:03d}":
            self._next -= 1


class OrderService:
    """Order & line business logic"""

    @staticmethod
    def get_orders(db: Session, status: Optional[str] = None) -> List[OrderHeader]:
        """Get orders, newest first"""
        query = db.query(OrderHeader)
        if status and status != "all":
            query = query.filter(OrderHeader.status == status.upper())
        return query.order_by(OrderHeader.created_at.desc(), OrderHeader.order_number.desc()).all()

    @staticmethod
    def get_order(db: Session, order_id: UUID) -> Optional[OrderHeader]:
        """Get order by ID"""
        return db.query(OrderHeader).filter(OrderHeader.id == order_id).first()

    @staticmethod
    def require_order(db: Session, order_id: UUID) -> OrderHeader:
        order = OrderService.get_order(db, order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order

    @staticmethod
    def get_line(db: Session, line_id: UUID) -> Optional[OrderLine]:
        return db.query(OrderLine).filter(OrderLine.id == line_id).first()

    @staticmethod
    def require_line(db: Session, line_id: UUID) -> OrderLine:
        line = OrderService.get_line(db, line_id)
        if not line:
            raise NotFound(f"Order line {line_id} not found")
        return line

    @staticmethod
    def _build_line(order: OrderHeader, line_data: OrderLineCreate) -> OrderLine:
        unit = normalize_unit(line_data.unit)
        quantity = to_decimal(line_data.quantity)
        return OrderLine(
            item_id=line_data.item_id,
            quantity=quantity,
            unit=unit.value,
            quantity_in_tons=to_canonical(quantity, unit, order.effective_container_tonnage)
        )

    @staticmethod
    def create_order(
        db: Session,
        sequence: OrderNumberSequence,
        order_data: OrderCreate,
        created_by: Optional[UUID] = None
    ) -> OrderHeader:
        """Create a new DRAFT order, optionally with its first lines"""
        order = OrderHeader(
            status=OrderStatus.DRAFT.value,
            container_tonnage=order_data.container_tonnage,
            created_by=created_by
        )
        if order_data.container_tonnage is not None and order_data.container_tonnage <= 0:
            raise InvalidQuantity(f"Container tonnage must be positive: {order_data.container_tonnage}")

        # Convert every line before anything is staged
        for line_data in order_data.lines:
            order.lines.append(OrderService._build_line(order, line_data))

        order_number = sequence.next_number()
        order.order_number = order_number
        try:
            db.add(order)
            db.flush()

            AuditService.log(
                db, "CREATE_ORDER", "Order", order.id, created_by,
                {"order_number": order_number, "lines": len(order.lines)}
            )
            commit_or_conflict(db)
        except Exception:
            db.rollback()
            sequence.release(order_number)
            raise
        db.refresh(order)

        logger.info(f"Created order {order.order_number} with {len(order.lines)} lines")
        return order

    @staticmethod
    def add_line(
        db: Session,
        order: OrderHeader,
        line_data: OrderLineCreate,
        performed_by: Optional[UUID] = None
    ) -> OrderLine:
        """Add a requested line to a DRAFT order"""
        if order.status != OrderStatus.DRAFT.value:
            raise OrderNotEditable(f"Order {order.order_number} is {order.status}, lines can only change in DRAFT")

        line = OrderService._build_line(order, line_data)
        order.lines.append(line)
        db.flush()

        AuditService.log(
            db, "ADD_ORDER_LINE", "OrderLine", line.id, performed_by,
            {"order_id": str(order.id), "item_id": str(line.item_id), "quantity_in_tons": str(line.quantity_in_tons)}
        )
        commit_or_conflict(db)
        db.refresh(line)
        return line

    @staticmethod
    def delete_line(db: Session, line: OrderLine, performed_by: Optional[UUID] = None) -> None:
        """Remove a line from a DRAFT order"""
        order = line.order
        if order.status != OrderStatus.DRAFT.value:
            raise OrderNotEditable(f"Order {order.order_number} is {order.status}, lines can only change in DRAFT")

        AuditService.log(db, "DELETE_ORDER_LINE", "OrderLine", line.id, performed_by, {"order_id": str(order.id)})
        order.lines.remove(line)
        commit_or_conflict(db)

    @staticmethod
    def delete_order(db: Session, order: OrderHeader, performed_by: Optional[UUID] = None) -> None:
        """Delete a DRAFT order together with its lines"""
        if order.status != OrderStatus.DRAFT.value:
            raise OrderNotEditable(f"Order {order.order_number} is {order.status}, only DRAFT orders can be deleted")

        order_number = order.order_number
        AuditService.log(
            db, "DELETE_ORDER", "Order", order.id, performed_by,
            {"order_number": order_number, "lines": len(order.lines)}
        )
        db.delete(order)
        commit_or_conflict(db)
        logger.info(f"Deleted order {order_number}")

    @staticmethod
    def lock(db: Session, order: OrderHeader, performed_by: Optional[UUID] = None) -> OrderHeader:
        """DRAFT -> LOCKED"""
        from .lifecycle_service import LifecycleService
        return LifecycleService.transition(db, order, OrderStatus.LOCKED, performed_by, action="LOCK_ORDER")

    @staticmethod
    def unlock(db: Session, order: OrderHeader, performed_by: Optional[UUID] = None) -> OrderHeader:
        """LOCKED -> DRAFT, only while nothing is allocated yet"""
        from .allocation_service import AllocationService
        from .lifecycle_service import LifecycleService
        allocations = AllocationService.get_allocations(db, order.id)
        if allocations:
            raise InvalidTransition(
                f"Order {order.order_number} has {len(allocations)} allocations, remove them before unlocking",
                details={"allocations": len(allocations)}
            )
        return LifecycleService.transition(db, order, OrderStatus.DRAFT, performed_by, action="UNLOCK_ORDER")
