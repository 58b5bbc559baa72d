"""
Lifecycle Service - order status state machine

DRAFT -> LOCKED -> DISTRIBUTED -> FINANCIAL -> COMPLETED, with LOCKED -> DRAFT
as the only step back. Every transition writes an audit row.
"""
from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Union
from uuid import UUID
import logging

from logiledger.core import commit_or_conflict, flush_or_conflict
from logiledger.core.exceptions import InvalidTransition, IncompleteAllocation
from logiledger.models import OrderHeader, OrderStatus
from .allocation_service import AllocationService, touch_order
from .audit_service import AuditService

logger = logging.getLogger(__name__)


STATUS_TRANSITIONS: Dict[OrderStatus, List[OrderStatus]] = {
    OrderStatus.DRAFT: [OrderStatus.LOCKED],
    OrderStatus.LOCKED: [OrderStatus.DRAFT, OrderStatus.DISTRIBUTED],
    OrderStatus.DISTRIBUTED: [OrderStatus.FINANCIAL],
    OrderStatus.FINANCIAL: [OrderStatus.COMPLETED],
    OrderStatus.COMPLETED: [],
}


class LifecycleService:
    """Order status transitions"""

    @staticmethod
    def can_transition(current: Union[OrderStatus, str], target: Union[OrderStatus, str]) -> bool:
        return OrderStatus(target) in STATUS_TRANSITIONS.get(OrderStatus(current), [])

    @staticmethod
    def transition(
        db: Session,
        order: OrderHeader,
        target: Union[OrderStatus, str],
        performed_by: Optional[UUID] = None,
        action: Optional[str] = None,
        commit: bool = True
    ) -> OrderHeader:
        """
        Move an order along one edge of the state machine.

        Always audited as UPDATE_ORDER_STATUS; a named action (LOCK_ORDER,
        UNLOCK_ORDER) adds its own row. With commit=False the change is only
        flushed and the caller commits.
        """
        current = OrderStatus(order.status)
        target = OrderStatus(target)
        if not LifecycleService.can_transition(current, target):
            raise InvalidTransition(
                f"Order {order.order_number} cannot move from {current.value} to {target.value}",
                details={"from": current.value, "to": target.value}
            )

        order.status = target.value
        touch_order(order)
        details = {"order_number": order.order_number, "from": current.value, "to": target.value}
        AuditService.log(db, "UPDATE_ORDER_STATUS", "Order", order.id, performed_by, details)
        if action:
            AuditService.log(db, action, "Order", order.id, performed_by, details)

        if commit:
            commit_or_conflict(db)
            db.refresh(order)
        else:
            flush_or_conflict(db)

        logger.info(f"Order {order.order_number}: {current.value} -> {target.value}")
        return order

    @staticmethod
    def mark_distributed(db: Session, order: OrderHeader, performed_by: Optional[UUID] = None) -> OrderHeader:
        """LOCKED -> DISTRIBUTED once every line is fully allocated"""
        if order.status == OrderStatus.LOCKED.value and not AllocationService.is_fully_allocated(db, order):
            remaining = {
                str(line.id): str(AllocationService.remaining_for_line(db, line))
                for line in order.lines
                if AllocationService.remaining_for_line(db, line) != 0
            }
            raise IncompleteAllocation(
                f"Order {order.order_number} still has unallocated lines",
                details={"remaining_in_tons": remaining}
            )
        LifecycleService.transition(db, order, OrderStatus.DISTRIBUTED, performed_by, commit=False)
        # Prepayments may already cover every supplier
        LifecycleService.advance_after_payment(db, order, performed_by, commit=False)
        commit_or_conflict(db)
        db.refresh(order)
        return order

    @staticmethod
    def advance_after_payment(
        db: Session,
        order: OrderHeader,
        performed_by: Optional[UUID] = None,
        commit: bool = True
    ) -> bool:
        """DISTRIBUTED -> FINANCIAL when every supplier is paid; returns True if the order moved"""
        from .settlement_service import SettlementService

        if order.status != OrderStatus.DISTRIBUTED.value:
            return False
        if not SettlementService.is_fully_settled(db, order):
            return False
        LifecycleService.transition(db, order, OrderStatus.FINANCIAL, performed_by, commit=commit)
        return True

    @staticmethod
    def complete(db: Session, order: OrderHeader, performed_by: Optional[UUID] = None) -> OrderHeader:
        """FINANCIAL -> COMPLETED"""
        return LifecycleService.transition(db, order, OrderStatus.COMPLETED, performed_by)
