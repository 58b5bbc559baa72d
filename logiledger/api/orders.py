"""
Orders API - order header, lines and status transitions
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from logiledger.core import get_db
from logiledger.core.exceptions import NotFound
from logiledger.models import OrderHeader, OrderStatus
from logiledger.schemas import OrderCreate, OrderLineCreate, OrderResponse, OrderLineResponse
from logiledger.services import AllocationService, LifecycleService, OrderService, OrderNumberSequence
from .deps import get_current_user_id, get_order_sequence

orders_router = APIRouter(prefix="/orders", tags=["Orders"])


def order_response(db: Session, order: OrderHeader) -> OrderResponse:
    """Order with its lines; remaining tons are shown once distribution starts"""
    show_remaining = order.status != OrderStatus.DRAFT.value
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        status=order.status,
        container_tonnage=order.effective_container_tonnage,
        created_by=order.created_by,
        created_at=order.created_at,
        lines=[
            OrderLineResponse(
                id=line.id,
                item_id=line.item_id,
                quantity=line.quantity,
                unit=line.unit,
                quantity_in_tons=line.quantity_in_tons,
                remaining_in_tons=AllocationService.remaining_for_line(db, line) if show_remaining else None
            )
            for line in order.lines
        ]
    )


# ===================== ORDERS =====================

@orders_router.get("", response_model=List[OrderResponse])
def list_orders(
    status: Optional[str] = Query(None, description="DRAFT, LOCKED, DISTRIBUTED, FINANCIAL, COMPLETED or all"),
    db: Session = Depends(get_db)
):
    return [order_response(db, o) for o in OrderService.get_orders(db, status)]


@orders_router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    order_data: OrderCreate,
    db: Session = Depends(get_db),
    sequence: OrderNumberSequence = Depends(get_order_sequence),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    order = OrderService.create_order(db, sequence, order_data, created_by=user_id)
    return order_response(db, order)


@orders_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: UUID, db: Session = Depends(get_db)):
    return order_response(db, OrderService.require_order(db, order_id))


@orders_router.delete("/{order_id}")
def delete_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    order = OrderService.require_order(db, order_id)
    OrderService.delete_order(db, order, performed_by=user_id)
    return {"success": True}


# ===================== LINES =====================

@orders_router.post("/{order_id}/lines", response_model=OrderLineResponse, status_code=201)
def add_line(
    order_id: UUID,
    line_data: OrderLineCreate,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    order = OrderService.require_order(db, order_id)
    return OrderService.add_line(db, order, line_data, performed_by=user_id)


@orders_router.delete("/{order_id}/lines/{line_id}")
def delete_line(
    order_id: UUID,
    line_id: UUID,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    line = OrderService.require_line(db, line_id)
    if line.order_id != order_id:
        raise NotFound(f"Order line {line_id} not found on order {order_id}")
    OrderService.delete_line(db, line, performed_by=user_id)
    return {"success": True}


# ===================== STATUS =====================

@orders_router.post("/{order_id}/lock", response_model=OrderResponse)
def lock_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    order = OrderService.lock(db, OrderService.require_order(db, order_id), performed_by=user_id)
    return order_response(db, order)


@orders_router.post("/{order_id}/unlock", response_model=OrderResponse)
def unlock_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    order = OrderService.unlock(db, OrderService.require_order(db, order_id), performed_by=user_id)
    return order_response(db, order)


@orders_router.post("/{order_id}/distribute", response_model=OrderResponse)
def distribute_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    order = LifecycleService.mark_distributed(db, OrderService.require_order(db, order_id), performed_by=user_id)
    return order_response(db, order)


@orders_router.post("/{order_id}/complete", response_model=OrderResponse)
def complete_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    order = LifecycleService.complete(db, OrderService.require_order(db, order_id), performed_by=user_id)
    return order_response(db, order)
