"""
Finance API - supplier payments and settlement overview
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from logiledger.core import get_db
from logiledger.core.exceptions import NotFound
from logiledger.models import PaymentOperation
from logiledger.schemas import PaymentCreate, PaymentResponse, SettlementSummary
from logiledger.services import (
    AllocationService, OrderService, SettlementService, LegacyAllocationTarget, SupplierOrderTarget
)
from .deps import get_current_user_id

finance_router = APIRouter(prefix="/finance", tags=["Finance"])


def payment_response(payment: PaymentOperation) -> PaymentResponse:
    order_id = payment.order_id
    supplier_id = payment.supplier_id
    if payment.is_legacy and payment.allocation is not None:
        order_id = payment.allocation.order_id
        supplier_id = payment.allocation.supplier_id
    return PaymentResponse(
        id=payment.id,
        payment_type=payment.payment_type,
        amount=payment.amount,
        currency=payment.effective_currency,
        payment_date=payment.payment_date,
        comment=payment.comment,
        supplier_id=supplier_id,
        order_id=order_id,
        allocation_id=payment.allocation_id,
        created_at=payment.created_at
    )


@finance_router.post("/orders/{order_id}/payments", response_model=PaymentResponse, status_code=201)
def record_payment(
    order_id: UUID,
    data: PaymentCreate,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    """
    Record a prepayment or payoff.
    Supplier payments need supplier_id + currency; legacy payments name an allocation.
    """
    order = OrderService.require_order(db, order_id)
    if data.allocation_id is not None:
        allocation = AllocationService.require_allocation(db, data.allocation_id)
        if allocation.order_id != order.id:
            raise NotFound(f"Allocation {data.allocation_id} not found on order {order_id}")
        target = LegacyAllocationTarget(allocation_id=allocation.id)
    else:
        target = SupplierOrderTarget(supplier_id=data.supplier_id, order_id=order.id, currency=data.currency)

    payment = SettlementService.record_payment(
        db, target, data.payment_type, data.amount,
        currency=data.currency,
        payment_date=data.payment_date,
        performed_by=user_id,
        comment=data.comment
    )
    return payment_response(payment)


@finance_router.get("/orders/{order_id}/payments", response_model=List[PaymentResponse])
def list_payments(order_id: UUID, db: Session = Depends(get_db)):
    order = OrderService.require_order(db, order_id)
    return [payment_response(p) for p in SettlementService.get_payments(db, order)]


@finance_router.get("/orders/{order_id}/summary", response_model=SettlementSummary)
def settlement_summary(order_id: UUID, db: Session = Depends(get_db)):
    order = OrderService.require_order(db, order_id)
    return SettlementService.settlement_summary(db, order)
