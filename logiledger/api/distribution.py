"""
Distribution API - allocate order lines to suppliers
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from logiledger.core import get_db
from logiledger.models import Allocation
from logiledger.schemas import AllocationCreate, AllocationSpec, AllocationResponse, LineRemainingResponse
from logiledger.services import AllocationService, OrderService
from .deps import get_current_user_id

distribution_router = APIRouter(prefix="/distribution", tags=["Distribution"])


def allocation_response(allocation: Allocation) -> AllocationResponse:
    return AllocationResponse(
        id=allocation.id,
        order_id=allocation.order_id,
        order_line_id=allocation.order_line_id,
        supplier_id=allocation.supplier_id,
        item_id=allocation.item_id,
        quantity=allocation.quantity,
        unit=allocation.unit,
        quantity_in_tons=allocation.quantity_in_tons,
        price_per_ton=allocation.price_per_ton,
        currency=allocation.effective_currency,
        total_sum=allocation.total_sum,
        created_at=allocation.created_at
    )


@distribution_router.get("/orders/{order_id}/allocations", response_model=List[AllocationResponse])
def list_allocations(order_id: UUID, db: Session = Depends(get_db)):
    order = OrderService.require_order(db, order_id)
    return [allocation_response(a) for a in AllocationService.get_allocations(db, order.id)]


@distribution_router.post("/allocations", response_model=AllocationResponse, status_code=201)
def create_allocation(
    data: AllocationCreate,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    line = OrderService.require_line(db, data.order_line_id)
    allocation = AllocationService.allocate(
        db, line, data.supplier_id, data.quantity, data.unit,
        data.price_per_ton, data.currency, performed_by=user_id
    )
    return allocation_response(allocation)


@distribution_router.put("/allocations/{allocation_id}", response_model=AllocationResponse)
def replace_allocation(
    allocation_id: UUID,
    spec: AllocationSpec,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    allocation = AllocationService.require_allocation(db, allocation_id)
    return allocation_response(AllocationService.replace_allocation(db, allocation, spec, performed_by=user_id))


@distribution_router.delete("/allocations/{allocation_id}")
def delete_allocation(
    allocation_id: UUID,
    db: Session = Depends(get_db),
    user_id: Optional[UUID] = Depends(get_current_user_id)
):
    allocation = AllocationService.require_allocation(db, allocation_id)
    AllocationService.deallocate(db, allocation, performed_by=user_id)
    return {"success": True}


@distribution_router.get("/lines/{line_id}/remaining", response_model=LineRemainingResponse)
def line_remaining(line_id: UUID, db: Session = Depends(get_db)):
    line = OrderService.require_line(db, line_id)
    allocated = AllocationService.allocated_for_line(db, line)
    return LineRemainingResponse(
        order_line_id=line.id,
        requested_in_tons=line.quantity_in_tons,
        allocated_in_tons=allocated,
        remaining_in_tons=line.quantity_in_tons - allocated
    )
