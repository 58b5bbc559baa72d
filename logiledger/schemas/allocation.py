"""
Allocation Schemas
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal

class AllocationSpec(BaseModel):
    supplier_id: UUID
    quantity: Decimal
    unit: str = "t"
    price_per_ton: Decimal
    currency: str = "USD"

class AllocationCreate(AllocationSpec):
    order_line_id: UUID

class AllocationResponse(BaseModel):
    id: UUID
    order_id: UUID
    order_line_id: UUID
    supplier_id: UUID
    item_id: Optional[UUID]
    quantity: Decimal
    unit: str
    quantity_in_tons: Decimal
    price_per_ton: Decimal
    currency: str
    total_sum: Decimal
    created_at: datetime

    class Config:
        from_attributes = True

class LineRemainingResponse(BaseModel):
    order_line_id: UUID
    requested_in_tons: Decimal
    allocated_in_tons: Decimal
    remaining_in_tons: Decimal
