"""
Order Schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal

class OrderLineCreate(BaseModel):
    item_id: UUID
    quantity: Decimal
    unit: str = "t"

class OrderCreate(BaseModel):
    container_tonnage: Optional[Decimal] = None
    lines: List[OrderLineCreate] = []

class OrderLineResponse(BaseModel):
    id: UUID
    item_id: UUID
    quantity: Decimal
    unit: str
    quantity_in_tons: Decimal
    remaining_in_tons: Optional[Decimal] = None

    class Config:
        from_attributes = True

class OrderResponse(BaseModel):
    id: UUID
    order_number: str
    status: str
    container_tonnage: Decimal
    created_by: Optional[UUID]
    created_at: datetime
    lines: List[OrderLineResponse] = []

    class Config:
        from_attributes = True
