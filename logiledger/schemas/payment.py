"""
Payment & Settlement Schemas
"""
from pydantic import BaseModel, model_validator
from typing import Optional, List, Dict
from datetime import date, datetime
from uuid import UUID
from decimal import Decimal

from logiledger.models import PaymentType

class PaymentCreate(BaseModel):
    """
    Either supplier_id + currency (supplier-level payment)
    or allocation_id (legacy single-allocation payment).
    """
    payment_type: PaymentType
    amount: Decimal
    supplier_id: Optional[UUID] = None
    allocation_id: Optional[UUID] = None
    currency: Optional[str] = None
    payment_date: Optional[date] = None
    comment: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self):
        if (self.supplier_id is None) == (self.allocation_id is None):
            raise ValueError("Provide exactly one of supplier_id or allocation_id")
        if self.supplier_id is not None and not self.currency:
            raise ValueError("currency is required for supplier payments")
        return self

class PaymentResponse(BaseModel):
    id: UUID
    payment_type: str
    amount: Decimal
    currency: str
    payment_date: date
    comment: Optional[str]
    supplier_id: Optional[UUID]
    order_id: Optional[UUID]
    allocation_id: Optional[UUID]
    created_at: datetime

class SupplierSettlement(BaseModel):
    supplier_id: UUID
    currency: str
    total: Decimal
    paid: Decimal
    remaining: Decimal
    status: str  # UNPAID, PARTIAL, PAID

class CurrencyTotals(BaseModel):
    total: Decimal
    paid: Decimal
    remaining: Decimal

class SettlementSummary(BaseModel):
    order_id: UUID
    order_status: str
    fully_settled: bool
    suppliers: List[SupplierSettlement] = []
    totals_by_currency: Dict[str, CurrencyTotals] = {}
