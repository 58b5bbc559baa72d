"""
Finance Models - supplier payment operations
"""
import enum
from sqlalchemy import Column, String, Date, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from logiledger.core import Base
from .base import UUIDMixin, TimestampMixin, LedgerNumeric
from .allocation import DEFAULT_CURRENCY

class PaymentType(str, enum.Enum):
    PREPAYMENT = "PREPAYMENT"
    PAYOFF = "PAYOFF"

class PaymentOperation(Base, UUIDMixin, TimestampMixin):
    """
    Cash movement towards a supplier. Append-only.
    Legacy rows point at a single allocation; current rows at supplier + order + currency.
    """
    __tablename__ = "payment_operation"
    
    payment_type = Column(String(20), nullable=False)  # PREPAYMENT, PAYOFF
    amount = Column(LedgerNumeric(), nullable=False)
    currency = Column(String(3))  # NULL on legacy rows = USD
    payment_date = Column(Date, nullable=False)
    comment = Column(Text)
    
    # Legacy target
    allocation_id = Column(Uuid(as_uuid=True), ForeignKey("allocation.id"), index=True)
    
    # Current target
    supplier_id = Column(Uuid(as_uuid=True), ForeignKey("supplier.id"), index=True)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), index=True)
    
    created_by = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"))
    
    # Relationships
    allocation = relationship("Allocation", back_populates="payments")
    supplier = relationship("Supplier")
    
    @property
    def is_legacy(self) -> bool:
        return self.allocation_id is not None
    
    @property
    def effective_currency(self) -> str:
        return self.currency or DEFAULT_CURRENCY
