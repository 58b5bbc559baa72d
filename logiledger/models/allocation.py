"""
Allocation Model - share of an order line assigned to a supplier
"""
from sqlalchemy import Column, String, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from logiledger.core import Base
from .base import UUIDMixin, TimestampMixin, LedgerNumeric

DEFAULT_CURRENCY = "USD"
SUPPORTED_CURRENCIES = ("USD", "UZS")

class Allocation(Base, UUIDMixin, TimestampMixin):
    """Supplier allocation of an order line"""
    __tablename__ = "allocation"
    
    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), nullable=False, index=True)
    order_line_id = Column(Uuid(as_uuid=True), ForeignKey("order_line.id"), nullable=False, index=True)
    supplier_id = Column(Uuid(as_uuid=True), ForeignKey("supplier.id"), nullable=False, index=True)
    item_id = Column(Uuid(as_uuid=True), ForeignKey("item.id"))
    
    quantity = Column(LedgerNumeric(), nullable=False)
    unit = Column(String(20), nullable=False)
    quantity_in_tons = Column(LedgerNumeric(), nullable=False)
    price_per_ton = Column(LedgerNumeric(), nullable=False)
    currency = Column(String(3))  # USD, UZS (NULL on legacy rows = USD)
    
    # quantity_in_tons * price_per_ton, never edited in place
    total_sum = Column(LedgerNumeric(), nullable=False)
    
    created_by = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"))
    
    # Relationships
    order = relationship("OrderHeader", back_populates="allocations")
    order_line = relationship("OrderLine", back_populates="allocations")
    supplier = relationship("Supplier", back_populates="allocations")
    payments = relationship("PaymentOperation", back_populates="allocation", passive_deletes="all")  # payments outlive their allocation
    
    @property
    def effective_currency(self) -> str:
        return self.currency or DEFAULT_CURRENCY
