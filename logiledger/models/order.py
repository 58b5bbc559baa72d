"""
Order Models
"""
import enum
from sqlalchemy import Column, String, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from logiledger.core import Base, settings
from .base import UUIDMixin, TimestampMixin, LedgerNumeric

class OrderStatus(str, enum.Enum):
    DRAFT = "DRAFT"              # Editable cart
    LOCKED = "LOCKED"            # Closed for editing, ready for distribution
    DISTRIBUTED = "DISTRIBUTED"  # Every line fully allocated to suppliers
    FINANCIAL = "FINANCIAL"      # Every supplier/currency group fully paid
    COMPLETED = "COMPLETED"

class OrderHeader(Base, UUIDMixin, TimestampMixin):
    """Order Header"""
    __tablename__ = "order_header"
    
    order_number = Column(String(30), unique=True, nullable=False, index=True)  # ORD-001
    status = Column(String(20), default=OrderStatus.DRAFT.value, nullable=False, index=True)
    
    # Tons per container (NULL = configured default)
    container_tonnage = Column(LedgerNumeric())
    
    created_by = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"))
    
    # Optimistic concurrency counter
    version = Column(Integer, nullable=False, default=1)
    
    # Relationships
    creator = relationship("AppUser", back_populates="orders_created")
    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.created_at")
    allocations = relationship("Allocation", back_populates="order")
    
    __mapper_args__ = {"version_id_col": version}
    
    @property
    def effective_container_tonnage(self):
        return self.container_tonnage or settings.DEFAULT_CONTAINER_TONNAGE
    
    def __repr__(self):
        return f"<OrderHeader {self.order_number} ({self.status})>"

class OrderLine(Base, UUIDMixin, TimestampMixin):
    """Requested line of an order"""
    __tablename__ = "order_line"
    
    order_id = Column(Uuid(as_uuid=True), ForeignKey("order_header.id"), nullable=False, index=True)
    item_id = Column(Uuid(as_uuid=True), ForeignKey("item.id"), nullable=False)
    
    # As entered
    quantity = Column(LedgerNumeric(), nullable=False)
    unit = Column(String(20), nullable=False)  # t, kg, container
    
    # Normalized once at insertion
    quantity_in_tons = Column(LedgerNumeric(), nullable=False)
    
    # Relationships
    order = relationship("OrderHeader", back_populates="lines")
    item = relationship("Item", back_populates="order_lines")
    allocations = relationship("Allocation", back_populates="order_line")
