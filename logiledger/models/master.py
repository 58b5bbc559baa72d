"""
Master Tables: AppUser, Supplier, Item
"""
from sqlalchemy import Column, String, Boolean, Text
from sqlalchemy.orm import relationship
from logiledger.core import Base
from .base import UUIDMixin, TimestampMixin

class AppUser(Base, UUIDMixin, TimestampMixin):
    """Application User"""
    __tablename__ = "app_user"
    
    username = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(200))
    role = Column(String(20), default="logist")  # admin, logist, finance
    is_active = Column(Boolean, default=True)
    
    # Relationships
    orders_created = relationship("OrderHeader", back_populates="creator")

class Supplier(Base, UUIDMixin, TimestampMixin):
    """Supplier"""
    __tablename__ = "supplier"
    
    name = Column(String(200), nullable=False)
    contacts = Column(Text)
    notes = Column(Text)
    
    # Relationships
    allocations = relationship("Allocation", back_populates="supplier")

class Item(Base, UUIDMixin, TimestampMixin):
    """Goods item (nomenclature)"""
    __tablename__ = "item"
    
    name = Column(String(300), nullable=False)
    unit = Column(String(20), default="t")  # t, kg
    category = Column(String(100))
    description = Column(Text)
    
    # Relationships
    order_lines = relationship("OrderLine", back_populates="item")
