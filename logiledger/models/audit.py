"""
Audit Log Model
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from logiledger.core import Base
from .base import UUIDMixin

class AuditLog(Base, UUIDMixin):
    """Audit Log for tracking ledger mutations"""
    __tablename__ = "audit_log"
    
    action = Column(String(40), nullable=False, index=True)  # CREATE_ORDER, CREATE_ALLOCATION, CREATE_PAYMENT, UPDATE_ORDER_STATUS, ...
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(50), nullable=False, index=True)
    
    user_id = Column(Uuid(as_uuid=True), ForeignKey("app_user.id"))
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    
    details = Column(JSON().with_variant(JSONB, "postgresql"))
