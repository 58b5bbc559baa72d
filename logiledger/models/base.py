"""
Base Model Mixins
"""
from decimal import Decimal
from sqlalchemy import Column, DateTime, Numeric, String, Uuid, func
from sqlalchemy.types import TypeDecorator
import uuid

class UUIDMixin:
    """Mixin for UUID primary key"""
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

class ExactDecimal(TypeDecorator):
    """Decimal kept as text, for backends where NUMERIC round-trips through float"""
    impl = String(48)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)

def LedgerNumeric():
    """NUMERIC on PostgreSQL, exact decimal text on SQLite"""
    return Numeric(24, 8, asdecimal=True).with_variant(ExactDecimal(), "sqlite")
