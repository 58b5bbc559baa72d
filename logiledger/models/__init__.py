from .base import TimestampMixin, UUIDMixin, ExactDecimal, LedgerNumeric
from .master import AppUser, Supplier, Item
from .order import OrderHeader, OrderLine, OrderStatus
from .allocation import Allocation, DEFAULT_CURRENCY, SUPPORTED_CURRENCIES
from .finance import PaymentOperation, PaymentType
from .audit import AuditLog

__all__ = [
    # Base
    "TimestampMixin", "UUIDMixin", "ExactDecimal", "LedgerNumeric",
    # Master
    "AppUser", "Supplier", "Item",
    # Order
    "OrderHeader", "OrderLine", "OrderStatus",
    # Allocation
    "Allocation", "DEFAULT_CURRENCY", "SUPPORTED_CURRENCIES",
    # Finance
    "PaymentOperation", "PaymentType",
    # Audit
    "AuditLog",
]
