# Services Package
from .audit_service import AuditService
from .order_service import OrderService, OrderNumberSequence
from .allocation_service import AllocationService
from .settlement_service import (
    SettlementService, PaymentTarget, LegacyAllocationTarget, SupplierOrderTarget
)
from .lifecycle_service import LifecycleService, STATUS_TRANSITIONS
from . import units

__all__ = [
    "AuditService",
    "OrderService",
    "OrderNumberSequence",
    "AllocationService",
    "SettlementService",
    "PaymentTarget",
    "LegacyAllocationTarget",
    "SupplierOrderTarget",
    "LifecycleService",
    "STATUS_TRANSITIONS",
    "units",
]
