# Pydantic Schemas Package
from .order import OrderCreate, OrderLineCreate, OrderResponse, OrderLineResponse
from .allocation import AllocationSpec, AllocationCreate, AllocationResponse, LineRemainingResponse
from .payment import PaymentCreate, PaymentResponse, SupplierSettlement, CurrencyTotals, SettlementSummary

__all__ = [
    "OrderCreate", "OrderLineCreate", "OrderResponse", "OrderLineResponse",
    "AllocationSpec", "AllocationCreate", "AllocationResponse", "LineRemainingResponse",
    "PaymentCreate", "PaymentResponse", "SupplierSettlement", "CurrencyTotals", "SettlementSummary",
]
