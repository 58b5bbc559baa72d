"""
Ledger Errors

Every guard in the ledger raises one of these before touching state, so a
failure never leaves a partial change behind.
"""


class LedgerError(Exception):
    """Base class for caller-recoverable ledger validation failures."""

    error_code = "ledger_error"
    status_code = 400

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Input validation

class InvalidUnit(LedgerError):
    """Raised when a quantity unit tag is not recognized."""

    error_code = "invalid_unit"
    status_code = 422


class InvalidQuantity(LedgerError):
    """Raised for negative (or, for allocations, non-positive) quantities."""

    error_code = "invalid_quantity"
    status_code = 422


class InvalidAmount(LedgerError):
    """Raised for non-positive payment amounts or prices."""

    error_code = "invalid_amount"
    status_code = 422


class InvalidCurrency(LedgerError):
    """Raised when a currency is unsupported or disagrees with its target."""

    error_code = "invalid_currency"
    status_code = 422


# Lifecycle guards

class OrderNotEditable(LedgerError):
    """Raised when an operation needs the order in a state it is not in."""

    error_code = "order_not_editable"
    status_code = 409


class InvalidTransition(LedgerError):
    """Raised for status transitions outside the lifecycle table."""

    error_code = "invalid_transition"
    status_code = 409


class IncompleteAllocation(LedgerError):
    """Raised when an order is distributed before every line is allocated."""

    error_code = "incomplete_allocation"
    status_code = 409


# Ledger invariants

class OverAllocation(LedgerError):
    """Raised when allocations would exceed the requested line quantity."""

    error_code = "over_allocation"
    status_code = 409


class AmountExceedsRemaining(LedgerError):
    """Raised when a payment is larger than what is still owed."""

    error_code = "amount_exceeds_remaining"
    status_code = 409


class ConcurrentModification(LedgerError):
    """Raised when the order changed underneath a write (stale version)."""

    error_code = "concurrent_modification"
    status_code = 409


class NotFound(LedgerError):
    """Raised when a referenced record does not exist."""

    error_code = "not_found"
    status_code = 404
