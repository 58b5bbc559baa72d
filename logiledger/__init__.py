"""
LogiLedger - Order Allocation & Settlement Ledger
"""
__version__ = "1.0.0"
