"""
Ledger Module
"""
from .balance import BalanceLedger, DebitResult, DEFAULT_BALANCE
from .purchases import LineTotal, PurchaseResult, PurchaseService

__all__ = [
    "BalanceLedger",
    "DebitResult",
    "DEFAULT_BALANCE",
    "LineTotal",
    "PurchaseResult",
    "PurchaseService",
]
