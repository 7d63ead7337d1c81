"""
Database models package.
"""

from ledger.models.account import Account, CreditCard
from ledger.models.category import Category
from ledger.models.recurrence import ExecutionWindow, Frequency
from ledger.models.transaction import Transaction, TransactionType

__all__ = [
    "Account",
    "CreditCard",
    "Category",
    "ExecutionWindow",
    "Frequency",
    "Transaction",
    "TransactionType",
]
