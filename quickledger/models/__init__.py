from .base import Base
from .category import Category
from .pending import PendingEntry, ProcessedEvent
from .transaction import Transaction, TransactionType
from .wallet import Wallet, WalletType

__all__ = [
    "Base",
    "Category",
    "PendingEntry",
    "ProcessedEvent",
    "Transaction",
    "TransactionType",
    "Wallet",
    "WalletType",
]
