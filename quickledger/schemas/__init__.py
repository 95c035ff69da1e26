from .category import CategoryCreate, CategoryRead, SynonymCreate
from .entry import (
    CategoryEntry,
    ParsedEntry,
    PendingDisambiguation,
    PendingKind,
    PendingStep,
    TransactionRecord,
    WalletEntry,
)
from .transaction import (
    CallbackRequest,
    ChoiceRead,
    EntryRequest,
    RecordRead,
    ReplyRead,
    TransactionRead,
)
from .wallet import WalletCreate, WalletRead

__all__ = [
    "CallbackRequest",
    "CategoryCreate",
    "CategoryEntry",
    "CategoryRead",
    "ChoiceRead",
    "EntryRequest",
    "ParsedEntry",
    "PendingDisambiguation",
    "PendingKind",
    "PendingStep",
    "RecordRead",
    "ReplyRead",
    "SynonymCreate",
    "TransactionRead",
    "TransactionRecord",
    "WalletCreate",
    "WalletEntry",
    "WalletRead",
]
