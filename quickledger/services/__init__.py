from .engine import build_context, build_engine
from .records import get_record, list_transactions
from .registry import (
    add_category_synonym,
    add_wallet_synonym,
    create_category,
    create_wallet,
    get_category,
    get_wallet,
    list_categories,
    list_wallets,
)

__all__ = [
    "build_context",
    "build_engine",
    "get_record",
    "list_transactions",
    "list_categories",
    "get_category",
    "create_category",
    "add_category_synonym",
    "list_wallets",
    "get_wallet",
    "create_wallet",
    "add_wallet_synonym",
]
