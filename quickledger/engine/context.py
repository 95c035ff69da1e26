"""Collaborator protocols and the explicit context threaded through the engine."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence
from zoneinfo import ZoneInfo

from ..models.wallet import WalletType
from ..schemas.entry import CategoryEntry, TransactionRecord, WalletEntry
from .lexicon import Lexicon
from .pending import PendingStore
from .retry import RetryPolicy


class CategoryRegistry(Protocol):
    async def list_categories(self, ledger: str) -> Sequence[CategoryEntry]: ...

    async def get_category(self, ledger: str, category_id: str) -> Optional[CategoryEntry]: ...

    async def add_category_synonym(self, ledger: str, category_id: str, phrase: str) -> None:
        """Idempotent: adding a phrase that is already known is a no-op."""
        ...


class WalletRegistry(Protocol):
    async def list_wallets(self, ledger: str) -> Sequence[WalletEntry]: ...

    async def add_wallet_synonym(self, ledger: str, wallet_id: str, phrase: str) -> None: ...

    async def create_wallet(
        self, ledger: str, name: str, wallet_type: WalletType, synonyms: Sequence[str] = ()
    ) -> WalletEntry:
        """Create a wallet, or return the existing active one with the same name."""
        ...


class RecordStore(Protocol):
    async def get_record(self, ledger: str, record_id: str) -> Optional[TransactionRecord]: ...

    async def find_by_idempotency_key(
        self, ledger: str, idempotency_key: str
    ) -> Optional[TransactionRecord]: ...

    async def latest_record_id(self, ledger: str, prefix: str) -> Optional[str]:
        """Highest record id of the ledger starting with ``prefix``."""
        ...

    async def insert_record(self, record: TransactionRecord) -> TransactionRecord:
        """Raises ``DuplicateRecordError`` on a unique clash, ``TransientStorageError`` on outages."""
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EngineContext:
    categories: CategoryRegistry
    wallets: WalletRegistry
    records: RecordStore
    pending: PendingStore
    lexicon: Lexicon
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("Asia/Taipei"))
    pending_ttl_seconds: int = 600
    event_ttl_seconds: int = 60 * 60 * 24
    fuzzy_threshold: float = 0.6
    menu_limit: int = 13
    max_remark_length: int = 20
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    clock: Callable[[], datetime] = _utcnow
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def now(self) -> datetime:
        return self.clock()

    def local_now(self) -> datetime:
        return self.clock().astimezone(self.timezone)
