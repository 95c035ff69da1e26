"""In-memory stand-ins for the SQL adapters used by engine tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from quickledger.engine.context import EngineContext
from quickledger.engine.errors import DuplicateRecordError
from quickledger.engine.lexicon import load_lexicon
from quickledger.engine.pending import MemoryPendingStore
from quickledger.engine.retry import RetryPolicy
from quickledger.models.wallet import WalletType
from quickledger.schemas.entry import CategoryEntry, TransactionRecord, WalletEntry

# 2025-12-18 12:30 in Asia/Taipei.
FIXED_NOW = datetime(2025, 12, 18, 4, 30, tzinfo=timezone.utc)


def sample_categories() -> list[CategoryEntry]:
    return [
        CategoryEntry(id="101", name="午餐", synonyms=frozenset({"中餐", "便當"})),
        CategoryEntry(id="102", name="早餐"),
        CategoryEntry(id="103", name="飲料", synonyms=frozenset({"手搖飲"})),
        CategoryEntry(id="104", name="便利商店"),
        CategoryEntry(id="201", name="交通費", synonyms=frozenset({"捷運", "計程車"})),
        CategoryEntry(id="801", name="薪水", is_income=True),
        CategoryEntry(id="999", name="停用科目", synonyms=frozenset({"飯糰"}), active=False),
    ]


def sample_wallets() -> list[WalletEntry]:
    return [
        WalletEntry(id="w-cash", name="現金", type=WalletType.CASH),
        WalletEntry(id="w-dbs", name="星展銀行", type=WalletType.BANK),
    ]


class FrozenClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeCategoryRegistry:
    def __init__(self, categories: Sequence[CategoryEntry] = ()) -> None:
        self.categories = list(categories)
        self.learned: list[tuple[str, str]] = []

    async def list_categories(self, ledger: str) -> list[CategoryEntry]:
        return list(self.categories)

    async def get_category(self, ledger: str, category_id: str) -> Optional[CategoryEntry]:
        return next((c for c in self.categories if c.id == category_id), None)

    async def add_category_synonym(self, ledger: str, category_id: str, phrase: str) -> None:
        self.learned.append((category_id, phrase))
        self.categories = [
            c.model_copy(update={"synonyms": c.synonyms | {phrase}}) if c.id == category_id else c
            for c in self.categories
        ]


class FakeWalletRegistry:
    def __init__(self, wallets: Sequence[WalletEntry] = ()) -> None:
        self.wallets = list(wallets)
        self.learned: list[tuple[str, str]] = []
        self.created: list[WalletEntry] = []

    async def list_wallets(self, ledger: str) -> list[WalletEntry]:
        return list(self.wallets)

    async def add_wallet_synonym(self, ledger: str, wallet_id: str, phrase: str) -> None:
        self.learned.append((wallet_id, phrase))
        self.wallets = [
            w.model_copy(update={"synonyms": w.synonyms | {phrase}}) if w.id == wallet_id else w
            for w in self.wallets
        ]

    async def create_wallet(
        self, ledger: str, name: str, wallet_type: WalletType, synonyms: Sequence[str] = ()
    ) -> WalletEntry:
        wallet = WalletEntry(
            id=f"w-new-{len(self.created) + 1}",
            name=name,
            type=wallet_type,
            synonyms=frozenset(synonyms),
        )
        self.created.append(wallet)
        self.wallets.append(wallet)
        return wallet


class FakeRecordStore:
    """Record store with unique (ledger, id) and (ledger, key) plus failure injection.

    ``fail_before_store`` exceptions are raised before anything is written,
    ``fail_after_store`` ones after the record was stored (a commit whose
    acknowledgement got lost). ``on_insert`` runs before each insert and can
    simulate a concurrent writer.
    """

    def __init__(self) -> None:
        self.records: list[TransactionRecord] = []
        self.fail_before_store: list[Exception] = []
        self.fail_after_store: list[Exception] = []
        self.on_insert: Optional[Callable[[TransactionRecord], None]] = None
        self.insert_calls = 0

    async def get_record(self, ledger: str, record_id: str) -> Optional[TransactionRecord]:
        return next((r for r in self.records if r.ledger == ledger and r.id == record_id), None)

    async def find_by_idempotency_key(
        self, ledger: str, idempotency_key: str
    ) -> Optional[TransactionRecord]:
        return next(
            (r for r in self.records if r.ledger == ledger and r.idempotency_key == idempotency_key),
            None,
        )

    async def latest_record_id(self, ledger: str, prefix: str) -> Optional[str]:
        ids = [r.id for r in self.records if r.ledger == ledger and r.id.startswith(prefix + "-")]
        return max(ids) if ids else None

    def store(self, record: TransactionRecord) -> None:
        for existing in self.records:
            if existing.ledger != record.ledger:
                continue
            if existing.id == record.id or existing.idempotency_key == record.idempotency_key:
                raise DuplicateRecordError(f"duplicate {record.id}")
        self.records.append(record)

    async def insert_record(self, record: TransactionRecord) -> TransactionRecord:
        self.insert_calls += 1
        if self.on_insert is not None:
            self.on_insert(record)
        if self.fail_before_store:
            raise self.fail_before_store.pop(0)
        self.store(record)
        if self.fail_after_store:
            raise self.fail_after_store.pop(0)
        return record


def make_context(
    *,
    categories: Optional[Sequence[CategoryEntry]] = None,
    wallets: Optional[Sequence[WalletEntry]] = None,
    records: Optional[FakeRecordStore] = None,
    clock: Optional[FrozenClock] = None,
    sleep: Optional[RecordingSleep] = None,
    **overrides,
) -> EngineContext:
    sleep = sleep or RecordingSleep()
    return EngineContext(
        categories=FakeCategoryRegistry(sample_categories() if categories is None else categories),
        wallets=FakeWalletRegistry(sample_wallets() if wallets is None else wallets),
        records=records or FakeRecordStore(),
        pending=MemoryPendingStore(),
        lexicon=load_lexicon(),
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0.2, max_delay=2.0),
        clock=clock or FrozenClock(),
        sleep=sleep,
        **overrides,
    )


def make_record(**overrides) -> TransactionRecord:
    values = dict(
        ledger="user_1",
        amount=120,
        direction="expense",
        category_id="101",
        category_name="午餐",
        wallet_id="w-cash",
        wallet_name="現金",
        description="午餐",
        original_text="午餐120現金",
        occurred_on=FIXED_NOW.date(),
        created_at=FIXED_NOW,
        idempotency_key="evt-1",
    )
    values.update(overrides)
    return TransactionRecord(**values)
