from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.transaction import TransactionType
from ..models.wallet import WalletType


class ParsedEntry(BaseModel):
    """Result of splitting one quick-entry message."""

    subject: str
    raw_amount: str
    amount: int = Field(gt=0)
    suffix: str = ""
    unit: Optional[str] = None


class CategoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    parent_id: Optional[str] = None
    synonyms: frozenset[str] = frozenset()
    is_income: bool = False
    active: bool = True

    @property
    def direction(self) -> TransactionType:
        return TransactionType.INCOME if self.is_income else TransactionType.EXPENSE


class WalletEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: WalletType
    synonyms: frozenset[str] = frozenset()
    is_default: bool = False
    active: bool = True


class PendingKind(str, Enum):
    CATEGORY = "category"
    WALLET = "wallet"


class PendingStep(str, Enum):
    CLASSIFY = "classify"
    WALLET_TYPE = "wallet_type"
    WALLET_CONFIRM = "wallet_confirm"


class PendingDisambiguation(BaseModel):
    """Single-use clarification request parked between two chat events."""

    key: str
    ledger: str
    kind: PendingKind
    step: PendingStep
    original_text: str
    parsed: ParsedEntry
    source_ref: str
    created_at: datetime
    ttl_seconds: int = 600
    category: Optional[CategoryEntry] = None
    wallet_phrase: str = ""
    detected_type: Optional[WalletType] = None
    proposed_type: Optional[WalletType] = None

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class TransactionRecord(BaseModel):
    id: str = ""
    ledger: str
    amount: int = Field(gt=0)
    direction: TransactionType
    category_id: str
    category_name: str
    wallet_id: str
    wallet_name: str
    description: str = ""
    original_text: str = ""
    occurred_on: date
    created_at: datetime
    status: str = "committed"
    idempotency_key: str
