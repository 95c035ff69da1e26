from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.transaction import TransactionType
from .entry import ParsedEntry


class EntryRequest(BaseModel):
    """A quick-entry message relayed by a chat channel."""

    text: str = Field(min_length=1, max_length=512)
    event_id: Optional[str] = Field(default=None, max_length=128)


class CallbackRequest(BaseModel):
    """A button selection relayed by a chat channel."""

    payload: str = Field(min_length=1, max_length=128)
    event_id: Optional[str] = Field(default=None, max_length=128)


class ChoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    payload: str


class TransactionRead(BaseModel):
    """API response shape for committed records."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ledger: str
    record_id: str
    type: TransactionType
    amount: int
    category_code: str
    category_name: str
    wallet_id: Optional[UUID] = None
    wallet_name: str
    description: Optional[str]
    original_text: str
    occurred_at: date
    source: str
    status: str
    created_at: datetime


class RecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: int
    direction: TransactionType
    category_id: str
    category_name: str
    wallet_id: str
    wallet_name: str
    description: str
    occurred_on: date
    created_at: datetime
    status: str


class ReplyRead(BaseModel):
    """Reply handed back to the chat channel."""

    model_config = ConfigDict(from_attributes=True)

    text: str
    choices: list[ChoiceRead] = Field(default_factory=list)
    error_code: Optional[str] = None
    pending_key: Optional[str] = None
    record: Optional[RecordRead] = None
    parsed: Optional[ParsedEntry] = None
