from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.wallet import WalletType
from .category import split_synonyms


class WalletCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    type: WalletType = Field(default=WalletType.CASH)
    synonyms: list[str] = Field(default_factory=list)
    make_default: bool = Field(default=False)

    @field_validator("synonyms", mode="before")
    @classmethod
    def _split_synonyms(cls, value: Any) -> Any:
        return split_synonyms(value)


class WalletRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ledger: str
    name: str
    type: WalletType
    synonyms: list[str]
    is_default: bool
    active: bool
    created_at: datetime

    @field_validator("synonyms", mode="before")
    @classmethod
    def _split_synonyms(cls, value: Any) -> Any:
        return split_synonyms(value)
