from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def split_synonyms(value: Any) -> Any:
    """Accept the stored comma separated form as well as a list."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class CategoryCreate(BaseModel):
    code: str = Field(min_length=1, max_length=32, pattern=r"^[^:\s]+$")
    name: str = Field(min_length=1, max_length=64)
    parent_code: Optional[str] = Field(default=None, max_length=32)
    synonyms: list[str] = Field(default_factory=list)
    is_income: bool = False
    active: bool = True

    @field_validator("synonyms", mode="before")
    @classmethod
    def _split_synonyms(cls, value: Any) -> Any:
        return split_synonyms(value)


class SynonymCreate(BaseModel):
    phrase: str = Field(min_length=1, max_length=64)


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ledger: str
    code: str
    name: str
    parent_code: Optional[str]
    synonyms: list[str]
    is_income: bool
    active: bool
    created_at: datetime

    @field_validator("synonyms", mode="before")
    @classmethod
    def _split_synonyms(cls, value: Any) -> Any:
        return split_synonyms(value)
