from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Category(Base):
    """A spending or income classification inside one ledger."""

    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("ledger", "code", name="uq_categories_ledger_code"),)

    ledger: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    parent_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    # Comma separated, matched case-insensitively.
    synonyms: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_income: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
