from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PendingEntry(Base):
    """A parked quick entry waiting for the user to pick a category or wallet."""

    __tablename__ = "pending_entries"

    key: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    ledger: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class ProcessedEvent(Base):
    """Inbound event ids already handled, remembered until ``expires_at``."""

    __tablename__ = "processed_events"

    key: Mapped[str] = mapped_column(String(191), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
