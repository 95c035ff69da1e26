from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, Date, Enum as SqlEnum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class Transaction(Base):
    """Committed ledger record. Never updated by the quick-entry engine."""

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("ledger", "record_id", name="uq_transactions_ledger_record_id"),
        UniqueConstraint(
            "ledger", "idempotency_key", name="uq_transactions_ledger_idempotency_key"
        ),
    )

    ledger: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    record_id: Mapped[str] = mapped_column(String(40), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(191), nullable=False)
    occurred_at: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SqlEnum(
            TransactionType,
            name="transactiontype",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )
    category_code: Mapped[str] = mapped_column(String(32), nullable=False)
    category_name: Mapped[str] = mapped_column(String(64), nullable=False)
    wallet_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("wallets.id", ondelete="SET NULL"), nullable=True
    )
    wallet_name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    original_text: Mapped[str] = mapped_column(String(512), nullable=False)
    source: Mapped[str] = mapped_column(String(32), default="quick_entry", nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="committed", nullable=False)

    wallet: Mapped[Optional["Wallet"]] = relationship(back_populates="transactions")


from .wallet import Wallet  # noqa: E402  # avoid circular import at runtime
