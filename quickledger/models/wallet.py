from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, Enum as SqlEnum, String, Text
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class WalletType(str, Enum):
    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"
    MOBILE = "mobile"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class WalletTypeDb(TypeDecorator):
    impl = SqlEnum(
        "cash",
        "bank",
        "credit",
        "mobile",
        name="wallettype",
        create_type=False,
        native_enum=True,
    )

    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, WalletType):
            value = value.value
        return value.lower()

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return WalletType(value.lower())


class Wallet(Base):
    """A payment instrument registered in one ledger."""

    __tablename__ = "wallets"

    ledger: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[WalletType] = mapped_column(WalletTypeDb(), nullable=False)
    # Comma separated, matched case-insensitively.
    synonyms: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    transactions: Mapped[list["Transaction"]] = relationship(back_populates="wallet")


from .transaction import Transaction  # noqa: E402
