from __future__ import annotations

from collections.abc import Sequence
from typing import Optional
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.transaction import Transaction, TransactionType
from ..schemas.entry import TransactionRecord
from .storage import storage_session


def transaction_to_record(transaction: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=transaction.record_id,
        ledger=transaction.ledger,
        amount=transaction.amount,
        direction=transaction.type,
        category_id=transaction.category_code,
        category_name=transaction.category_name,
        wallet_id=str(transaction.wallet_id) if transaction.wallet_id else "",
        wallet_name=transaction.wallet_name,
        description=transaction.description or "",
        original_text=transaction.original_text,
        occurred_on=transaction.occurred_at,
        created_at=transaction.created_at,
        status=transaction.status,
        idempotency_key=transaction.idempotency_key,
    )


async def get_record(session: AsyncSession, ledger: str, record_id: str) -> Optional[Transaction]:
    result = await session.execute(
        select(Transaction).where(Transaction.ledger == ledger, Transaction.record_id == record_id)
    )
    return result.scalar_one_or_none()


async def find_by_idempotency_key(
    session: AsyncSession, ledger: str, idempotency_key: str
) -> Optional[Transaction]:
    result = await session.execute(
        select(Transaction).where(
            Transaction.ledger == ledger, Transaction.idempotency_key == idempotency_key
        )
    )
    return result.scalar_one_or_none()


async def latest_record_id(session: AsyncSession, ledger: str, prefix: str) -> Optional[str]:
    result = await session.execute(
        select(func.max(Transaction.record_id)).where(
            Transaction.ledger == ledger, Transaction.record_id.like(f"{prefix}-%")
        )
    )
    return result.scalar_one_or_none()


async def insert_record(session: AsyncSession, record: TransactionRecord) -> Transaction:
    """Persist a committed record; a unique clash raises ``IntegrityError``."""
    transaction = Transaction(
        ledger=record.ledger,
        record_id=record.id,
        idempotency_key=record.idempotency_key,
        occurred_at=record.occurred_on,
        amount=record.amount,
        type=record.direction,
        category_code=record.category_id,
        category_name=record.category_name,
        wallet_id=UUID(record.wallet_id) if record.wallet_id else None,
        wallet_name=record.wallet_name,
        description=record.description or None,
        original_text=record.original_text,
        status=record.status,
        created_at=record.created_at,
    )
    session.add(transaction)
    await session.commit()
    await session.refresh(transaction)
    return transaction


async def list_transactions(
    session: AsyncSession,
    ledger: str,
    *,
    limit: int = 50,
    offset: int = 0,
    transaction_type: Optional[TransactionType] = None,
) -> Sequence[Transaction]:
    """Most recent records of a ledger first."""
    stmt: Select[tuple[Transaction]] = (
        select(Transaction)
        .where(Transaction.ledger == ledger)
        .order_by(Transaction.occurred_at.desc(), Transaction.record_id.desc())
    )
    if transaction_type:
        stmt = stmt.where(Transaction.type == transaction_type)
    result = await session.execute(stmt.limit(limit).offset(offset))
    return result.scalars().all()


class SqlRecordStore:
    """Record store backed by the ``transactions`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_record(self, ledger: str, record_id: str) -> Optional[TransactionRecord]:
        async with storage_session(self._session_factory) as session:
            transaction = await get_record(session, ledger, record_id)
            return transaction_to_record(transaction) if transaction else None

    async def find_by_idempotency_key(
        self, ledger: str, idempotency_key: str
    ) -> Optional[TransactionRecord]:
        async with storage_session(self._session_factory) as session:
            transaction = await find_by_idempotency_key(session, ledger, idempotency_key)
            return transaction_to_record(transaction) if transaction else None

    async def latest_record_id(self, ledger: str, prefix: str) -> Optional[str]:
        async with storage_session(self._session_factory) as session:
            return await latest_record_id(session, ledger, prefix)

    async def insert_record(self, record: TransactionRecord) -> TransactionRecord:
        async with storage_session(self._session_factory) as session:
            return transaction_to_record(await insert_record(session, record))
