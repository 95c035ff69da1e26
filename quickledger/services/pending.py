from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.pending import PendingEntry, ProcessedEvent
from ..schemas.entry import PendingDisambiguation
from .storage import storage_session

logger = logging.getLogger(__name__)


class SqlPendingStore:
    """Pending cache shared by every worker through PostgreSQL.

    ``take`` is a single ``DELETE ... RETURNING`` so two workers can never
    resume the same entry; ``claim`` is an upsert that only replaces a claim
    whose TTL has run out.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def put(self, entry: PendingDisambiguation) -> None:
        async with storage_session(self._session_factory) as session:
            session.add(
                PendingEntry(
                    key=entry.key,
                    ledger=entry.ledger,
                    kind=entry.kind.value,
                    payload=entry.model_dump(mode="json"),
                    expires_at=entry.expires_at,
                )
            )
            await session.commit()

    async def take(self, key: str) -> Optional[PendingDisambiguation]:
        async with storage_session(self._session_factory) as session:
            result = await session.execute(
                delete(PendingEntry).where(PendingEntry.key == key).returning(PendingEntry.payload)
            )
            payload = result.scalar_one_or_none()
            await session.commit()
        if payload is None:
            return None
        return PendingDisambiguation.model_validate(payload)

    async def claim(self, marker: str, ttl_seconds: int, now: datetime) -> bool:
        expires_at = now + timedelta(seconds=ttl_seconds)
        stmt = insert(ProcessedEvent).values(
            id=uuid4(),
            key=marker,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProcessedEvent.key],
            set_={"expires_at": expires_at, "updated_at": now},
            where=ProcessedEvent.expires_at <= now,
        ).returning(ProcessedEvent.id)
        async with storage_session(self._session_factory) as session:
            result = await session.execute(stmt)
            claimed = result.scalar_one_or_none() is not None
            await session.commit()
        return claimed

    async def purge(self, now: datetime) -> int:
        async with storage_session(self._session_factory) as session:
            entries = await session.execute(delete(PendingEntry).where(PendingEntry.expires_at < now))
            events = await session.execute(delete(ProcessedEvent).where(ProcessedEvent.expires_at <= now))
            await session.commit()
        removed = (entries.rowcount or 0) + (events.rowcount or 0)
        if removed:
            logger.debug("Purged %s expired pending rows", removed)
        return removed
