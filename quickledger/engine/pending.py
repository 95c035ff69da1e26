from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Optional, Protocol

from ..schemas.entry import PendingDisambiguation


def new_pending_key() -> str:
    """Short opaque key: 12 url-safe characters."""
    return secrets.token_urlsafe(9)


class PendingStore(Protocol):
    """Shared cache of parked entries and claimed event markers."""

    async def put(self, entry: PendingDisambiguation) -> None: ...

    async def take(self, key: str) -> Optional[PendingDisambiguation]:
        """Remove and return the entry; ``None`` when absent. Expiry is checked by the caller."""
        ...

    async def claim(self, marker: str, ttl_seconds: int, now: datetime) -> bool:
        """Record ``marker`` unless a live claim exists. ``False`` means it was seen before."""
        ...

    async def purge(self, now: datetime) -> int: ...


class MemoryPendingStore:
    """Process-local store for a single-worker deployment and for tests."""

    def __init__(self) -> None:
        self._entries: dict[str, PendingDisambiguation] = {}
        self._claims: dict[str, datetime] = {}

    async def put(self, entry: PendingDisambiguation) -> None:
        self._entries[entry.key] = entry

    async def take(self, key: str) -> Optional[PendingDisambiguation]:
        return self._entries.pop(key, None)

    async def claim(self, marker: str, ttl_seconds: int, now: datetime) -> bool:
        self._drop_stale_claims(now)
        if marker in self._claims:
            return False
        self._claims[marker] = now + timedelta(seconds=ttl_seconds)
        return True

    async def purge(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired) + self._drop_stale_claims(now)

    def _drop_stale_claims(self, now: datetime) -> int:
        stale = [marker for marker, expires_at in self._claims.items() if expires_at <= now]
        for marker in stale:
            del self._claims[marker]
        return len(stale)

    @property
    def claim_count(self) -> int:
        return len(self._claims)

    def __len__(self) -> int:
        return len(self._entries)
