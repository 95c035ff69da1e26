"""Exactly-once persistence of committed entries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..schemas.entry import TransactionRecord
from .context import RecordStore
from .errors import DuplicateRecordError, StorageError, TransientStorageError
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

ID_SCAN_LIMIT = 100
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def record_prefix(day: date) -> str:
    return day.strftime("%Y%m%d")


def serial_of(record_id: Optional[str], prefix: str) -> int:
    """Serial number of ``YYYYMMDD-NNNNN[-suffix]``; 0 when it does not apply."""
    if not record_id or not record_id.startswith(prefix + "-"):
        return 0
    serial = record_id[len(prefix) + 1 :].split("-", 1)[0]
    return int(serial) if serial.isdigit() else 0


@dataclass(frozen=True)
class WriteResult:
    record: TransactionRecord
    duplicate: bool = False
    attempts: int = 1


class IdempotentWriter:
    """Insert a record once per idempotency key.

    Ids are ``YYYYMMDD-NNNNN``. A unique clash on insert is resolved by
    checking the idempotency key: the same key means the record is already
    written (success), otherwise the id was taken concurrently and a new one
    is allocated. Transient failures go through the retry policy and surface
    as ``StorageError`` once it is exhausted.
    """

    def __init__(
        self,
        records: RecordStore,
        policy: Optional[RetryPolicy] = None,
        *,
        max_id_attempts: int = 5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._records = records
        self._policy = policy or RetryPolicy()
        self._max_id_attempts = max_id_attempts
        self._sleep = sleep

    async def allocate_id(self, ledger: str, day: date) -> str:
        prefix = record_prefix(day)
        latest = await self._records.latest_record_id(ledger, prefix)
        serial = serial_of(latest, prefix) + 1
        for _ in range(ID_SCAN_LIMIT):
            candidate = f"{prefix}-{serial:05d}"
            if await self._records.get_record(ledger, candidate) is None:
                return candidate
            serial += 1
        raise TransientStorageError("no free record id found")

    def fallback_id(self, record: TransactionRecord, base_id: str) -> str:
        stamp = int(record.created_at.timestamp() * 1000)
        return f"{base_id}-{to_base36(stamp)}"

    async def _insert_once(self, record: TransactionRecord) -> tuple[TransactionRecord, bool]:
        existing = await self._records.find_by_idempotency_key(record.ledger, record.idempotency_key)
        if existing is not None:
            return existing, True

        for id_attempt in range(1, self._max_id_attempts + 1):
            record_id = await self.allocate_id(record.ledger, record.occurred_on)
            if id_attempt == self._max_id_attempts:
                record_id = self.fallback_id(record, record_id)
            candidate = record.model_copy(update={"id": record_id})
            try:
                return await self._records.insert_record(candidate), False
            except DuplicateRecordError:
                existing = await self._records.find_by_idempotency_key(
                    record.ledger, record.idempotency_key
                )
                if existing is not None:
                    logger.info(
                        "Record for %s already written as %s", record.idempotency_key, existing.id
                    )
                    return existing, True
                logger.info("Record id %s taken concurrently; allocating another", record_id)
        raise TransientStorageError("record id kept colliding")

    async def write(self, record: TransactionRecord) -> WriteResult:
        attempts = 0

        async def attempt(number: int) -> tuple[TransactionRecord, bool]:
            nonlocal attempts
            attempts = number
            return await self._insert_once(record)

        try:
            stored, duplicate = await self._policy.run(attempt, sleep=self._sleep)
        except TransientStorageError as exc:
            logger.error("Write of %s failed after %s attempts: %s", record.idempotency_key, attempts, exc)
            raise StorageError() from exc
        return WriteResult(record=stored, duplicate=duplicate, attempts=attempts)
