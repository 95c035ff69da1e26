"""Wiring of the quick-entry engine to the configured stores."""

from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..engine.context import EngineContext
from ..engine.lexicon import load_lexicon
from ..engine.pending import MemoryPendingStore, PendingStore
from ..engine.pipeline import QuickEntryEngine
from ..engine.retry import RetryPolicy
from .pending import SqlPendingStore
from .records import SqlRecordStore
from .registry import SqlCategoryRegistry, SqlWalletRegistry

logger = logging.getLogger(__name__)


def build_context(settings: Settings, session_factory: async_sessionmaker[AsyncSession]) -> EngineContext:
    pending: PendingStore
    if settings.pending_backend == "memory":
        logger.warning("Using the in-process pending store; disambiguation state is not shared")
        pending = MemoryPendingStore()
    else:
        pending = SqlPendingStore(session_factory)

    return EngineContext(
        categories=SqlCategoryRegistry(session_factory),
        wallets=SqlWalletRegistry(session_factory),
        records=SqlRecordStore(session_factory),
        pending=pending,
        lexicon=load_lexicon(settings.lexicon_path),
        timezone=ZoneInfo(settings.ledger_timezone),
        pending_ttl_seconds=settings.pending_ttl_seconds,
        event_ttl_seconds=settings.event_dedup_ttl_seconds,
        fuzzy_threshold=settings.fuzzy_match_threshold,
        menu_limit=settings.category_menu_limit,
        max_remark_length=settings.max_remark_length,
        retry_policy=RetryPolicy(
            max_attempts=settings.write_max_attempts,
            base_delay=settings.write_backoff_base_seconds,
            max_delay=settings.write_backoff_max_seconds,
        ),
    )


def build_engine(settings: Settings, session_factory: async_sessionmaker[AsyncSession]) -> QuickEntryEngine:
    return QuickEntryEngine(build_context(settings, session_factory))
