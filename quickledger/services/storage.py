"""Session handling shared by the SQL adapters of the engine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..engine.errors import DuplicateRecordError, TransientStorageError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def storage_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session and translate driver failures into engine errors.

    Unique violations become ``DuplicateRecordError``; lost or refused
    connections become ``TransientStorageError``. Other database errors
    propagate unchanged.
    """
    try:
        async with session_factory() as session:
            yield session
    except IntegrityError as exc:
        raise DuplicateRecordError(str(exc.orig)) from exc
    except DBAPIError as exc:
        if isinstance(exc, OperationalError) or exc.connection_invalidated:
            logger.warning("Database connection problem: %s", exc.orig)
            raise TransientStorageError(str(exc.orig)) from exc
        raise
    except (OSError, asyncio.TimeoutError) as exc:
        logger.warning("Database unreachable: %s", exc)
        raise TransientStorageError(str(exc)) from exc
