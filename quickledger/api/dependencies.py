from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..db import SessionLocal, get_db
from ..engine.pipeline import QuickEntryEngine
from ..services.engine import build_engine

SessionDep = Annotated[AsyncSession, Depends(get_db)]

LEDGER_PATTERN = r"^[A-Za-z0-9_.:-]{1,64}$"
LedgerPath = Annotated[str, Path(pattern=LEDGER_PATTERN, description="Ledger namespace, e.g. user_12345")]


def get_engine(request: Request) -> QuickEntryEngine:
    """One engine per application, created on first use."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        engine = build_engine(get_settings(), SessionLocal)
        request.app.state.engine = engine
    return engine


EngineDep = Annotated[QuickEntryEngine, Depends(get_engine)]
