import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status

from ..engine.replies import Reply
from ..schemas.transaction import CallbackRequest, EntryRequest, ReplyRead
from .dependencies import EngineDep, LedgerPath

logger = logging.getLogger(__name__)

router = APIRouter()

DUPLICATE_RESPONSES = {status.HTTP_204_NO_CONTENT: {"description": "Event already processed"}}


def _to_response(reply: Optional[Reply]) -> ReplyRead | Response:
    if reply is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return ReplyRead.model_validate(reply.model_dump())


@router.post("/{ledger}/entries", response_model=ReplyRead, responses=DUPLICATE_RESPONSES)
async def submit_entry(ledger: LedgerPath, payload: EntryRequest, engine: EngineDep):
    try:
        reply = await engine.handle_text(ledger, payload.text, event_id=payload.event_id)
    except Exception:
        logger.exception("Failed to process entry for ledger %s", ledger)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Entry processing failed"
        )
    return _to_response(reply)


@router.post("/{ledger}/callbacks", response_model=ReplyRead, responses=DUPLICATE_RESPONSES)
async def submit_callback(ledger: LedgerPath, payload: CallbackRequest, engine: EngineDep):
    try:
        reply = await engine.handle_callback(ledger, payload.payload, event_id=payload.event_id)
    except Exception:
        logger.exception("Failed to process callback for ledger %s", ledger)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Callback processing failed"
        )
    return _to_response(reply)
