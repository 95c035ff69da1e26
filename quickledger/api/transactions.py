from typing import Annotated, Optional

from fastapi import APIRouter, Query

from ..models.transaction import TransactionType
from ..schemas.transaction import TransactionRead
from ..services import list_transactions
from .dependencies import LedgerPath, SessionDep

router = APIRouter()


@router.get("/{ledger}/transactions", response_model=list[TransactionRead])
async def list_transactions_endpoint(
    ledger: LedgerPath,
    session: SessionDep,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    transaction_type: Optional[TransactionType] = Query(default=None),
) -> list[TransactionRead]:
    transactions = await list_transactions(
        session,
        ledger,
        limit=limit,
        offset=offset,
        transaction_type=transaction_type,
    )
    return [TransactionRead.model_validate(tx) for tx in transactions]
