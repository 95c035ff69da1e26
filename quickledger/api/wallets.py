from fastapi import APIRouter, status

from ..schemas import WalletCreate, WalletRead
from ..services import create_wallet, list_wallets
from .dependencies import LedgerPath, SessionDep

router = APIRouter()


@router.get("/{ledger}/wallets", response_model=list[WalletRead])
async def list_wallets_endpoint(ledger: LedgerPath, session: SessionDep) -> list[WalletRead]:
    wallets = await list_wallets(session, ledger)
    return [WalletRead.model_validate(wallet) for wallet in wallets]


@router.post("/{ledger}/wallets", response_model=WalletRead, status_code=status.HTTP_201_CREATED)
async def create_wallet_endpoint(
    ledger: LedgerPath,
    payload: WalletCreate,
    session: SessionDep,
) -> WalletRead:
    wallet = await create_wallet(session, ledger, payload)
    return WalletRead.model_validate(wallet)
