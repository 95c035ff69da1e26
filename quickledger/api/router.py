from fastapi import APIRouter

from . import categories, entries, telegram, transactions, wallets

api_router = APIRouter()
api_router.include_router(entries.router, prefix="/ledgers", tags=["entries"])
api_router.include_router(categories.router, prefix="/ledgers", tags=["categories"])
api_router.include_router(wallets.router, prefix="/ledgers", tags=["wallets"])
api_router.include_router(transactions.router, prefix="/ledgers", tags=["transactions"])
api_router.include_router(telegram.router, prefix="/telegram", tags=["telegram"])
