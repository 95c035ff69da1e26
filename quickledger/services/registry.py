from __future__ import annotations

from collections.abc import Sequence
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..engine.lexicon import normalize_text
from ..models.category import Category
from ..models.wallet import Wallet, WalletType
from ..schemas.category import CategoryCreate, split_synonyms
from ..schemas.entry import CategoryEntry, WalletEntry
from ..schemas.wallet import WalletCreate
from .storage import storage_session


class CategoryNotFoundError(Exception):
    """Raised when a category code does not exist in the ledger."""


class CategoryExistsError(Exception):
    """Raised when a category code is already taken in the ledger."""


class WalletNotFoundError(Exception):
    """Raised when a wallet cannot be found in the ledger."""


def join_synonyms(synonyms: Sequence[str]) -> str:
    seen: list[str] = []
    for synonym in synonyms:
        cleaned = synonym.replace(",", " ").strip()
        if cleaned and normalize_text(cleaned) not in {normalize_text(s) for s in seen}:
            seen.append(cleaned)
    return ",".join(seen)


def with_synonym(stored: str, phrase: str) -> Optional[str]:
    """New stored value with ``phrase`` appended, or ``None`` when it is already there."""
    current = split_synonyms(stored)
    if normalize_text(phrase) in {normalize_text(s) for s in current}:
        return None
    return join_synonyms([*current, phrase])


def category_to_entry(category: Category) -> CategoryEntry:
    return CategoryEntry(
        id=category.code,
        name=category.name,
        parent_id=category.parent_code,
        synonyms=frozenset(split_synonyms(category.synonyms)),
        is_income=category.is_income,
        active=category.active,
    )


def wallet_to_entry(wallet: Wallet) -> WalletEntry:
    return WalletEntry(
        id=str(wallet.id),
        name=wallet.name,
        type=wallet.type,
        synonyms=frozenset(split_synonyms(wallet.synonyms)),
        is_default=wallet.is_default,
        active=wallet.active,
    )


def _as_uuid(value: str | UUID) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


async def list_categories(
    session: AsyncSession, ledger: str, *, include_inactive: bool = True
) -> Sequence[Category]:
    stmt = select(Category).where(Category.ledger == ledger).order_by(Category.code.asc())
    if not include_inactive:
        stmt = stmt.where(Category.active.is_(True))
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_category(session: AsyncSession, ledger: str, code: str) -> Optional[Category]:
    result = await session.execute(
        select(Category).where(Category.ledger == ledger, Category.code == code)
    )
    return result.scalar_one_or_none()


async def create_category(session: AsyncSession, ledger: str, payload: CategoryCreate) -> Category:
    if await get_category(session, ledger, payload.code):
        raise CategoryExistsError(f"Category {payload.code} already exists")
    category = Category(
        ledger=ledger,
        code=payload.code,
        name=payload.name,
        parent_code=payload.parent_code,
        synonyms=join_synonyms(payload.synonyms),
        is_income=payload.is_income,
        active=payload.active,
    )
    session.add(category)
    await session.commit()
    await session.refresh(category)
    return category


async def add_category_synonym(session: AsyncSession, ledger: str, code: str, phrase: str) -> Category:
    category = await get_category(session, ledger, code)
    if not category:
        raise CategoryNotFoundError("Category not found")
    updated = with_synonym(category.synonyms, phrase)
    if updated is None:
        return category
    category.synonyms = updated
    await session.commit()
    await session.refresh(category)
    return category


async def list_wallets(session: AsyncSession, ledger: str) -> Sequence[Wallet]:
    result = await session.execute(
        select(Wallet)
        .where(Wallet.ledger == ledger)
        .order_by(Wallet.created_at.asc(), Wallet.name.asc())
    )
    return result.scalars().all()


async def get_wallet(session: AsyncSession, ledger: str, wallet_id: str | UUID) -> Optional[Wallet]:
    wallet_uuid = _as_uuid(wallet_id)
    if wallet_uuid is None:
        return None
    wallet = await session.get(Wallet, wallet_uuid)
    if not wallet or wallet.ledger != ledger:
        return None
    return wallet


async def find_wallet_by_name(session: AsyncSession, ledger: str, name: str) -> Optional[Wallet]:
    target = normalize_text(name)
    for wallet in await list_wallets(session, ledger):
        if wallet.active and normalize_text(wallet.name) == target:
            return wallet
    return None


async def create_wallet(session: AsyncSession, ledger: str, payload: WalletCreate) -> Wallet:
    if payload.make_default:
        await session.execute(
            update(Wallet).where(Wallet.ledger == ledger).values(is_default=False)
        )
    wallet = Wallet(
        ledger=ledger,
        name=payload.name,
        type=payload.type,
        synonyms=join_synonyms(payload.synonyms),
        is_default=payload.make_default,
    )
    session.add(wallet)
    await session.commit()
    await session.refresh(wallet)
    return wallet


async def add_wallet_synonym(session: AsyncSession, ledger: str, wallet_id: str | UUID, phrase: str) -> Wallet:
    wallet = await get_wallet(session, ledger, wallet_id)
    if not wallet:
        raise WalletNotFoundError("Wallet not found")
    updated = with_synonym(wallet.synonyms, phrase)
    if updated is None:
        return wallet
    wallet.synonyms = updated
    await session.commit()
    await session.refresh(wallet)
    return wallet


class SqlCategoryRegistry:
    """Category registry backed by the ``categories`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_categories(self, ledger: str) -> list[CategoryEntry]:
        async with storage_session(self._session_factory) as session:
            return [category_to_entry(row) for row in await list_categories(session, ledger)]

    async def get_category(self, ledger: str, category_id: str) -> Optional[CategoryEntry]:
        async with storage_session(self._session_factory) as session:
            category = await get_category(session, ledger, category_id)
            return category_to_entry(category) if category else None

    async def add_category_synonym(self, ledger: str, category_id: str, phrase: str) -> None:
        async with storage_session(self._session_factory) as session:
            await add_category_synonym(session, ledger, category_id, phrase)


class SqlWalletRegistry:
    """Wallet registry backed by the ``wallets`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_wallets(self, ledger: str) -> list[WalletEntry]:
        async with storage_session(self._session_factory) as session:
            return [wallet_to_entry(row) for row in await list_wallets(session, ledger)]

    async def add_wallet_synonym(self, ledger: str, wallet_id: str, phrase: str) -> None:
        async with storage_session(self._session_factory) as session:
            await add_wallet_synonym(session, ledger, wallet_id, phrase)

    async def create_wallet(
        self, ledger: str, name: str, wallet_type: WalletType, synonyms: Sequence[str] = ()
    ) -> WalletEntry:
        async with storage_session(self._session_factory) as session:
            existing = await find_wallet_by_name(session, ledger, name)
            if existing:
                return wallet_to_entry(existing)
            payload = WalletCreate(name=name, type=wallet_type, synonyms=list(synonyms))
            return wallet_to_entry(await create_wallet(session, ledger, payload))
