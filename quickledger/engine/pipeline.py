"""Entry points of the quick-entry engine: free text in, reply out."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar
from uuid import uuid4

from ..models.wallet import WalletType
from ..schemas.entry import CategoryEntry, ParsedEntry, PendingDisambiguation, TransactionRecord, WalletEntry
from .callbacks import CallbackKind, CallbackRef, decode
from .categories import RequiresClassification, resolve_category
from .context import EngineContext
from .coordinator import DisambiguationCoordinator
from .errors import (
    EntryCancelled,
    EntryError,
    EntryValidationError,
    InvalidCallbackError,
    StorageError,
    TransientStorageError,
)
from .lexicon import normalize_text
from .parser import build_remark, parse_entry
from .payments import WalletMatch, resolve_payment, wallet_of_type
from .replies import Reply, format_reply
from .writer import IdempotentWriter

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Length of the wallets.name column.
MAX_WALLET_NAME_LENGTH = 64


class QuickEntryEngine:
    """Parse, resolve, disambiguate and commit quick entries for many ledgers.

    ``handle_text`` and ``handle_callback`` return ``None`` when ``event_id``
    was already processed, so a redelivered webhook is neither answered nor
    written twice.
    """

    def __init__(self, context: EngineContext) -> None:
        self.context = context
        self.coordinator = DisambiguationCoordinator(context)
        self.writer = IdempotentWriter(context.records, context.retry_policy, sleep=context.sleep)

    # -- public API -----------------------------------------------------

    async def handle_text(self, ledger: str, text: str, event_id: Optional[str] = None) -> Optional[Reply]:
        if event_id and not await self._claim_event(ledger, event_id):
            return None
        source_ref = event_id or f"local:{uuid4().hex}"

        try:
            parsed = parse_entry(text, self.context.lexicon)
        except EntryError as exc:
            logger.info("Rejected entry for %s: %s", ledger, exc.reason)
            return self._failure(exc, text)
        try:
            categories = await self._read(lambda: self.context.categories.list_categories(ledger))
            resolution = resolve_category(parsed.subject, categories, self.context.fuzzy_threshold)
            if isinstance(resolution, RequiresClassification):
                return await self.coordinator.request_category(
                    ledger, text, parsed, source_ref, resolution.candidates
                )
        except EntryError as exc:
            return self._failure(exc, text, parsed=parsed)

        logger.debug("Category %s matched by %s", resolution.category.id, resolution.rule.value)
        return await self._resolve_wallet(ledger, text, parsed, source_ref, resolution.category)

    async def handle_callback(
        self, ledger: str, payload: str, event_id: Optional[str] = None
    ) -> Optional[Reply]:
        if event_id and not await self._claim_event(ledger, event_id):
            return None

        try:
            ref = decode(payload)
        except InvalidCallbackError as exc:
            logger.info("Invalid callback payload from %s: %s", ledger, exc)
            return self._failure(EntryValidationError("無效的選項"), "")

        try:
            entry = await self.coordinator.resume(ledger, ref)
        except EntryError as exc:
            return self._failure(exc, "")

        if ref.is_cancel:
            logger.info("Entry %s cancelled by user", entry.key)
            return self._failure(
                EntryCancelled(), entry.original_text, parsed=entry.parsed, category=entry.category
            )
        try:
            if ref.kind is CallbackKind.CLASSIFY:
                return await self._on_classify(ledger, entry, ref)
            if ref.kind is CallbackKind.WALLET_TYPE:
                return await self._on_wallet_type(ledger, entry, WalletType(ref.value))
            return await self._on_wallet_confirmed(ledger, entry)
        except EntryError as exc:
            return self._failure(exc, entry.original_text, parsed=entry.parsed, category=entry.category)

    # -- steps ----------------------------------------------------------

    async def _on_classify(self, ledger: str, entry: PendingDisambiguation, ref: CallbackRef) -> Reply:
        category = await self._read(lambda: self.context.categories.get_category(ledger, ref.value))
        if category is None or not category.active:
            raise EntryValidationError("找不到選擇的科目")
        await self._learn_category_synonym(ledger, category, entry.parsed.subject)
        return await self._resolve_wallet(
            ledger, entry.original_text, entry.parsed, entry.source_ref, category
        )

    async def _on_wallet_type(
        self, ledger: str, entry: PendingDisambiguation, wallet_type: WalletType
    ) -> Reply:
        category = self._pending_category(entry)
        wallets = await self._read(lambda: self.context.wallets.list_wallets(ledger))
        wallet = wallet_of_type(wallets, wallet_type)
        if wallet is None:
            return await self.coordinator.request_wallet_confirmation(
                ledger,
                entry.original_text,
                entry.parsed,
                entry.source_ref,
                category,
                entry.wallet_phrase,
                wallet_type,
            )
        reply = await self._commit(
            ledger, entry.original_text, entry.parsed, entry.source_ref, category, wallet, entry.wallet_phrase
        )
        if reply.ok:
            await self._learn_wallet_synonym(ledger, wallet, entry.wallet_phrase)
        return reply

    async def _on_wallet_confirmed(self, ledger: str, entry: PendingDisambiguation) -> Reply:
        category = self._pending_category(entry)
        wallet_type = entry.proposed_type or entry.detected_type
        if wallet_type is None:
            raise EntryValidationError("缺少支付類型")
        phrase = entry.wallet_phrase
        name = (phrase or self.context.lexicon.label_for(wallet_type))[:MAX_WALLET_NAME_LENGTH].strip()
        synonyms = [phrase] if phrase and phrase != name else []
        wallet = await self._read(
            lambda: self.context.wallets.create_wallet(ledger, name, wallet_type, synonyms)
        )
        logger.info("Created %s wallet %r for ledger %s", wallet_type.value, wallet.name, ledger)
        return await self._commit(
            ledger, entry.original_text, entry.parsed, entry.source_ref, category, wallet, phrase
        )

    async def _resolve_wallet(
        self,
        ledger: str,
        text: str,
        parsed: ParsedEntry,
        source_ref: str,
        category: CategoryEntry,
    ) -> Reply:
        try:
            wallets = await self._read(lambda: self.context.wallets.list_wallets(ledger))
        except EntryError as exc:
            return self._failure(exc, text, parsed=parsed, category=category)

        payment = resolve_payment(parsed.suffix, wallets, self.context.lexicon, category.direction)
        if isinstance(payment, WalletMatch):
            logger.debug("Wallet %s matched by %s", payment.wallet.id, payment.rule.value)
            return await self._commit(ledger, text, parsed, source_ref, category, payment.wallet, payment.phrase)
        try:
            return await self.coordinator.request_wallet_type(
                ledger, text, parsed, source_ref, category, payment.phrase, payment.detected_type
            )
        except EntryError as exc:
            return self._failure(exc, text, parsed=parsed, category=category)

    async def _commit(
        self,
        ledger: str,
        text: str,
        parsed: ParsedEntry,
        source_ref: str,
        category: CategoryEntry,
        wallet: WalletEntry,
        phrase: str,
    ) -> Reply:
        now = self.context.now()
        record = TransactionRecord(
            ledger=ledger,
            amount=parsed.amount,
            direction=category.direction,
            category_id=category.id,
            category_name=category.name,
            wallet_id=wallet.id,
            wallet_name=wallet.name,
            description=build_remark(parsed, phrase),
            original_text=text,
            occurred_on=now.astimezone(self.context.timezone).date(),
            created_at=now,
            idempotency_key=source_ref,
        )
        try:
            result = await self.writer.write(record)
        except StorageError as exc:
            return self._failure(exc, text, parsed=parsed, category=category, wallet=wallet)
        if result.duplicate:
            logger.info("Entry %s was already committed as %s", source_ref, result.record.id)
        else:
            logger.info("Committed %s for ledger %s", result.record.id, ledger)
        return format_reply(
            result.record,
            text,
            now,
            self.context.timezone,
            parsed=parsed,
            max_remark_length=self.context.max_remark_length,
        )

    # -- helpers --------------------------------------------------------

    async def _claim_event(self, ledger: str, event_id: str) -> bool:
        claimed = await self.context.pending.claim(
            f"event:{ledger}:{event_id}", self.context.event_ttl_seconds, self.context.now()
        )
        if not claimed:
            logger.info("Dropping duplicate delivery %s for %s", event_id, ledger)
        return claimed

    async def _read(self, call: Callable[[], Awaitable[T]]) -> T:
        """Registry access under the retry policy; exhaustion becomes ``StorageError``."""
        try:
            return await self.context.retry_policy.run(lambda _attempt: call(), sleep=self.context.sleep)
        except TransientStorageError as exc:
            raise StorageError() from exc

    def _pending_category(self, entry: PendingDisambiguation) -> CategoryEntry:
        if entry.category is None:
            raise EntryValidationError("缺少科目資料")
        return entry.category

    async def _learn_category_synonym(self, ledger: str, category: CategoryEntry, phrase: str) -> None:
        known = {normalize_text(category.name), *(normalize_text(s) for s in category.synonyms)}
        if not normalize_text(phrase) or normalize_text(phrase) in known:
            return
        try:
            await self.context.categories.add_category_synonym(ledger, category.id, phrase)
        except TransientStorageError as exc:
            logger.warning("Could not learn synonym %r for category %s: %s", phrase, category.id, exc)
            return
        logger.info("Learned synonym %r for category %s", phrase, category.id)

    async def _learn_wallet_synonym(self, ledger: str, wallet: WalletEntry, phrase: str) -> None:
        known = {normalize_text(wallet.name), *(normalize_text(s) for s in wallet.synonyms)}
        if not normalize_text(phrase) or normalize_text(phrase) in known:
            return
        try:
            await self.context.wallets.add_wallet_synonym(ledger, wallet.id, phrase)
        except TransientStorageError as exc:
            logger.warning("Could not learn synonym %r for wallet %s: %s", phrase, wallet.id, exc)
            return
        logger.info("Learned synonym %r for wallet %s", phrase, wallet.id)

    def _failure(
        self,
        error: EntryError,
        original_text: str,
        *,
        parsed: Optional[ParsedEntry] = None,
        category: Optional[CategoryEntry] = None,
        wallet: Optional[WalletEntry] = None,
    ) -> Reply:
        return format_reply(
            error,
            original_text,
            self.context.now(),
            self.context.timezone,
            parsed=parsed,
            max_remark_length=self.context.max_remark_length,
            direction=category.direction if category is not None else None,
            category_name=category.name if category is not None else None,
            wallet_name=wallet.name if wallet is not None else None,
        )
