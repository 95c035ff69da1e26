"""Parks unresolved entries and builds the bounded choice menus for them."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Optional, Sequence, TypeVar

from ..models.wallet import WalletType
from ..schemas.entry import (
    CategoryEntry,
    ParsedEntry,
    PendingDisambiguation,
    PendingKind,
    PendingStep,
)
from .callbacks import CallbackKind, CallbackRef, encode
from .context import EngineContext
from .errors import ErrorCode, PendingExpiredError, StorageError, TransientStorageError
from .pending import new_pending_key
from .replies import Choice, Reply

logger = logging.getLogger(__name__)

T = TypeVar("T")

CANCEL_LABEL = "取消"
WALLET_MENU_TYPES = (WalletType.CASH, WalletType.BANK, WalletType.CREDIT)

# Which parked step each callback kind may resume; cancels resume any step.
_ACCEPTED_STEPS: dict[CallbackKind, tuple[PendingStep, ...]] = {
    CallbackKind.CLASSIFY: (PendingStep.CLASSIFY,),
    CallbackKind.WALLET_TYPE: (PendingStep.WALLET_TYPE,),
    CallbackKind.WALLET_CONFIRM: (PendingStep.WALLET_CONFIRM,),
}


class DisambiguationCoordinator:
    def __init__(self, context: EngineContext) -> None:
        self.context = context

    async def _store(self, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await self.context.retry_policy.run(lambda _attempt: call(), sleep=self.context.sleep)
        except TransientStorageError as exc:
            raise StorageError() from exc

    async def _park(
        self,
        ledger: str,
        kind: PendingKind,
        step: PendingStep,
        original_text: str,
        parsed: ParsedEntry,
        source_ref: str,
        **extra,
    ) -> PendingDisambiguation:
        now = self.context.now()
        try:
            purged = await self.context.pending.purge(now)
        except TransientStorageError as exc:
            logger.warning("Could not purge expired pending entries: %s", exc)
        else:
            if purged:
                logger.debug("Purged %s expired pending entries", purged)
        entry = PendingDisambiguation(
            key=new_pending_key(),
            ledger=ledger,
            kind=kind,
            step=step,
            original_text=original_text,
            parsed=parsed,
            source_ref=source_ref,
            created_at=now,
            ttl_seconds=self.context.pending_ttl_seconds,
            **extra,
        )
        await self._store(lambda: self.context.pending.put(entry))
        logger.info("Parked %s entry %s for ledger %s", step.value, entry.key, ledger)
        return entry

    async def request_category(
        self,
        ledger: str,
        original_text: str,
        parsed: ParsedEntry,
        source_ref: str,
        candidates: Sequence[CategoryEntry],
    ) -> Reply:
        """Classification menu: up to ``menu_limit - 1`` categories plus cancel."""
        entry = await self._park(
            ledger, PendingKind.CATEGORY, PendingStep.CLASSIFY, original_text, parsed, source_ref
        )
        limit = max(1, self.context.menu_limit - 1)
        choices = [
            Choice(label=category.name, payload=encode(CallbackKind.CLASSIFY, category.id, entry.key))
            for category in list(candidates)[:limit]
        ]
        choices.append(Choice(label=CANCEL_LABEL, payload=encode(CallbackKind.CANCEL, "", entry.key)))
        text = f"找不到「{parsed.subject}」對應的科目，請選擇：\n金額：{parsed.amount}元"
        return Reply(
            text=text,
            choices=choices,
            error_code=ErrorCode.CATEGORY_UNRESOLVED.value,
            pending_key=entry.key,
            parsed=parsed,
        )

    async def request_wallet_type(
        self,
        ledger: str,
        original_text: str,
        parsed: ParsedEntry,
        source_ref: str,
        category: CategoryEntry,
        phrase: str,
        detected_type: Optional[WalletType] = None,
    ) -> Reply:
        """The fixed cash / bank / credit menu plus cancel."""
        entry = await self._park(
            ledger,
            PendingKind.WALLET,
            PendingStep.WALLET_TYPE,
            original_text,
            parsed,
            source_ref,
            category=category,
            wallet_phrase=phrase,
            detected_type=detected_type,
        )
        lexicon = self.context.lexicon
        choices = [
            Choice(
                label=lexicon.label_for(wallet_type),
                payload=encode(CallbackKind.WALLET_TYPE, wallet_type.value, entry.key),
            )
            for wallet_type in WALLET_MENU_TYPES
        ]
        choices.append(
            Choice(label=CANCEL_LABEL, payload=encode(CallbackKind.WALLET_CONFIRM, "no", entry.key))
        )
        shown = phrase or "未指定"
        text = f"無法辨識支付方式「{shown}」，請選擇支付類型：\n金額：{parsed.amount}元"
        if detected_type is not None:
            text += f"\n偵測類型：{lexicon.label_for(detected_type)}"
        return Reply(
            text=text,
            choices=choices,
            error_code=ErrorCode.WALLET_UNRESOLVED.value,
            pending_key=entry.key,
            parsed=parsed,
        )

    async def request_wallet_confirmation(
        self,
        ledger: str,
        original_text: str,
        parsed: ParsedEntry,
        source_ref: str,
        category: CategoryEntry,
        phrase: str,
        proposed_type: WalletType,
    ) -> Reply:
        """Ask before creating a wallet the ledger does not have yet."""
        entry = await self._park(
            ledger,
            PendingKind.WALLET,
            PendingStep.WALLET_CONFIRM,
            original_text,
            parsed,
            source_ref,
            category=category,
            wallet_phrase=phrase,
            detected_type=proposed_type,
            proposed_type=proposed_type,
        )
        label = self.context.lexicon.label_for(proposed_type)
        name = phrase or label
        choices = [
            Choice(label="新增", payload=encode(CallbackKind.WALLET_CONFIRM, "yes", entry.key)),
            Choice(label=CANCEL_LABEL, payload=encode(CallbackKind.WALLET_CONFIRM, "no", entry.key)),
        ]
        text = f"帳本中沒有「{name}」（{label}），要新增這個支付方式並記帳嗎？\n金額：{parsed.amount}元"
        return Reply(
            text=text,
            choices=choices,
            error_code=ErrorCode.WALLET_UNRESOLVED.value,
            pending_key=entry.key,
            parsed=parsed,
        )

    async def resume(self, ledger: str, ref: CallbackRef) -> PendingDisambiguation:
        """Consume the parked entry a callback refers to.

        Absent, foreign, mismatched or past-TTL entries all raise
        ``PendingExpiredError``; a consumed entry can never be resumed twice.
        """
        entry = await self._store(lambda: self.context.pending.take(ref.key))
        if entry is None:
            logger.info("Pending entry %s not found", ref.key)
            raise PendingExpiredError()
        if entry.ledger != ledger:
            await self._store(lambda: self.context.pending.put(entry))
            logger.warning("Pending entry %s belongs to another ledger", ref.key)
            raise PendingExpiredError()
        if entry.is_expired(self.context.now()):
            logger.info("Pending entry %s expired at %s", ref.key, entry.expires_at)
            raise PendingExpiredError()
        if not ref.is_cancel and entry.step not in _ACCEPTED_STEPS[ref.kind]:
            logger.info("Callback %s does not match pending step %s", ref.kind.value, entry.step.value)
            raise PendingExpiredError()
        return entry
