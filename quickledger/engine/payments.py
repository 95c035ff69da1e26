"""Resolve the payment suffix of an entry to one of the ledger's wallets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from ..models.transaction import TransactionType
from ..models.wallet import WalletType
from ..schemas.entry import WalletEntry
from .lexicon import Lexicon, normalize_text

MIN_SUBSTRING_LENGTH = 2


class PaymentRule(str, Enum):
    DEFAULT_WALLET = "default_wallet"
    FALLBACK_TYPE = "fallback_type"
    EXACT = "exact"
    BANK = "bank"
    KEYWORD = "keyword"
    SUBSTRING = "substring"


@dataclass(frozen=True)
class WalletMatch:
    wallet: WalletEntry
    rule: PaymentRule
    phrase: str = ""


@dataclass(frozen=True)
class RequiresWalletConfirmation:
    phrase: str
    detected_type: Optional[WalletType] = None
    bank: Optional[str] = None


PaymentResolution = Union[WalletMatch, RequiresWalletConfirmation]


def _terms(wallet: WalletEntry) -> list[str]:
    terms = [normalize_text(wallet.name)]
    terms.extend(normalize_text(synonym) for synonym in sorted(wallet.synonyms))
    return [term for term in terms if term]


def _prefer_default(wallets: Sequence[WalletEntry]) -> Optional[WalletEntry]:
    for wallet in wallets:
        if wallet.is_default:
            return wallet
    return wallets[0] if wallets else None


def wallet_of_type(wallets: Sequence[WalletEntry], wallet_type: WalletType) -> Optional[WalletEntry]:
    """Active wallet of ``wallet_type``, the default one first."""
    return _prefer_default([w for w in wallets if w.active and w.type == wallet_type])


def _resolve_empty(
    wallets: Sequence[WalletEntry], lexicon: Lexicon, direction: TransactionType
) -> PaymentResolution:
    for wallet in wallets:
        if wallet.is_default:
            return WalletMatch(wallet, PaymentRule.DEFAULT_WALLET)
    fallback = lexicon.fallback_type(direction)
    wallet = wallet_of_type(wallets, fallback)
    if wallet is not None:
        return WalletMatch(wallet, PaymentRule.FALLBACK_TYPE)
    # Detection fallback only: a wallet of that type still has to be confirmed.
    return RequiresWalletConfirmation(phrase="", detected_type=fallback)


def resolve_payment(
    suffix: str,
    wallets: Sequence[WalletEntry],
    lexicon: Lexicon,
    direction: TransactionType = TransactionType.EXPENSE,
) -> PaymentResolution:
    """Match ``suffix`` against the wallet registry.

    Order: empty suffix fallback, exact wallet name or synonym, bank alias,
    payment keyword, then plain substring overlap with a wallet name.
    Anything that implies a wallet the ledger does not have comes back as
    ``RequiresWalletConfirmation``.
    """
    active = [wallet for wallet in wallets if wallet.active]
    phrase = " ".join(suffix.split())
    text = normalize_text(phrase)
    if not text:
        return _resolve_empty(active, lexicon, direction)

    for wallet in active:
        if text in _terms(wallet):
            return WalletMatch(wallet, PaymentRule.EXACT, phrase)

    keyword = lexicon.find_keyword(text)
    bank = lexicon.find_bank(text)
    if bank is not None:
        canonical, alias = bank
        aliases = lexicon.bank_aliases(canonical)
        matches = [
            wallet
            for wallet in active
            if any(known in term for term in _terms(wallet) for known in aliases)
        ]
        if keyword is not None:
            typed = [wallet for wallet in matches if wallet.type == keyword[0]]
            matches = typed or matches
        wallet = _prefer_default(matches)
        if wallet is not None:
            return WalletMatch(wallet, PaymentRule.BANK, alias)
        detected = keyword[0] if keyword is not None else WalletType.BANK
        return RequiresWalletConfirmation(phrase=phrase, detected_type=detected, bank=canonical)

    if keyword is not None:
        wallet_type, matched = keyword
        named = [wallet for wallet in active if any(matched in term for term in _terms(wallet))]
        wallet = _prefer_default(named) or wallet_of_type(active, wallet_type)
        if wallet is not None:
            return WalletMatch(wallet, PaymentRule.KEYWORD, matched)
        return RequiresWalletConfirmation(phrase=phrase, detected_type=wallet_type)

    best: Optional[tuple[int, WalletEntry, str]] = None
    for wallet in active:
        for term in _terms(wallet):
            if len(term) >= MIN_SUBSTRING_LENGTH and term in text:
                overlap = term
            elif len(text) >= MIN_SUBSTRING_LENGTH and text in term:
                overlap = text
            else:
                continue
            if best is None or len(overlap) > best[0]:
                best = (len(overlap), wallet, overlap)
    if best is not None:
        return WalletMatch(best[1], PaymentRule.SUBSTRING, best[2])

    return RequiresWalletConfirmation(phrase=phrase)
