"""Versioned lookup table of currency units, payment keywords and bank aliases.

The bundled table lives in ``quickledger/data/lexicon.json``; a deployment can
point ``LEXICON_PATH`` at its own copy with the same shape.
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from ..models.transaction import TransactionType
from ..models.wallet import WalletType

logger = logging.getLogger(__name__)

DEFAULT_LEXICON_PATH = Path(__file__).resolve().parent.parent / "data" / "lexicon.json"


def normalize_text(value: str) -> str:
    """NFKC, casefold and strip: the comparison form used by every matcher."""
    return unicodedata.normalize("NFKC", value).casefold().strip()


class CurrencyUnits(BaseModel):
    supported: list[str] = Field(default_factory=list)
    unsupported: list[str] = Field(default_factory=list)


class Lexicon(BaseModel):
    version: str
    currency_units: CurrencyUnits
    payment_keywords: dict[WalletType, list[str]]
    banks: dict[str, list[str]]
    type_labels: dict[WalletType, str]
    detection_fallback: dict[TransactionType, WalletType]

    def label_for(self, wallet_type: WalletType) -> str:
        return self.type_labels.get(wallet_type, wallet_type.value)

    def fallback_type(self, direction: TransactionType) -> WalletType:
        return self.detection_fallback.get(direction, WalletType.CREDIT)

    def find_bank(self, text: str) -> Optional[tuple[str, str]]:
        """Return ``(canonical bank, matched alias)`` for the longest alias found in ``text``."""
        haystack = normalize_text(text)
        best: Optional[tuple[str, str]] = None
        for canonical, aliases in self.banks.items():
            for alias in [canonical, *aliases]:
                needle = normalize_text(alias)
                if needle and needle in haystack:
                    if best is None or len(needle) > len(best[1]):
                        best = (canonical, needle)
        return best

    def bank_aliases(self, canonical: str) -> list[str]:
        return [normalize_text(alias) for alias in [canonical, *self.banks.get(canonical, [])]]

    def find_keyword(self, text: str) -> Optional[tuple[WalletType, str]]:
        """Return ``(wallet type, matched keyword)`` for the longest payment keyword in ``text``."""
        haystack = normalize_text(text)
        best: Optional[tuple[WalletType, str]] = None
        for wallet_type, keywords in self.payment_keywords.items():
            for keyword in keywords:
                needle = normalize_text(keyword)
                if needle and needle in haystack:
                    if best is None or len(needle) > len(best[1]):
                        best = (wallet_type, needle)
        return best

    def find_unsupported_unit(self, subject: str, suffix: str) -> Optional[str]:
        """Foreign currency token right before or right after the amount, or closing the suffix."""
        for unit in sorted(self.currency_units.unsupported, key=len, reverse=True):
            escaped = re.escape(unit)
            if re.search(r"(?<![a-z])" + escaped + r"\s*$", subject, re.IGNORECASE):
                return unit
            if re.match(r"\s*" + escaped + r"(?![a-z])", suffix, re.IGNORECASE):
                return unit
            if re.search(r"(?<![a-z])" + escaped + r"\s*$", suffix, re.IGNORECASE):
                return unit
        return None

    def strip_currency_unit(self, suffix: str) -> tuple[str, Optional[str]]:
        """Remove one supported unit from the start (or else the end) of the suffix."""
        stripped = suffix.strip()
        units = sorted(self.currency_units.supported, key=len, reverse=True)
        for unit in units:
            if stripped.startswith(unit):
                return stripped[len(unit):].strip(), unit
        for unit in units:
            if stripped.endswith(unit):
                return stripped[: -len(unit)].strip(), unit
        return stripped, None


def read_lexicon(path: Path) -> Lexicon:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    lexicon = Lexicon.model_validate(data)
    logger.info("Loaded lexicon %s from %s", lexicon.version, path)
    return lexicon


@lru_cache(maxsize=1)
def _bundled_lexicon() -> Lexicon:
    return read_lexicon(DEFAULT_LEXICON_PATH)


def load_lexicon(path: Optional[Path] = None) -> Lexicon:
    """Load an override table, or the bundled one (parsed once per process)."""
    if path is None:
        return _bundled_lexicon()
    return read_lexicon(path)
