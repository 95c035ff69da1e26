"""Split a quick-entry message into subject, amount and payment suffix."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

from ..schemas.entry import ParsedEntry
from .errors import EntryValidationError, ParseError, UnsupportedCurrencyError
from .lexicon import Lexicon

ENTRY_PATTERN = re.compile(r"^(?P<subject>[^0-9]*)(?P<amount>[0-9]+)(?P<suffix>.*)$", re.DOTALL)
FRACTION_PATTERN = re.compile(r"^[.,][0-9]")

# Column limits of the transactions table.
MAX_TEXT_LENGTH = 512
MAX_AMOUNT = 2**63 - 1


def parse_entry(text: str, lexicon: Lexicon) -> ParsedEntry:
    """Parse ``<subject><digits><suffix>``.

    Raises ``ParseError`` when the text does not have that shape (no digits,
    a leading zero, a fractional amount or a foreign currency) and
    ``EntryValidationError`` when it does but the values are unusable.
    """
    normalized = unicodedata.normalize("NFKC", text or "").strip()
    if not normalized:
        raise ParseError("請輸入記帳內容，例如：午餐120現金")
    if max(len(text or ""), len(normalized)) > MAX_TEXT_LENGTH:
        raise EntryValidationError(f"記帳內容過長，最多 {MAX_TEXT_LENGTH} 個字")

    match = ENTRY_PATTERN.match(normalized)
    if match is None:
        raise ParseError("找不到金額，請輸入例如：午餐120現金")

    subject = match.group("subject")
    raw_amount = match.group("amount")
    suffix = match.group("suffix")

    if subject.rstrip().endswith("-"):
        raise EntryValidationError("金額必須大於 0")
    subject = subject.strip()

    unsupported = lexicon.find_unsupported_unit(subject, suffix)
    if unsupported is not None:
        raise UnsupportedCurrencyError(unsupported)

    if not subject:
        raise EntryValidationError("請在金額前輸入項目，例如：午餐120")
    if len(raw_amount) > 1 and raw_amount.startswith("0"):
        raise ParseError("金額格式錯誤，不可以 0 開頭")
    if FRACTION_PATTERN.match(suffix):
        raise ParseError("金額僅支援整數")

    amount = int(raw_amount, 10)
    if amount <= 0:
        raise EntryValidationError("金額必須大於 0")
    if amount > MAX_AMOUNT:
        raise EntryValidationError("金額過大")

    remainder, unit = lexicon.strip_currency_unit(suffix)
    return ParsedEntry(
        subject=subject,
        raw_amount=raw_amount,
        amount=amount,
        suffix=remainder,
        unit=unit,
    )


def build_remark(parsed: ParsedEntry, consumed_phrase: Optional[str] = None) -> str:
    """Subject plus whatever the payment phrase left over in the suffix."""
    leftover = parsed.suffix
    if consumed_phrase:
        leftover = re.sub(re.escape(consumed_phrase), " ", leftover, count=1, flags=re.IGNORECASE)
    parts = [parsed.subject, " ".join(leftover.split())]
    return " ".join(part for part in parts if part) or parsed.subject
