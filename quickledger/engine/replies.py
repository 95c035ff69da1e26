"""Deterministic reply text and the reply payload handed to chat channels."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Optional, Union

from pydantic import BaseModel, Field

from ..models.transaction import TransactionType
from ..schemas.entry import ParsedEntry, TransactionRecord
from .errors import EntryError

ELLIPSIS = "…"
UNKNOWN = "未知"
UNSPECIFIED = "未指定"
UNKNOWN_CATEGORY = "未知科目"
TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M"

DIRECTION_LABELS = {
    TransactionType.EXPENSE: "支出",
    TransactionType.INCOME: "收入",
}


class Choice(BaseModel):
    label: str
    payload: str


class Reply(BaseModel):
    text: str
    choices: list[Choice] = Field(default_factory=list)
    record: Optional[TransactionRecord] = None
    error_code: Optional[str] = None
    pending_key: Optional[str] = None
    parsed: Optional[ParsedEntry] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def truncate(text: str, limit: int) -> str:
    text = " ".join((text or "").split())
    if limit <= 0 or len(text) <= limit:
        return text
    return text[: limit - 1] + ELLIPSIS


def _lines(
    header: str,
    amount: str,
    payment: str,
    timestamp: datetime,
    category: str,
    remark: str,
    last_line: str,
) -> str:
    return "\n".join(
        [
            header,
            f"金額：{amount}",
            f"支付方式：{payment}",
            f"時間：{timestamp.strftime(TIMESTAMP_FORMAT)}",
            f"科目：{category}",
            f"備註：{remark}",
            last_line,
        ]
    )


def format_success(record: TransactionRecord, timezone: tzinfo, max_remark_length: int = 20) -> str:
    return _lines(
        "記帳成功！",
        f"{record.amount}元 ({DIRECTION_LABELS[record.direction]})",
        record.wallet_name,
        record.created_at.astimezone(timezone),
        record.category_name,
        truncate(record.description or record.category_name, max_remark_length),
        f"收支ID：{record.id}",
    )


def format_failure(
    reason: str,
    now: datetime,
    timezone: tzinfo,
    *,
    parsed: Optional[ParsedEntry] = None,
    original_text: str = "",
    direction: Optional[TransactionType] = None,
    category_name: Optional[str] = None,
    wallet_name: Optional[str] = None,
    max_remark_length: int = 20,
) -> str:
    """Same layout as a success; fields that were never resolved read as unknown."""
    if parsed is not None:
        amount = f"{parsed.amount}元"
        if direction is not None:
            amount += f" ({DIRECTION_LABELS[direction]})"
        remark = parsed.subject
    else:
        amount = UNKNOWN
        remark = original_text
    return _lines(
        "記帳失敗！",
        amount,
        wallet_name or UNSPECIFIED,
        now.astimezone(timezone),
        category_name or UNKNOWN_CATEGORY,
        truncate(remark, max_remark_length) or UNSPECIFIED,
        f"錯誤原因：{reason}",
    )


def format_reply(
    outcome: Union[TransactionRecord, EntryError],
    original_input: str,
    now: datetime,
    timezone: tzinfo,
    *,
    parsed: Optional[ParsedEntry] = None,
    max_remark_length: int = 20,
    direction: Optional[TransactionType] = None,
    category_name: Optional[str] = None,
    wallet_name: Optional[str] = None,
) -> Reply:
    """Render a committed record or a classified error as a reply.

    Only ``EntryError.reason`` is ever shown; any other exception must be
    handled by the caller.
    """
    if isinstance(outcome, TransactionRecord):
        return Reply(
            text=format_success(outcome, timezone, max_remark_length),
            record=outcome,
            parsed=parsed,
        )
    text = format_failure(
        outcome.reason,
        now,
        timezone,
        parsed=parsed,
        original_text=original_input,
        direction=direction,
        category_name=category_name,
        wallet_name=wallet_name,
        max_remark_length=max_remark_length,
    )
    return Reply(text=text, error_code=outcome.code.value, parsed=parsed)
