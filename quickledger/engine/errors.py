"""Error taxonomy for the quick-entry pipeline.

``EntryError`` subclasses are user-facing: their ``reason`` is a classified
message that can be shown in a reply. Storage adapters raise
``TransientStorageError`` and ``DuplicateRecordError``, which never reach the
user directly.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    PARSE_ERROR = "PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CATEGORY_UNRESOLVED = "CATEGORY_UNRESOLVED"
    WALLET_UNRESOLVED = "WALLET_UNRESOLVED"
    PENDING_EXPIRED = "PENDING_EXPIRED"
    STORAGE_ERROR = "STORAGE_ERROR"
    CANCELLED = "CANCELLED"


class EntryError(Exception):
    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    default_reason = "處理失敗"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class ParseError(EntryError):
    code = ErrorCode.PARSE_ERROR
    default_reason = "無法識別記帳格式"


class EntryValidationError(EntryError):
    code = ErrorCode.VALIDATION_ERROR
    default_reason = "記帳資料不完整"


class PendingExpiredError(EntryError):
    code = ErrorCode.PENDING_EXPIRED
    default_reason = "選項已過期，請重新輸入記帳內容"


class StorageError(EntryError):
    code = ErrorCode.STORAGE_ERROR
    default_reason = "資料儲存失敗，請稍後再試"


class EntryCancelled(EntryError):
    code = ErrorCode.CANCELLED
    default_reason = "已取消記帳"


class UnsupportedCurrencyError(ParseError):
    def __init__(self, unit: str) -> None:
        self.unit = unit
        super().__init__(f"不支援的幣別單位：{unit}")


class InvalidCallbackError(ValueError):
    """Raised when a callback payload does not follow the reference grammar."""


class TransientStorageError(Exception):
    """A storage call failed in a way that is worth retrying."""


class DuplicateRecordError(Exception):
    """An insert hit a unique constraint (record id or idempotency key)."""
