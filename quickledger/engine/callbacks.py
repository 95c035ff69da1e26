"""Round-trip references carried by choice buttons.

Grammar: ``<kind>:<value>:<pendingKey>``, e.g. ``classify:A01:Xy3_k9Qa``,
``wallet_type:cash:Xy3_k9Qa``, ``wallet_confirm:yes:Xy3_k9Qa`` and
``cancel::Xy3_k9Qa``. Only the kind, the chosen value and the opaque key
travel over the wire; the entry itself stays server side.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from ..models.wallet import WalletType
from .errors import InvalidCallbackError

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,32}$")
# Telegram limits callback data to 64 bytes.
MAX_PAYLOAD_BYTES = 64

CONFIRM_VALUES = ("yes", "no")


class CallbackKind(str, Enum):
    CLASSIFY = "classify"
    WALLET_TYPE = "wallet_type"
    WALLET_CONFIRM = "wallet_confirm"
    CANCEL = "cancel"


@dataclass(frozen=True)
class CallbackRef:
    kind: CallbackKind
    value: str
    key: str

    @property
    def is_cancel(self) -> bool:
        return self.kind is CallbackKind.CANCEL or (
            self.kind is CallbackKind.WALLET_CONFIRM and self.value == "no"
        )


def encode(kind: CallbackKind, value: str, key: str) -> str:
    if not KEY_PATTERN.match(key):
        raise InvalidCallbackError(f"invalid pending key: {key!r}")
    payload = f"{kind.value}:{value}:{key}"
    if len(payload.encode("utf-8")) > MAX_PAYLOAD_BYTES:
        raise InvalidCallbackError("callback payload too long")
    return payload


def decode(payload: str) -> CallbackRef:
    """Parse a callback payload, validating the value for each kind."""
    if not payload or ":" not in payload:
        raise InvalidCallbackError("malformed callback payload")
    kind_text, rest = payload.split(":", 1)
    if ":" not in rest:
        raise InvalidCallbackError("malformed callback payload")
    value, key = rest.rsplit(":", 1)
    try:
        kind = CallbackKind(kind_text)
    except ValueError as exc:
        raise InvalidCallbackError(f"unknown callback kind: {kind_text!r}") from exc
    if not KEY_PATTERN.match(key):
        raise InvalidCallbackError("malformed pending key")

    if kind is CallbackKind.CLASSIFY and not value:
        raise InvalidCallbackError("classify needs a category id")
    if kind is CallbackKind.WALLET_TYPE:
        try:
            value = WalletType(value).value
        except ValueError as exc:
            raise InvalidCallbackError(f"unknown wallet type: {value!r}") from exc
    if kind is CallbackKind.WALLET_CONFIRM and value not in CONFIRM_VALUES:
        raise InvalidCallbackError("wallet_confirm expects yes or no")
    return CallbackRef(kind=kind, value=value, key=key)
