from __future__ import annotations

from typing import Any, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

BUTTONS_PER_ROW = 3


def ledger_for_user(telegram_user_id: int) -> str:
    """Each Telegram user books into a ledger of their own."""
    return f"user_{telegram_user_id}"


def message_event_id(chat_id: int, message_id: int) -> str:
    return f"tg-msg-{chat_id}-{message_id}"


def callback_event_id(query_id: str) -> str:
    return f"tg-cb-{query_id}"


def build_choice_keyboard(
    choices: Sequence[dict[str, Any]], per_row: int = BUTTONS_PER_ROW
) -> InlineKeyboardMarkup | None:
    if not choices:
        return None
    buttons = [
        InlineKeyboardButton(choice["label"], callback_data=choice["payload"]) for choice in choices
    ]
    rows = [buttons[index : index + per_row] for index in range(0, len(buttons), per_row)]
    return InlineKeyboardMarkup(rows)
