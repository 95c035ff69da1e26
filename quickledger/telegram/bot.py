from __future__ import annotations

import asyncio
import contextlib
import logging
import textwrap
from typing import Any

import httpx
from telegram import BotCommand, Update
from telegram.ext import (
    AIORateLimiter,
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..config import get_settings
from ..engine.callbacks import CallbackKind
from .api_client import LedgerApiClient
from .helpers import build_choice_keyboard, callback_event_id, ledger_for_user, message_event_id

logger = logging.getLogger(__name__)

HELP_TEXT = textwrap.dedent(
    """
    直接輸入「項目 + 金額 + 支付方式」即可記帳，例如：
    • 午餐120現金
    • 飯糰28星展
    • 薪水50000轉帳

    金額只接受正整數，可加上「元」；沒寫支付方式時使用預設錢包。
    找不到科目或支付方式時，會出現選單讓你選擇。
    """
).strip()

BUSY_TEXT = "系統忙碌中，請稍後再試。"

ALLOWED_UPDATES = ["message", "callback_query"]
CHOICE_CALLBACK_PATTERN = "^(" + "|".join(kind.value for kind in CallbackKind) + "):"


def _api_client(context: ContextTypes.DEFAULT_TYPE) -> LedgerApiClient:
    return context.application.bot_data["api_client"]


_application: Application | None = None
_api_client_instance: LedgerApiClient | None = None
_lock = asyncio.Lock()


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    await update.message.reply_text("歡迎使用快速記帳！\n\n" + HELP_TEXT)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    await update.message.reply_text(HELP_TEXT)


async def quick_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.message
    tele_user = update.effective_user
    if not message or tele_user is None:
        return
    text = (message.text or "").strip()
    if not text:
        return
    ledger = ledger_for_user(tele_user.id)
    event_id = message_event_id(update.effective_chat.id, message.message_id)
    try:
        reply = await _api_client(context).post_entry(ledger, text, event_id=event_id)
    except httpx.HTTPError:
        logger.exception("Failed to submit quick entry for %s", ledger)
        await message.reply_text(BUSY_TEXT)
        return
    if reply is None:
        logger.info("Duplicate delivery of %s ignored", event_id)
        return
    await message.reply_text(reply["text"], reply_markup=build_choice_keyboard(reply.get("choices") or []))


async def choice_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    if not query:
        return
    await query.answer()
    tele_user = query.from_user or update.effective_user
    if tele_user is None:
        return
    ledger = ledger_for_user(tele_user.id)
    try:
        reply = await _api_client(context).post_callback(
            ledger, query.data or "", event_id=callback_event_id(query.id)
        )
    except httpx.HTTPError:
        logger.exception("Failed to submit choice for %s", ledger)
        await query.edit_message_text(BUSY_TEXT)
        return
    if reply is None:
        return
    await query.edit_message_text(
        reply["text"], reply_markup=build_choice_keyboard(reply.get("choices") or [])
    )


def _create_application(token: str, api_client: LedgerApiClient) -> Application:
    application = (
        Application.builder()
        .token(token)
        .rate_limiter(AIORateLimiter())
        .build()
    )
    application.bot_data["api_client"] = api_client
    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CallbackQueryHandler(choice_callback, pattern=CHOICE_CALLBACK_PATTERN))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, quick_entry))
    return application


async def init_bot() -> None:
    """Initialise the Telegram bot and register the webhook."""
    settings = get_settings()
    if not settings.telegram_bot_token or not settings.telegram_webhook_secret:
        logger.info("Telegram bot or webhook secret not configured; skipping bot initialisation.")
        return
    if not settings.backend_base_url:
        logger.warning("BACKEND_BASE_URL is missing; skipping Telegram webhook setup.")
        return

    base_url = str(settings.backend_base_url)
    webhook_url = base_url.rstrip("/") + f"/api/telegram/webhook/{settings.telegram_webhook_secret}"
    api_base_url = str(settings.internal_backend_base_url or settings.backend_base_url)

    async with _lock:
        global _application, _api_client_instance
        if _application is not None:
            return

        api_client = LedgerApiClient(api_base_url)
        application = _create_application(settings.telegram_bot_token, api_client)

        try:
            await application.initialize()
            await application.start()
            try:
                await application.bot.set_my_commands(
                    [
                        BotCommand("start", "開始使用"),
                        BotCommand("help", "記帳格式說明"),
                    ]
                )
            except Exception:
                logger.exception("Failed to set Telegram command list.")
            if settings.telegram_register_webhook_on_start:
                await application.bot.set_webhook(
                    url=webhook_url, drop_pending_updates=False, allowed_updates=ALLOWED_UPDATES
                )
        except Exception:
            logger.exception("Failed to initialise Telegram webhook; bot disabled for this run.")
            with contextlib.suppress(Exception):
                await application.stop()
            with contextlib.suppress(Exception):
                await application.shutdown()
            await api_client.aclose()
            return

        _application = application
        _api_client_instance = api_client
        logger.info("Telegram webhook configured at %s", webhook_url)


async def handle_update(payload: dict[str, Any]) -> None:
    """Process a Telegram update forwarded by FastAPI."""
    async with _lock:
        if _application is None:
            raise RuntimeError("Telegram bot is not initialised.")
        application = _application
    update = Update.de_json(payload, application.bot)
    await application.process_update(update)


async def shutdown_bot() -> None:
    """Tear down the Telegram bot."""
    async with _lock:
        global _application, _api_client_instance
        if _application is None:
            return
        await _application.stop()
        await _application.shutdown()
        if _api_client_instance:
            await _api_client_instance.aclose()
        _application = None
        _api_client_instance = None
