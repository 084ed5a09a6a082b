from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Coroutine

from telegram import BotCommand, Update
from telegram.ext import (
    AIORateLimiter,
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..config import get_settings
from ..services.store import LedgerStore
from .conversation import COMMANDS, Conversation

logger = logging.getLogger(__name__)

ALLOWED_UPDATES = ["message"]

_application: Application | None = None
_lock = asyncio.Lock()

Callback = Callable[[Update, ContextTypes.DEFAULT_TYPE], Coroutine[Any, Any, None]]


def _get_conversation(context: ContextTypes.DEFAULT_TYPE) -> Conversation:
    return context.application.bot_data["conversation"]


def _make_command_callback(name: str) -> Callback:
    async def callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if not message or update.effective_chat is None:
            return
        args = list(getattr(context, "args", None) or [])
        reply = await _get_conversation(context).handle_command(update.effective_chat.id, name, args)
        await message.reply_text(reply)

    callback.__name__ = f"{name}_command"
    return callback


async def free_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.message
    if not message or update.effective_chat is None:
        return
    text = message.text or ""
    reply = await _get_conversation(context).handle_text(update.effective_chat.id, text)
    await message.reply_text(reply)


async def unknown_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Answer slash commands no ``CommandHandler`` claimed."""
    message = update.message
    if not message or not message.text or update.effective_chat is None:
        return
    head, *args = message.text.split()
    name = head.lstrip("/").split("@", 1)[0]
    reply = await _get_conversation(context).handle_command(update.effective_chat.id, name, args)
    await message.reply_text(reply)


def build_conversation() -> Conversation:
    from ..db import SessionLocal

    return Conversation(LedgerStore(SessionLocal))


def _create_application(
    token: str,
    conversation: Conversation,
    post_init: Callable[[Application], Coroutine[Any, Any, None]] | None = None,
) -> Application:
    builder = Application.builder().token(token).rate_limiter(AIORateLimiter())
    if post_init is not None:
        builder = builder.post_init(post_init)
    application = builder.build()
    application.bot_data["conversation"] = conversation
    for spec in COMMANDS:
        application.add_handler(
            CommandHandler([spec.name, *spec.aliases], _make_command_callback(spec.name))
        )
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, free_text))
    # Registered commands match first within the group.
    application.add_handler(MessageHandler(filters.COMMAND, unknown_command))
    return application


async def _register_commands(application: Application) -> None:
    try:
        await application.bot.set_my_commands(
            [BotCommand(spec.name, spec.description) for spec in COMMANDS]
        )
    except Exception:
        logger.exception("Failed to set Telegram command list.")


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

    async with _lock:
        global _application
        if _application is not None:
            return

        application = _create_application(settings.telegram_bot_token, build_conversation())

        try:
            await application.initialize()
            await application.start()
            await _register_commands(application)
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
            return

        _application = application
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
        global _application
        if _application is None:
            return
        await _application.stop()
        await _application.shutdown()
        _application = None


async def _on_polling_start(application: Application) -> None:
    from ..db import init_db

    await init_db()
    await _register_commands(application)


def run_polling() -> None:  # pragma: no cover - long-running entry point
    """Run the bot with long polling instead of the FastAPI webhook."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.telegram_bot_token:
        raise SystemExit("TELEGRAM_BOT_TOKEN is not set.")
    application = _create_application(
        settings.telegram_bot_token, build_conversation(), post_init=_on_polling_start
    )
    logger.info("Starting long polling.")
    application.run_polling(allowed_updates=ALLOWED_UPDATES)


if __name__ == "__main__":  # pragma: no cover
    run_polling()
