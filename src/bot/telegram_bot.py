"""
Restock Bot — Telegram Bot.

Long-polling front end. Every text message (commands included) goes to the
command interpreter, which decides whether to answer. Chats that are not
linked to a household are silently ignored.

The due scan also runs from here on a repeating job, unless the interval is
set to 0 and an external cron calls /api/check-reminders instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings

if TYPE_CHECKING:
    from src.core.services import Services
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Message handler
# ---------------------------------------------------------------------------


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Hand a text message to the interpreter; replies go out via the notifier."""
    message = update.effective_message
    chat = update.effective_chat
    if message is None or chat is None or not message.text:
        return

    services: Services = context.bot_data["services"]
    try:
        await services.interpreter.handle_message(str(chat.id), message.text)
    except Exception as exc:
        logger.error("Error handling message from chat %s: %s", chat.id, exc)


async def _due_scan_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    services: Services = context.bot_data["services"]
    try:
        await services.scan()
    except Exception as exc:
        logger.error("Scheduled due scan failed: %s", exc)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    notifier: NotificationPort | None = None,
    db_path: str | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
        db_path: SQLite file. Defaults to settings.DATABASE_PATH.
    """
    from src.core.services import build_services

    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if notifier is None:
        from src.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["services"] = build_services(notifier, db_path=db_path)

    app.add_handler(MessageHandler(filters.TEXT, handle_text))

    _setup_due_scan(app)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_due_scan(app: Application) -> None:
    """Register the repeating due scan job."""
    minutes = settings.SCAN_INTERVAL_MINUTES
    if minutes <= 0:
        logger.info("In-process due scan disabled (SCAN_INTERVAL_MINUTES=0)")
        return

    app.job_queue.run_repeating(
        _due_scan_job,
        interval=minutes * 60,
        first=10,
        name="due_scan",
    )
    logger.info("Due scan scheduled every %d minutes", minutes)


def main() -> None:
    """Entry point: build the app and start polling."""
    logger.info("Starting Restock bot...")
    app = build_app()
    app.run_polling(allowed_updates=Update.ALL_TYPES)
