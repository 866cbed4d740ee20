"""
Restock Bot — HTTP surface.

Two endpoints for deployments that don't long-poll:

- GET  /api/check-reminders: batch trigger for an external cron. Requires
  "Authorization: Bearer <CRON_SECRET>" and returns the scan summary.
- POST /api/telegram-webhook: Telegram update ingestion. Always answers
  {"ok": true}; replies go out through the notifier.
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config import settings
from src.core.services import Services, build_services

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must answer 401, not 403
_bearer = HTTPBearer(auto_error=False)


def create_app(services: Services | None = None, cron_secret: str | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        services: Pre-built services (tests). Defaults to services backed by
                  a Telegram bot created from settings.
        cron_secret: Operator secret. Defaults to settings.CRON_SECRET.
    """
    if cron_secret is None:
        cron_secret = settings.CRON_SECRET

    bot = None
    if services is None:
        from telegram import Bot

        from src.adapters.telegram_notifier import TelegramNotifier

        bot = Bot(settings.TELEGRAM_BOT_TOKEN)
        services = build_services(TelegramNotifier(bot))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if bot is not None:
            await bot.initialize()
        yield
        if bot is not None:
            await bot.shutdown()

    app = FastAPI(title="Restock Bot", version="1.0.0", lifespan=lifespan)
    app.state.services = services

    def require_cron_secret(
        credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    ) -> None:
        if (
            not cron_secret
            or credentials is None
            or not secrets.compare_digest(credentials.credentials, cron_secret)
        ):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/api/check-reminders", dependencies=[Depends(require_cron_secret)])
    async def check_reminders() -> dict:
        summary = await services.scan()
        return summary.as_dict()

    @app.post("/api/telegram-webhook")
    async def telegram_webhook(request: Request) -> dict:
        try:
            body = await request.json()
        except ValueError:
            logger.warning("Webhook body is not JSON, ignored")
            return {"ok": True}

        message = body.get("message") if isinstance(body, dict) else None
        if not isinstance(message, dict) or not message.get("text"):
            return {"ok": True}

        chat_id = (message.get("chat") or {}).get("id")
        if chat_id is None:
            return {"ok": True}

        try:
            await services.interpreter.handle_message(str(chat_id), message["text"])
        except Exception as exc:
            logger.error("Webhook handling for chat %s failed: %s", chat_id, exc)
        return {"ok": True}

    return app
