"""the beautiful world start from here."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from gh_forwarder.config import Settings, load_settings
from gh_forwarder.routers import gh, info
from gh_forwarder.services.telegram import ExponentialBackoff, TelegramClient
from gh_forwarder.utils import get_logger

log = get_logger(__name__)


def build_telegram_client(settings: Settings) -> TelegramClient:
    d = settings.delivery
    return TelegramClient(
        settings.telegram.bot_token,
        api_base=settings.telegram.api_base,
        timeout=settings.telegram.request_timeout,
        max_attempts=d.max_attempts,
        backoff=ExponentialBackoff(
            base=d.backoff_base, factor=d.backoff_factor, ceiling=d.backoff_ceiling
        ),
    )


def create_app(
    settings: Optional[Settings] = None,
    telegram: Optional[TelegramClient] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Settings (and with them the routing table) are read once here and shared
    read-only by every request, as is the Telegram client and its connection
    pool.
    """
    settings = settings or load_settings()
    owns_client = telegram is None
    client = telegram or build_telegram_client(settings)

    if not settings.github.webhook_secret:
        log.warning("webhook_secret_missing", msg="every webhook will be rejected")
    if not settings.telegram.bot_token:
        log.warning("bot_token_missing", msg="Telegram deliveries will fail")
    if not settings.routing:
        log.warning("routing_empty", msg="no events will be forwarded")

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        log.info("app_started", routes=len(settings.routing))
        try:
            yield
        finally:
            if owns_client:
                await client.aclose()

    app = FastAPI(title="GitHub → Telegram forwarder", lifespan=lifespan)
    app.state.settings = settings
    app.state.telegram = client

    app.include_router(info.router)
    app.include_router(gh.router)
    return app
