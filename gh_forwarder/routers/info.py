"""Liveness and info routes."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "OK"


@router.get("/", response_class=PlainTextResponse)
def root(request: Request) -> str:
    settings = request.app.state.settings
    return (
        "GitHub → Telegram forwarder\n"
        f"POST /webhook/github ({len(settings.routing)} routing rule(s))"
    )
