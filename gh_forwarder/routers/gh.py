"""Ruter GH?"""

from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import PlainTextResponse

from gh_forwarder.models import DeliveryStatus, UnknownEvent
from gh_forwarder.services.github import summarize_event
from gh_forwarder.services.parser import MalformedPayload, parse_event
from gh_forwarder.services.routing import match_routes
from gh_forwarder.utils import get_logger, gh_verify

router = APIRouter(prefix="/webhook", tags=["github"])

log = get_logger(__name__)


@router.post("/github", response_class=PlainTextResponse)
async def github_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None),
    x_github_event: str | None = Header(None),
    x_github_delivery: str | None = Header(None),
):
    """
    GitHub webhook endpoint.

    The payload signature is validated against `X-Hub-Signature-256` with the
    configured shared secret, then the event is routed to every matching chat.
    Delivery problems are logged but never turned into an error response:
    GitHub cannot fix them and would only redeliver.
    """
    settings = request.app.state.settings
    telegram = request.app.state.telegram
    body = await request.body()
    event_type = x_github_event or "unknown"
    bound = log.bind(event_type=event_type, delivery_id=x_github_delivery)

    if not gh_verify(settings.github.webhook_secret, body, x_hub_signature_256):
        bound.warning("webhook_rejected", reason="invalid signature")
        raise HTTPException(401, "Invalid signature")

    try:
        event = parse_event(x_github_event, body)
    except MalformedPayload as exc:
        bound.warning("webhook_malformed", error=str(exc))
        raise HTTPException(400, str(exc)) from exc

    if isinstance(event, UnknownEvent):
        bound.info("webhook_ignored", reason="unsupported event type")
        return "ignored"

    bound = bound.bind(repository=event.repository, event=event.key)
    destinations = match_routes(event, settings.routing)
    if not destinations:
        bound.info("webhook_unrouted")
        return "no route"

    bound.info("webhook_routed", chats=[d.chat_id for d in destinations])
    text = summarize_event(event)
    outcomes = await telegram.deliver_all(
        destinations, text, timeout=settings.delivery_timeout
    )

    delivered = sum(1 for o in outcomes if o.ok)
    for outcome in outcomes:
        if outcome.ok:
            continue
        level = bound.warning if outcome.status is DeliveryStatus.ABANDONED else bound.error
        level(
            "delivery_failed",
            chat_id=outcome.chat_id,
            status=outcome.status.value,
            attempts=outcome.attempts,
            error=outcome.error,
        )
    return f"{event.key} event forwarded to {delivered}/{len(outcomes)} chat(s)"
