"""Yet another tele services"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

import httpx

from gh_forwarder.models import ChatId, DeliveryOutcome, DeliveryStatus, Destination
from gh_forwarder.utils import get_logger

TELEGRAM_API_BASE = "https://api.telegram.org"
HTTP_TIMEOUT_SECONDS = 10
MAX_MESSAGE_LENGTH = 4096

JSONDict = dict[str, Any]
Sleep = Callable[[float], Awaitable[Any]]

log = get_logger(__name__)


def _normalize_newlines(s: str) -> str:
    return (s or "").replace("\r\n", "\n").replace("\r", "\n")


def _truncate(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    if len(text) <= limit:
        return text
    cut = text.rfind("\n", 0, limit - 1)
    if cut == -1:
        cut = limit - 1
    return text[:cut] + "…"


@dataclass(frozen=True)
class ExponentialBackoff:
    """Delay before retrying after attempt ``n``: ``base * factor**(n-1)``, capped."""

    base: float = 1.0
    factor: float = 2.0
    ceiling: float = 8.0

    def delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        if retry_after is not None and retry_after >= 0:
            return min(float(retry_after), self.ceiling)
        return min(self.base * self.factor ** max(attempt - 1, 0), self.ceiling)


def classify_response(status_code: int, data: JSONDict) -> DeliveryStatus:
    """Map a Telegram HTTP response onto success, retryable or permanent."""
    if status_code == 429 or status_code >= 500:
        return DeliveryStatus.RETRYABLE
    if 200 <= status_code < 300:
        if data.get("ok", True) is False:
            return DeliveryStatus.PERMANENT
        return DeliveryStatus.SUCCESS
    return DeliveryStatus.PERMANENT


def _json(resp: httpx.Response) -> JSONDict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _retry_after(data: JSONDict) -> Optional[float]:
    params = data.get("parameters")
    if not isinstance(params, dict):
        return None
    value = params.get("retry_after")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


class TelegramClient:
    """
    Sends messages through the Telegram Bot API.

    A single ``httpx.AsyncClient`` is shared by every request handled by the
    process. Each ``send_message`` call makes at most ``max_attempts`` requests
    and never raises for Telegram-side failures; the result is reported as a
    :class:`DeliveryOutcome`.
    """

    def __init__(
        self,
        token: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        api_base: str = TELEGRAM_API_BASE,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        max_attempts: int = 3,
        backoff: Optional[ExponentialBackoff] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._token = token
        self._api = f"{api_base.rstrip('/')}/bot{token}/sendMessage"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self.max_attempts = max_attempts
        self.backoff = backoff or ExponentialBackoff()
        self._sleep = sleep

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _attempt(self, payload: JSONDict) -> tuple[DeliveryStatus, JSONDict, str]:
        try:
            resp = await self._client.post(self._api, json=payload)
        except httpx.TransportError as exc:
            return DeliveryStatus.RETRYABLE, {}, f"{type(exc).__name__}: {exc}"
        data = _json(resp)
        status = classify_response(resp.status_code, data)
        error = ""
        if status is not DeliveryStatus.SUCCESS:
            description = data.get("description") or resp.reason_phrase
            error = f"Telegram error: {resp.status_code} {description}"
        return status, data, error

    async def send_message(
        self,
        chat_id: ChatId,
        html_text: str,
        *,
        disable_web_page_preview: bool = True,
    ) -> DeliveryOutcome:
        """Send one message, retrying 429/5xx/transport errors with backoff."""
        payload: JSONDict = {
            "chat_id": chat_id,
            "text": _truncate(_normalize_newlines(html_text)),
            "parse_mode": "HTML",
            "disable_web_page_preview": disable_web_page_preview,
        }

        error = ""
        for attempt in range(1, self.max_attempts + 1):
            status, data, error = await self._attempt(payload)
            if status is DeliveryStatus.SUCCESS:
                log.info("telegram_message_sent", chat_id=chat_id, attempts=attempt)
                return DeliveryOutcome(chat_id, status, attempts=attempt, response=data)
            if status is DeliveryStatus.PERMANENT:
                return DeliveryOutcome(chat_id, status, attempts=attempt, error=error, response=data)
            if attempt == self.max_attempts:
                break
            delay = self.backoff.delay(attempt, _retry_after(data))
            log.warning(
                "telegram_retry_scheduled",
                chat_id=chat_id,
                attempt=attempt,
                delay=delay,
                error=error,
            )
            await self._sleep(delay)

        return DeliveryOutcome(
            chat_id,
            DeliveryStatus.PERMANENT,
            attempts=self.max_attempts,
            error=f"gave up after {self.max_attempts} attempts: {error}",
        )

    async def deliver_all(
        self,
        destinations: Iterable[Destination],
        html_text: str,
        *,
        timeout: Optional[float] = None,
    ) -> list[DeliveryOutcome]:
        """
        Deliver ``html_text`` to every destination concurrently.

        Waits for all sends or until ``timeout`` seconds have passed; sends still
        running then are cancelled and reported as ``abandoned``.
        """
        tasks = {
            dest.chat_id: asyncio.ensure_future(self.send_message(dest.chat_id, html_text))
            for dest in destinations
        }
        if not tasks:
            return []

        done, pending = await asyncio.wait(tasks.values(), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        outcomes: list[DeliveryOutcome] = []
        for chat_id, task in tasks.items():
            if task in done and not task.cancelled() and task.exception() is None:
                outcomes.append(task.result())
                continue
            if task in done and not task.cancelled():
                exc = task.exception()
                log.error("telegram_delivery_crashed", chat_id=chat_id, error=repr(exc))
                outcomes.append(
                    DeliveryOutcome(chat_id, DeliveryStatus.PERMANENT, error=repr(exc))
                )
                continue
            outcomes.append(
                DeliveryOutcome(
                    chat_id,
                    DeliveryStatus.ABANDONED,
                    error=f"not finished within {timeout}s",
                )
            )
        return outcomes
