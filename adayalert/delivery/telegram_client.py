"""Telegram Bot API async client.

Delivers rendered alerts with ``sendMessage``. Delivery is fire-and-forget
from the engine's point of view: final failures are logged and reported
as ``False``, never raised.
"""

import asyncio
import logging
from typing import Optional, Protocol, runtime_checkable

import httpx

from adayalert.config import Config

logger = logging.getLogger("adayalert")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


@runtime_checkable
class NotifierProtocol(Protocol):
    """Anything that can deliver a rendered message to a channel."""

    async def deliver(self, message: str, channel: Optional[str] = None) -> bool:
        ...


class TelegramNotifier:
    """Async client wrapping the Bot API ``sendMessage`` call."""

    def __init__(self, config: Config, parse_mode: str = "MarkdownV2") -> None:
        self._base_url = config.telegram_base_url
        self._default_chat = config.telegram_chat_id
        self._parse_mode = parse_mode
        self.sent_count = 0
        self.failed_count = 0

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Execute an HTTP request with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await getattr(client, method)(url, timeout=15.0, **kwargs)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Telegram %s returned %d, retry %d/%d in %.1fs",
                        method.upper(), resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    await asyncio.sleep(delay)
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Telegram %s transport error (%s), retry %d/%d in %.1fs",
                    method.upper(), exc, attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Delivery ─────────────────────────────────────────────────────────

    async def deliver(self, message: str, channel: Optional[str] = None) -> bool:
        """Send *message* to *channel* (a chat id; defaults to the configured one).

        Returns ``True`` once Telegram accepted the message.
        """
        chat_id = channel or self._default_chat
        payload = {
            "chat_id": chat_id,
            "text": message,
            "parse_mode": self._parse_mode,
            "disable_web_page_preview": True,
        }
        try:
            resp = await self._request_with_retry(
                "post", f"{self._base_url}/sendMessage", json=payload,
            )
        except httpx.HTTPError as exc:
            self.failed_count += 1
            logger.error("Telegram delivery to %s failed: %s", chat_id, exc)
            return False

        body = resp.json()
        if not body.get("ok", False):
            self.failed_count += 1
            logger.error(
                "Telegram rejected message to %s: %s",
                chat_id, body.get("description", "unknown error"),
            )
            return False

        self.sent_count += 1
        logger.info("Telegram message delivered to %s", chat_id)
        return True


class RecordingNotifier:
    """In-memory notifier for simulation and tests."""

    def __init__(self, fail: bool = False) -> None:
        self.messages: list[tuple[Optional[str], str]] = []
        self._fail = fail

    async def deliver(self, message: str, channel: Optional[str] = None) -> bool:
        if self._fail:
            logger.error("Recording notifier configured to fail")
            return False
        self.messages.append((channel, message))
        return True
