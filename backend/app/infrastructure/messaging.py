"""Twilio Messaging Gateway: WhatsApp/SMS delivery with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429) and transient errors (5xx, connection): max_retries retries
      with exponential backoff, Retry-After honoured when present
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to MessagingGatewayError (core/errors.py)
    - Recipients prefixed "whatsapp:" go over WhatsApp; sender prefixed to match

Design Decisions:
    - Plain REST call over httpx instead of the vendor SDK: one endpoint, form-encoded,
      basic auth; httpx gives async and a mockable transport
    - Wrapper over raw client: isolates retry logic from the notification outbox
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
"""

import asyncio
import logging
import random

import httpx

from app.core.errors import MessagingGatewayError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class TwilioMessageGateway:
    """MessageGateway implementation backed by the Twilio Messages API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.account_sid = account_sid
        self.from_number = from_number
        self.url = f"{api_base.rstrip('/')}/Accounts/{account_sid}/Messages.json"
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._auth = httpx.BasicAuth(account_sid, auth_token)
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    def _sender_for(self, to: str) -> str:
        if to.startswith("whatsapp:") and not self.from_number.startswith("whatsapp:"):
            return f"whatsapp:{self.from_number}"
        return self.from_number

    async def send(self, to: str, body: str) -> str | None:
        """Send one message; returns Twilio's message SID."""
        form = {"From": self._sender_for(to), "To": to, "Body": body}
        async with httpx.AsyncClient(
            auth=self._auth, timeout=self._timeout, transport=self._transport,
        ) as client:
            for attempt in range(self.max_retries + 1):
                try:
                    response = await client.post(self.url, data=form)
                except httpx.TimeoutException:
                    raise MessagingGatewayError("request timed out")
                except httpx.TransportError as e:
                    await self._retry_or_raise(f"connection error: {e}", attempt, None)
                    continue

                if response.status_code < 400:
                    sid = _message_sid(response)
                    logger.info(
                        "Message accepted by gateway",
                        extra={"recipient": _mask(to)},
                    )
                    return sid
                if response.status_code in _RETRYABLE_STATUS:
                    await self._retry_or_raise(
                        f"HTTP {response.status_code}", attempt, response,
                    )
                    continue
                raise MessagingGatewayError(
                    _error_message(response), status_code=response.status_code,
                )
        return None

    async def _retry_or_raise(
        self, reason: str, attempt: int, response: httpx.Response | None,
    ) -> None:
        if attempt >= self.max_retries:
            raise MessagingGatewayError(
                f"{reason} after {self.max_retries} retries",
                status_code=response.status_code if response is not None else None,
            )
        delay = _retry_after_ms(response) or self._backoff(attempt)
        logger.warning(f"Messaging gateway {reason}, retry after {delay}ms (attempt {attempt + 1})")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


def _retry_after_ms(response: httpx.Response | None) -> int | None:
    if response is None:
        return None
    val = response.headers.get("retry-after")
    if val and val.isdigit():
        return int(val) * 1000
    return None


def _message_sid(response: httpx.Response) -> str | None:
    """SID of an accepted message; None when the body is not a JSON object."""
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload.get("sid") if isinstance(payload, dict) else None


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        return f"HTTP {response.status_code}"
    return f"HTTP {response.status_code}: {payload.get('message', 'rejected')}"


def _mask(number: str) -> str:
    """Keep the last 4 digits of a phone number for logs."""
    return f"***{number[-4:]}" if len(number) > 4 else "***"
