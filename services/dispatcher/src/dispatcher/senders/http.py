"""Shared httpx plumbing for the provider-backed channel senders."""

import logging
import time
from collections.abc import Mapping
from typing import Any, ClassVar

import httpx

from dispatcher.senders.base import ChannelPayload, ChannelSender, SendResult

logger = logging.getLogger(__name__)

# 4xx responses that describe the provider's state rather than the request.
_RETRYABLE_4XX = frozenset({408, 425, 429})

_REASON_KEYS = ("error", "message", "detail", "reason")


def _response_reason(response: httpx.Response) -> str:
    """Best-effort human reason: provider's own message, else the status."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in _REASON_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return f"HTTP {response.status_code}: {value.strip()}"
    return f"HTTP {response.status_code}"


def classify_response(response: httpx.Response) -> SendResult:
    """Map a provider response onto success / transient / permanent."""
    status = response.status_code
    if 200 <= status < 300:
        return SendResult.success(provider_status=status)
    if status in _RETRYABLE_4XX or status >= 500:
        return SendResult.transient(_response_reason(response), provider_status=status)
    if 400 <= status < 500:
        return SendResult.permanent(_response_reason(response), provider_status=status)
    # 1xx/3xx: nothing sensible to conclude, so let the engine retry.
    return SendResult.transient(_response_reason(response), provider_status=status)


class HttpChannelSender(ChannelSender):
    """Posts ``{"notification": {...}}`` to ``{base_url}/notifications``.

    Subclasses name the channel, the JSON key that carries the recipient
    and the environment variable holding the base URL.  A sender built
    without a base URL stays usable but answers every call with a
    permanent failure, so misconfiguration is visible per request rather
    than crashing the process.
    """

    recipient_field: ClassVar[str]
    env_var: ClassVar[str]
    path: ClassVar[str] = "/notifications"

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._attempt_timeout = timeout
        self._client: httpx.Client | None = None

        if self._base_url is None:
            logger.warning(
                "Provider base URL not configured",
                extra={"channel": self.channel, "env_var": self.env_var},
            )
            return

        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            headers={"Accept": "application/json", **(headers or {})},
            transport=transport,
        )

    @property
    def base_url(self) -> str | None:
        return self._base_url

    def normalize_recipient(self, recipient: str) -> str:
        """Return the recipient as the provider expects it.

        Raises ValueError when the value can never be delivered.
        """
        return recipient

    def build_body(self, payload: ChannelPayload, recipient: str) -> dict[str, Any]:
        return {
            "notification": {
                "title": payload.title,
                "content": payload.content,
                self.recipient_field: recipient,
            }
        }

    def _post(self, client: httpx.Client, body: dict[str, Any]) -> httpx.Response:
        """POST *body* and read the whole reply within one attempt deadline.

        The client's httpx timeout applies to each connect, write and read
        separately, so the body is read chunk by chunk against the deadline.
        """
        deadline = time.monotonic() + self._attempt_timeout
        with client.stream("POST", self.path, json=body) as response:
            chunks: list[bytes] = []
            for chunk in response.iter_bytes():
                if time.monotonic() > deadline:
                    raise httpx.ReadTimeout("Attempt deadline exceeded", request=response.request)
                chunks.append(chunk)
            return httpx.Response(
                response.status_code,
                content=b"".join(chunks),
                request=response.request,
            )

    def send(self, payload: ChannelPayload) -> SendResult:
        if self._client is None:
            return SendResult.permanent(f"{self.env_var} is not configured")

        try:
            recipient = self.normalize_recipient(payload.recipient)
        except ValueError as exc:
            return SendResult.permanent(str(exc))

        body = self.build_body(payload, recipient)
        log_ctx = {"channel": self.channel, "base_url": self._base_url}

        try:
            response = self._post(self._client, body)
        except httpx.TimeoutException as exc:
            logger.warning("Provider call timed out", extra=log_ctx)
            return SendResult.timeout(f"Timed out: {exc.__class__.__name__}")
        except httpx.HTTPError as exc:
            logger.warning(
                "Provider call failed", extra={**log_ctx, "error": repr(exc)}
            )
            return SendResult.transient(f"Transport error: {exc.__class__.__name__}")

        result = classify_response(response)
        logger.debug(
            "Provider responded",
            extra={
                **log_ctx,
                "provider_status": response.status_code,
                "outcome": result.outcome,
            },
        )
        return result

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
