"""
HTTP transport from the chat client to the relay endpoint.

``ProxyTransport.post`` never raises for network problems. Every outcome
comes back as a ``TransportResult`` so the conversation can decide what
the visitor sees.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from chatbridge.config import settings
from chatbridge.schemas.chat_schema import OutboundPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResult:
    """Outcome of one POST to the relay."""

    ok: bool
    data: Any = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Any, status_code: int) -> "TransportResult":
        return cls(ok=True, data=data, status_code=status_code)

    @classmethod
    def failure(cls, error: str, status_code: Optional[int] = None) -> "TransportResult":
        return cls(ok=False, error=error, status_code=status_code)


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error text from a failed relay response."""
    try:
        body = response.json()
    except (ValueError, RecursionError):
        return response.text or f"HTTP error! status: {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error")
        if detail:
            return str(detail)
    return f"HTTP error! status: {response.status_code}"


class ProxyTransport:
    """Posts outbound payloads to the relay as JSON."""

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.endpoint_url = endpoint_url or settings.proxy.endpoint_url
        self.timeout_sec = timeout_sec or settings.proxy.timeout_sec
        self._client = client

    async def post(self, payload: OutboundPayload) -> TransportResult:
        try:
            if self._client is not None:
                response = await self._client.post(
                    self.endpoint_url, json=payload, timeout=self.timeout_sec
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_sec) as client:
                    response = await client.post(self.endpoint_url, json=payload)
        except httpx.TimeoutException:
            logger.error("Chat proxy timed out after %.1fs", self.timeout_sec)
            return TransportResult.failure("timeout")
        except httpx.HTTPError as exc:
            logger.error("Chat proxy request failed: %s", exc)
            return TransportResult.failure(str(exc) or exc.__class__.__name__)

        if not response.is_success:
            detail = _error_detail(response)
            logger.error(
                "Chat proxy HTTP error: status=%s reason=%s detail=%s",
                response.status_code, response.reason_phrase, detail,
            )
            return TransportResult.failure(detail, status_code=response.status_code)

        try:
            data = response.json()
        except (ValueError, RecursionError) as exc:
            logger.error("Chat proxy returned a non-JSON body: %s", exc)
            return TransportResult.failure("invalid JSON body", status_code=response.status_code)

        return TransportResult.success(data, response.status_code)
