"""HTTP transport: POST bytes to a URL, get status + body back."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable

import httpx

from pogr_logging.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class TransportResponse:
    """Status code and raw body of a completed request."""

    status_code: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON. Raises ValueError on malformed content."""
        return json.loads(self.body)


@runtime_checkable
class Transport(Protocol):
    """Minimal outbound HTTP capability used by the session and the appender."""

    async def post(
        self, url: str, content: bytes, headers: Mapping[str, str]
    ) -> TransportResponse:
        """POST content; raise TransportError on network failure."""
        ...

    async def aclose(self) -> None:
        """Release connections."""
        ...


class HttpxTransport:
    """Transport backed by a single lazily created httpx.AsyncClient."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def post(
        self, url: str, content: bytes, headers: Mapping[str, str]
    ) -> TransportResponse:
        client = self._ensure_client()
        try:
            resp = await client.post(url, content=content, headers=dict(headers))
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {url} timed out", timeout=True) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        return TransportResponse(status_code=resp.status_code, body=resp.content)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
