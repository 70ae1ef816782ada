"""Session handshake: obtain the intake session id once per appender lifetime."""

import asyncio
import json
import logging
from enum import Enum

from pydantic import BaseModel, ValidationError

from pogr_logging.errors import ConfigurationError, HandshakeError, PogrError, TransportError
from pogr_logging.settings import ServiceMetadata
from pogr_logging.transport import Transport

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class InitPayload(BaseModel):
    session_id: str


class InitResponse(BaseModel):
    """Body of a successful init call: {"success": true, "payload": {"session_id": ...}}."""

    success: bool
    payload: InitPayload | None = None


class SessionHandshake:
    """Lazily establishes the session. At most one init request ever goes out.

    All state transitions happen under one asyncio.Lock. A failure is terminal:
    later callers get the recorded error back without any network I/O.

    When logs_endpoint is given it is validated together with the credentials,
    so a session that could never deliver fails before the init request.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        metadata: ServiceMetadata,
        init_endpoint: str,
        transport: Transport,
        timeout: float = 10.0,
        logs_endpoint: str | None = None,
    ) -> None:
        self._access_key = access_key
        self._secret_key = secret_key
        self._metadata = metadata
        self._init_endpoint = init_endpoint
        self._logs_endpoint = logs_endpoint
        self._transport = transport
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self._state = SessionState.UNINITIALIZED
        self._session_id: str | None = None
        self._error: PogrError | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def error(self) -> PogrError | None:
        """ConfigurationError or HandshakeError that failed the session, if any."""
        return self._error

    async def ensure_session(self) -> str:
        """Return the session id, performing the handshake on first use."""
        if self._state is SessionState.READY:
            return self._session_id  # type: ignore[return-value]
        if self._state is SessionState.FAILED:
            raise self._error  # type: ignore[misc]
        async with self._lock:
            if self._state is SessionState.READY:
                return self._session_id  # type: ignore[return-value]
            if self._state is SessionState.FAILED:
                raise self._error  # type: ignore[misc]
            self._state = SessionState.INITIALIZING
            try:
                session_id = await self._handshake()
            except asyncio.CancelledError:
                self._state = SessionState.UNINITIALIZED
                raise
            except (ConfigurationError, HandshakeError) as e:
                self._error = e
                self._state = SessionState.FAILED
                raise
            except Exception as e:
                error = HandshakeError("network", f"Session init failed unexpectedly: {e}")
                self._error = error
                self._state = SessionState.FAILED
                raise error from e
            self._session_id = session_id
            self._state = SessionState.READY
            logger.info("POGR session established: %s", session_id)
            return session_id

    def _validate(self) -> None:
        required = [
            ("access key", self._access_key),
            ("secret key", self._secret_key),
            ("init endpoint", self._init_endpoint),
        ]
        if self._logs_endpoint is not None:
            required.append(("logs endpoint", self._logs_endpoint))
        missing = [name for name, value in required if not value or not value.strip()]
        if missing:
            raise ConfigurationError(f"Missing POGR configuration: {', '.join(missing)}")

    def _request_body(self) -> bytes:
        body = {
            "access_key": self._access_key,
            "secret_key": self._secret_key,
            "service": self._metadata.name,
            "environment": self._metadata.environment,
            "type": self._metadata.service_type,
        }
        return json.dumps(body, sort_keys=True).encode("utf-8")

    async def _handshake(self) -> str:
        self._validate()
        headers = {
            "POGR_ACCESS": self._access_key,
            "POGR_SECRET": self._secret_key,
            "Content-Type": "application/json",
        }
        try:
            resp = await asyncio.wait_for(
                self._transport.post(self._init_endpoint, self._request_body(), headers),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise HandshakeError("timeout", "Session init timed out") from e
        except TransportError as e:
            kind = "timeout" if e.timeout else "network"
            raise HandshakeError(kind, f"Session init failed: {e}") from e

        if not resp.ok:
            raise HandshakeError(
                "status",
                "Session init returned an error status",
                status_code=resp.status_code,
                body=resp.text,
            )
        try:
            parsed = InitResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise HandshakeError(
                "malformed",
                f"Session init response could not be parsed: {e}",
                status_code=resp.status_code,
                body=resp.text,
            ) from e
        if not parsed.success or parsed.payload is None or not parsed.payload.session_id:
            raise HandshakeError(
                "rejected",
                "Session init was rejected by the intake service",
                status_code=resp.status_code,
                body=resp.text,
            )
        return parsed.payload.session_id
