"""Error taxonomy for session establishment and event delivery."""

__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "HandshakeError",
    "PogrError",
    "TransportError",
]


class PogrError(Exception):
    """Base class for all pogr_logging errors."""


class ConfigurationError(PogrError):
    """Required credential or endpoint is missing. Not retried."""


class TransportError(PogrError):
    """Network-level failure raised by a Transport."""

    def __init__(self, message: str, *, timeout: bool = False) -> None:
        super().__init__(message)
        self.timeout = timeout


class _RemoteError(PogrError):
    """Failure talking to the intake service, with optional HTTP details."""

    def __init__(
        self,
        kind: str,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (HTTP {self.status_code}: {self.body or ''})"
        return base


class HandshakeError(_RemoteError):
    """Session init failed: network, timeout, status, malformed or rejected."""


class DeliveryError(_RemoteError):
    """A single event could not be delivered. The event is lost."""
