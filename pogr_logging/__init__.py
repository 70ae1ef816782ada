"""pogr_logging: ship Python log records to the POGR intake service."""

from pogr_logging.appender import DispatchStats, PogrAppender
from pogr_logging.errors import (
    ConfigurationError,
    DeliveryError,
    HandshakeError,
    PogrError,
    TransportError,
)
from pogr_logging.handler import PogrHandler, event_from_record, install
from pogr_logging.models import Event, FieldValue, Level
from pogr_logging.serializer import encode_record, serialize_event
from pogr_logging.session import SessionHandshake, SessionState
from pogr_logging.settings import PogrSettings, ServiceMetadata, load_settings

__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "DispatchStats",
    "Event",
    "FieldValue",
    "HandshakeError",
    "Level",
    "PogrAppender",
    "PogrError",
    "PogrHandler",
    "PogrSettings",
    "ServiceMetadata",
    "SessionHandshake",
    "SessionState",
    "TransportError",
    "encode_record",
    "event_from_record",
    "install",
    "load_settings",
    "serialize_event",
]
