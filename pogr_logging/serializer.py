"""Event -> wire record. Pure and deterministic.

Wire contract for one log record (POST body to the logs endpoint):

    session_id   server-issued session token
    level        trace | debug | info | warn | error
    message      text or null
    target       emitting logger name or null
    timestamp    ISO-8601 UTC with millisecond precision, e.g. 2026-10-18T12:00:00.123Z
    fields       structured fields; ints/floats as numbers, bools as booleans, rest as strings
    data         source metadata: name, target, level, file, line
    severity     uppercase level name (TRACE, DEBUG, INFO, WARN, ERROR)
    log          the message text, "" when there is none
    tags         same map as fields
    service, environment, type   service identity, present when metadata is given

encode_record() sorts keys and uses compact separators, so the same inputs
always produce byte-identical bodies.
"""

import json
from datetime import datetime, timezone
from typing import Any

from pogr_logging.models import Event
from pogr_logging.settings import ServiceMetadata

__all__ = ["encode_record", "format_timestamp", "serialize_event"]


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC, millisecond precision, 'Z' suffix."""
    utc = ts.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _metadata(event: Event) -> dict[str, Any]:
    return {
        "name": event.name,
        "target": event.target,
        "level": event.level.value,
        "file": event.file,
        "line": event.line,
    }


def serialize_event(
    event: Event,
    session_id: str,
    metadata: ServiceMetadata | None = None,
) -> dict[str, Any]:
    """Render an event as the JSON-ready log record."""
    record: dict[str, Any] = {
        "session_id": session_id,
        "level": event.level.value,
        "message": event.message,
        "target": event.target,
        "timestamp": format_timestamp(event.timestamp),
        "fields": dict(event.fields),
        "data": _metadata(event),
        "severity": event.level.value.upper(),
        "log": event.message or "",
        "tags": dict(event.fields),
    }
    if metadata is not None:
        record["service"] = metadata.name
        record["environment"] = metadata.environment
        record["type"] = metadata.service_type
    return record


def encode_record(record: dict[str, Any]) -> bytes:
    """Canonical JSON bytes for a record."""
    return json.dumps(
        record, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")
