"""Event model: one captured log occurrence, immutable once built."""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Mapping

__all__ = ["Event", "FieldValue", "Level", "coerce_field_value"]

FieldValue = int | float | bool | str


class Level(StrEnum):
    """Severity. The value is the canonical wire name."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @classmethod
    def from_levelno(cls, levelno: int) -> "Level":
        """Map a stdlib logging level number; CRITICAL folds into error."""
        if levelno < logging.DEBUG:
            return cls.TRACE
        if levelno < logging.INFO:
            return cls.DEBUG
        if levelno < logging.WARNING:
            return cls.INFO
        if levelno < logging.ERROR:
            return cls.WARN
        return cls.ERROR


def coerce_field_value(value: Any) -> FieldValue:
    """Render an arbitrary value into the closed field union. Never raises."""
    if isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, BaseException):
        return str(value) or type(value).__name__
    try:
        return repr(value)
    except Exception:
        return f"<unrepresentable {type(value).__name__}>"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """Immutable event handed from the capture path to a delivery task."""

    level: Level
    message: str | None = None
    fields: Mapping[str, FieldValue] = field(default_factory=lambda: MappingProxyType({}))
    target: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    name: str | None = None
    file: str | None = None
    line: int | None = None

    @classmethod
    def create(
        cls,
        level: Level,
        message: str | None = None,
        *,
        target: str | None = None,
        fields: Mapping[str, Any] | None = None,
        name: str | None = None,
        file: str | None = None,
        line: int | None = None,
        timestamp: datetime | None = None,
    ) -> "Event":
        """Build an event, stamping the capture instant and coercing field values."""
        coerced = {str(k): coerce_field_value(v) for k, v in (fields or {}).items()}
        if timestamp is None:
            timestamp = _utcnow()
        elif timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            level=Level(level),
            message=message,
            fields=MappingProxyType(coerced),
            target=target,
            timestamp=timestamp,
            name=name,
            file=file,
            line=line,
        )
