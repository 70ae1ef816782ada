"""logging.Handler that turns LogRecords into Events for the appender."""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Iterable

from pogr_logging.appender import PogrAppender
from pogr_logging.models import Event, Level
from pogr_logging.settings import DEFAULT_EXCLUDED_LOGGERS, PogrSettings, load_settings

# Attributes every LogRecord carries; anything else arrived through extra=.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


def _record_message(record: logging.LogRecord) -> str | None:
    try:
        message = record.getMessage()
    except Exception:
        # bad %-args: keep the raw template rather than losing the event
        message = str(record.msg)
    return message or None


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }
    if record.exc_info and record.exc_info[0] is not None:
        fields.setdefault("error", "".join(traceback.format_exception(*record.exc_info)).rstrip())
    elif record.exc_text:
        fields.setdefault("error", record.exc_text)
    return fields


def event_from_record(record: logging.LogRecord) -> Event:
    """Translate a LogRecord into an Event. Unrenderable values become strings."""
    return Event.create(
        Level.from_levelno(record.levelno),
        _record_message(record),
        target=record.name,
        fields=_record_fields(record),
        name=record.funcName,
        file=record.pathname,
        line=record.lineno,
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
    )


class PogrHandler(logging.Handler):
    """Forwards log records to a PogrAppender without blocking the caller."""

    def __init__(
        self,
        appender: PogrAppender,
        level: int | str = logging.NOTSET,
        excluded_loggers: Iterable[str] = DEFAULT_EXCLUDED_LOGGERS,
        owns_appender: bool = False,
    ) -> None:
        super().__init__(level)
        self.appender = appender
        self._excluded = tuple(excluded_loggers)
        self._owns_appender = owns_appender

    def _is_excluded(self, name: str) -> bool:
        return any(name == prefix or name.startswith(prefix + ".") for prefix in self._excluded)

    def emit(self, record: logging.LogRecord) -> None:
        if self._is_excluded(record.name):
            return
        try:
            self.appender.submit(event_from_record(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            if self._owns_appender:
                self.appender.close()
        finally:
            super().close()


def install(
    settings: PogrSettings | None = None,
    *,
    logger: logging.Logger | None = None,
    level: int | str | None = None,
) -> PogrHandler:
    """Attach a PogrHandler (with its own appender) to logger, root by default."""
    if settings is None:
        settings = load_settings()
    appender = PogrAppender(settings)
    handler = PogrHandler(
        appender,
        level=level if level is not None else settings.capture_level,
        excluded_loggers=settings.excluded_loggers,
        owns_appender=True,
    )
    target = logger or logging.getLogger()
    target.addHandler(handler)
    return handler
