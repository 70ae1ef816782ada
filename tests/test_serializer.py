"""Tests for pogr_logging.serializer: record shape, typed fields, determinism."""

import json
from datetime import datetime, timedelta, timezone

from pogr_logging.models import Event, Level
from pogr_logging.serializer import encode_record, format_timestamp, serialize_event
from pogr_logging.settings import ServiceMetadata

_TS = datetime(2026, 10, 18, 12, 0, 0, 123456, tzinfo=timezone.utc)


def _event(**kwargs) -> Event:
    kwargs.setdefault("timestamp", _TS)
    return Event.create(Level.INFO, "started", target="app.worker", **kwargs)


class TestSerializeEvent:
    def test_record_carries_required_keys(self) -> None:
        record = serialize_event(_event(fields={"retries": 0}), "abc123")
        assert record["session_id"] == "abc123"
        assert record["level"] == "info"
        assert record["message"] == "started"
        assert record["target"] == "app.worker"
        assert record["timestamp"] == "2026-10-18T12:00:00.123Z"
        assert record["fields"] == {"retries": 0}

    def test_field_values_keep_json_types(self) -> None:
        event = _event(fields={"count": 42, "ratio": 0.5, "ok": True, "name": "x"})
        fields = json.loads(encode_record(serialize_event(event, "s")))["fields"]
        assert fields == {"count": 42, "ratio": 0.5, "ok": True, "name": "x"}
        assert isinstance(fields["count"], int)
        assert isinstance(fields["ratio"], float)
        assert fields["ok"] is True
        assert isinstance(fields["name"], str)

    def test_error_field_is_string(self) -> None:
        event = _event(fields={"err": ValueError("disk full")})
        record = serialize_event(event, "s")
        assert record["fields"]["err"] == "disk full"

    def test_missing_message_and_target_are_null(self) -> None:
        event = Event.create(Level.WARN, timestamp=_TS)
        record = serialize_event(event, "s")
        assert record["message"] is None
        assert record["target"] is None
        assert record["level"] == "warn"

    def test_source_metadata_block(self) -> None:
        event = _event(name="run", file="/srv/app/worker.py", line=17)
        assert serialize_event(event, "s")["data"] == {
            "name": "run",
            "target": "app.worker",
            "level": "info",
            "file": "/srv/app/worker.py",
            "line": 17,
        }

    def test_intake_severity_log_and_tags(self) -> None:
        record = serialize_event(_event(fields={"retries": 0}), "s")
        assert record["severity"] == "INFO"
        assert record["log"] == "started"
        assert record["tags"] == {"retries": 0}
        warn = serialize_event(Event.create(Level.WARN, timestamp=_TS), "s")
        assert warn["severity"] == "WARN"
        assert warn["log"] == ""
        assert warn["tags"] == {}

    def test_service_metadata_included_when_given(self) -> None:
        meta = ServiceMetadata(name="svc", environment="prod", service_type="game")
        record = serialize_event(_event(), "s", meta)
        assert record["service"] == "svc"
        assert record["environment"] == "prod"
        assert record["type"] == "game"
        assert "service" not in serialize_event(_event(), "s")


class TestEncodeRecord:
    def test_same_event_encodes_byte_identical(self) -> None:
        event = _event(fields={"b": 1, "a": "two", "c": 0.25, "d": False})
        first = encode_record(serialize_event(event, "abc123"))
        second = encode_record(serialize_event(event, "abc123"))
        assert first == second

    def test_field_insertion_order_does_not_matter(self) -> None:
        one = _event(fields={"a": 1, "b": 2})
        two = _event(fields={"b": 2, "a": 1})
        assert encode_record(serialize_event(one, "s")) == encode_record(serialize_event(two, "s"))

    def test_output_is_compact_json(self) -> None:
        body = encode_record({"b": 1, "a": "x"})
        assert body == b'{"a":"x","b":1}'


class TestFormatTimestamp:
    def test_converts_to_utc(self) -> None:
        ts = datetime(2026, 10, 18, 14, 30, 0, 5000, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(ts) == "2026-10-18T12:30:00.005Z"
