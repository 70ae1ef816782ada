"""Shared fixtures: settings pointing at a test intake host and an in-memory transport."""

import asyncio
import json
from typing import Any, Callable, Mapping

import pytest

from pogr_logging.settings import PogrSettings, ServiceMetadata
from pogr_logging.transport import TransportResponse

INIT_URL = "https://intake.test/v1/intake/init"
LOGS_URL = "https://intake.test/v1/intake/logs"


def json_response(body: Any, status_code: int = 200) -> TransportResponse:
    return TransportResponse(status_code=status_code, body=json.dumps(body).encode("utf-8"))


class FakeTransport:
    """Transport that records calls and answers from a per-URL script.

    A script entry is a TransportResponse, an exception to raise, or the
    string "hang" for a request that never completes.
    """

    def __init__(self, script: Mapping[str, Any], delay: float = 0.0) -> None:
        self._script = dict(script)
        self._delay = delay
        self.calls: list[tuple[str, bytes, dict[str, str]]] = []
        self.closed = False

    def calls_to(self, url: str) -> list[tuple[str, bytes, dict[str, str]]]:
        return [c for c in self.calls if c[0] == url]

    async def post(
        self, url: str, content: bytes, headers: Mapping[str, str]
    ) -> TransportResponse:
        self.calls.append((url, content, dict(headers)))
        answer = self._script[url]
        if answer == "hang":
            await asyncio.Event().wait()
        if self._delay:
            await asyncio.sleep(self._delay)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def make_settings() -> Callable[..., PogrSettings]:
    def _make(**overrides: Any) -> PogrSettings:
        values: dict[str, Any] = {
            "access_key": "test_access_key",
            "secret_key": "test_secret_key",
            "init_endpoint": INIT_URL,
            "logs_endpoint": LOGS_URL,
            "request_timeout": 5.0,
            "service": ServiceMetadata(
                name="test_service", environment="testing", service_type="test"
            ),
        }
        values.update(overrides)
        return PogrSettings(**values)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., PogrSettings]) -> PogrSettings:
    return make_settings()


@pytest.fixture
def init_ok() -> TransportResponse:
    return json_response({"success": True, "payload": {"session_id": "test_session_id"}})


@pytest.fixture
def log_ok() -> TransportResponse:
    return json_response({"success": True, "payload": {"log_id": "test_log_id"}})
