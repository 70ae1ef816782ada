"""PogrAppender: owns the session and ships each event in its own async task.

submit() is called from arbitrary application threads and never blocks: it
only schedules work on the appender's event loop. Each event is delivered by an
independent task, so the intake service may see events out of emission order.
Delivery is best-effort: failures are logged and counted locally, never retried
and never raised to the caller.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass

from pogr_logging.errors import ConfigurationError, DeliveryError, HandshakeError, TransportError
from pogr_logging.models import Event
from pogr_logging.serializer import encode_record, serialize_event
from pogr_logging.session import SessionHandshake, SessionState
from pogr_logging.settings import PogrSettings
from pogr_logging.transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)

_THREAD_NAME = "pogr-appender"


@dataclass(frozen=True)
class DispatchStats:
    """Snapshot of appender counters."""

    submitted: int = 0
    delivered: int = 0
    failed: int = 0
    dropped: int = 0
    in_flight: int = 0


class PogrAppender:
    """Session-scoped, fire-and-forget event dispatcher."""

    def __init__(
        self,
        settings: PogrSettings,
        *,
        transport: Transport | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._settings = settings
        self._transport: Transport = transport or HttpxTransport(timeout=settings.request_timeout)
        self._session = SessionHandshake(
            access_key=settings.access_key,
            secret_key=settings.secret_key,
            metadata=settings.service,
            init_endpoint=settings.init_endpoint,
            transport=self._transport,
            timeout=settings.request_timeout,
            logs_endpoint=settings.logs_endpoint,
        )
        self._loop = loop
        self._owns_loop = loop is None
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._tasks: set[asyncio.Task[None]] = set()
        self._submitted = 0
        self._delivered = 0
        self._failed = 0
        self._dropped = 0
        self._failure_reported = False
        self._closed = False
        self._closing: asyncio.Task[None] | None = None

    @property
    def session(self) -> SessionHandshake:
        return self._session

    @property
    def settings(self) -> PogrSettings:
        return self._settings

    def stats(self) -> DispatchStats:
        with self._stats_lock:
            return DispatchStats(
                submitted=self._submitted,
                delivered=self._delivered,
                failed=self._failed,
                dropped=self._dropped,
                in_flight=len(self._tasks),
            )

    def _count(self, name: str) -> None:
        with self._stats_lock:
            setattr(self, name, getattr(self, name) + 1)

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        """Return the delivery loop, starting the private loop thread on first use."""
        if self._loop is not None and (not self._owns_loop or self._thread is not None):
            return self._loop
        with self._start_lock:
            if self._closed:
                raise RuntimeError("POGR appender is closed")
            if self._loop is None or self._thread is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=self._run_loop, args=(loop,), name=_THREAD_NAME, daemon=True
                )
                self._loop = loop
                self._thread = thread
                thread.start()
        return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    def submit(self, event: Event) -> None:
        """Hand the event off for delivery. Returns immediately; never raises."""
        if self._closed:
            self._count("_dropped")
            return
        if self._session.state is SessionState.FAILED:
            self._count("_dropped")
            logger.debug("POGR session failed; dropping %s event", event.level.value)
            return
        self._count("_submitted")
        try:
            self._ensure_loop().call_soon_threadsafe(self._spawn, event)
        except RuntimeError:
            # appender closed concurrently, or loop closed during interpreter shutdown
            self._count("_dropped")

    def _spawn(self, event: Event) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, event: Event) -> None:
        try:
            session_id = await self._session.ensure_session()
        except (ConfigurationError, HandshakeError) as e:
            self._count("_dropped")
            self._report_session_failure(e)
            return

        record = serialize_event(event, session_id, self._settings.service)
        try:
            await self._post_record(record, session_id)
        except DeliveryError as e:
            self._count("_failed")
            logger.warning("POGR delivery failed (%s): %s", e.kind, e)
            return
        except Exception as e:
            self._count("_failed")
            logger.exception("POGR delivery failed unexpectedly: %s", e)
            return
        self._count("_delivered")

    def _report_session_failure(self, error: Exception) -> None:
        if self._failure_reported:
            logger.debug("POGR session unavailable, event dropped: %s", error)
            return
        self._failure_reported = True
        logger.error("POGR session could not be established, events will be dropped: %s", error)

    async def _post_record(self, record: dict, session_id: str) -> None:
        headers = {
            "INTAKE_SESSION_ID": session_id,
            "Content-Type": "application/json",
        }
        try:
            resp = await asyncio.wait_for(
                self._transport.post(self._settings.logs_endpoint, encode_record(record), headers),
                timeout=self._settings.request_timeout,
            )
        except asyncio.TimeoutError as e:
            raise DeliveryError("timeout", "Log request timed out") from e
        except TransportError as e:
            raise DeliveryError("timeout" if e.timeout else "network", str(e)) from e

        if not resp.ok:
            raise DeliveryError(
                "status",
                "Log request returned an error status",
                status_code=resp.status_code,
                body=resp.text,
            )
        try:
            body = resp.json()
        except ValueError:
            return
        if isinstance(body, dict) and body.get("success") is False:
            raise DeliveryError(
                "rejected",
                "Log was rejected by the intake service",
                status_code=resp.status_code,
                body=resp.text,
            )
        payload = body.get("payload") if isinstance(body, dict) else None
        if isinstance(payload, dict):
            logger.debug("POGR log accepted: %s", payload.get("log_id"))

    async def flush(self, timeout: float | None = None) -> bool:
        """Wait for in-flight deliveries. Must run on the appender's loop.

        Returns True when everything finished within the timeout.
        """
        # let pending call_soon_threadsafe callbacks create their tasks
        await asyncio.sleep(0)
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return not pending

    async def aclose(self, timeout: float = 5.0) -> None:
        """Flush, cancel what is left, close the transport."""
        self._closed = True
        if not await self.flush(timeout):
            leftovers = list(self._tasks)
            logger.warning("POGR appender closing with %d undelivered events", len(leftovers))
            for task in leftovers:
                task.cancel()
            await asyncio.gather(*leftovers, return_exceptions=True)
        await self._transport.aclose()

    def close(self, timeout: float = 5.0) -> None:
        """Synchronous shutdown: flush, close the transport, stop the private loop.

        On a host loop the shutdown runs there: to completion when the loop is
        idle or owned by another thread, as a scheduled task when called from
        inside that loop. Async callers should prefer `await aclose()`.
        """
        with self._start_lock:
            if self._closed and self._thread is None:
                return
            self._closed = True
            loop, thread = self._loop, self._thread
        if not self._owns_loop:
            self._close_on_host_loop(timeout)
            return
        if loop is None or thread is None:
            return
        if threading.current_thread() is thread:
            return
        future = asyncio.run_coroutine_threadsafe(self.aclose(timeout), loop)
        try:
            future.result(timeout + 1.0)
        except Exception as e:
            logger.warning("POGR appender did not shut down cleanly: %s", e)
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        if not thread.is_alive():
            loop.close()
        self._thread = None

    def _close_on_host_loop(self, timeout: float) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        if not loop.is_running():
            loop.run_until_complete(self.aclose(timeout))
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            # blocking here would deadlock the loop
            self._closing = loop.create_task(self.aclose(timeout))
            return
        future = asyncio.run_coroutine_threadsafe(self.aclose(timeout), loop)
        try:
            future.result(timeout + 1.0)
        except Exception as e:
            logger.warning("POGR appender did not shut down cleanly: %s", e)
