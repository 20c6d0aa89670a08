"""One connected viewer's live, filtered view into the ring buffer.

State machine:
  connected → streaming → disconnected | error

While streaming, two coroutines run inside the subscription's task:

  pump   waits for the refresh interval or a new-data signal, scans the
         buffer past the cursor, queues one batch, advances the cursor.
  drain  sends queued batches over the transport.

The outbound queue is bounded.  When the pump finds it full, the viewer is
too slow and the subscription is dropped; the publisher is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

from loggery.records import Level
from loggery.ring_buffer import RingBuffer
from loggery.schemas import LogBatch

logger = logging.getLogger(__name__)


class State(StrEnum):
    CONNECTED = "connected"
    STREAMING = "streaming"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class TransportClosed(Exception):
    """The peer is gone; nothing more can be sent."""


class Transport(Protocol):
    async def send(self, payload: dict[str, Any]) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


@dataclass(frozen=True)
class ViewerLimits:
    min_refresh_ms: int = 200
    max_refresh_ms: int = 60_000
    max_pending_batches: int = 64
    send_timeout_ms: int = 2000
    max_transient_failures: int = 3

    def clamp_refresh_ms(self, value: int) -> int:
        return max(self.min_refresh_ms, min(self.max_refresh_ms, value))


# Close codes for the final transport close
_CLOSE_NORMAL = 1000
_CLOSE_POLICY = 1008
_CLOSE_ERROR = 1011


class Subscription:
    def __init__(
        self,
        buffer: RingBuffer,
        transport: Transport,
        *,
        min_level: Level = Level.TRACE,
        refresh_ms: int = 1000,
        after: int = 0,
        limits: ViewerLimits | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.limits = limits or ViewerLimits()
        self.min_level = Level.parse(min_level)
        self.refresh_ms = self.limits.clamp_refresh_ms(refresh_ms)
        self.cursor = max(0, after)
        self.state = State.CONNECTED
        self.reason: str | None = None
        self.delivered = 0
        self.transient_failures = 0
        self.connected_at = datetime.now(UTC)

        self._buffer = buffer
        self._transport = transport
        self._outbox: asyncio.Queue[LogBatch] = asyncio.Queue(maxsize=self.limits.max_pending_batches)
        self._wake = asyncio.Event()
        self._closing = asyncio.Event()
        self._last_flush = float("-inf")
        self._task: asyncio.Task[None] | None = None
        self._on_close: list[Callable[[Subscription], None]] = []

    # ── Control ───────────────────────────────────────────────────────────────

    @property
    def active(self) -> bool:
        return self.state in (State.CONNECTED, State.STREAMING)

    def start(self) -> asyncio.Task[None]:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"subscription-{self.id}")
        return self._task

    def on_close(self, callback: Callable[[Subscription], None]) -> None:
        self._on_close.append(callback)

    def notify(self) -> None:
        """New data is available."""
        self._wake.set()

    def set_min_level(self, level: Level | int | str) -> None:
        # Cursor untouched: records already skipped by the old filter stay skipped.
        self.min_level = Level.parse(level)
        self._wake.set()

    def set_refresh_ms(self, refresh_ms: int) -> None:
        self.refresh_ms = self.limits.clamp_refresh_ms(refresh_ms)
        self._wake.set()

    async def close(self, reason: str = "closed") -> None:
        """Stop streaming and release resources.  Safe to call more than once."""
        if self.reason is None:
            self.reason = reason
        self._closing.set()
        self._wake.set()
        if self._task is None:
            self._finish(State.DISCONNECTED)
            return
        if self._task is asyncio.current_task() or self._task.done():
            return
        # Room for the goodbye frame and the transport close.
        grace = 2 * self.limits.send_timeout_ms / 1000
        try:
            await asyncio.wait_for(asyncio.shield(self._task), grace)
        except TimeoutError:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)

    async def wait_closed(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    # ── Task body ─────────────────────────────────────────────────────────────

    async def _run(self) -> None:
        self.state = State.STREAMING
        logger.info("Viewer %s streaming (min_level=%s, refresh=%dms)", self.id, self.min_level.name, self.refresh_ms)
        pump = asyncio.create_task(self._pump())
        drain = asyncio.create_task(self._drain())
        final = State.DISCONNECTED
        try:
            done, _ = await asyncio.wait({pump, drain}, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None:
                    logger.error("Viewer %s transport fault", self.id, exc_info=exc)
                    final, reason = State.ERROR, "error"
                else:
                    final, reason = task.result()
                if self.reason is None:
                    self.reason = reason
                break
        except asyncio.CancelledError:
            if self.reason is None:
                self.reason = "cancelled"
            raise
        finally:
            for task in (pump, drain):
                task.cancel()
            await asyncio.gather(pump, drain, return_exceptions=True)
            self._finish(final)

        if self.reason != "transport_closed":
            await self._say_goodbye(final)

    async def _pump(self) -> tuple[State, str]:
        loop = asyncio.get_running_loop()
        while not self._closing.is_set():
            await self._wait_for_tick()
            if self._closing.is_set():
                break
            records, high_water = self._buffer.scan(self.min_level, self.cursor)
            try:
                self._outbox.put_nowait(LogBatch.of(records, high_water))
            except asyncio.QueueFull:
                logger.warning("Viewer %s dropped: %d batches pending", self.id, self._outbox.qsize())
                return State.DISCONNECTED, "backpressure"
            self.cursor = high_water
            self._last_flush = loop.time()
        return State.DISCONNECTED, self.reason or "closed"

    async def _drain(self) -> tuple[State, str]:
        timeout = self.limits.send_timeout_ms / 1000
        while True:
            batch = await self._outbox.get()
            try:
                await asyncio.wait_for(self._transport.send(batch.model_dump(mode="json")), timeout)
            except TimeoutError:
                self.transient_failures += 1
                logger.warning(
                    "Viewer %s send timed out (%d/%d)",
                    self.id,
                    self.transient_failures,
                    self.limits.max_transient_failures,
                )
                if self.transient_failures > self.limits.max_transient_failures:
                    return State.ERROR, "send_timeout"
                continue
            except (TransportClosed, ConnectionError):
                return State.DISCONNECTED, "transport_closed"
            self.transient_failures = 0
            self.delivered += len(batch.records)

    async def _wait_for_tick(self) -> None:
        loop = asyncio.get_running_loop()
        remaining = self._last_flush + self.refresh_ms / 1000 - loop.time()
        if remaining > 0:
            try:
                await asyncio.wait_for(self._wake.wait(), remaining)
            except TimeoutError:
                pass
        self._wake.clear()
        # Coalesce bursts of signals: flushes stay at least min_refresh_ms apart.
        gap = self._last_flush + self.limits.min_refresh_ms / 1000 - loop.time()
        if gap > 0:
            try:
                await asyncio.wait_for(self._closing.wait(), gap)
            except TimeoutError:
                pass

    # ── Teardown ──────────────────────────────────────────────────────────────

    def _finish(self, state: State) -> None:
        if not self.active:
            return
        self.state = state
        while not self._outbox.empty():
            self._outbox.get_nowait()
        logger.info("Viewer %s %s (%s), %d records delivered", self.id, state.value, self.reason, self.delivered)
        for callback in self._on_close:
            callback(self)

    async def _say_goodbye(self, state: State) -> None:
        code = _CLOSE_NORMAL
        if state is State.ERROR:
            code = _CLOSE_ERROR
        elif self.reason in ("backpressure", "idle"):
            code = _CLOSE_POLICY
        frame = LogBatch.terminated(self.reason or "closed", self.cursor)
        timeout = self.limits.send_timeout_ms / 1000
        try:
            if self.reason != "error":
                await asyncio.wait_for(self._transport.send(frame.model_dump(mode="json")), timeout)
            await asyncio.wait_for(self._transport.close(code, self.reason or ""), timeout)
        except (TimeoutError, TransportClosed, ConnectionError):
            logger.debug("Viewer %s gone before goodbye", self.id)
        except Exception:
            logger.exception("Viewer %s failed to close its transport", self.id)
