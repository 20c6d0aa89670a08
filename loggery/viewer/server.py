"""Registry of live subscriptions, woken by the publisher.

Producers may publish from any thread; the wake-up is handed to the event
loop with ``call_soon_threadsafe`` and coalesced so a burst of records costs
one loop callback.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from loggery.config import Settings
from loggery.publisher import Publisher
from loggery.records import Level, LogRecord
from loggery.viewer.subscription import Subscription, Transport, ViewerLimits

logger = logging.getLogger(__name__)


class ViewerServer:
    def __init__(
        self,
        publisher: Publisher,
        *,
        limits: ViewerLimits | None = None,
        default_min_level: Level = Level.TRACE,
        default_refresh_ms: int = 1000,
    ) -> None:
        self.publisher = publisher
        self.limits = limits or ViewerLimits()
        self.default_min_level = default_min_level
        self.default_refresh_ms = self.limits.clamp_refresh_ms(default_refresh_ms)
        self._subscriptions: dict[str, Subscription] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wake_lock = threading.Lock()
        self._wake_pending = False
        self._pending_level = Level.TRACE

    @classmethod
    def from_settings(cls, publisher: Publisher, settings: Settings) -> ViewerServer:
        limits = ViewerLimits(
            min_refresh_ms=settings.min_refresh_ms,
            max_refresh_ms=settings.max_refresh_ms,
            max_pending_batches=settings.max_pending_batches,
            send_timeout_ms=settings.send_timeout_ms,
            max_transient_failures=settings.max_transient_failures,
        )
        return cls(
            publisher,
            limits=limits,
            default_min_level=settings.default_min_level,
            default_refresh_ms=settings.default_refresh_ms,
        )

    # ── Publisher wiring ──────────────────────────────────────────────────────

    def attach(self) -> None:
        """Start receiving wake-ups.  Must be called from the serving event loop."""
        self._loop = asyncio.get_running_loop()
        with self._wake_lock:
            self._wake_pending = False
        self.publisher.add_listener(self._on_record)

    def detach(self) -> None:
        self.publisher.remove_listener(self._on_record)
        self._loop = None

    def _on_record(self, record: LogRecord) -> None:
        # Runs on the producer's thread.
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        with self._wake_lock:
            self._pending_level = max(self._pending_level, record.level)
            if self._wake_pending:
                return
            self._wake_pending = True
        loop.call_soon_threadsafe(self._wake_all)

    def _wake_all(self) -> None:
        with self._wake_lock:
            level = self._pending_level
            self._pending_level = Level.TRACE
            self._wake_pending = False
        for sub in list(self._subscriptions.values()):
            if level >= sub.min_level:
                sub.notify()

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def open_subscription(
        self,
        transport: Transport,
        *,
        min_level: Level | int | str | None = None,
        refresh_ms: int | None = None,
        after: int = 0,
    ) -> Subscription:
        sub = Subscription(
            self.publisher.buffer,
            transport,
            min_level=self.default_min_level if min_level is None else Level.parse(min_level),
            refresh_ms=self.default_refresh_ms if refresh_ms is None else refresh_ms,
            after=after,
            limits=self.limits,
        )
        self._subscriptions[sub.id] = sub
        sub.on_close(self._forget)
        sub.start()
        return sub

    def _forget(self, sub: Subscription) -> None:
        self._subscriptions.pop(sub.id, None)

    def get(self, subscription_id: str) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions.values())

    async def close_subscription(self, subscription_id: str, reason: str = "closed") -> bool:
        sub = self._subscriptions.get(subscription_id)
        if sub is None:
            return False
        await sub.close(reason)
        return True

    async def shutdown(self) -> None:
        subs = self.subscriptions()
        if subs:
            logger.info("Closing %d viewer subscription(s)", len(subs))
        await asyncio.gather(*(sub.close("shutdown") for sub in subs))
        self.detach()
