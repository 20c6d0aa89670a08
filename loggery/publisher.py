"""Ingestion entry point: turns (level, message) into sequenced records.

The Publisher owns the process-wide sequence counter.  Sequence assignment
and the buffer append happen in one critical section, so buffer order always
equals sequence order.  ``publish`` never raises into the caller.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Iterator

from loggery.records import Level, LogRecord, now_ms
from loggery.ring_buffer import RingBuffer

logger = logging.getLogger(__name__)

Listener = Callable[[LogRecord], None]


def _to_text(message: object) -> str:
    try:
        return message if isinstance(message, str) else str(message)
    except Exception:
        return f"<unprintable {type(message).__name__}>"


def _safe_repr(value: object) -> str:
    try:
        return repr(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


class Publisher:
    def __init__(self, buffer: RingBuffer | None = None, counter: Iterator[int] | None = None) -> None:
        self.buffer = buffer if buffer is not None else RingBuffer()
        # Shared when the default publisher is replaced, so sequences never restart.
        self._counter = counter if counter is not None else itertools.count(1)
        self._append_lock = threading.Lock()
        self._listeners: tuple[Listener, ...] = ()
        self._listeners_lock = threading.Lock()

    def add_listener(self, listener: Listener) -> None:
        with self._listeners_lock:
            self._listeners = (*self._listeners, listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._listeners_lock:
            self._listeners = tuple(fn for fn in self._listeners if fn != listener)

    def publish(self, level: Level | int | str, message: object) -> LogRecord:
        text = _to_text(message)
        try:
            lvl = Level.parse(level)
        except ValueError:
            lvl = Level.ERROR
            text = f"[invalid level {_safe_repr(level)}] {text}"

        with self._append_lock:
            record = LogRecord(level=lvl, timestamp=now_ms(), message=text, sequence=next(self._counter))
            self.buffer.append(record)

        for listener in self._listeners:
            try:
                listener(record)
            except Exception:
                logger.exception("Log listener %r failed", listener)
        return record


# ── Process-wide default ──────────────────────────────────────────────────────

_default: Publisher | None = None
_default_lock = threading.Lock()


def get_publisher() -> Publisher:
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                from loggery.config import settings

                _default = Publisher(RingBuffer(settings.buffer_capacity))
    return _default


def configure(capacity: int | None) -> Publisher:
    """Replace the default publisher.  Call at startup, before viewers attach."""
    global _default
    with _default_lock:
        counter = _default._counter if _default is not None else None
        _default = Publisher(RingBuffer(capacity), counter=counter)
    return _default


def publish(level: Level | int | str, message: object) -> LogRecord:
    return get_publisher().publish(level, message)


def trace(message: object) -> LogRecord:
    return publish(Level.TRACE, message)


def debug(message: object) -> LogRecord:
    return publish(Level.DEBUG, message)


def info(message: object) -> LogRecord:
    return publish(Level.INFO, message)


def warn(message: object) -> LogRecord:
    return publish(Level.WARN, message)


def error(message: object) -> LogRecord:
    return publish(Level.ERROR, message)


def todo(message: object = "not yet implemented") -> None:
    """Record an unfinished code path, then raise NotImplementedError."""
    publish(Level.WARN, f"TODO: {message}")
    raise NotImplementedError(message)
