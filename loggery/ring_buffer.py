"""Bounded, thread-safe store of the most recent log records.

Writers (append, clear) take the lock exclusively; readers (snapshot, scan)
share it with each other.  Records are immutable, so readers get fresh lists
holding the same record objects.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager

from loggery.records import Level, LogRecord


class ReadWriteLock:
    """Many concurrent readers or one writer.  Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class RingBuffer:
    """FIFO ring of LogRecords; ``capacity=None`` means unbounded."""

    def __init__(self, capacity: int | None = 1000) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be a positive integer or None")
        self._records: deque[LogRecord] = deque(maxlen=capacity)
        self._lock = ReadWriteLock()
        self._last_sequence = 0

    @property
    def capacity(self) -> int | None:
        return self._records.maxlen

    @property
    def last_sequence(self) -> int:
        """Highest sequence ever appended (survives eviction and clear)."""
        with self._lock.read():
            return self._last_sequence

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._records)

    def append(self, record: LogRecord) -> None:
        with self._lock.write():
            self._records.append(record)  # deque(maxlen) evicts the oldest
            self._last_sequence = record.sequence

    def clear(self) -> None:
        with self._lock.write():
            self._records.clear()

    def snapshot(self, min_level: Level = Level.TRACE, after_sequence: int = 0) -> list[LogRecord]:
        records, _ = self.scan(min_level, after_sequence)
        return records

    def scan(self, min_level: Level = Level.TRACE, after_sequence: int = 0) -> tuple[list[LogRecord], int]:
        """Return matching records plus the high-water mark, from one consistent view.

        The high-water mark is the highest sequence appended so far, so a
        consumer can move its cursor past records its filter rejected.
        """
        with self._lock.read():
            out = [
                r
                for r in self._iter_after(after_sequence)
                if r.level >= min_level
            ]
            return out, max(self._last_sequence, after_sequence)

    def _iter_after(self, after_sequence: int) -> Iterator[LogRecord]:
        # Sequences are ascending, so walk backwards only as far as needed.
        tail: list[LogRecord] = []
        for r in reversed(self._records):
            if r.sequence <= after_sequence:
                break
            tail.append(r)
        return reversed(tail)
