"""Append-only text mirror of published records: one ``[LEVEL] message`` line each."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from loggery.publisher import Publisher, get_publisher
from loggery.records import LogRecord

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "./.loggery.log"


def format_line(record: LogRecord) -> str:
    return f"[{record.level.name}] {record.message}\n"


class FileSink:
    """Mirror each published record to ``path``.

    Runs as a publisher listener, so the write and flush happen on the
    producer thread after the buffer lock is released.  Every publish pays
    for one line write plus a flush while a sink is attached.
    """

    def __init__(self, path: str | Path = DEFAULT_FILENAME) -> None:
        self.path = Path(path)
        self._file = self.path.open("a", encoding="utf-8")  # OSError surfaces at startup
        self._lock = threading.Lock()
        self._publisher: Publisher | None = None

    def __call__(self, record: LogRecord) -> None:
        with self._lock:
            if self._file.closed:
                return
            try:
                self._file.write(format_line(record))
                self._file.flush()
            except OSError:
                logger.exception("Failed writing log record to %s", self.path)

    def attach(self, publisher: Publisher) -> FileSink:
        self.detach()
        publisher.add_listener(self)
        self._publisher = publisher
        return self

    def detach(self) -> None:
        if self._publisher is not None:
            self._publisher.remove_listener(self)
            self._publisher = None

    def close(self) -> None:
        self.detach()
        with self._lock:
            if not self._file.closed:
                self._file.flush()
                self._file.close()

    def __enter__(self) -> FileSink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def init_log_file(path: str | Path = DEFAULT_FILENAME, publisher: Publisher | None = None) -> FileSink:
    """Mirror every record from *publisher* (default: the process-wide one) into *path*."""
    return FileSink(path).attach(publisher or get_publisher())
