"""Bridge from stdlib ``logging`` into a Publisher.

Attach ``PublisherHandler`` to the root logger and every module's log records
become visible to live viewers.  Records emitted by loggery itself are
skipped so that internal diagnostics never feed back into the buffer.
"""

from __future__ import annotations

import logging

from loggery.publisher import Publisher, get_publisher
from loggery.records import Level

_INTERNAL = "loggery"


class PublisherHandler(logging.Handler):
    """Logging handler that publishes formatted records."""

    def __init__(self, publisher: Publisher | None = None, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._publisher = publisher

    @property
    def publisher(self) -> Publisher:
        return self._publisher if self._publisher is not None else get_publisher()

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == _INTERNAL or record.name.startswith(_INTERNAL + "."):
            return
        try:
            self.publisher.publish(Level.from_stdlib(record.levelno), self.format(record))
        except Exception:
            self.handleError(record)


def install_publisher_handler(
    publisher: Publisher | None = None,
    fmt: str = "%(levelname)s %(name)s: %(message)s",
) -> PublisherHandler:
    """Add a PublisherHandler to the root logger.  Call once on startup."""
    handler = PublisherHandler(publisher)
    handler.setFormatter(logging.Formatter(fmt))
    logging.root.addHandler(handler)
    return handler
