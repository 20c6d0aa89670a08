"""A simple in-process logger with a live, filterable viewer."""

__version__ = "0.1.0"

from loggery.file_sink import FileSink, init_log_file  # noqa: E402
from loggery.log_handler import PublisherHandler, install_publisher_handler  # noqa: E402
from loggery.publisher import (  # noqa: E402
    Publisher,
    configure,
    debug,
    error,
    get_publisher,
    info,
    publish,
    todo,
    trace,
    warn,
)
from loggery.records import Level, LogRecord  # noqa: E402
from loggery.ring_buffer import RingBuffer  # noqa: E402

__all__ = [
    "FileSink",
    "Level",
    "LogRecord",
    "Publisher",
    "PublisherHandler",
    "RingBuffer",
    "configure",
    "debug",
    "error",
    "get_publisher",
    "info",
    "init_log_file",
    "install_publisher_handler",
    "publish",
    "todo",
    "trace",
    "warn",
]
