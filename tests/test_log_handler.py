import logging

import pytest

from loggery.log_handler import PublisherHandler, install_publisher_handler
from loggery.publisher import Publisher
from loggery.records import Level
from loggery.ring_buffer import RingBuffer


@pytest.fixture
def bridged():
    pub = Publisher(RingBuffer(20))
    handler = PublisherHandler(pub)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    log = logging.getLogger("tests.bridge")
    log.setLevel(1)
    log.addHandler(handler)
    log.propagate = False
    yield pub, log
    log.removeHandler(handler)
    log.propagate = True


def test_stdlib_records_are_published(bridged):
    pub, log = bridged
    log.info("cache warmed in %d ms", 12)
    log.warning("queue depth high")
    log.log(5, "very chatty")

    records = pub.buffer.snapshot()
    assert [(r.level, r.message) for r in records] == [
        (Level.INFO, "tests.bridge: cache warmed in 12 ms"),
        (Level.WARN, "tests.bridge: queue depth high"),
        (Level.TRACE, "tests.bridge: very chatty"),
    ]


def test_internal_records_are_not_republished():
    pub = Publisher(RingBuffer(20))
    handler = PublisherHandler(pub)
    for name in ("loggery", "loggery.viewer.subscription"):
        handler.handle(logging.LogRecord(name, logging.WARNING, __file__, 1, "internal", None, None))
    handler.handle(logging.LogRecord("loggery_ext", logging.WARNING, __file__, 1, "external", None, None))

    assert [r.message for r in pub.buffer.snapshot()] == ["external"]


def test_handler_without_publisher_follows_default(publisher: Publisher):
    handler = PublisherHandler()
    handler.handle(logging.LogRecord("app", logging.ERROR, __file__, 1, "boom", None, None))
    assert [r.level for r in publisher.buffer.snapshot()] == [Level.ERROR]


def test_install_attaches_to_root_logger():
    pub = Publisher(RingBuffer(20))
    handler = install_publisher_handler(pub, fmt="%(message)s")
    try:
        assert handler in logging.root.handlers
        logging.getLogger("tests.root").error("from root")
        assert "from root" in [r.message for r in pub.buffer.snapshot()]
    finally:
        logging.root.removeHandler(handler)
