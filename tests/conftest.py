"""
Shared pytest fixtures.

The stdlib bridge is switched off for the app under test so that log records
emitted by the test harness itself never land in the buffer being asserted
on.  ``PublisherHandler`` has its own tests.
"""

import asyncio
import os
import time
from collections.abc import Callable
from typing import Any

os.environ.setdefault("LOGGERY_CAPTURE_STDLIB", "false")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from loggery.api.viewers import get_viewer_server  # noqa: E402
from loggery.main import app  # noqa: E402
from loggery.publisher import Publisher, configure  # noqa: E402
from loggery.viewer import TransportClosed, ViewerLimits, ViewerServer  # noqa: E402

# Fast limits so subscription tests run in milliseconds
FAST_LIMITS = ViewerLimits(
    min_refresh_ms=10,
    max_refresh_ms=5000,
    max_pending_batches=64,
    send_timeout_ms=200,
    max_transient_failures=3,
)


# ── Publisher (fresh default per test) ────────────────────────────────────────


@pytest.fixture
def publisher() -> Publisher:
    return configure(capacity=100)


# ── HTTP test client ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(publisher: Publisher) -> AsyncClient:
    server = ViewerServer(publisher, limits=FAST_LIMITS)
    app.dependency_overrides[get_viewer_server] = lambda: server

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.pop(get_viewer_server, None)


# ── Fake viewer transport ─────────────────────────────────────────────────────


class FakeTransport:
    """Collects sent frames.  ``hang`` makes sends block; ``fail`` makes them raise."""

    def __init__(self, hang: bool = False, fail: BaseException | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed: tuple[int, str] | None = None
        self.hang = hang
        self.fail = fail

    async def send(self, payload: dict[str, Any]) -> None:
        if self.fail is not None:
            raise self.fail
        if self.hang:
            await asyncio.Event().wait()
        self.sent.append(payload)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed is not None:
            raise TransportClosed("already closed")
        self.closed = (code, reason)

    def messages(self) -> list[str]:
        return [r["message"] for frame in self.sent if frame["status"] == 0 for r in frame["records"]]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


# ── Polling helpers ───────────────────────────────────────────────────────────


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)
