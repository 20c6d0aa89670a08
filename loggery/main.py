import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loggery import __version__
from loggery.api import api_router
from loggery.api.logs_ws import router as logs_ws_router
from loggery.api.viewer_page import router as viewer_page_router
from loggery.config import settings
from loggery.file_sink import init_log_file
from loggery.log_handler import install_publisher_handler
from loggery.publisher import get_publisher
from loggery.viewer import ViewerServer

# ── Logging setup ────────────────────────────────────────────────────────────
# Attach the publisher handler to the root logger so every module's log
# records are captured and streamed to connected viewers.

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
if settings.capture_stdlib:
    install_publisher_handler()
# Quiet down noisy third-party loggers
for _name in ("httpcore", "httpx", "watchfiles", "uvicorn.access"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    publisher = get_publisher()
    sink = init_log_file(settings.log_file, publisher) if settings.log_file else None
    server = ViewerServer.from_settings(publisher, settings)
    server.attach()
    app.state.viewer_server = server
    logger.info("Viewer server ready (buffer capacity=%s)", publisher.buffer.capacity)
    try:
        yield
    finally:
        await server.shutdown()
        if sink is not None:
            sink.close()
        logger.info("Viewer server stopped")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",")],
    allow_methods=["GET", "DELETE"],
    allow_headers=["*"],
)

app.include_router(api_router)
app.include_router(logs_ws_router)  # WebSocket: /ws/logs
app.include_router(viewer_page_router)  # HTML viewer: /


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
