"""remcpy Application.

This is the main entry point for the remcpy service.
remcpy is a temporary remote copy relay: a client uploads a file under an
identifier of its choosing and anyone can fetch it back with a GET until the
retention window runs out and the file is reclaimed.

Modules:
    - store: identifier-addressed files under a single store directory
    - retention: heap-driven expiry scheduler and the reclaim worker
    - transfer: upload/download endpoints and the index page
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from remcpy.config import AppSettings, get_config
from remcpy.retention.scheduler import RetentionScheduler
from remcpy.retention.worker import ReclaimWorker
from remcpy.store.errors import RelayError
from remcpy.store.service import ContentStore
from remcpy.transfer.router import router as transfer_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# python-multipart logs every parsed part at DEBUG.
for _noisy in ("multipart", "python_multipart"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config: AppSettings = app.state.config or get_config()
    app.state.config = config

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    store = ContentStore(config.store.root, chunk_size=config.store.chunk_size)
    try:
        store.init_root()
    except OSError as exc:
        logger.critical("Error creating store directory: %s", exc)
        raise

    worker = ReclaimWorker(store)
    await worker.start()
    scheduler = RetentionScheduler(worker.submit, default_ttl_seconds=config.store.ttl_seconds)
    await scheduler.start()

    app.state.store = store
    app.state.worker = worker
    app.state.scheduler = scheduler
    logger.info(
        "remcpy ready on %s:%s (store=%s, ttl=%ss)",
        config.server.host,
        config.server.port,
        store.root,
        config.store.ttl_seconds,
    )

    yield  # Application runs here

    # Shutdown
    await scheduler.stop()
    await worker.close()
    logger.info("Application shutdown complete")


async def _relay_error_handler(request: Request, exc: RelayError) -> PlainTextResponse:
    """Render relay errors as plaintext with their own status code."""
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> PlainTextResponse:
    """Render routing errors (400 invalid endpoint, 405) as plaintext."""
    return PlainTextResponse(
        str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None)
    )


async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def create_app(config: Optional[AppSettings] = None) -> FastAPI:
    """Build the application.

    Args:
        config: Settings to run with. Defaults to ``get_config()`` at startup.
    """
    app = FastAPI(
        title="remcpy",
        description="Temporary remote copy service",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config

    app.add_exception_handler(RelayError, _relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)

    # /health must precede the transfer router's catch-all route.
    app.add_api_route("/health", health, methods=["GET"])
    app.include_router(transfer_router)
    return app


app = create_app()
