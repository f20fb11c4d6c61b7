"""FastAPI application for the arbitrage optimizer.

The app serves whichever engine is installed with ``set_engine``. Embedding
applications build an ArbitrageEngine on their own quote and chain sources and
install it before serving; until then the engine endpoints return 503.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from arbopt import __version__
from arbopt.api.endpoints import current_engine, router
from arbopt.log import configure_logging

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("ARBOPT_HOST", "0.0.0.0")
PORT = int(os.environ.get("ARBOPT_PORT", "8000"))
DEBUG = os.environ.get("ARBOPT_DEBUG", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.environ.get("ARBOPT_LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    engine = current_engine()
    if engine is not None:
        await engine.close()


app = FastAPI(
    title="Arbitrage Optimizer",
    description="Opportunity detection, route search and fee optimization",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "engine_configured": current_engine() is not None}


def run() -> None:
    """Run the optimizer API server.

    Configuration via environment variables:
    - ARBOPT_HOST: Host to bind to (default: 0.0.0.0)
    - ARBOPT_PORT: Port to bind to (default: 8000)
    - ARBOPT_DEBUG: Enable debug/reload mode (default: false)
    - ARBOPT_LOG_LEVEL: Minimum log level (default: INFO, DEBUG in debug mode)
    """
    configure_logging(LOG_LEVEL)
    logger.info("starting_server", host=HOST, port=PORT, debug=DEBUG)
    uvicorn.run(
        "arbopt.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
