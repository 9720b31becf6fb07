"""FastAPI application for the quoter.

Note: Watching is not exposed over HTTP. Each request builds an engine,
quotes once and stops watching before responding.
"""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quoter import __version__
from quoter.api.endpoints import router
from quoter.errors import ConfigurationError, NetworkFailure, QuoterError, RouteNotFound

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("QUOTER_HOST", "0.0.0.0")
PORT = int(os.environ.get("QUOTER_PORT", "8000"))
DEBUG = os.environ.get("QUOTER_DEBUG", "false").lower() in ("true", "1", "yes")
LOG_LEVEL = os.environ.get("QUOTER_LOG_LEVEL", "INFO").upper()

# Maximum request body size (64 KB)
MAX_REQUEST_SIZE = 64 * 1024

# First matching class wins, so subclasses must come before QuoterError
ERROR_STATUS_CODES: list[tuple[type[QuoterError], int]] = [
    (RouteNotFound, 404),
    (ConfigurationError, 400),
    (NetworkFailure, 502),
]

app = FastAPI(
    title="AMM Quoter",
    description="Bid/ask quotes and best routes across Uniswap v2 and v3",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(QuoterError)
async def quoter_error_handler(request: Request, exc: QuoterError) -> JSONResponse:
    """Map quoter errors to HTTP status codes."""
    status_code = next(
        (status for error_cls, status in ERROR_STATUS_CODES if isinstance(exc, error_cls)),
        500,
    )
    logger.warning(
        "quoter_request_failed",
        path=request.url.path,
        status_code=status_code,
        code=exc.code.value,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": exc.code.value},
    )


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def configure_logging(level: str = LOG_LEVEL) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
    )


def run() -> None:
    """Run the quoter API server.

    Configuration via environment variables:
    - QUOTER_HOST: Host to bind to (default: 0.0.0.0)
    - QUOTER_PORT: Port to bind to (default: 8000)
    - QUOTER_DEBUG: Enable debug/reload mode (default: false)
    - QUOTER_LOG_LEVEL: Log level (default: INFO)
    - QUOTER_RPC_URL / QUOTER_CHAIN_ID: Chain connection
    """
    configure_logging()
    uvicorn.run(
        "quoter.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
