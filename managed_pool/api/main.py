"""FastAPI application exposing managed pools over HTTP."""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from managed_pool.api.endpoints import router
from managed_pool.errors import (
    AllowlistError,
    AuthorizationError,
    OperationalModeError,
    PoolError,
    PoolStateError,
)

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("MANAGED_POOL_HOST", "0.0.0.0")
PORT = int(os.environ.get("MANAGED_POOL_PORT", "8000"))
DEBUG = os.environ.get("MANAGED_POOL_DEBUG", "false").lower() in ("true", "1", "yes")

logger = structlog.get_logger()

app = FastAPI(
    title="Managed Pool",
    description="A weighted liquidity pool with owner-controlled weights, fees and allowlist",
    version="0.1.0",
)


def status_for(exc: PoolError) -> int:
    """Map a pool error category to an HTTP status code."""
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, AllowlistError | OperationalModeError | PoolStateError):
        return 409
    # ValidationError, MathError and anything uncategorised
    return 400


@app.exception_handler(PoolError)
async def pool_error_handler(request: Request, exc: PoolError) -> JSONResponse:
    status = status_for(exc)
    logger.info("pool_request_rejected", path=request.url.path, code=exc.code, status=status)
    return JSONResponse(status_code=status, content={"error": exc.code, "detail": str(exc)})


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok"}


def configure_logging() -> None:
    log_level = logging.DEBUG if DEBUG else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )


def run() -> None:
    """Run the managed pool API server.

    Configuration via environment variables:
    - MANAGED_POOL_HOST: Host to bind to (default: 0.0.0.0)
    - MANAGED_POOL_PORT: Port to bind to (default: 8000)
    - MANAGED_POOL_DEBUG: Enable debug/reload mode (default: false)
    """
    configure_logging()
    uvicorn.run(
        "managed_pool.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
