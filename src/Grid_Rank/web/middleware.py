"""Exception handlers and request logging middleware.

Maps domain exceptions from ``Grid_Rank.utils.exceptions`` to appropriate
HTTP status codes. Provides request logging middleware that logs method, path,
status code, and duration at INFO level.
"""

import logging
import time

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from Grid_Rank.utils.exceptions import (
    DiscoveryError,
    GridRankError,
    InvalidInputError,
    ScanCancelledError,
    ScanFailedError,
    ScanNotFoundError,
)

logger = logging.getLogger(__name__)

# Paths polled often enough that INFO would drown the log
_QUIET_PATHS: frozenset[str] = frozenset({"/api/health"})


# ---------------------------------------------------------------------------
# Domain exception -> HTTP status handlers
# ---------------------------------------------------------------------------


async def _invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    """Map InvalidInputError to HTTP 422."""
    logger.warning("Invalid input: %s", exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _scan_not_found_handler(request: Request, exc: ScanNotFoundError) -> JSONResponse:
    """Map ScanNotFoundError to HTTP 404."""
    logger.warning("Scan not found: %s", exc)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _discovery_error_handler(request: Request, exc: DiscoveryError) -> JSONResponse:
    """Map DiscoveryError to HTTP 502 (the discovery backend failed)."""
    logger.error("Discovery error: %s", exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def _scan_cancelled_handler(request: Request, exc: ScanCancelledError) -> JSONResponse:
    """Map ScanCancelledError to HTTP 409."""
    logger.info("Scan cancelled: %s", exc)
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "completed": exc.completed, "total": exc.total},
    )


async def _scan_failed_handler(request: Request, exc: ScanFailedError) -> JSONResponse:
    """Map ScanFailedError to HTTP 500 with the failure detail."""
    logger.error("Scan failed: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc), "total": exc.total})


async def _grid_rank_error_handler(request: Request, exc: GridRankError) -> JSONResponse:
    """Map any other GridRankError to HTTP 500 (catch-all for domain errors)."""
    logger.error("Unhandled domain error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Register all domain exception handlers on the FastAPI application.

    More specific exception types must be registered before their base classes
    so FastAPI matches them correctly.
    """
    app.add_exception_handler(InvalidInputError, _invalid_input_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ScanNotFoundError, _scan_not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DiscoveryError, _discovery_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ScanCancelledError, _scan_cancelled_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ScanFailedError, _scan_failed_handler)  # type: ignore[arg-type]
    app.add_exception_handler(GridRankError, _grid_rank_error_handler)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status code, and duration."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request, log timing information, and return response."""
        start_time = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start_time) * 1000

        path = request.url.path
        level = logging.DEBUG if path in _QUIET_PATHS else logging.INFO
        logger.log(
            level,
            "%s %s -> %d (%.1fms)",
            request.method,
            path,
            response.status_code,
            duration_ms,
        )

        return response
