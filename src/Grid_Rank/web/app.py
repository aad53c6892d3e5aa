"""FastAPI app factory with lifespan-managed database and domain error mapping."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from Grid_Rank.config import AppSettings, load_settings
from Grid_Rank.data.database import Database
from Grid_Rank.logging_config import configure_logging
from Grid_Rank.web.middleware import RequestLoggingMiddleware, register_exception_handlers
from Grid_Rank.web.routes import health_router, insights_router, scan_router
from Grid_Rank.web.routes.scan import cancel_active_scans

logger = logging.getLogger(__name__)

API_PREFIX: str = "/api"


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Runtime settings; loaded from file and environment when None.
    """
    configure_logging()
    resolved = settings if settings is not None else load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        db = Database(resolved.db_path)
        await db.connect()
        app.state.database = db
        try:
            yield
        finally:
            await cancel_active_scans()
            await db.close()

    app = FastAPI(title="Grid Rank", lifespan=lifespan)
    app.state.settings = resolved

    register_exception_handlers(app)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(scan_router, prefix=API_PREFIX)
    app.include_router(insights_router, prefix=API_PREFIX)
    app.include_router(health_router, prefix=API_PREFIX)

    logger.info("Grid Rank web app created (db=%s)", resolved.db_path)
    return app
