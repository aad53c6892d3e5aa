"""Dependency injection providers for FastAPI route handlers.

All shared resources (Database, Repository, settings, services) are provided
via FastAPI's ``Depends()`` mechanism. Route handlers never construct these
directly: they declare dependencies and FastAPI injects them.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from Grid_Rank.agents.insights import InsightGenerator
from Grid_Rank.config import AppSettings
from Grid_Rank.data.database import Database
from Grid_Rank.data.repository import Repository
from Grid_Rank.services.health import HealthService

logger = logging.getLogger(__name__)


async def get_database(request: Request) -> AsyncGenerator[Database]:
    """Yield the Database instance from application state.

    The Database is created during application lifespan startup and stored
    in ``app.state.database``. This dependency yields it for the duration
    of the request.
    """
    db: Database = request.app.state.database
    yield db


async def get_repository(
    db: Annotated[Database, Depends(get_database)],
) -> Repository:
    """Return a Repository backed by the request-scoped Database."""
    return Repository(db)


async def get_settings(request: Request) -> AppSettings:
    """Return the settings the application was created with."""
    settings: AppSettings = request.app.state.settings
    return settings


async def get_health_service(
    db: Annotated[Database, Depends(get_database)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> HealthService:
    """Return a HealthService with the request-scoped Database."""
    return HealthService(
        database=db,
        ollama_host=settings.ollama_host,
        ollama_model=settings.ollama_model,
    )


async def get_insight_generator(
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> InsightGenerator:
    """Return an InsightGenerator for the configured Ollama model."""
    return InsightGenerator(settings.ollama_host, settings.ollama_model)
