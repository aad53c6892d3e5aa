"""Shared fixtures for web route tests.

Routes run against a real in-memory SQLite repository injected through
``dependency_overrides``; Ollama-backed services are replaced with mocks.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from Grid_Rank.config import AppSettings
from Grid_Rank.data.database import Database
from Grid_Rank.data.repository import Repository
from Grid_Rank.web.app import create_app
from Grid_Rank.web.deps import get_repository
from Grid_Rank.web.routes import scan as scan_routes


@pytest.fixture(autouse=True)
def _reset_scan_state() -> Iterator[None]:
    """Clear module-level scan tracking between tests."""
    yield
    scan_routes._scan_tasks.clear()
    scan_routes._scan_progress.clear()
    scan_routes._cancel_flags.clear()


@pytest.fixture()
def app_settings() -> AppSettings:
    """Deterministic settings: no jitter, small default grid."""
    return AppSettings(
        db_path=":memory:",
        history_limit=10,
        default_grid_spec="3 x 3 (1 km)",
        jitter=0.0,
    )


@pytest_asyncio.fixture()
async def db() -> AsyncGenerator[Database]:
    """Provide a connected in-memory Database for each test, with cleanup."""
    database = Database(db_path=":memory:")
    await database.connect()
    yield database
    await database.close()


@pytest_asyncio.fixture()
async def repo(db: Database) -> Repository:
    """Provide a Repository backed by the in-memory Database."""
    return Repository(db)


@pytest.fixture()
def app(app_settings: AppSettings, repo: Repository) -> FastAPI:
    """Create a test app with the repository dependency overridden."""
    test_app = create_app(app_settings)

    async def override_get_repository() -> Repository:
        return repo

    test_app.dependency_overrides[get_repository] = override_get_repository
    return test_app


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    """Async HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
