"""Health checks for the external dependencies of a scan.

Checks Ollama (competitor discovery and insights) and SQLite (scan history).
Each check runs independently with its own timeout, so one dependency being
down never hides the state of the other.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from typing import Final

import httpx

from Grid_Rank.agents.llm_client import DEFAULT_HOST, DEFAULT_MODEL
from Grid_Rank.agents.model_config import fetch_available_models
from Grid_Rank.data.database import Database
from Grid_Rank.models.health import HealthStatus

logger = logging.getLogger(__name__)

OLLAMA_CHECK_TIMEOUT: Final[float] = 5.0
SQLITE_CHECK_TIMEOUT: Final[float] = 5.0


class HealthService:
    """Check availability of Ollama and the SQLite history store.

    Usage::

        health = HealthService(database=db)
        status = await health.check_all()
        if not status.ollama_available:
            logger.warning("Ollama is down, insights will use the fallback.")
    """

    def __init__(
        self,
        database: Database | None = None,
        *,
        ollama_host: str = DEFAULT_HOST,
        ollama_model: str = DEFAULT_MODEL,
    ) -> None:
        self._database = database
        self._ollama_host = ollama_host
        self._ollama_model = ollama_model

    async def check_all(self) -> HealthStatus:
        """Run every check concurrently and return a consolidated status."""
        ollama_outcome, sqlite_outcome = await asyncio.gather(
            self._check_ollama_with_models(),
            self.check_database(),
            return_exceptions=True,
        )

        if isinstance(ollama_outcome, BaseException):
            logger.warning("Ollama health check raised: %s", ollama_outcome)
            ollama_result: tuple[bool, list[str]] = (False, [])
        else:
            ollama_result = ollama_outcome

        if isinstance(sqlite_outcome, BaseException):
            logger.warning("SQLite health check raised: %s", sqlite_outcome)
            sqlite_result = False
        else:
            sqlite_result = sqlite_outcome

        status = HealthStatus(
            ollama_available=ollama_result[0],
            ollama_models=ollama_result[1],
            sqlite_available=sqlite_result,
            last_check=datetime.datetime.now(datetime.UTC),
        )
        logger.info(
            "Health check complete: ollama=%s sqlite=%s models=%s",
            status.ollama_available,
            status.sqlite_available,
            status.ollama_models,
        )
        return status

    async def check_ollama(self) -> bool:
        """Return True if Ollama responds and serves the configured model."""
        available, _models = await self._check_ollama_with_models()
        return available

    async def check_database(self) -> bool:
        """Return True if the database answers and migrations have run."""
        if self._database is None:
            logger.debug("No database configured for health check.")
            return False
        try:
            return await asyncio.wait_for(self._sqlite_check(), timeout=SQLITE_CHECK_TIMEOUT)
        except TimeoutError:
            logger.warning("SQLite health check timed out.")
            return False
        except Exception:  # noqa: BLE001
            logger.warning("SQLite health check failed.", exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _check_ollama_with_models(self) -> tuple[bool, list[str]]:
        try:
            model_names = await asyncio.wait_for(
                fetch_available_models(self._ollama_host),
                timeout=OLLAMA_CHECK_TIMEOUT,
            )
        except TimeoutError:
            logger.warning("Ollama health check timed out.")
            return (False, [])
        except httpx.HTTPError as exc:
            logger.warning("Ollama health check failed: %s", exc)
            return (False, [])

        has_model = any(self._ollama_model in name for name in model_names)
        if not has_model:
            logger.warning(
                "Ollama running but %s not found. Available: %s",
                self._ollama_model,
                ", ".join(model_names) if model_names else "(none)",
            )
        return (has_model, model_names)

    async def _sqlite_check(self) -> bool:
        if self._database is None:
            return False
        version = await self._database.schema_version()
        if version == 0:
            logger.warning("SQLite reachable but no migrations are applied.")
            return False
        logger.debug("SQLite check passed at schema version %d.", version)
        return True
