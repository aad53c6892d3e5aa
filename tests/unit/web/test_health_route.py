"""Tests for GET /api/health."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI

from Grid_Rank.models import HealthStatus
from Grid_Rank.services.health import HealthService
from Grid_Rank.web.deps import get_health_service


@pytest.mark.asyncio()
async def test_health_returns_status(
    app: FastAPI,
    client: httpx.AsyncClient,
    sample_health_status: HealthStatus,
) -> None:
    service = MagicMock(spec=HealthService)
    service.check_all = AsyncMock(return_value=sample_health_status)

    async def override_get_health_service() -> MagicMock:
        return service

    app.dependency_overrides[get_health_service] = override_get_health_service

    response = await client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["ollama_available"] is True
    assert body["sqlite_available"] is True
    assert body["ollama_models"] == ["llama3.1:8b", "mistral:7b"]
