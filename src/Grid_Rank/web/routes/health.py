"""Health route: dependency status as JSON."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from Grid_Rank.models.health import HealthStatus
from Grid_Rank.services.health import HealthService
from Grid_Rank.web.deps import get_health_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(
    service: Annotated[HealthService, Depends(get_health_service)],
) -> HealthStatus:
    """Run the Ollama and SQLite checks and return their status."""
    return await service.check_all()
