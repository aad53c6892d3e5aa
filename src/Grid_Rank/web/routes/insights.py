"""Insight routes.

POST /api/scan/{id}/insights/{type} generates and stores an insight.
GET  /api/scan/{id}/insights lists the stored insights, newest first.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from Grid_Rank.agents.insights import InsightGenerator
from Grid_Rank.data.repository import Repository
from Grid_Rank.models.enums import InsightType
from Grid_Rank.models.insight import Insight
from Grid_Rank.utils.exceptions import ScanNotFoundError
from Grid_Rank.web.deps import get_insight_generator, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["insights"])


@router.post("/{scan_id}/insights/{insight_type}", status_code=201, response_model=Insight)
async def create_insight(
    scan_id: str,
    insight_type: InsightType,
    repo: Annotated[Repository, Depends(get_repository)],
    generator: Annotated[InsightGenerator, Depends(get_insight_generator)],
) -> Insight:
    """Generate an insight for a stored scan (falls back without Ollama)."""
    item = await repo.get_scan(scan_id)
    if item is None:
        raise ScanNotFoundError(f"Scan '{scan_id}' not found")

    insight = await generator.generate(insight_type, item.settings, item.result)
    await repo.save_insight(scan_id, insight)
    logger.info(
        "Scan %s | %s insight stored (fallback=%s)",
        scan_id[:8],
        insight_type.value,
        insight.is_fallback,
    )
    return insight


@router.get("/{scan_id}/insights", response_model=list[Insight])
async def list_insights(
    scan_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
) -> list[Insight]:
    """Return the insights stored for a scan."""
    if await repo.get_scan(scan_id) is None:
        raise ScanNotFoundError(f"Scan '{scan_id}' not found")
    return await repo.list_insights(scan_id)
