"""Data-driven insight text when the LLM is unavailable.

Builds an ``Insight`` from the scan numbers alone so that asking for an
insight always returns something useful, even with Ollama down.
"""

from __future__ import annotations

import datetime
import logging

from Grid_Rank.engine.aggregation import rank_by_area
from Grid_Rank.models import Insight, InsightType, ScanResult, ScanSettings

logger = logging.getLogger(__name__)

FALLBACK_MODEL_NAME: str = "data-driven-fallback"

_STRONG_TOP3_PERCENT: float = 50.0
_WEAK_TOP10_PERCENT: float = 25.0
_MAX_NAMED_COMPETITORS: int = 3


def _visibility_label(result: ScanResult) -> str:
    if result.summary.top3_percentage >= _STRONG_TOP3_PERCENT:
        return "strong"
    if result.summary.top10_percentage < _WEAK_TOP10_PERCENT:
        return "weak"
    return "moderate"


def _ranking_text(name: str, keyword: str, result: ScanResult) -> str:
    summary = result.summary
    text = (
        f"{name} has {_visibility_label(result)} visibility for \"{keyword}\": "
        f"average rank {summary.average_rank:.1f} across {result.completed_points} points, "
        f"top 3 at {summary.top3_percentage:.0f}% and top 10 at "
        f"{summary.top10_percentage:.0f}% of the grid."
    )
    areas = rank_by_area(result)
    if len(areas) > 1:
        best_label, best_rank = areas[0]
        worst_label, worst_rank = areas[-1]
        text += (
            f" Rankings are strongest to the {best_label} (avg {best_rank:.1f}) "
            f"and weakest to the {worst_label} (avg {worst_rank:.1f}). "
            f"Focus local relevance signals on the {worst_label} part of the area."
        )
    if result.is_partial:
        text += f" {len(result.skipped_points)} points could not be scored."
    return text


def _competitor_text(name: str, target_id: str | None, result: ScanResult) -> str:
    target_average = result.summary.average_rank
    ahead = [
        s
        for s in result.competitor_standings
        if s.business.id != target_id and s.average_rank < target_average
    ]
    if not ahead:
        return (
            f"No competitor outranks {name} on average across the grid "
            f"(average rank {target_average:.1f}). Keep review volume and profile "
            "activity ahead of the nearest rivals."
        )
    leaders = ", ".join(
        f"{s.business.name} (avg {s.average_rank:.1f})" for s in ahead[:_MAX_NAMED_COMPETITORS]
    )
    return (
        f"{len(ahead)} competitors outrank {name} on average (avg {target_average:.1f}). "
        f"The leaders are {leaders}. Compare their profile completeness, photos and "
        "review counts against yours to find the gap."
    )


def _review_text(name: str, keyword: str, result: ScanResult) -> str:
    return (
        f"No review data is available without the AI backend. For \"{keyword}\", "
        f"{name} ranks in the top 3 at {result.summary.top3_percentage:.0f}% of points; "
        "a steady flow of recent positive reviews is one of the strongest levers "
        "for lifting that share."
    )


def build_fallback_insight(
    insight_type: InsightType,
    settings: ScanSettings,
    result: ScanResult,
) -> Insight:
    """Build a data-driven insight of *insight_type* without an LLM.

    Returns:
        An Insight with ``model_used="data-driven-fallback"`` and
        ``is_fallback=True``.
    """
    target = settings.target
    name = target.name if target is not None else "The business"
    target_id = target.id if target is not None else None
    logger.info("Building fallback %s insight for %s", insight_type.value, name)

    if insight_type == InsightType.RANKING:
        content = _ranking_text(name, settings.search_query, result)
    elif insight_type == InsightType.COMPETITOR:
        content = _competitor_text(name, target_id, result)
    else:
        content = _review_text(name, settings.search_query, result)

    return Insight(
        insight_type=insight_type,
        content=content,
        sources=[],
        model_used=FALLBACK_MODEL_NAME,
        is_fallback=True,
        created_at=datetime.datetime.now(datetime.UTC),
    )
