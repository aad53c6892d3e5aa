"""Folding per-point rankings into scan-level statistics.

Pure functions over immutable models: the target's rank at a point, the
scan summary, the competitor leaderboard, candidate list preparation, and
the per-area breakdown used by insights.
"""

import logging
from collections.abc import Sequence

from Grid_Rank.engine.grid_spec import parse_grid_spec
from Grid_Rank.models.business import BusinessEntity
from Grid_Rank.models.scan import (
    CompetitorStanding,
    RankedEntry,
    RankingPoint,
    ScanResult,
    ScanSummary,
)

logger = logging.getLogger(__name__)

TOP3_THRESHOLD: int = 3
TOP10_THRESHOLD: int = 10


def find_target_rank(entries: Sequence[RankedEntry], target_id: str) -> tuple[int, bool]:
    """Locate the target in a ranking.

    Returns:
        ``(rank, True)`` when the target is ranked, otherwise the not-found
        sentinel ``(len(entries) + 1, False)``.
    """
    for entry in entries:
        if entry.business.id == target_id:
            return entry.rank, True
    return len(entries) + 1, False


def summarize(ranks: Sequence[int]) -> ScanSummary:
    """Compute average rank and top-3 / top-10 percentages.

    Args:
        ranks: Target rank at every successfully scored point.

    Raises:
        ValueError: If *ranks* is empty.
    """
    if not ranks:
        msg = "Cannot summarize a scan with no scored points"
        raise ValueError(msg)

    count = len(ranks)
    top3 = sum(1 for r in ranks if r <= TOP3_THRESHOLD)
    top10 = sum(1 for r in ranks if r <= TOP10_THRESHOLD)
    return ScanSummary(
        average_rank=sum(ranks) / count,
        top3_percentage=top3 / count * 100.0,
        top10_percentage=top10 / count * 100.0,
    )


def compute_standings(points: Sequence[RankingPoint]) -> list[CompetitorStanding]:
    """Average each business's rank across all points, best first.

    Every distinct business id seen in any ranking gets one standing, the
    target included. Businesses are ordered by ascending average rank; ties
    keep first-seen order.
    """
    totals: dict[str, int] = {}
    counts: dict[str, int] = {}
    businesses: dict[str, BusinessEntity] = {}

    for point in points:
        for entry in point.ranked_entries:
            business_id = entry.business.id
            if business_id not in businesses:
                businesses[business_id] = entry.business
                totals[business_id] = 0
                counts[business_id] = 0
            totals[business_id] += entry.rank
            counts[business_id] += 1

    standings = [
        CompetitorStanding(
            business=business,
            average_rank=totals[business_id] / counts[business_id],
        )
        for business_id, business in businesses.items()
    ]
    standings.sort(key=lambda s: s.average_rank)
    return standings


def build_candidates(
    target: BusinessEntity,
    competitors: Sequence[BusinessEntity],
) -> list[BusinessEntity]:
    """Return ``[target] + competitors`` with duplicate ids removed.

    Competitors sharing the target's id, or repeating an earlier competitor,
    are dropped with a warning. Discovery order is otherwise preserved.
    """
    candidates: list[BusinessEntity] = [target]
    seen: set[str] = {target.id}
    for competitor in competitors:
        if competitor.id in seen:
            if competitor.id == target.id:
                logger.warning("Dropping competitor '%s': same id as target", competitor.name)
            else:
                logger.warning("Dropping duplicate competitor id '%s'", competitor.id)
            continue
        seen.add(competitor.id)
        candidates.append(competitor)
    return candidates


def area_label(row: int, column: int, rows: int, columns: int) -> str:
    """Compass label of a grid cell relative to the grid center.

    Returns values such as ``"north-west"``, ``"east"`` or ``"center"``.
    """
    mid_row = (rows - 1) / 2
    mid_column = (columns - 1) / 2
    vertical = "north" if row < mid_row else "south" if row > mid_row else ""
    horizontal = "west" if column < mid_column else "east" if column > mid_column else ""
    if vertical and horizontal:
        return f"{vertical}-{horizontal}"
    return vertical or horizontal or "center"


def rank_by_area(result: ScanResult) -> list[tuple[str, float]]:
    """Average target rank per compass area, best area first."""
    spec = parse_grid_spec(result.grid_spec_text)
    totals: dict[str, int] = {}
    counts: dict[str, int] = {}
    for point in result.ranking_points:
        row, column = divmod(point.id, spec.columns)
        label = area_label(row, column, spec.rows, spec.columns)
        totals[label] = totals.get(label, 0) + point.target_rank
        counts[label] = counts.get(label, 0) + 1

    areas = [(label, totals[label] / counts[label]) for label in totals]
    areas.sort(key=lambda pair: pair[1])
    return areas
