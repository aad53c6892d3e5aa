"""Shared formatting utilities for terminal and markdown reports.

Display policy lives here and only here: ranks above the cutoff show as
``"20+"``, points where the target was not ranked show as ``"—"``, and
ranks fall into colored bands. The engine always keeps true numeric ranks.
"""

from __future__ import annotations

import datetime
import logging
import re

from Grid_Rank.engine.grid_spec import parse_grid_spec
from Grid_Rank.models.enums import RankBand
from Grid_Rank.models.scan import CompetitorStanding, RankingPoint, ScanResult

logger = logging.getLogger(__name__)

# --- Display thresholds ---
RANK_DISPLAY_CUTOFF: int = 20
TOP3_MAX_RANK: int = 3
TOP10_MAX_RANK: int = 10
NOT_FOUND_MARK: str = "—"

_FILENAME_UNSAFE_RE: re.Pattern[str] = re.compile(r"[^A-Za-z0-9]+")


def format_rank(rank: int, found: bool = True) -> str:
    """Return the display text of a target rank.

    Args:
        rank: True numeric rank.
        found: False when the target was absent at the point.

    Returns:
        ``"—"`` when not found, ``"20+"`` above the cutoff, else the rank.
    """
    if not found:
        return NOT_FOUND_MARK
    if rank > RANK_DISPLAY_CUTOFF:
        return f"{RANK_DISPLAY_CUTOFF}+"
    return str(rank)


def rank_band(rank: int, found: bool = True) -> RankBand:
    """Classify a rank into its display band."""
    if not found or rank > RANK_DISPLAY_CUTOFF:
        return RankBand.OUTSIDE
    if rank <= TOP3_MAX_RANK:
        return RankBand.TOP3
    if rank <= TOP10_MAX_RANK:
        return RankBand.TOP10
    return RankBand.TOP20


def format_point_rank(point: RankingPoint) -> str:
    """Display text of the target rank at *point*."""
    return format_rank(point.target_rank, point.target_found)


def competitor_rows(result: ScanResult, target_id: str | None) -> list[CompetitorStanding]:
    """Return the standings without the target business, best first."""
    return [s for s in result.competitor_standings if s.business.id != target_id]


def rank_matrix(
    result: ScanResult,
    columns: int | None = None,
) -> list[list[RankingPoint | None]]:
    """Lay out ranking points as a row-major grid.

    Skipped points are ``None`` cells. *columns* defaults to the column count
    of the result's grid spec.

    Returns:
        One list per grid row, north first.
    """
    spec = parse_grid_spec(result.grid_spec_text)
    width = columns if columns is not None else spec.columns
    if width < 1:
        msg = f"columns must be positive, got {width}"
        raise ValueError(msg)

    rows = -(-result.total_points // width)
    matrix: list[list[RankingPoint | None]] = [[None] * width for _ in range(rows)]
    for point in result.ranking_points:
        row, column = divmod(point.id, width)
        if row < rows:
            matrix[row][column] = point
        else:
            logger.warning("Point %d lies outside a %d-column grid", point.id, width)
    return matrix


def build_report_filename(
    business_name: str,
    search_query: str,
    ext: str = "md",
    *,
    date: datetime.date | None = None,
) -> str:
    """Build a standardized report filename.

    Format: ``{business}_{query}_{DATE}_grid.{ext}``
    Example: ``joes-barber-shop_barber_2025-03-15_grid.md``
    """
    report_date = date or datetime.date.today()
    business = _slug(business_name) or "business"
    query = _slug(search_query) or "query"
    return f"{business}_{query}_{report_date.isoformat()}_grid.{ext}"


def _slug(text: str) -> str:
    return _FILENAME_UNSAFE_RE.sub("-", text.lower()).strip("-")
