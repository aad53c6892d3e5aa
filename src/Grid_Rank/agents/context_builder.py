"""Convert a completed scan into flat key-value text for LLM prompts.

Agents parse flat labeled text more reliably than nested JSON, so the scan
is summarized as plain lines: headline statistics, the compass-area
breakdown, and the competitors that lead the standings.
"""

from __future__ import annotations

from Grid_Rank.engine.aggregation import TOP3_THRESHOLD, TOP10_THRESHOLD, rank_by_area
from Grid_Rank.models.scan import ScanResult, ScanSettings

MAX_COMPETITORS_IN_CONTEXT: int = 5


def _count_within(result: ScanResult, threshold: int) -> int:
    return sum(1 for p in result.ranking_points if p.target_found and p.target_rank <= threshold)


def build_context_text(settings: ScanSettings, result: ScanResult) -> str:
    """Render *settings* and *result* as multi-line labeled text.

    Parameters
    ----------
    settings:
        The inputs the scan ran with.
    result:
        The completed scan.

    Returns
    -------
    str
        Text block with one ``Label: value`` per line. No JSON, no nesting.
    """
    target = settings.target
    target_id = target.id if target is not None else None
    areas = rank_by_area(result)

    lines: list[str] = [
        f"Business: {target.name if target is not None else 'N/A'}",
        f"Address: {target.address if target is not None else 'N/A'}",
        f"Keyword: {settings.search_query}",
        f"Grid: {result.grid_spec_text}",
        f"Average Rank: {result.summary.average_rank:.2f}",
        f"Points in Top 3: {_count_within(result, TOP3_THRESHOLD)} "
        f"({result.summary.top3_percentage:.1f}%)",
        f"Points in Top 10: {_count_within(result, TOP10_THRESHOLD)} "
        f"({result.summary.top10_percentage:.1f}%)",
        f"Points Scanned: {result.completed_points} of {result.total_points}",
    ]
    if result.skipped_points:
        lines.append(f"Skipped Points: {len(result.skipped_points)}")
    not_found = sum(1 for p in result.ranking_points if not p.target_found)
    if not_found:
        lines.append(f"Points Not Ranked: {not_found}")

    if areas:
        best_label, best_rank = areas[0]
        worst_label, worst_rank = areas[-1]
        lines.append(f"Best Area: {best_label} (avg rank {best_rank:.1f})")
        lines.append(f"Worst Area: {worst_label} (avg rank {worst_rank:.1f})")
        lines.append("")
        lines.append("Area Breakdown:")
        lines.extend(f"  {label}: {rank:.1f}" for label, rank in areas)

    competitors = [s for s in result.competitor_standings if s.business.id != target_id]
    if competitors:
        lines.append("")
        lines.append("Leading Competitors:")
        lines.extend(
            f"  {s.business.name}: avg rank {s.average_rank:.1f}"
            for s in competitors[:MAX_COMPETITORS_IN_CONTEXT]
        )

    return "\n".join(lines)
