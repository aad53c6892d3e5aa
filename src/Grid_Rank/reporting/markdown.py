"""Markdown report generator producing GitHub-Flavored Markdown.

A report has a header, the summary statistics, the rank grid, the
competitor table, attribution sources, and any insights generated for the
scan. Tables use GFM pipe syntax.
"""

from __future__ import annotations

import logging
from pathlib import Path

from Grid_Rank.models.insight import Insight
from Grid_Rank.models.scan import ScanHistoryItem
from Grid_Rank.reporting.formatters import (
    build_report_filename,
    competitor_rows,
    format_point_rank,
    rank_matrix,
)

logger = logging.getLogger(__name__)

# Default output directory (relative to the working directory)
DEFAULT_REPORTS_DIR: str = "reports"
SKIPPED_CELL: str = "×"


def _escape(text: str) -> str:
    """Escape pipe characters so text fits inside a table cell."""
    return text.replace("|", "\\|")


def _section_header(item: ScanHistoryItem) -> str:
    target = item.settings.target
    name = target.name if target is not None else "Unknown business"
    lines = [f"# Grid Rank Report: {name}", ""]
    if target is not None:
        lines.append(f"*{target.address}*")
        lines.append("")
    lines.append(f"- **Keyword:** {item.settings.search_query}")
    lines.append(f"- **Grid:** {item.result.grid_spec_text}")
    lines.append(f"- **Scanned:** {item.timestamp.strftime('%Y-%m-%dT%H:%M:%SZ')}")
    lines.append(f"- **Scan ID:** `{item.id}`")
    lines.append("")
    return "\n".join(lines)


def _section_summary(item: ScanHistoryItem) -> str:
    result = item.result
    summary = result.summary
    lines = [
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Average Rank | {summary.average_rank:.2f} |",
        f"| Top 3 | {summary.top3_percentage:.1f}% |",
        f"| Top 10 | {summary.top10_percentage:.1f}% |",
        f"| Points Scanned | {result.completed_points} of {result.total_points} |",
    ]
    if result.is_partial:
        skipped = ", ".join(str(i) for i in result.skipped_points)
        lines.append(f"| Skipped Points | {skipped} |")
    lines.append("")
    return "\n".join(lines)


def _section_rank_grid(item: ScanHistoryItem) -> str:
    matrix = rank_matrix(item.result)
    width = len(matrix[0]) if matrix else 0
    lines = ["## Rank Grid", "", "North is up. `20+` = outside the top 20, `—` = not ranked.", ""]
    lines.append("| " + " | ".join(str(c + 1) for c in range(width)) + " |")
    lines.append("|" + "---|" * width)
    for row in matrix:
        cells = [format_point_rank(p) if p is not None else SKIPPED_CELL for p in row]
        lines.append("| " + " | ".join(cells) + " |")
    lines.append("")
    return "\n".join(lines)


def _section_competitors(item: ScanHistoryItem) -> str:
    target_id = item.settings.target.id if item.settings.target is not None else None
    rows = competitor_rows(item.result, target_id)
    lines = ["## Competitors", ""]
    if not rows:
        lines.append("*No competitors were ranked.*")
        lines.append("")
        return "\n".join(lines)

    lines.append("| # | Business | Address | Avg Rank |")
    lines.append("|---|----------|---------|----------|")
    for position, standing in enumerate(rows, start=1):
        business = standing.business
        lines.append(
            f"| {position} | {_escape(business.name)} | {_escape(business.address)} "
            f"| {standing.average_rank:.2f} |"
        )
    lines.append("")
    return "\n".join(lines)


def _section_sources(item: ScanHistoryItem) -> str:
    sources = item.result.attribution_sources
    if not sources:
        return ""
    lines = ["## Sources", ""]
    lines.extend(f"- [{s.title}]({s.uri})" for s in sources)
    lines.append("")
    return "\n".join(lines)


def _section_insights(insights: list[Insight]) -> str:
    if not insights:
        return ""
    lines = ["## Insights", ""]
    for insight in insights:
        origin = "data-driven" if insight.is_fallback else insight.model_used
        lines.append(f"### {insight.insight_type.value.capitalize()} ({origin})")
        lines.append("")
        lines.append(insight.content)
        lines.append("")
        for source in insight.sources:
            lines.append(f"- [{source.title}]({source.uri})")
        if insight.sources:
            lines.append("")
    return "\n".join(lines)


def generate_markdown_report(
    item: ScanHistoryItem,
    insights: list[Insight] | None = None,
) -> str:
    """Generate a complete GitHub-Flavored Markdown report for a scan.

    Args:
        item: The stored scan (settings, timestamp, and result).
        insights: Optional insights to include after the tables.

    Returns:
        Complete markdown string ready for file output.
    """
    sections = [
        _section_header(item),
        _section_summary(item),
        _section_rank_grid(item),
        _section_competitors(item),
        _section_sources(item),
        _section_insights(insights or []),
    ]
    return "\n".join(section for section in sections if section)


def save_report(
    content: str,
    item: ScanHistoryItem,
    reports_dir: Path | None = None,
) -> Path:
    """Write a markdown report, creating the reports directory if needed.

    Returns:
        Path to the written report file.
    """
    target = item.settings.target
    filename = build_report_filename(
        target.name if target is not None else "",
        item.settings.search_query,
        ext="md",
        date=item.timestamp.date(),
    )
    directory = reports_dir if reports_dir is not None else Path(DEFAULT_REPORTS_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    filepath = directory / filename
    filepath.write_text(content, encoding="utf-8")
    logger.info("Report saved to %s", filepath)
    return filepath
