"""Reporting module: terminal output and markdown generation.

Re-exports all public functions so consumers can import directly:
    from Grid_Rank.reporting import render_scan_result, generate_markdown_report
"""

from Grid_Rank.reporting.formatters import (
    build_report_filename,
    competitor_rows,
    format_rank,
    rank_band,
    rank_matrix,
)
from Grid_Rank.reporting.markdown import generate_markdown_report, save_report
from Grid_Rank.reporting.terminal import (
    render_health,
    render_history,
    render_insight,
    render_point_detail,
    render_scan_result,
)

__all__ = [
    # Formatters
    "build_report_filename",
    "competitor_rows",
    "format_rank",
    "rank_band",
    "rank_matrix",
    # Markdown
    "generate_markdown_report",
    "save_report",
    # Terminal
    "render_health",
    "render_history",
    "render_insight",
    "render_point_detail",
    "render_scan_result",
]
