"""Rich-based terminal output for scan results, history, insights, and health.

Uses ``rich.console.Console`` for all output. Rank colors follow the map
legend: green = top 3, yellow = top 10, orange = top 20, red = outside.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from Grid_Rank.models.enums import RankBand
from Grid_Rank.models.health import HealthStatus
from Grid_Rank.models.insight import Insight
from Grid_Rank.models.scan import ScanHistoryItem, ScanResult, ScanSettings
from Grid_Rank.reporting.formatters import (
    competitor_rows,
    format_point_rank,
    format_rank,
    rank_band,
    rank_matrix,
)

logger = logging.getLogger(__name__)

# Shared console instance for terminal output
console = Console()

# --- Color scheme ---
COLOR_HEADER: str = "bold cyan"
COLOR_MUTED: str = "dim"
BAND_COLORS: dict[RankBand, str] = {
    RankBand.TOP3: "bold green",
    RankBand.TOP10: "bold yellow",
    RankBand.TOP20: "bold dark_orange",
    RankBand.OUTSIDE: "bold red",
}
MAX_COMPETITOR_ROWS: int = 20


def format_rank_cell(rank: int, found: bool = True) -> Text:
    """Colored rich Text for a single rank."""
    return Text(format_rank(rank, found), style=BAND_COLORS[rank_band(rank, found)])


def _render_summary(settings: ScanSettings, result: ScanResult) -> None:
    """Header panel with target, keyword, grid, and headline statistics."""
    target = settings.target
    title = target.name if target is not None else "Grid Scan"
    summary = result.summary
    body = (
        f"Keyword: [bold]{settings.search_query}[/bold] | Grid: {result.grid_spec_text}\n"
        f"Average Rank: [bold]{summary.average_rank:.2f}[/bold]   "
        f"Top 3: {summary.top3_percentage:.1f}%   "
        f"Top 10: {summary.top10_percentage:.1f}%\n"
        f"Points: {result.completed_points}/{result.total_points}"
    )
    if result.is_partial:
        body += f"  [yellow]({len(result.skipped_points)} skipped)[/yellow]"

    console.print()
    console.print(Panel(body, title=f"Grid Rank: {title}", style=COLOR_HEADER))


def render_rank_grid(result: ScanResult) -> None:
    """Print the target's rank at every point as a colored north-up grid."""
    console.print("\n[bold]Rank Grid[/bold] (north up)", style=COLOR_HEADER)
    matrix = rank_matrix(result)
    table = Table(show_header=False, show_lines=True, padding=(0, 1))
    for _ in range(len(matrix[0]) if matrix else 0):
        table.add_column(justify="center", min_width=3)

    for row in matrix:
        cells: list[Text] = []
        for point in row:
            if point is None:
                cells.append(Text("×", style=COLOR_MUTED))
                continue
            cells.append(format_rank_cell(point.target_rank, point.target_found))
        table.add_row(*cells)
    console.print(table)


def render_competitors(result: ScanResult, target_id: str | None) -> None:
    """Print the competitor leaderboard, excluding the target."""
    rows = competitor_rows(result, target_id)
    if not rows:
        console.print(f"\n  [{COLOR_MUTED}]No competitors were ranked.[/{COLOR_MUTED}]")
        return

    table = Table(title="Competitors", show_lines=False)
    table.add_column("#", justify="right", style="bold")
    table.add_column("Business", style="bold")
    table.add_column("Address")
    table.add_column("Avg Rank", justify="right")
    for position, standing in enumerate(rows[:MAX_COMPETITOR_ROWS], start=1):
        table.add_row(
            str(position),
            standing.business.name,
            standing.business.address,
            f"{standing.average_rank:.2f}",
        )
    console.print()
    console.print(table)


def _render_sources(result: ScanResult) -> None:
    if not result.attribution_sources:
        return
    console.print("\n[bold]Sources[/bold]", style=COLOR_HEADER)
    for source in result.attribution_sources:
        console.print(f"  {source.title}: {source.uri}")


def render_scan_result(settings: ScanSettings, result: ScanResult) -> None:
    """Render a complete scan: summary, rank grid, competitors, and sources."""
    target_id = settings.target.id if settings.target is not None else None
    _render_summary(settings, result)
    render_rank_grid(result)
    render_competitors(result, target_id)
    _render_sources(result)


def render_point_detail(result: ScanResult, point_id: int, target_id: str | None) -> None:
    """Print the full ranking at one grid point, highlighting the target."""
    point = next((p for p in result.ranking_points if p.id == point_id), None)
    if point is None:
        console.print(f"[yellow]Point {point_id} has no ranking (skipped or unknown).[/yellow]")
        return

    coordinate = point.coordinate
    console.print(
        f"\n[bold]Point {point.id}[/bold] "
        f"({coordinate.latitude:.5f}, {coordinate.longitude:.5f}) "
        f"Your rank: [bold]{format_point_rank(point)}[/bold]"
    )
    for entry in point.ranked_entries:
        style = "bold magenta" if entry.business.id == target_id else ""
        console.print(f"  {entry.rank:>3}. {entry.business.name}", style=style)


def render_history(items: list[ScanHistoryItem]) -> None:
    """Print stored scans as a table, newest first."""
    if not items:
        console.print(f"[{COLOR_MUTED}]No scans in history.[/{COLOR_MUTED}]")
        return

    table = Table(title="Scan History")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("When")
    table.add_column("Business", style="bold")
    table.add_column("Keyword")
    table.add_column("Grid")
    table.add_column("Avg Rank", justify="right")
    for item in items:
        target = item.settings.target
        average = item.result.summary.average_rank
        band = rank_band(round(average))
        table.add_row(
            item.id,
            item.timestamp.strftime("%Y-%m-%d %H:%M"),
            target.name if target is not None else "N/A",
            item.settings.search_query,
            item.settings.grid_spec_text,
            Text(f"{average:.2f}", style=BAND_COLORS[band]),
        )
    console.print(table)


def render_insight(insight: Insight) -> None:
    """Print an insight panel with its sources."""
    subtitle = "data-driven" if insight.is_fallback else insight.model_used
    console.print()
    console.print(
        Panel(
            insight.content,
            title=f"{insight.insight_type.value.capitalize()} Insight",
            subtitle=subtitle,
            style=COLOR_HEADER,
        )
    )
    for source in insight.sources:
        console.print(f"  [{COLOR_MUTED}]{source.title}: {source.uri}[/{COLOR_MUTED}]")


def render_health(status: HealthStatus) -> None:
    """Render system health check status to the terminal."""
    console.print("\n[bold]System Health Check[/bold]\n")

    checks: list[tuple[str, bool]] = [
        ("Ollama", status.ollama_available),
        ("SQLite", status.sqlite_available),
    ]
    for name, available in checks:
        if available:
            console.print(f"  [green][OK][/green]  {name}")
        else:
            console.print(f"  [red][FAIL][/red] {name}")

    if status.ollama_models:
        console.print(f"\n  Ollama models: {', '.join(status.ollama_models)}")
    else:
        console.print(f"\n  [{COLOR_MUTED}]No Ollama models available[/{COLOR_MUTED}]")

    console.print(f"\n  Last check: {status.last_check.strftime('%Y-%m-%dT%H:%M:%SZ')}")
