"""CLI entry point for Grid Rank, a local search visibility scanner.

Provides the ``grid-rank`` command with subcommands for running grid scans,
browsing scan history, generating insights, and checking dependencies.

This is the ONLY module that writes to the terminal directly (through the rich
console). All other modules use ``logging``. Async internals are bridged to
typer's synchronous interface via ``asyncio.run()``.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import signal
import uuid
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from Grid_Rank.config import AppSettings, load_settings
from Grid_Rank.engine.grid_spec import parse_grid_spec
from Grid_Rank.engine.pipeline import CancelFlag, ScanComplete, ScanProgress
from Grid_Rank.logging_config import configure_logging
from Grid_Rank.models import (
    BusinessEntity,
    Coordinate,
    DiscoveryPolicy,
    InsightType,
    ScanHistoryItem,
    ScanResult,
    ScanSettings,
    default_business_id,
)
from Grid_Rank.utils.exceptions import GridRankError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer app and sub-apps
# ---------------------------------------------------------------------------

app = typer.Typer(name="grid-rank", help="Local search rank scanner over a geographic grid")
history_app = typer.Typer(help="Browse and manage scan history")
app.add_typer(history_app, name="history")

# Rich console for formatted output
console = Console()

# ---------------------------------------------------------------------------
# Scan cancellation via Ctrl+C
# ---------------------------------------------------------------------------

# Cancellation flag of the scan in progress; the pipeline checks it before
# every grid point and once discovery returns.
_scan_cancel_flag: CancelFlag = CancelFlag()


def _handle_sigint(signum: int, frame: object) -> None:
    """Handle SIGINT (Ctrl+C) by setting the running scan's cancellation flag.

    Does not call ``sys.exit()``. The scan stops cleanly before its next grid
    point, or right after discovery when pressed while competitors load.
    """
    _scan_cancel_flag.set()
    console.print("\n[yellow]Scan cancellation requested. Stopping after this point...[/yellow]")


# ---------------------------------------------------------------------------
# scan command
# ---------------------------------------------------------------------------


@app.command()
def scan(
    name: Annotated[str, typer.Option(help="Business name")],
    lat: Annotated[float, typer.Option(help="Business latitude")],
    lng: Annotated[float, typer.Option(help="Business longitude")],
    address: Annotated[str, typer.Option(help="Business street address")] = "",
    place_id: Annotated[str, typer.Option(help="Stable business id (defaults to the name)")] = "",
    query: Annotated[str, typer.Option(help="Search keyword, e.g. 'barber'")] = "",
    grid: Annotated[str, typer.Option(help="Grid spec, e.g. '7 x 7 (1 km)'")] = "",
    competitors_file: Annotated[
        Path | None,
        typer.Option(help="JSON file of competitors (skips LLM discovery)"),
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for reproducible jitter")] = None,
    jitter: Annotated[float | None, typer.Option(help="Score jitter in [0, 1)")] = None,
    abort_on_discovery_failure: Annotated[
        bool, typer.Option(help="Abort instead of scanning without competitors")
    ] = False,
    no_save: Annotated[bool, typer.Option("--no-save", help="Do not store in history")] = False,
    markdown: Annotated[
        Path | None, typer.Option(help="Directory to write a markdown report to")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Suppress info logging")] = False,
) -> None:
    """Discover competitors and rank the business at every grid point."""
    configure_logging(verbose=verbose, quiet=quiet)
    settings = load_settings()

    try:
        target = BusinessEntity(
            id=default_business_id(name, place_id),
            name=name,
            address=address,
            location=Coordinate(latitude=lat, longitude=lng),
        )
    except ValueError as exc:
        console.print(f"[red]Invalid business: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    scan_settings = ScanSettings(
        target=target,
        search_query=query or settings.default_search_query,
        grid_spec_text=grid or settings.default_grid_spec,
    )
    policy = DiscoveryPolicy.ABORT if abort_on_discovery_failure else settings.discovery_policy

    # Install SIGINT handler for clean abort
    original_handler = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, _handle_sigint)
    try:
        asyncio.run(
            _scan_async(
                settings=settings,
                scan_settings=scan_settings,
                competitors_file=competitors_file,
                seed=seed if seed is not None else settings.seed,
                jitter=jitter if jitter is not None else settings.jitter,
                policy=policy,
                save=not no_save,
                markdown_dir=markdown,
            )
        )
    finally:
        signal.signal(signal.SIGINT, original_handler)


async def _scan_async(
    *,
    settings: AppSettings,
    scan_settings: ScanSettings,
    competitors_file: Path | None,
    seed: int | None,
    jitter: float,
    policy: DiscoveryPolicy,
    save: bool,
    markdown_dir: Path | None,
) -> None:
    """Run discovery and the grid scan via the shared generator.

    Consumes ``iter_grid_scan()`` events and drives a rich progress bar. The
    scan can be cancelled via Ctrl+C, which sets the module-level
    ``CancelFlag`` passed to the pipeline.
    """
    _scan_cancel_flag.reset()

    from Grid_Rank.agents import (
        LLMClient,
        LLMCompetitorDiscovery,
        StaticCompetitorDiscovery,
        load_competitors_file,
    )
    from Grid_Rank.engine import RankScorer, iter_grid_scan
    from Grid_Rank.reporting import render_scan_result

    try:
        scorer = RankScorer(jitter=jitter, seed=seed)
        if competitors_file is not None:
            loaded = load_competitors_file(competitors_file)
            discovery: StaticCompetitorDiscovery | LLMCompetitorDiscovery = (
                StaticCompetitorDiscovery(loaded.competitors, loaded.sources)
            )
        else:
            discovery = LLMCompetitorDiscovery(
                LLMClient(host=settings.ollama_host, model=settings.ollama_model),
                max_competitors=settings.max_competitors,
            )
    except (GridRankError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    result: ScanResult | None = None
    last_current = 0
    total = parse_grid_spec(scan_settings.grid_spec_text).total_points

    try:
        with Progress(
            SpinnerColumn(spinner_name="line"),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Discovering competitors...", total=None)

            async for event in iter_grid_scan(
                scan_settings,
                discovery,
                policy=policy,
                scorer=scorer,
                cancelled=_scan_cancel_flag,
            ):
                if isinstance(event, ScanProgress):
                    last_current, total = event.current, event.total
                    progress.update(
                        task,
                        description="Ranking grid points",
                        completed=event.current,
                        total=event.total,
                    )
                elif isinstance(event, ScanComplete):
                    progress.update(task, description="Scan complete")
                    result = event.result
    except GridRankError as exc:
        console.print(f"[red]Scan failed: {exc}[/red]")
        raise typer.Exit(code=1) from exc

    if result is None:
        console.print(f"[yellow]Scan cancelled after {last_current}/{total} points.[/yellow]")
        raise typer.Exit(code=0)

    item = ScanHistoryItem(
        id=uuid.uuid4().hex,
        timestamp=datetime.datetime.now(datetime.UTC),
        settings=scan_settings,
        result=result,
    )
    render_scan_result(scan_settings, result)

    if save:
        await _save_history(settings, item)
        console.print(f"\n[dim]Saved as scan {item.id}[/dim]")

    if markdown_dir is not None:
        from Grid_Rank.reporting import generate_markdown_report, save_report

        path = save_report(generate_markdown_report(item), item, markdown_dir)
        console.print(f"[green]Report saved to {path}[/green]")


async def _save_history(settings: AppSettings, item: ScanHistoryItem) -> None:
    """Store a scan and prune history to the configured limit."""
    from Grid_Rank.data import Database, Repository

    async with Database(settings.db_path) as db:
        repo = Repository(db)
        await repo.save_scan(item)
        await repo.prune_history(settings.history_limit)


# ---------------------------------------------------------------------------
# history subcommands
# ---------------------------------------------------------------------------


@history_app.command("list")
def history_list(
    limit: Annotated[int, typer.Option(help="Maximum number of scans to show")] = 20,
    target: Annotated[str, typer.Option(help="Only scans for this business id")] = "",
) -> None:
    """List stored scans, newest first."""
    asyncio.run(_history_list_async(limit=limit, target_id=target or None))


async def _history_list_async(*, limit: int, target_id: str | None) -> None:
    from Grid_Rank.data import Database, Repository
    from Grid_Rank.reporting import render_history

    settings = load_settings()
    async with Database(settings.db_path) as db:
        repo = Repository(db)
        items = await repo.list_scans(limit=limit, target_id=target_id)
    render_history(items)


@history_app.command("show")
def history_show(
    scan_id: Annotated[str, typer.Argument(help="Scan id from 'history list'")],
    point: Annotated[int | None, typer.Option(help="Show the full ranking at one point")] = None,
    markdown: Annotated[
        Path | None, typer.Option(help="Directory to write a markdown report to")
    ] = None,
) -> None:
    """Show a stored scan, optionally drilling into one grid point."""
    asyncio.run(_history_show_async(scan_id=scan_id, point=point, markdown_dir=markdown))


async def _history_show_async(
    *,
    scan_id: str,
    point: int | None,
    markdown_dir: Path | None,
) -> None:
    """Render a stored scan with its saved insights."""
    from Grid_Rank.data import Database, Repository
    from Grid_Rank.reporting import (
        generate_markdown_report,
        render_insight,
        render_point_detail,
        render_scan_result,
        save_report,
    )

    settings = load_settings()
    async with Database(settings.db_path) as db:
        repo = Repository(db)
        item = await repo.get_scan(scan_id)
        if item is None:
            console.print(f"[red]Scan {scan_id} not found.[/red]")
            raise typer.Exit(code=1)
        insights = await repo.list_insights(scan_id)

    target_id = item.settings.target.id if item.settings.target is not None else None
    if point is not None:
        render_point_detail(item.result, point, target_id)
        return

    render_scan_result(item.settings, item.result)
    for insight in insights:
        render_insight(insight)

    if markdown_dir is not None:
        path = save_report(generate_markdown_report(item, insights), item, markdown_dir)
        console.print(f"[green]Report saved to {path}[/green]")


@history_app.command("delete")
def history_delete(
    scan_id: Annotated[str, typer.Argument(help="Scan id to delete")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation")] = False,
) -> None:
    """Delete a stored scan and its insights."""
    if not force:
        confirm = typer.confirm(f"Delete scan {scan_id}? This cannot be undone")
        if not confirm:
            console.print("[yellow]Cancelled.[/yellow]")
            raise typer.Exit(code=0)

    asyncio.run(_history_delete_async(scan_id=scan_id))


async def _history_delete_async(*, scan_id: str) -> None:
    from Grid_Rank.data import Database, Repository

    settings = load_settings()
    async with Database(settings.db_path) as db:
        deleted = await Repository(db).delete_scan(scan_id)
    if not deleted:
        console.print(f"[red]Scan {scan_id} not found.[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Scan {scan_id} deleted.[/green]")


# ---------------------------------------------------------------------------
# insight command
# ---------------------------------------------------------------------------


@app.command()
def insight(
    scan_id: Annotated[str, typer.Argument(help="Scan id from 'history list'")],
    insight_type: Annotated[
        InsightType, typer.Option("--type", "-t", help="Kind of insight to generate")
    ] = InsightType.RANKING,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Generate, store and print an AI insight for a stored scan."""
    configure_logging(verbose=verbose)
    asyncio.run(_insight_async(scan_id=scan_id, insight_type=insight_type))


async def _insight_async(*, scan_id: str, insight_type: InsightType) -> None:
    """Generate an insight, falling back to a data-driven one without Ollama."""
    from Grid_Rank.agents import InsightGenerator
    from Grid_Rank.data import Database, Repository
    from Grid_Rank.reporting import render_insight

    settings = load_settings()
    async with Database(settings.db_path) as db:
        repo = Repository(db)
        item = await repo.get_scan(scan_id)
        if item is None:
            console.print(f"[red]Scan {scan_id} not found.[/red]")
            raise typer.Exit(code=1)

        with console.status(f"Generating {insight_type.value} insight..."):
            generator = InsightGenerator(settings.ollama_host, settings.ollama_model)
            generated = await generator.generate(insight_type, item.settings, item.result)
        await repo.save_insight(scan_id, generated)

    render_insight(generated)


# ---------------------------------------------------------------------------
# health command
# ---------------------------------------------------------------------------


@app.command()
def health(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Check the health of Ollama and the history database."""
    configure_logging(verbose=verbose)
    asyncio.run(_health_async())


async def _health_async() -> None:
    """Run all health checks and display results."""
    from Grid_Rank.data import Database
    from Grid_Rank.reporting import render_health
    from Grid_Rank.services import HealthService

    settings = load_settings()
    db: Database | None = None
    try:
        db = Database(settings.db_path)
        await db.connect()
    except Exception:  # noqa: BLE001
        db = None
        logger.warning("Database connection failed for health check")

    health_service = HealthService(
        database=db,
        ollama_host=settings.ollama_host,
        ollama_model=settings.ollama_model,
    )
    try:
        console.print("\n[bold]Running health checks...[/bold]")
        status = await health_service.check_all()
        render_health(status)
    finally:
        if db is not None:
            await db.close()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
