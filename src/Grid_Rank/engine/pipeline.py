"""Shared scan pipeline: async generator yielding progress events.

Both the CLI (rich progress bar) and the web layer (SSE progress) consume
the same generator, so the per-point scoring loop lives in one place.
``run_scan`` and ``run_grid_scan`` are the awaitable entry points that drive
a :class:`ProgressSink` and return the final :class:`ScanResult`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from Grid_Rank.engine.aggregation import (
    build_candidates,
    compute_standings,
    find_target_rank,
    summarize,
)
from Grid_Rank.engine.geometry import generate_points
from Grid_Rank.engine.grid_spec import parse_grid_spec
from Grid_Rank.engine.scorer import RankScorer
from Grid_Rank.models.business import AttributionSource, BusinessEntity, DiscoveryResult
from Grid_Rank.models.enums import DiscoveryPolicy
from Grid_Rank.models.scan import RankingPoint, ScanResult, ScanSettings
from Grid_Rank.utils.exceptions import (
    DiscoveryError,
    InvalidInputError,
    ScanCancelledError,
    ScanFailedError,
)

if TYPE_CHECKING:
    from Grid_Rank.agents.discovery import CompetitorDiscovery

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Progress / completion event types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScanProgress:
    """Emitted once per grid point, whether it was scored or skipped."""

    current: int
    total: int
    point_index: int
    skipped: bool = False


@dataclass(frozen=True)
class ScanComplete:
    """Terminal event emitted when every point has been processed."""

    result: ScanResult
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# Progress sinks
# ---------------------------------------------------------------------------


@runtime_checkable
class ProgressSink(Protocol):
    """Receives ``(current, total)`` after each processed grid point."""

    def on_progress(self, current: int, total: int) -> None: ...


class CallbackProgressSink:
    """Adapts a plain ``(current, total)`` callable to :class:`ProgressSink`."""

    def __init__(self, callback: Callable[[int, int], object]) -> None:
        self._callback = callback

    def on_progress(self, current: int, total: int) -> None:
        self._callback(current, total)


def as_progress_sink(
    progress: ProgressSink | Callable[[int, int], object] | None,
) -> ProgressSink | None:
    """Normalize a sink argument: sinks pass through, callables are wrapped."""
    if progress is None or isinstance(progress, ProgressSink):
        return progress
    if callable(progress):
        return CallbackProgressSink(progress)
    msg = f"progress must be a ProgressSink or callable, got {type(progress).__name__}"
    raise TypeError(msg)


# ---------------------------------------------------------------------------
# Cancellation flag (simple mutable wrapper)
# ---------------------------------------------------------------------------


class CancelFlag:
    """Cooperative cancellation flag checked before each grid point."""

    def __init__(self) -> None:
        self._cancelled: bool = False

    @property
    def is_set(self) -> bool:
        """Return True if cancellation has been requested."""
        return self._cancelled

    def set(self) -> None:
        """Request cancellation."""
        self._cancelled = True

    def reset(self) -> None:
        """Clear the cancellation flag."""
        self._cancelled = False


# ---------------------------------------------------------------------------
# Pipeline generator
# ---------------------------------------------------------------------------


def _require_target(target: object) -> BusinessEntity:
    if target is None:
        raise InvalidInputError("A target business is required to run a scan")
    if not isinstance(target, BusinessEntity):
        raise InvalidInputError(
            f"Target must be a BusinessEntity, got {type(target).__name__}"
        )
    return target


async def iter_scan(
    target: BusinessEntity,
    competitors: Sequence[BusinessEntity],
    grid_spec_text: str,
    *,
    scorer: RankScorer | None = None,
    sources: Sequence[AttributionSource] | None = None,
    cancelled: CancelFlag | None = None,
) -> AsyncGenerator[ScanProgress | ScanComplete]:
    """Score the target against its competitors at every grid point.

    Points are processed sequentially. After each point a ScanProgress is
    yielded and control returns to the event loop. When the cancel flag is
    found set before a point, the generator stops without a ScanComplete.

    Args:
        target: The business the scan is for; also the grid center.
        competitors: Competitors in discovery order.
        grid_spec_text: Grid text such as ``"7 x 7 (1 km)"``.
        scorer: Ranking strategy; defaults to ``RankScorer()``.
        sources: Attribution sources copied into the result unchanged.
        cancelled: Optional cancellation flag.

    Yields:
        ScanProgress per point, then ScanComplete.

    Raises:
        InvalidInputError: If the target is missing or the grid spec is not text.
        ScanFailedError: If every point failed to score.
    """
    target = _require_target(target)
    spec = parse_grid_spec(grid_spec_text)
    active_scorer = scorer if scorer is not None else RankScorer()
    candidates = build_candidates(target, competitors)
    points = generate_points(target.location, spec)
    total = len(points)
    started = time.monotonic()

    logger.info(
        "Scanning '%s' over %dx%d grid (%.2f km) with %d competitors",
        target.name,
        spec.columns,
        spec.rows,
        spec.span_km,
        len(candidates) - 1,
    )

    ranking_points: list[RankingPoint] = []
    skipped: list[int] = []

    for completed, point in enumerate(points, start=1):
        if cancelled is not None and cancelled.is_set:
            logger.info(
                "Scan for '%s' cancelled after %d/%d points", target.id, completed - 1, total
            )
            return

        try:
            entries = active_scorer.rank_at(point.coordinate, candidates)
            target_rank, found = find_target_rank(entries, target.id)
            ranking_points.append(
                RankingPoint(
                    id=point.index,
                    target_rank=target_rank,
                    target_found=found,
                    coordinate=point.coordinate,
                    ranked_entries=entries,
                )
            )
            point_skipped = False
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scoring failed at point %d for '%s': %s", point.index, target.id, exc)
            skipped.append(point.index)
            point_skipped = True

        yield ScanProgress(
            current=completed,
            total=total,
            point_index=point.index,
            skipped=point_skipped,
        )
        await asyncio.sleep(0)

    if not ranking_points:
        raise ScanFailedError(
            f"All {total} grid points failed to score",
            total=total,
            target_id=target.id,
            source="scorer",
        )

    if skipped:
        logger.warning(
            "Scan for '%s' completed %d/%d points", target.id, len(ranking_points), total
        )

    result = ScanResult(
        summary=summarize([p.target_rank for p in ranking_points]),
        ranking_points=ranking_points,
        grid_spec_text=grid_spec_text,
        competitor_standings=compute_standings(ranking_points),
        attribution_sources=list(sources or []),
        total_points=total,
        skipped_points=skipped,
    )
    elapsed = time.monotonic() - started
    logger.info(
        "Scan for '%s' complete: avg rank %.2f in %.2fs",
        target.id,
        result.summary.average_rank,
        elapsed,
    )
    yield ScanComplete(result=result, elapsed_seconds=elapsed)


async def _drain(
    events: AsyncGenerator[ScanProgress | ScanComplete],
    sink: ProgressSink | None,
    *,
    total: int,
    target_id: str,
) -> ScanResult:
    completed = 0
    async for event in events:
        if isinstance(event, ScanProgress):
            completed = event.current
            if sink is not None:
                sink.on_progress(event.current, event.total)
        else:
            return event.result
    raise ScanCancelledError(
        f"Scan cancelled after {completed}/{total} points",
        completed=completed,
        total=total,
        target_id=target_id,
    )


async def run_scan(
    target: BusinessEntity,
    competitors: Sequence[BusinessEntity],
    grid_spec_text: str,
    progress: ProgressSink | Callable[[int, int], object] | None = None,
    *,
    scorer: RankScorer | None = None,
    sources: Sequence[AttributionSource] | None = None,
    cancelled: CancelFlag | None = None,
) -> ScanResult:
    """Run a full grid scan and return its result.

    Progress is reported to *progress* exactly once per point, in order.

    Raises:
        InvalidInputError: If the target is missing or the grid spec is not text.
        ScanFailedError: If every point failed to score.
        ScanCancelledError: If *cancelled* was set before the last point.
    """
    target = _require_target(target)
    total = parse_grid_spec(grid_spec_text).total_points
    events = iter_scan(
        target,
        competitors,
        grid_spec_text,
        scorer=scorer,
        sources=sources,
        cancelled=cancelled,
    )
    return await _drain(events, as_progress_sink(progress), total=total, target_id=target.id)


# ---------------------------------------------------------------------------
# Discovery + scan
# ---------------------------------------------------------------------------


async def discover_competitors(
    settings: ScanSettings,
    discovery: CompetitorDiscovery,
    *,
    policy: DiscoveryPolicy = DiscoveryPolicy.PROCEED_EMPTY,
) -> DiscoveryResult:
    """Fetch competitors for the scan target, applying the failure policy.

    Raises:
        InvalidInputError: If the target is missing or the search query is blank.
        DiscoveryError: If discovery fails and *policy* is ``ABORT``.
    """
    target = _require_target(settings.target)
    if not settings.search_query.strip():
        raise InvalidInputError("Search query must not be blank", target_id=target.id)

    try:
        discovered = await discovery.find_competitors(target, settings.search_query)
    except DiscoveryError as exc:
        if policy == DiscoveryPolicy.ABORT:
            raise
        logger.warning(
            "Discovery failed for '%s', scanning without competitors: %s", target.id, exc
        )
        return DiscoveryResult()

    if not discovered.competitors:
        logger.warning("Discovery returned no competitors for '%s'", target.id)
    return discovered


async def iter_grid_scan(
    settings: ScanSettings,
    discovery: CompetitorDiscovery,
    *,
    policy: DiscoveryPolicy = DiscoveryPolicy.PROCEED_EMPTY,
    scorer: RankScorer | None = None,
    cancelled: CancelFlag | None = None,
) -> AsyncGenerator[ScanProgress | ScanComplete]:
    """Discover competitors, then stream the grid scan for *settings*."""
    target = _require_target(settings.target)
    parse_grid_spec(settings.grid_spec_text)
    discovered = await discover_competitors(settings, discovery, policy=policy)
    if cancelled is not None and cancelled.is_set:
        logger.info("Scan for '%s' cancelled after discovery", target.id)
        return

    async for event in iter_scan(
        target,
        discovered.competitors,
        settings.grid_spec_text,
        scorer=scorer,
        sources=discovered.sources,
        cancelled=cancelled,
    ):
        yield event


async def run_grid_scan(
    settings: ScanSettings,
    discovery: CompetitorDiscovery,
    progress: ProgressSink | Callable[[int, int], object] | None = None,
    *,
    policy: DiscoveryPolicy = DiscoveryPolicy.PROCEED_EMPTY,
    scorer: RankScorer | None = None,
    cancelled: CancelFlag | None = None,
) -> ScanResult:
    """Discover competitors and run the scan for *settings*.

    Raises:
        InvalidInputError: If the settings are unusable.
        DiscoveryError: If discovery fails under the ``ABORT`` policy.
        ScanFailedError: If every point failed to score.
        ScanCancelledError: If the scan was cancelled.
    """
    target = _require_target(settings.target)
    total = parse_grid_spec(settings.grid_spec_text).total_points
    events = iter_grid_scan(
        settings,
        discovery,
        policy=policy,
        scorer=scorer,
        cancelled=cancelled,
    )
    return await _drain(events, as_progress_sink(progress), total=total, target_id=target.id)
