"""Scan API routes.

POST   /api/scan               Start a grid scan in the background (202 Accepted).
GET    /api/scan               List stored scans (paginated).
GET    /api/scan/{id}          Get one stored scan.
DELETE /api/scan/{id}          Delete a stored scan and its insights.
GET    /api/scan/{id}/stream   SSE stream of scan progress events.
POST   /api/scan/{id}/cancel   Request cancellation of a running scan.
"""

import asyncio
import datetime
import logging
import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field
from sse_starlette.sse import EventSourceResponse

from Grid_Rank.agents.discovery import (
    CompetitorDiscovery,
    LLMCompetitorDiscovery,
    RawBusiness,
    StaticCompetitorDiscovery,
)
from Grid_Rank.agents.llm_client import LLMClient
from Grid_Rank.config import AppSettings
from Grid_Rank.data.repository import Repository
from Grid_Rank.engine.grid_spec import parse_grid_spec
from Grid_Rank.engine.pipeline import CancelFlag, ScanComplete, ScanProgress, iter_grid_scan
from Grid_Rank.engine.scorer import RankScorer
from Grid_Rank.models.business import (
    LATITUDE_MAX,
    LATITUDE_MIN,
    LONGITUDE_MAX,
    LONGITUDE_MIN,
    AttributionSource,
    BusinessEntity,
    Coordinate,
    default_business_id,
)
from Grid_Rank.models.enums import DiscoveryPolicy, ScanStatus
from Grid_Rank.models.scan import ScanHistoryItem, ScanResult, ScanSettings
from Grid_Rank.utils.exceptions import GridRankError, InvalidInputError, ScanNotFoundError
from Grid_Rank.web.deps import get_repository, get_settings
from Grid_Rank.web.sse import ScanProgressEvent, create_sse_response, progress_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])

# Active scan tasks keyed by scan_id. Storing references prevents
# fire-and-forget tasks from being garbage-collected and allows exception logging.
_scan_tasks: dict[str, asyncio.Task[None]] = {}

# Maps scan_id -> progress events queued for the SSE consumer.
_scan_progress: dict[str, asyncio.Queue[ScanProgressEvent | None]] = {}

# Seconds a finished scan's queue waits for a late SSE consumer before it is dropped.
PROGRESS_RETENTION_SECONDS: float = 60.0

# Maps scan_id -> cancellation flag of a running scan.
_cancel_flags: dict[str, CancelFlag] = {}

# ---------------------------------------------------------------------------
# Request / response models (web-layer input schemas)
# ---------------------------------------------------------------------------


class ScanRequest(BaseModel):
    """Input schema for starting a new scan.

    When ``competitors`` is given the scan uses that fixed list; otherwise
    competitors are discovered through the configured Ollama model.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    address: str = ""
    latitude: float = Field(ge=LATITUDE_MIN, le=LATITUDE_MAX)
    longitude: float = Field(ge=LONGITUDE_MIN, le=LONGITUDE_MAX)
    place_id: str = ""
    search_query: str = ""
    grid_spec_text: str = ""
    competitors: list[RawBusiness] | None = None
    sources: list[AttributionSource] = Field(default_factory=list)
    seed: int | None = None
    jitter: float | None = Field(default=None, ge=0.0, lt=1.0)
    discovery_policy: DiscoveryPolicy | None = None


class ScanAccepted(BaseModel):
    """Response for a newly started scan."""

    model_config = ConfigDict(frozen=True)

    scan_id: str
    status: ScanStatus


class CancelAccepted(BaseModel):
    """Response for a cancellation request."""

    model_config = ConfigDict(frozen=True)

    scan_id: str
    cancel_requested: bool = True


class ScanPage(BaseModel):
    """One page of scan history, newest first."""

    model_config = ConfigDict(frozen=True)

    items: list[ScanHistoryItem]
    total: int
    limit: int
    offset: int


# ---------------------------------------------------------------------------
# In-memory progress tracking for SSE
# ---------------------------------------------------------------------------


def _emit_progress(scan_id: str, event: ScanProgressEvent) -> None:
    """Push a progress event to the queue for SSE consumers."""
    queue = _scan_progress.get(scan_id)
    if queue is not None:
        queue.put_nowait(event)


def _final_event(result: ScanResult) -> ScanProgressEvent:
    status = ScanStatus.PARTIAL if result.is_partial else ScanStatus.COMPLETED
    return progress_event(status, result.total_points, result.total_points)


# ---------------------------------------------------------------------------
# Scan pipeline (runs as background task)
# ---------------------------------------------------------------------------


async def _run_scan_task(
    scan_id: str,
    scan_settings: ScanSettings,
    discovery: CompetitorDiscovery,
    repo: Repository,
    *,
    policy: DiscoveryPolicy,
    scorer: RankScorer,
    history_limit: int,
) -> None:
    """Run discovery and the grid scan, then persist the result.

    Mirrors ``cli._scan_async`` but reports progress via the in-memory SSE
    queue rather than a rich progress bar. Always ends the stream with one
    terminal event.
    """
    cancel_flag = _cancel_flags[scan_id]
    total = parse_grid_spec(scan_settings.grid_spec_text).total_points
    current = 0
    result: ScanResult | None = None

    try:
        async for event in iter_grid_scan(
            scan_settings,
            discovery,
            policy=policy,
            scorer=scorer,
            cancelled=cancel_flag,
        ):
            if isinstance(event, ScanProgress):
                current, total = event.current, event.total
                _emit_progress(scan_id, progress_event(ScanStatus.RUNNING, current, total))
            elif isinstance(event, ScanComplete):
                result = event.result

        if result is None:
            logger.info("Scan %s | CANCELLED | after %d/%d points", scan_id[:8], current, total)
            _emit_progress(scan_id, progress_event(ScanStatus.CANCELLED, current, total))
            return

        item = ScanHistoryItem(
            id=scan_id,
            timestamp=datetime.datetime.now(datetime.UTC),
            settings=scan_settings,
            result=result,
        )
        await repo.save_scan(item)
        await repo.prune_history(history_limit)

        logger.info(
            "Scan %s | COMPLETE | avg rank %.2f over %d/%d points",
            scan_id[:8],
            result.summary.average_rank,
            result.completed_points,
            result.total_points,
        )
        _emit_progress(scan_id, _final_event(result))

    except GridRankError as exc:
        logger.warning("Scan %s | FAILED   | %s", scan_id[:8], exc)
        _emit_progress(scan_id, progress_event(ScanStatus.FAILED, current, total, detail=str(exc)))
    except Exception:
        logger.exception("Scan %s | FAILED   | Unexpected error", scan_id[:8])
        _emit_progress(
            scan_id,
            progress_event(ScanStatus.FAILED, current, total, detail="Unexpected error"),
        )
    finally:
        _cancel_flags.pop(scan_id, None)
        # Signal SSE consumers that the stream is done
        queue = _scan_progress.get(scan_id)
        if queue is not None:
            queue.put_nowait(None)


def _build_discovery(request: ScanRequest, settings: AppSettings) -> CompetitorDiscovery:
    if request.competitors is not None:
        return StaticCompetitorDiscovery(
            [competitor.to_entity() for competitor in request.competitors],
            request.sources,
        )
    return LLMCompetitorDiscovery(
        LLMClient(host=settings.ollama_host, model=settings.ollama_model),
        max_competitors=settings.max_competitors,
    )


async def cancel_active_scans() -> None:
    """Cancel every running scan task and wait for them to finish."""
    for flag in _cancel_flags.values():
        flag.set()
    tasks = list(_scan_tasks.values())
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Cancelled %d running scans on shutdown", len(tasks))


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------


@router.post("", status_code=202, response_model=ScanAccepted)
async def start_scan(
    request: ScanRequest,
    repo: Annotated[Repository, Depends(get_repository)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> ScanAccepted:
    """Start a new grid scan.

    Kicks off discovery and scanning as a background task and returns the
    scan id immediately for SSE streaming or cancellation.
    """
    try:
        target = BusinessEntity(
            id=default_business_id(request.name, request.place_id),
            name=request.name,
            address=request.address,
            location=Coordinate(latitude=request.latitude, longitude=request.longitude),
        )
    except ValueError as exc:
        raise InvalidInputError(f"Invalid target business: {exc}") from exc
    scan_settings = ScanSettings(
        target=target,
        search_query=request.search_query.strip() or settings.default_search_query,
        grid_spec_text=request.grid_spec_text or settings.default_grid_spec,
    )
    scorer = RankScorer(
        jitter=request.jitter if request.jitter is not None else settings.jitter,
        seed=request.seed if request.seed is not None else settings.seed,
    )
    discovery = _build_discovery(request, settings)

    scan_id = uuid.uuid4().hex
    _scan_progress[scan_id] = asyncio.Queue()
    _cancel_flags[scan_id] = CancelFlag()

    # Launch pipeline as background task with reference tracking
    task = asyncio.create_task(
        _run_scan_task(
            scan_id,
            scan_settings,
            discovery,
            repo,
            policy=request.discovery_policy or settings.discovery_policy,
            scorer=scorer,
            history_limit=settings.history_limit,
        )
    )
    _scan_tasks[scan_id] = task

    def _on_scan_done(t: asyncio.Task[None], *, _scan_id: str = scan_id) -> None:
        """Clean up task reference and log any unhandled exception."""
        _scan_tasks.pop(_scan_id, None)
        exc = t.exception() if not t.cancelled() else None
        if exc is not None:
            logger.error("Scan task %s failed: %s", _scan_id, exc)
        # Unstreamed queues expire; a consumer that drains one removes it first.
        t.get_loop().call_later(PROGRESS_RETENTION_SECONDS, _scan_progress.pop, _scan_id, None)

    task.add_done_callback(_on_scan_done)

    logger.info(
        "Scan %s | STARTED  | '%s' for '%s' on %s",
        scan_id[:8],
        target.name,
        scan_settings.search_query,
        scan_settings.grid_spec_text,
    )
    return ScanAccepted(scan_id=scan_id, status=ScanStatus.RUNNING)


@router.get("", response_model=ScanPage)
async def list_scans(
    repo: Annotated[Repository, Depends(get_repository)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    target_id: Annotated[str | None, Query()] = None,
) -> ScanPage:
    """List stored scans with pagination."""
    items = await repo.list_scans(limit=limit, offset=offset, target_id=target_id)
    total = await repo.count_scans(target_id=target_id)
    return ScanPage(items=items, total=total, limit=limit, offset=offset)


@router.get("/{scan_id}", response_model=ScanHistoryItem)
async def get_scan(
    scan_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
) -> ScanHistoryItem:
    """Return a stored scan with its settings and full result."""
    item = await repo.get_scan(scan_id)
    if item is None:
        if scan_id in _scan_tasks:
            raise HTTPException(status_code=409, detail=f"Scan '{scan_id}' is still running")
        raise ScanNotFoundError(f"Scan '{scan_id}' not found")
    return item


@router.delete("/{scan_id}", status_code=204)
async def delete_scan(
    scan_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
) -> Response:
    """Delete a stored scan and its insights."""
    if not await repo.delete_scan(scan_id):
        raise ScanNotFoundError(f"Scan '{scan_id}' not found")
    logger.info("Scan %s | DELETED", scan_id[:8])
    return Response(status_code=204)


@router.post("/{scan_id}/cancel", status_code=202, response_model=CancelAccepted)
async def cancel_scan(scan_id: str) -> CancelAccepted:
    """Ask a running scan to stop before its next grid point."""
    flag = _cancel_flags.get(scan_id)
    if flag is None:
        raise ScanNotFoundError(f"No running scan '{scan_id}'")
    flag.set()
    logger.info("Scan %s | CANCEL REQUESTED", scan_id[:8])
    return CancelAccepted(scan_id=scan_id)


async def progress_events(scan_id: str) -> AsyncGenerator[str]:
    """Yield JSON-encoded progress events of a live scan until it ends."""
    queue = _scan_progress.get(scan_id)
    if queue is None:
        return
    while True:
        event = await queue.get()
        if event is None:
            # Stream is done
            break
        yield event.model_dump_json()

    # Clean up
    _scan_progress.pop(scan_id, None)


async def _single_event(event: ScanProgressEvent) -> AsyncGenerator[str]:
    yield event.model_dump_json()


@router.get("/{scan_id}/stream")
async def stream_scan_progress(
    scan_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
) -> EventSourceResponse:
    """Stream scan progress events via Server-Sent Events.

    A live scan streams one event per grid point and a terminal event. A
    scan that already finished streams its terminal event only.
    """
    if scan_id in _scan_progress:
        return create_sse_response(progress_events(scan_id))

    item = await repo.get_scan(scan_id)
    if item is None:
        raise ScanNotFoundError(f"Scan '{scan_id}' not found")
    return create_sse_response(_single_event(_final_event(item.result)))
