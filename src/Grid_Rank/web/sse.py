"""Server-Sent Events helper for streaming scan progress.

Scan progress is streamed as JSON-encoded ``ScanProgressEvent`` objects: one
``running`` event per grid point, then one terminal event.
"""

import logging
from collections.abc import AsyncGenerator

from pydantic import BaseModel, ConfigDict
from sse_starlette.sse import EventSourceResponse

from Grid_Rank.models.enums import ScanStatus

logger = logging.getLogger(__name__)

SSE_PING_SECONDS: int = 15

TERMINAL_STATUSES: frozenset[ScanStatus] = frozenset(
    {ScanStatus.COMPLETED, ScanStatus.PARTIAL, ScanStatus.CANCELLED, ScanStatus.FAILED}
)


class ScanProgressEvent(BaseModel):
    """Typed model for scan progress SSE events.

    One ``running`` event is sent per processed grid point, then exactly one
    event with a terminal status. ``detail`` carries the error message of a
    failed scan.
    """

    model_config = ConfigDict(frozen=True)

    status: ScanStatus
    current: int
    total: int
    pct: float
    detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        """True for the last event of a scan."""
        return self.status in TERMINAL_STATUSES


def progress_event(
    status: ScanStatus,
    current: int,
    total: int,
    *,
    detail: str | None = None,
) -> ScanProgressEvent:
    """Build an event, deriving ``pct`` from *current* and *total*."""
    pct = (current / total * 100.0) if total > 0 else 0.0
    return ScanProgressEvent(status=status, current=current, total=total, pct=pct, detail=detail)


def create_sse_response(
    generator: AsyncGenerator[str],
    *,
    ping_seconds: int = SSE_PING_SECONDS,
) -> EventSourceResponse:
    """Wrap a generator of JSON-encoded progress events in an SSE response.

    The ping keeps idle connections open while a slow grid point is scored.
    """
    return EventSourceResponse(content=generator, ping=ping_seconds)
