"""StrEnum types for the grid-scan domain.

Values are lowercase strings. Use enum members in business logic, never raw
strings.
"""

from enum import StrEnum


class InsightType(StrEnum):
    """Kind of narrative insight generated from a scan."""

    RANKING = "ranking"
    COMPETITOR = "competitor"
    REVIEW = "review"


class DiscoveryPolicy(StrEnum):
    """What a scan does when competitor discovery fails."""

    PROCEED_EMPTY = "proceed_empty"
    ABORT = "abort"


class ScanStatus(StrEnum):
    """Lifecycle state of a scan tracked by the web layer."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    CANCELLED = "cancelled"
    FAILED = "failed"


class RankBand(StrEnum):
    """Display band for a target rank at one grid point."""

    TOP3 = "top3"
    TOP10 = "top10"
    TOP20 = "top20"
    OUTSIDE = "outside"
