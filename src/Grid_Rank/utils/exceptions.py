"""Custom exception hierarchy for the Grid Rank application.

All domain-specific exceptions inherit from GridRankError, which carries
contextual information about the business and the collaborator involved.
"""


class GridRankError(Exception):
    """Base exception for all grid-scan failures.

    Attributes:
        target_id: The id of the target business involved, if known.
        source: The component or collaborator that failed (e.g., "ollama").
    """

    def __init__(
        self,
        message: str,
        *,
        target_id: str | None = None,
        source: str | None = None,
    ) -> None:
        self.target_id = target_id
        self.source = source
        super().__init__(message)


class InvalidInputError(GridRankError):
    """Raised before any work starts when scan inputs are unusable."""


class DiscoveryError(GridRankError):
    """Raised when competitor discovery fails or times out."""


class ScanFailedError(GridRankError):
    """Raised when no grid point could be scored, so no summary exists.

    Attributes:
        total: Number of grid points that were attempted.
    """

    def __init__(
        self,
        message: str,
        *,
        total: int,
        target_id: str | None = None,
        source: str | None = None,
    ) -> None:
        self.total = total
        super().__init__(message, target_id=target_id, source=source)


class ScanCancelledError(GridRankError):
    """Raised when a scan is cancelled before every point was processed.

    Attributes:
        completed: Points processed before cancellation took effect.
        total: Points the scan would have processed.
    """

    def __init__(
        self,
        message: str,
        *,
        completed: int,
        total: int,
        target_id: str | None = None,
        source: str | None = None,
    ) -> None:
        self.completed = completed
        self.total = total
        super().__init__(message, target_id=target_id, source=source)


class ScanNotFoundError(GridRankError):
    """Raised when a scan history entry does not exist."""
