"""Scan models: per-point rankings, summary statistics, and history entries.

Every model here is a plain structural value so that a ScanResult survives a
``model_dump_json()`` / ``model_validate_json()`` round trip unchanged.
"""

import datetime

from pydantic import BaseModel, ConfigDict, Field

from Grid_Rank.models.business import AttributionSource, BusinessEntity, Coordinate


class RankedEntry(BaseModel):
    """A business and its 1-based position at one grid point."""

    model_config = ConfigDict(frozen=True)

    rank: int = Field(ge=1)
    business: BusinessEntity


class RankingPoint(BaseModel):
    """Result of ranking every candidate at one grid point.

    ``target_rank`` is always the true numeric rank. When the target is
    missing from the ranking, ``target_found`` is False and ``target_rank``
    holds the not-found sentinel (candidate count + 1).
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    target_rank: int = Field(ge=1)
    target_found: bool = True
    coordinate: Coordinate
    ranked_entries: list[RankedEntry]


class ScanSummary(BaseModel):
    """Target rank statistics over the successfully scored points."""

    model_config = ConfigDict(frozen=True)

    average_rank: float
    top3_percentage: float = Field(ge=0.0, le=100.0)
    top10_percentage: float = Field(ge=0.0, le=100.0)


class CompetitorStanding(BaseModel):
    """Average rank of one business across the whole scan."""

    model_config = ConfigDict(frozen=True)

    business: BusinessEntity
    average_rank: float


class ScanResult(BaseModel):
    """Complete output of one grid scan.

    ``ranking_points`` is ordered by point index and omits skipped points;
    their indices are listed in ``skipped_points``.
    """

    model_config = ConfigDict(frozen=True)

    summary: ScanSummary
    ranking_points: list[RankingPoint]
    grid_spec_text: str
    competitor_standings: list[CompetitorStanding]
    attribution_sources: list[AttributionSource] = Field(default_factory=list)
    total_points: int = Field(ge=1)
    skipped_points: list[int] = Field(default_factory=list)

    @property
    def completed_points(self) -> int:
        """Number of points that were scored successfully."""
        return len(self.ranking_points)

    @property
    def is_partial(self) -> bool:
        """True when at least one point was skipped."""
        return bool(self.skipped_points)


class ScanSettings(BaseModel):
    """The inputs a scan was started with."""

    model_config = ConfigDict(frozen=True)

    target: BusinessEntity | None = None
    search_query: str
    grid_spec_text: str


class ScanHistoryItem(BaseModel):
    """One persisted scan: the settings it ran with and its result."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime.datetime
    settings: ScanSettings
    result: ScanResult
