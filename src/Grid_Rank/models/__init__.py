"""Pydantic v2 models, enums, and type definitions.

Re-exports all public models so consumers can import directly:
    from Grid_Rank.models import BusinessEntity, GridSpec, ScanResult
"""

from Grid_Rank.models.business import (
    AttributionSource,
    BusinessEntity,
    Coordinate,
    DiscoveryResult,
    default_business_id,
)
from Grid_Rank.models.enums import DiscoveryPolicy, InsightType, RankBand, ScanStatus
from Grid_Rank.models.grid import GridPoint, GridSpec
from Grid_Rank.models.health import HealthStatus
from Grid_Rank.models.insight import Insight
from Grid_Rank.models.scan import (
    CompetitorStanding,
    RankedEntry,
    RankingPoint,
    ScanHistoryItem,
    ScanResult,
    ScanSettings,
    ScanSummary,
)

__all__ = [
    # Enums
    "DiscoveryPolicy",
    "InsightType",
    "RankBand",
    "ScanStatus",
    # Business
    "AttributionSource",
    "BusinessEntity",
    "Coordinate",
    "DiscoveryResult",
    "default_business_id",
    # Grid
    "GridPoint",
    "GridSpec",
    # Scan
    "CompetitorStanding",
    "RankedEntry",
    "RankingPoint",
    "ScanHistoryItem",
    "ScanResult",
    "ScanSettings",
    "ScanSummary",
    # Insight
    "Insight",
    # Health
    "HealthStatus",
]
