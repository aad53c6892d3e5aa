"""Shared test fixtures for the Grid Rank test suite.

Provides realistic sample businesses, scan settings and scan results so tests
don't need to inline large construction blocks.
"""

import datetime
from collections.abc import Callable, Sequence

import pytest

from Grid_Rank.engine.aggregation import compute_standings, summarize
from Grid_Rank.engine.geometry import generate_points
from Grid_Rank.engine.grid_spec import parse_grid_spec
from Grid_Rank.models import (
    AttributionSource,
    BusinessEntity,
    Coordinate,
    HealthStatus,
    Insight,
    InsightType,
    RankedEntry,
    RankingPoint,
    ScanHistoryItem,
    ScanResult,
    ScanSettings,
)

SAMPLE_GRID: str = "3 x 3 (1 km)"
SAMPLE_TARGET_RANKS: list[int] = [1, 2, 3, 1, 1, 2, 4, 2, 1]


def make_business(business_id: str, name: str, lat: float, lng: float) -> BusinessEntity:
    """Build a BusinessEntity with a generic street address."""
    return BusinessEntity(
        id=business_id,
        name=name,
        address=f"{name} St, New York, NY",
        location=Coordinate(latitude=lat, longitude=lng),
    )


def make_result(
    target: BusinessEntity,
    competitors: Sequence[BusinessEntity],
    target_ranks: Sequence[int],
    *,
    grid_spec_text: str = SAMPLE_GRID,
    skipped: Sequence[int] = (),
    sources: Sequence[AttributionSource] = (),
) -> ScanResult:
    """Build a ScanResult where the target holds ``target_ranks[i]`` at the
    i-th scored point and competitors fill the other places in list order.
    """
    points = generate_points(target.location, parse_grid_spec(grid_spec_text))
    ranks = iter(target_ranks)
    ranking_points: list[RankingPoint] = []
    for point in points:
        if point.index in skipped:
            continue
        rank = next(ranks)
        ordered = list(competitors)
        ordered.insert(rank - 1, target)
        ranking_points.append(
            RankingPoint(
                id=point.index,
                target_rank=rank,
                coordinate=point.coordinate,
                ranked_entries=[
                    RankedEntry(rank=position, business=business)
                    for position, business in enumerate(ordered, start=1)
                ],
            )
        )
    return ScanResult(
        summary=summarize([p.target_rank for p in ranking_points]),
        ranking_points=ranking_points,
        grid_spec_text=grid_spec_text,
        competitor_standings=compute_standings(ranking_points),
        attribution_sources=list(sources),
        total_points=len(points),
        skipped_points=list(skipped),
    )


@pytest.fixture()
def target() -> BusinessEntity:
    """The business being scanned: a barber shop in lower Manhattan."""
    return make_business("place-target", "Fade Masters", 40.7128, -74.0060)


@pytest.fixture()
def competitors() -> list[BusinessEntity]:
    """Three nearby competitors in discovery order."""
    return [
        make_business("place-a", "Sharp Cuts", 40.7150, -74.0020),
        make_business("place-b", "Uptown Clippers", 40.7180, -74.0100),
        make_business("place-c", "Hudson Barbers", 40.7090, -74.0120),
    ]


@pytest.fixture()
def sample_sources() -> list[AttributionSource]:
    """Attribution for the discovered competitors."""
    return [AttributionSource(uri="http://localhost:11434", title="Ollama (llama3.1:8b)")]


@pytest.fixture()
def sample_settings(target: BusinessEntity) -> ScanSettings:
    """Scan settings for a 3x3 barber scan."""
    return ScanSettings(target=target, search_query="barber", grid_spec_text=SAMPLE_GRID)


@pytest.fixture()
def sample_result(
    target: BusinessEntity,
    competitors: list[BusinessEntity],
    sample_sources: list[AttributionSource],
) -> ScanResult:
    """A complete 3x3 scan with target ranks 1,2,3,1,1,2,4,2,1."""
    return make_result(target, competitors, SAMPLE_TARGET_RANKS, sources=sample_sources)


@pytest.fixture()
def partial_result(target: BusinessEntity, competitors: list[BusinessEntity]) -> ScanResult:
    """A 3x3 scan where the center point (index 4) was skipped."""
    return make_result(target, competitors, [1, 2, 3, 1, 2, 4, 2, 1], skipped=[4])


@pytest.fixture()
def sample_history_item(
    sample_settings: ScanSettings,
    sample_result: ScanResult,
) -> ScanHistoryItem:
    """A stored scan with a fixed timestamp."""
    return ScanHistoryItem(
        id="scan-001",
        timestamp=datetime.datetime(2025, 3, 1, 14, 30, 0, tzinfo=datetime.UTC),
        settings=sample_settings,
        result=sample_result,
    )


@pytest.fixture()
def sample_insight(sample_sources: list[AttributionSource]) -> Insight:
    """An LLM-generated competitor insight."""
    return Insight(
        insight_type=InsightType.COMPETITOR,
        content="Sharp Cuts dominates the north-east. Focus reviews there.",
        sources=sample_sources,
        model_used="llama3.1:8b",
        is_fallback=False,
        created_at=datetime.datetime(2025, 3, 1, 15, 0, 0, tzinfo=datetime.UTC),
    )


@pytest.fixture()
def sample_health_status() -> HealthStatus:
    """A healthy HealthStatus for testing."""
    return HealthStatus(
        ollama_available=True,
        sqlite_available=True,
        ollama_models=["llama3.1:8b", "mistral:7b"],
        last_check=datetime.datetime(2025, 3, 1, 15, 30, 0, tzinfo=datetime.UTC),
    )


@pytest.fixture()
def result_factory() -> Callable[..., ScanResult]:
    """Expose ``make_result`` to tests that need custom rank layouts."""
    return make_result
