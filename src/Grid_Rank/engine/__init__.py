"""Grid ranking engine: geometry, scoring, aggregation, and the scan pipeline.

Re-exports all public names so consumers can import directly:
    from Grid_Rank.engine import RankScorer, generate_points, run_scan
"""

from Grid_Rank.engine.aggregation import (
    area_label,
    build_candidates,
    compute_standings,
    find_target_rank,
    rank_by_area,
    summarize,
)
from Grid_Rank.engine.geometry import generate_points, grid_step_km, haversine_km
from Grid_Rank.engine.grid_spec import format_grid_spec, parse_grid_spec
from Grid_Rank.engine.pipeline import (
    CallbackProgressSink,
    CancelFlag,
    ProgressSink,
    ScanComplete,
    ScanProgress,
    as_progress_sink,
    discover_competitors,
    iter_grid_scan,
    iter_scan,
    run_grid_scan,
    run_scan,
)
from Grid_Rank.engine.scorer import RankScorer

__all__ = [
    # Aggregation
    "area_label",
    "build_candidates",
    "compute_standings",
    "find_target_rank",
    "rank_by_area",
    "summarize",
    # Geometry
    "generate_points",
    "grid_step_km",
    "haversine_km",
    # Grid spec
    "format_grid_spec",
    "parse_grid_spec",
    # Pipeline
    "CallbackProgressSink",
    "CancelFlag",
    "ProgressSink",
    "ScanComplete",
    "ScanProgress",
    "as_progress_sink",
    "discover_competitors",
    "iter_grid_scan",
    "iter_scan",
    "run_grid_scan",
    "run_scan",
    # Scorer
    "RankScorer",
]
