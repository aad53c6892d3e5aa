"""Tests for scan aggregation: target lookup, summary, standings, areas."""

from collections.abc import Callable

import pytest

from Grid_Rank.engine.aggregation import (
    area_label,
    build_candidates,
    compute_standings,
    find_target_rank,
    rank_by_area,
    summarize,
)
from Grid_Rank.models.business import BusinessEntity, Coordinate
from Grid_Rank.models.scan import RankedEntry, RankingPoint, ScanResult

ORIGIN = Coordinate(latitude=0.0, longitude=0.0)


def _biz(business_id: str) -> BusinessEntity:
    return BusinessEntity(id=business_id, name=business_id.upper(), address="", location=ORIGIN)


def _point(point_id: int, order: list[BusinessEntity], target_id: str) -> RankingPoint:
    entries = [RankedEntry(rank=i, business=b) for i, b in enumerate(order, start=1)]
    rank, found = find_target_rank(entries, target_id)
    return RankingPoint(
        id=point_id,
        target_rank=rank,
        target_found=found,
        coordinate=ORIGIN,
        ranked_entries=entries,
    )


class TestFindTargetRank:
    """Tests for find_target_rank()."""

    def test_found(self) -> None:
        entries = [RankedEntry(rank=i, business=_biz(x)) for i, x in enumerate("abc", start=1)]
        assert find_target_rank(entries, "b") == (2, True)

    def test_not_found_sentinel(self) -> None:
        entries = [RankedEntry(rank=i, business=_biz(x)) for i, x in enumerate("abc", start=1)]
        assert find_target_rank(entries, "z") == (4, False)

    def test_empty_ranking(self) -> None:
        assert find_target_rank([], "a") == (1, False)


class TestSummarize:
    """Tests for summarize()."""

    def test_mixed_ranks(self) -> None:
        summary = summarize([1, 2, 5, 21])
        assert summary.average_rank == pytest.approx(7.25)
        assert summary.top3_percentage == pytest.approx(50.0)
        assert summary.top10_percentage == pytest.approx(75.0)

    def test_all_first(self) -> None:
        summary = summarize([1, 1, 1])
        assert summary.average_rank == 1.0
        assert summary.top3_percentage == 100.0
        assert summary.top10_percentage == 100.0

    def test_thresholds_are_inclusive(self) -> None:
        summary = summarize([3, 10])
        assert summary.top3_percentage == pytest.approx(50.0)
        assert summary.top10_percentage == pytest.approx(100.0)

    def test_average_is_not_rounded(self) -> None:
        assert summarize([1, 2, 2]).average_rank == pytest.approx(5 / 3)

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError, match="no scored points"):
            summarize([])


class TestComputeStandings:
    """Tests for compute_standings()."""

    def test_better_average_ranks_first(self) -> None:
        a, b, t = _biz("a"), _biz("b"), _biz("t")
        points = [
            _point(0, [a, b, t], "t"),
            _point(1, [a, t, b], "t"),
            _point(2, [a, b, t], "t"),
        ]
        standings = compute_standings(points)
        assert [s.business.id for s in standings] == ["a", "b", "t"]
        assert standings[0].average_rank == pytest.approx(1.0)
        assert standings[1].average_rank == pytest.approx(7 / 3)

    def test_ties_keep_first_seen_order(self) -> None:
        a, b = _biz("a"), _biz("b")
        points = [_point(0, [a, b], "a"), _point(1, [b, a], "a")]
        standings = compute_standings(points)
        assert [s.business.id for s in standings] == ["a", "b"]
        assert standings[0].average_rank == standings[1].average_rank

    def test_includes_target(self) -> None:
        t, a = _biz("t"), _biz("a")
        standings = compute_standings([_point(0, [t, a], "t")])
        assert {s.business.id for s in standings} == {"t", "a"}

    def test_no_points(self) -> None:
        assert compute_standings([]) == []


class TestBuildCandidates:
    """Tests for build_candidates()."""

    def test_target_first_then_discovery_order(self) -> None:
        t, a, b = _biz("t"), _biz("a"), _biz("b")
        assert [c.id for c in build_candidates(t, [a, b])] == ["t", "a", "b"]

    def test_drops_target_and_duplicates(self) -> None:
        t, a = _biz("t"), _biz("a")
        candidates = build_candidates(t, [a, _biz("t"), a])
        assert [c.id for c in candidates] == ["t", "a"]

    def test_no_competitors(self) -> None:
        t = _biz("t")
        assert build_candidates(t, []) == [t]


class TestAreas:
    """Tests for area_label() and rank_by_area()."""

    @pytest.mark.parametrize(
        ("row", "column", "expected"),
        [
            (0, 0, "north-west"),
            (0, 1, "north"),
            (0, 2, "north-east"),
            (1, 0, "west"),
            (1, 1, "center"),
            (1, 2, "east"),
            (2, 0, "south-west"),
            (2, 1, "south"),
            (2, 2, "south-east"),
        ],
    )
    def test_three_by_three_labels(self, row: int, column: int, expected: str) -> None:
        assert area_label(row, column, 3, 3) == expected

    def test_single_cell_is_center(self) -> None:
        assert area_label(0, 0, 1, 1) == "center"

    def test_rank_by_area_best_first(
        self,
        target: BusinessEntity,
        competitors: list[BusinessEntity],
        result_factory: Callable[..., ScanResult],
    ) -> None:
        result = result_factory(target, competitors, [1, 1, 1, 4, 4, 4, 2, 2, 2])
        areas = dict(rank_by_area(result))
        ordered = [label for label, _ in rank_by_area(result)]
        assert ordered[:3] == ["north-west", "north", "north-east"]
        assert areas["north"] == 1.0
        assert areas["center"] == 4.0
        assert areas["south-east"] == 2.0

    def test_rank_by_area_ignores_skipped(self, partial_result: ScanResult) -> None:
        labels = {label for label, _ in rank_by_area(partial_result)}
        assert "center" not in labels
        assert len(labels) == 8
