"""Tests for Repository: scan history and insight CRUD against in-memory SQLite."""

import datetime
import sqlite3
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from Grid_Rank.data.database import Database
from Grid_Rank.data.repository import Repository
from Grid_Rank.models import BusinessEntity, Insight, ScanHistoryItem


@pytest_asyncio.fixture()
async def db() -> AsyncGenerator[Database]:
    """Provide a connected in-memory Database for each test, with cleanup."""
    database = Database(db_path=":memory:")
    await database.connect()
    yield database
    await database.close()


@pytest_asyncio.fixture()
async def repo(db: Database) -> Repository:
    """Provide a Repository backed by the in-memory Database."""
    return Repository(db)


def _history_at(item: ScanHistoryItem, scan_id: str, day: int) -> ScanHistoryItem:
    """Copy *item* with a new id and a timestamp on 2025-03-<day>."""
    return item.model_copy(
        update={
            "id": scan_id,
            "timestamp": datetime.datetime(2025, 3, day, 12, 0, 0, tzinfo=datetime.UTC),
        }
    )


def _for_target(item: ScanHistoryItem, target: BusinessEntity) -> ScanHistoryItem:
    settings = item.settings.model_copy(update={"target": target})
    return item.model_copy(update={"settings": settings})


class TestScanHistory:
    """Tests for save/get/list/count/delete of scans."""

    @pytest.mark.asyncio()
    async def test_save_and_get_round_trip(
        self, repo: Repository, sample_history_item: ScanHistoryItem
    ) -> None:
        await repo.save_scan(sample_history_item)
        loaded = await repo.get_scan("scan-001")
        assert loaded == sample_history_item

    @pytest.mark.asyncio()
    async def test_get_missing_returns_none(self, repo: Repository) -> None:
        assert await repo.get_scan("nope") is None

    @pytest.mark.asyncio()
    async def test_save_same_id_replaces(
        self, repo: Repository, sample_history_item: ScanHistoryItem
    ) -> None:
        await repo.save_scan(sample_history_item)
        await repo.save_scan(_history_at(sample_history_item, "scan-001", 9))
        assert await repo.count_scans() == 1
        loaded = await repo.get_scan("scan-001")
        assert loaded is not None
        assert loaded.timestamp.day == 9

    @pytest.mark.asyncio()
    async def test_list_newest_first_with_pagination(
        self, repo: Repository, sample_history_item: ScanHistoryItem
    ) -> None:
        for day, scan_id in [(1, "old"), (3, "new"), (2, "mid")]:
            await repo.save_scan(_history_at(sample_history_item, scan_id, day))

        assert [s.id for s in await repo.list_scans()] == ["new", "mid", "old"]
        page = await repo.list_scans(limit=1, offset=1)
        assert [s.id for s in page] == ["mid"]

    @pytest.mark.asyncio()
    async def test_filter_by_target(
        self,
        repo: Repository,
        sample_history_item: ScanHistoryItem,
        competitors: list[BusinessEntity],
    ) -> None:
        other = _for_target(_history_at(sample_history_item, "other", 2), competitors[0])
        await repo.save_scan(sample_history_item)
        await repo.save_scan(other)

        scans = await repo.list_scans(target_id="place-a")
        assert [s.id for s in scans] == ["other"]
        assert await repo.count_scans(target_id="place-target") == 1
        assert await repo.count_scans() == 2

    @pytest.mark.asyncio()
    async def test_delete(self, repo: Repository, sample_history_item: ScanHistoryItem) -> None:
        await repo.save_scan(sample_history_item)
        assert await repo.delete_scan("scan-001") is True
        assert await repo.delete_scan("scan-001") is False
        assert await repo.get_scan("scan-001") is None


class TestPruneHistory:
    """Tests for prune_history."""

    @pytest.mark.asyncio()
    async def test_keeps_most_recent(
        self, repo: Repository, sample_history_item: ScanHistoryItem
    ) -> None:
        for day in range(1, 6):
            await repo.save_scan(_history_at(sample_history_item, f"scan-{day}", day))

        deleted = await repo.prune_history(2)

        assert deleted == 3
        assert [s.id for s in await repo.list_scans()] == ["scan-5", "scan-4"]

    @pytest.mark.asyncio()
    async def test_nothing_to_prune(
        self, repo: Repository, sample_history_item: ScanHistoryItem
    ) -> None:
        await repo.save_scan(sample_history_item)
        assert await repo.prune_history(10) == 0

    @pytest.mark.asyncio()
    async def test_negative_keep_rejected(self, repo: Repository) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            await repo.prune_history(-1)


class TestInsights:
    """Tests for insight persistence."""

    @pytest.mark.asyncio()
    async def test_save_and_list(
        self,
        repo: Repository,
        sample_history_item: ScanHistoryItem,
        sample_insight: Insight,
    ) -> None:
        await repo.save_scan(sample_history_item)
        later = sample_insight.model_copy(
            update={
                "content": "Later insight",
                "created_at": sample_insight.created_at + datetime.timedelta(hours=1),
            }
        )
        first_id = await repo.save_insight("scan-001", sample_insight)
        second_id = await repo.save_insight("scan-001", later)

        assert second_id > first_id
        insights = await repo.list_insights("scan-001")
        assert [i.content for i in insights] == ["Later insight", sample_insight.content]
        assert insights[1] == sample_insight

    @pytest.mark.asyncio()
    async def test_unknown_scan_rejected(
        self, repo: Repository, sample_insight: Insight
    ) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            await repo.save_insight("missing", sample_insight)

    @pytest.mark.asyncio()
    async def test_deleting_scan_removes_insights(
        self,
        repo: Repository,
        sample_history_item: ScanHistoryItem,
        sample_insight: Insight,
    ) -> None:
        await repo.save_scan(sample_history_item)
        await repo.save_insight("scan-001", sample_insight)

        await repo.delete_scan("scan-001")

        assert await repo.list_insights("scan-001") == []
