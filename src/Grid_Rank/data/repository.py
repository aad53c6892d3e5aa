"""Repository layer for scan history and insight queries.

Provides typed CRUD operations backed by a Database instance. All queries use
parameterized SQL (no string interpolation). Settings, results and insights
are stored as ``model_dump_json()`` text and read back with
``model_validate_json()`` so that they round-trip losslessly.
"""

import datetime
import logging
import sqlite3

from Grid_Rank.data.database import Database
from Grid_Rank.models.insight import Insight
from Grid_Rank.models.scan import ScanHistoryItem, ScanResult, ScanSettings

logger = logging.getLogger(__name__)

_SCAN_COLUMNS: str = "id, timestamp, settings, result"


class Repository:
    """Query interface for the Grid Rank persistence layer.

    All methods operate through the provided Database instance's connection.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Scan history
    # ------------------------------------------------------------------

    async def save_scan(self, item: ScanHistoryItem) -> None:
        """Persist a scan history entry.

        Uses ``INSERT OR REPLACE`` so that saving the same id twice keeps
        one row with the latest content.
        """
        conn = self._db.connection
        target = item.settings.target
        await conn.execute(
            "INSERT OR REPLACE INTO scan_history "
            "(id, timestamp, target_id, target_name, search_query, grid_spec_text, "
            "average_rank, settings, result) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                item.id,
                _to_utc_iso(item.timestamp),
                target.id if target is not None else None,
                target.name if target is not None else None,
                item.settings.search_query,
                item.settings.grid_spec_text,
                item.result.summary.average_rank,
                item.settings.model_dump_json(),
                item.result.model_dump_json(),
            ),
        )
        await conn.commit()
        logger.debug("Saved scan %s", item.id)

    async def get_scan(self, scan_id: str) -> ScanHistoryItem | None:
        """Return a scan history entry by its id, or None if not found."""
        conn = self._db.connection
        cursor = await conn.execute(
            f"SELECT {_SCAN_COLUMNS} FROM scan_history WHERE id = ?",  # noqa: S608
            (scan_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_history_item(row)

    async def list_scans(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        target_id: str | None = None,
    ) -> list[ScanHistoryItem]:
        """Return scans newest first, optionally for one target, with pagination."""
        conn = self._db.connection
        if target_id is not None:
            cursor = await conn.execute(
                f"SELECT {_SCAN_COLUMNS} FROM scan_history "  # noqa: S608
                "WHERE target_id = ? ORDER BY timestamp DESC LIMIT ? OFFSET ?",
                (target_id, limit, offset),
            )
        else:
            cursor = await conn.execute(
                f"SELECT {_SCAN_COLUMNS} FROM scan_history "  # noqa: S608
                "ORDER BY timestamp DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
        rows = await cursor.fetchall()
        return [_row_to_history_item(row) for row in rows]

    async def count_scans(self, *, target_id: str | None = None) -> int:
        """Return the number of stored scans, optionally for one target."""
        conn = self._db.connection
        if target_id is not None:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM scan_history WHERE target_id = ?",
                (target_id,),
            )
        else:
            cursor = await conn.execute("SELECT COUNT(*) FROM scan_history")
        row = await cursor.fetchone()
        return int(row[0]) if row is not None else 0

    async def delete_scan(self, scan_id: str) -> bool:
        """Delete a scan and its insights (CASCADE). Returns True if it existed."""
        conn = self._db.connection
        cursor = await conn.execute("DELETE FROM scan_history WHERE id = ?", (scan_id,))
        await conn.commit()
        return cursor.rowcount > 0

    async def prune_history(self, keep: int) -> int:
        """Keep only the *keep* most recent scans. Returns the number deleted."""
        if keep < 0:
            msg = f"keep must be non-negative, got {keep}"
            raise ValueError(msg)
        conn = self._db.connection
        cursor = await conn.execute(
            "DELETE FROM scan_history WHERE id NOT IN "
            "(SELECT id FROM scan_history ORDER BY timestamp DESC LIMIT ?)",
            (keep,),
        )
        await conn.commit()
        deleted = cursor.rowcount
        if deleted > 0:
            logger.info("Pruned %d old scans (keeping %d)", deleted, keep)
        return deleted

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    async def save_insight(self, scan_id: str, insight: Insight) -> int:
        """Persist an insight for a scan and return its row id."""
        conn = self._db.connection
        cursor = await conn.execute(
            "INSERT INTO insights "
            "(scan_id, insight_type, model_used, is_fallback, created_at, full_insight) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                scan_id,
                insight.insight_type.value,
                insight.model_used,
                int(insight.is_fallback),
                _to_utc_iso(insight.created_at),
                insight.model_dump_json(),
            ),
        )
        await conn.commit()
        insight_id = cursor.lastrowid
        if insight_id is None:
            msg = "Failed to retrieve lastrowid after insight insert."
            raise RuntimeError(msg)
        return insight_id

    async def list_insights(self, scan_id: str) -> list[Insight]:
        """Return the insights stored for a scan, newest first."""
        conn = self._db.connection
        cursor = await conn.execute(
            "SELECT full_insight FROM insights WHERE scan_id = ? "
            "ORDER BY created_at DESC, id DESC",
            (scan_id,),
        )
        rows = await cursor.fetchall()
        return [Insight.model_validate_json(row[0]) for row in rows]


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _to_utc_iso(timestamp: datetime.datetime) -> str:
    """Normalize to UTC so that ISO strings sort chronologically."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=datetime.UTC)
    return timestamp.astimezone(datetime.UTC).isoformat()


def _row_to_history_item(row: sqlite3.Row) -> ScanHistoryItem:
    """Convert a database row tuple to a ScanHistoryItem model."""
    return ScanHistoryItem(
        id=row[0],
        timestamp=datetime.datetime.fromisoformat(row[1]),
        settings=ScanSettings.model_validate_json(row[2]),
        result=ScanResult.model_validate_json(row[3]),
    )
