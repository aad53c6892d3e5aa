"""SQLite connection lifecycle and schema migrations for scan history.

One aiosqlite connection per ``Database``. Numbered ``NNN_name.sql`` files in
``migrations/`` are applied in order and recorded in ``schema_version``.
"""

import datetime
import logging
from pathlib import Path
from types import TracebackType

import aiosqlite

logger = logging.getLogger(__name__)

MIGRATIONS_DIR: Path = Path(__file__).parent / "migrations"
DEFAULT_DB_PATH: str = "data/grid_rank.db"
MEMORY_DB_PATH: str = ":memory:"

# Applied on every connect; foreign keys drive the insight cascade.
_CONNECTION_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
)


def pending_migrations(
    applied: set[int],
    directory: Path = MIGRATIONS_DIR,
) -> list[tuple[int, Path]]:
    """Return ``(version, path)`` for migration files not yet in *applied*, oldest first."""
    found: list[tuple[int, Path]] = []
    for path in directory.glob("*.sql"):
        prefix = path.name.split("_", 1)[0]
        if not prefix.isdigit():
            logger.warning("Ignoring migration without a numeric prefix: %s", path.name)
            continue
        version = int(prefix)
        if version not in applied:
            found.append((version, path))
    return sorted(found)


class Database:
    """Scan history store backed by one aiosqlite connection.

    Usage::

        async with Database("data/grid_rank.db") as db:
            repo = Repository(db)
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> str:
        """Filesystem path of the database, or ``:memory:``."""
        return self._db_path

    @property
    def connection(self) -> aiosqlite.Connection:
        """Return the active connection or raise if not connected."""
        if self._connection is None:
            msg = "Database is not connected. Call connect() or use 'async with'."
            raise RuntimeError(msg)
        return self._connection

    async def connect(self) -> None:
        """Open the connection, apply pragmas and bring the schema up to date."""
        if self._db_path != MEMORY_DB_PATH:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        for pragma in _CONNECTION_PRAGMAS:
            await self._connection.execute(pragma)
        applied = await self._migrate()
        logger.info("Database connected: %s (%d migrations applied)", self._db_path, applied)

    async def close(self) -> None:
        """Close the connection if one is open."""
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("Database closed: %s", self._db_path)

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def schema_version(self) -> int:
        """Return the highest applied migration version, 0 for an empty schema."""
        cursor = await self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        if row is None or row[0] is None:
            return 0
        return int(row[0])

    async def _migrate(self) -> int:
        """Apply pending migrations and return how many were applied this call."""
        conn = self.connection
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
        )
        await conn.commit()

        cursor = await conn.execute("SELECT version FROM schema_version")
        applied = {row[0] for row in await cursor.fetchall()}

        pending = pending_migrations(applied)
        for version, path in pending:
            logger.info("Applying migration %03d: %s", version, path.name)
            # The version row is written after the script, so a failed file reruns.
            await conn.executescript(path.read_text(encoding="utf-8"))
            await conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (version, datetime.datetime.now(datetime.UTC).isoformat()),
            )
            await conn.commit()
        return len(pending)
