"""SQLite memory store for coaching memory records."""

import sqlite3
from datetime import date, datetime
from pathlib import Path
from uuid import uuid4

import aiosqlite

from coachmem.core.errors import MemoryStoreError
from coachmem.core.logging import get_logger
from coachmem.memory.base import MemoryKind, MemoryRecord, MemoryStore

logger = get_logger("memory.store")


# Python 3.12+ fix: Register date/datetime adapters explicitly
def _adapt_datetime(dt: datetime) -> str:
    """Convert datetime to ISO format string for SQLite storage."""
    return dt.isoformat()


def _adapt_date(d: date) -> str:
    return d.isoformat()


def _convert_datetime(val: bytes) -> datetime:
    """Convert ISO format string from SQLite to datetime."""
    return datetime.fromisoformat(val.decode())


def _convert_date(val: bytes) -> date:
    return date.fromisoformat(val.decode())


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_adapter(date, _adapt_date)
sqlite3.register_converter("DATETIME", _convert_datetime)
sqlite3.register_converter("DATE", _convert_date)

SCHEMA = """
-- Long-term coaching memory: append-only, partitioned by owner
CREATE TABLE IF NOT EXISTS coach_memories (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    content TEXT NOT NULL,
    reference_date DATE,
    importance_score INTEGER NOT NULL DEFAULT 3,
    expires_at DATE,  -- NULL = never expires
    created_at DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_memories_owner_kind_created
    ON coach_memories(owner_id, kind, created_at);

CREATE INDEX IF NOT EXISTS idx_memories_owner_created
    ON coach_memories(owner_id, created_at);
"""

_COLUMNS = (
    "id, owner_id, kind, content, reference_date, importance_score, expires_at, created_at"
)

_ACTIVE = "(expires_at IS NULL OR expires_at >= ?)"

_ORDERINGS = {
    "created": "created_at DESC, rowid DESC",
    "reference": "reference_date IS NULL, reference_date DESC, rowid DESC",
}


def _row_to_record(row: tuple) -> MemoryRecord:
    return MemoryRecord(
        id=row[0],
        owner_id=row[1],
        kind=MemoryKind(row[2]),
        content=row[3],
        reference_date=row[4],
        importance_score=row[5],
        expires_at=row[6],
        created_at=row[7],
    )


class SQLiteMemoryStore(MemoryStore):
    """SQLite-backed memory store."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Use detect_types to enable our custom date converters
        self._conn = await aiosqlite.connect(
            self.db_path,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        )
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info(f"Connected to memory store: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise MemoryStoreError("Memory store not connected. Call connect() first.")
        return self._conn

    async def insert(self, record: MemoryRecord) -> str:
        """Insert one record in its own transaction."""
        record_id = record.id or str(uuid4())
        try:
            await self.conn.execute(
                f"INSERT INTO coach_memories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record_id,
                    record.owner_id,
                    record.kind.value,
                    record.content,
                    record.reference_date,
                    record.importance_score,
                    record.expires_at,
                    record.created_at,
                ),
            )
            await self.conn.commit()
        except sqlite3.Error as e:
            raise MemoryStoreError(f"Failed to insert memory for {record.owner_id}: {e}") from e
        return record_id

    async def recent_by_kind(
        self,
        owner_id: str,
        kind: MemoryKind,
        limit: int,
        today: date,
        order: str = "created",
    ) -> list[MemoryRecord]:
        if order not in _ORDERINGS:
            raise ValueError(f"Unknown ordering: {order}")
        sql = (
            f"SELECT {_COLUMNS} FROM coach_memories "
            f"WHERE owner_id = ? AND kind = ? AND {_ACTIVE} "
            f"ORDER BY {_ORDERINGS[order]} LIMIT ?"
        )
        return await self._fetch(sql, (owner_id, kind.value, today, limit))

    async def list_active(
        self,
        owner_id: str,
        today: date,
        limit: int | None = None,
    ) -> list[MemoryRecord]:
        sql = (
            f"SELECT {_COLUMNS} FROM coach_memories "
            f"WHERE owner_id = ? AND {_ACTIVE} "
            f"ORDER BY {_ORDERINGS['created']}"
        )
        params: tuple = (owner_id, today)
        if limit is not None:
            sql += " LIMIT ?"
            params += (limit,)
        return await self._fetch(sql, params)

    async def count(self, owner_id: str) -> int:
        """Total records for an owner, expired ones included."""
        async with self.conn.execute(
            "SELECT COUNT(*) FROM coach_memories WHERE owner_id = ?", (owner_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def _fetch(self, sql: str, params: tuple) -> list[MemoryRecord]:
        try:
            async with self.conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise MemoryStoreError(f"Memory query failed: {e}") from e
        return [_row_to_record(row) for row in rows]
