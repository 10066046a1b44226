"""
Low-level CRUD for the ``gbans`` and ``pending_gbans`` tables.

Both tables share one shape, so every statement takes the table through
:class:`GbanTable` instead of duplicating the SQL.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import aiosqlite


class GbanTable(Enum):
    ACTIVE = "gbans"
    PENDING = "pending_gbans"


@dataclass
class GbanRow:
    """A single row from either gban table."""
    user_id: str
    reason: str
    banned_by: str
    created_at: int   # unix seconds (UTC)

    @property
    def created_at_datetime(self) -> datetime.datetime:
        return datetime.datetime.fromtimestamp(self.created_at, tz=datetime.timezone.utc)


class GbanRepository:
    """CRUD for the two gban tables."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, table: GbanTable, row: GbanRow) -> None:
        """Insert or replace a row (primary key = user_id)."""
        await conn.execute(
            f"""
            INSERT INTO {table.value} (user_id, reason, banned_by, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                reason     = excluded.reason,
                banned_by  = excluded.banned_by,
                created_at = excluded.created_at
            """,
            (row.user_id, row.reason, row.banned_by, row.created_at),
        )

    @staticmethod
    async def delete(conn: aiosqlite.Connection, table: GbanTable, user_id: str) -> bool:
        """Remove a row; returns True if one existed."""
        cursor = await conn.execute(
            f"DELETE FROM {table.value} WHERE user_id = ?",
            (user_id,),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def update_reason(conn: aiosqlite.Connection, table: GbanTable, user_id: str, reason: str) -> bool:
        cursor = await conn.execute(
            f"UPDATE {table.value} SET reason = ? WHERE user_id = ?",
            (reason, user_id),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, table: GbanTable, user_id: str) -> Optional[GbanRow]:
        async with conn.execute(
            f"SELECT user_id, reason, banned_by, created_at FROM {table.value} WHERE user_id = ?",
            (user_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return GbanRow(user_id=str(row[0]), reason=row[1], banned_by=str(row[2]), created_at=int(row[3]))

    @staticmethod
    async def count(conn: aiosqlite.Connection, table: GbanTable) -> int:
        async with conn.execute(f"SELECT COUNT(*) FROM {table.value}") as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
