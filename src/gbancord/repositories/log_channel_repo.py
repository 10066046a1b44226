"""
Repository for the ``log_channels`` table.
"""

from __future__ import annotations

from typing import List, Tuple

import aiosqlite


class LogChannelRepository:
    """CRUD for the log_channels table."""

    @staticmethod
    async def add(conn: aiosqlite.Connection, channel_id: str, channel_name: str, added_by: str, now: int) -> bool:
        """Register a log channel; returns False if it was already registered."""
        cursor = await conn.execute(
            "INSERT OR IGNORE INTO log_channels (channel_id, channel_name, added_by, created_at) "
            "VALUES (?, ?, ?, ?)",
            (channel_id, channel_name, added_by, now),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def remove(conn: aiosqlite.Connection, channel_id: str) -> bool:
        cursor = await conn.execute("DELETE FROM log_channels WHERE channel_id = ?", (channel_id,))
        return cursor.rowcount > 0

    @staticmethod
    async def list_all(conn: aiosqlite.Connection) -> List[Tuple[str, str]]:
        """Return ``(channel_id, channel_name)`` pairs in registration order."""
        async with conn.execute(
            "SELECT channel_id, channel_name FROM log_channels ORDER BY created_at, rowid"
        ) as cursor:
            rows = await cursor.fetchall()
        return [(str(row[0]), row[1]) for row in rows]
