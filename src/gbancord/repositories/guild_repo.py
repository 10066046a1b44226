"""
Repository for the ``guilds`` table (gban targets).
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import aiosqlite


class GuildRepository:
    """CRUD for the guilds table."""

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, guild_id: str, guild_name: str, now: int) -> None:
        """Register a guild, or refresh its name and activity if already known.

        ``added_at`` is kept from the first registration so the target order
        stays stable.
        """
        await conn.execute(
            """
            INSERT INTO guilds (guild_id, guild_name, added_at, last_activity)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                guild_name    = excluded.guild_name,
                last_activity = excluded.last_activity
            """,
            (guild_id, guild_name or "Unnamed", now, now),
        )

    @staticmethod
    async def touch(conn: aiosqlite.Connection, guild_id: str, now: int) -> bool:
        cursor = await conn.execute(
            "UPDATE guilds SET last_activity = ? WHERE guild_id = ?",
            (now, guild_id),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def delete(conn: aiosqlite.Connection, guild_id: str) -> bool:
        cursor = await conn.execute("DELETE FROM guilds WHERE guild_id = ?", (guild_id,))
        return cursor.rowcount > 0

    @staticmethod
    async def list_ids(conn: aiosqlite.Connection) -> List[str]:
        """All guild IDs in registration order."""
        async with conn.execute(
            "SELECT guild_id FROM guilds ORDER BY added_at, rowid"
        ) as cursor:
            rows = await cursor.fetchall()
        return [str(row[0]) for row in rows]

    @staticmethod
    async def exists(conn: aiosqlite.Connection, guild_id: str) -> bool:
        async with conn.execute(
            "SELECT 1 FROM guilds WHERE guild_id = ? LIMIT 1", (guild_id,)
        ) as cursor:
            return await cursor.fetchone() is not None

    @staticmethod
    async def list_inactive(conn: aiosqlite.Connection, cutoff: int) -> List[Tuple[str, str, Optional[int]]]:
        """Return ``(guild_id, guild_name, last_activity)`` for guilds idle since ``cutoff``."""
        async with conn.execute(
            "SELECT guild_id, guild_name, last_activity FROM guilds "
            "WHERE last_activity IS NULL OR last_activity < ?",
            (cutoff,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [(str(row[0]), row[1], row[2]) for row in rows]

    @staticmethod
    async def list_all(conn: aiosqlite.Connection) -> List[Tuple[str, str, Optional[int]]]:
        """Return ``(guild_id, guild_name, last_activity)`` for every guild in registration order."""
        async with conn.execute(
            "SELECT guild_id, guild_name, last_activity FROM guilds ORDER BY added_at, rowid"
        ) as cursor:
            rows = await cursor.fetchall()
        return [(str(row[0]), row[1], row[2]) for row in rows]
