"""
SQLite-backed Target Directory.

The set of gban targets is the set of guilds the bot has registered. The
engine only ever calls :meth:`SqliteTargetDirectory.list_targets`; the event
cog, the founders' /drop command and the inactive guild pruner maintain the
table.
"""

from __future__ import annotations

import datetime
import time
from typing import List, Optional, Tuple

from gbancord.database.db_connection import ConnectionManager
from gbancord.datatypes.discord_datatypes import GuildID
from gbancord.datatypes.gban_datatypes import GuildRecord
from gbancord.repositories.guild_repo import GuildRepository
from gbancord.util.logger import get_logger

logger = get_logger("target_directory")


class SqliteTargetDirectory:
    """Registered guilds, in registration order."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self._repo = GuildRepository()

    async def list_targets(self) -> List[GuildID]:
        """Return the current target snapshot."""
        async with self._connection.read() as conn:
            ids = await self._repo.list_ids(conn)
        return [GuildID(guild_id) for guild_id in ids]

    async def register(self, guild_id: GuildID, guild_name: str) -> None:
        async with self._connection.transaction() as conn:
            await self._repo.upsert(conn, str(guild_id), guild_name, int(time.time()))
        logger.debug("[TARGETS] Registered guild %s (%s)", guild_id, guild_name)

    async def is_registered(self, guild_id: GuildID) -> bool:
        async with self._connection.read() as conn:
            return await self._repo.exists(conn, str(guild_id))

    async def touch(self, guild_id: GuildID) -> bool:
        """Record activity in a guild; returns False if the guild is not registered."""
        async with self._connection.transaction() as conn:
            return await self._repo.touch(conn, str(guild_id), int(time.time()))

    async def remove(self, guild_id: GuildID) -> bool:
        async with self._connection.transaction() as conn:
            removed = await self._repo.delete(conn, str(guild_id))
        if removed:
            logger.info("[TARGETS] Removed guild %s", guild_id)
        return removed

    async def list_guilds(self) -> List[GuildRecord]:
        """Every registered guild with its name, in registration order."""
        async with self._connection.read() as conn:
            rows = await self._repo.list_all(conn)
        return _to_records(rows)

    async def get_guild(self, guild_id: GuildID) -> Optional[GuildRecord]:
        for record in await self.list_guilds():
            if record.guild_id == guild_id:
                return record
        return None

    async def list_inactive(self, inactive_days: int) -> List[GuildRecord]:
        """Guilds without recorded activity in the last ``inactive_days`` days."""
        cutoff = int(time.time()) - inactive_days * 24 * 60 * 60
        async with self._connection.read() as conn:
            rows = await self._repo.list_inactive(conn, cutoff)
        return _to_records(rows)


def _to_records(rows: List[Tuple[str, str, Optional[int]]]) -> List[GuildRecord]:
    return [
        GuildRecord(
            guild_id=GuildID(guild_id),
            guild_name=name,
            last_activity=(
                datetime.datetime.fromtimestamp(last, tz=datetime.timezone.utc) if last is not None else None
            ),
        )
        for guild_id, name, last in rows
    ]
