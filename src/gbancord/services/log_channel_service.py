"""
Registry of the channels that receive gban log messages.
"""

from __future__ import annotations

import time
from typing import List, Tuple

from gbancord.database.db_connection import ConnectionManager
from gbancord.datatypes.discord_datatypes import ChannelID, UserID
from gbancord.repositories.log_channel_repo import LogChannelRepository
from gbancord.util.logger import get_logger

logger = get_logger("log_channel_service")


class LogChannelRegistry:
    """Add, remove and list log channels."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self._repo = LogChannelRepository()

    async def add(self, channel_id: ChannelID, channel_name: str, added_by: UserID) -> bool:
        async with self._connection.transaction() as conn:
            added = await self._repo.add(conn, str(channel_id), channel_name, str(added_by), int(time.time()))
        if added:
            logger.info("[LOG CHANNELS] Added log channel %s (%s)", channel_id, channel_name)
        return added

    async def remove(self, channel_id: ChannelID) -> bool:
        async with self._connection.transaction() as conn:
            removed = await self._repo.remove(conn, str(channel_id))
        if removed:
            logger.info("[LOG CHANNELS] Removed log channel %s", channel_id)
        return removed

    async def list_channels(self) -> List[Tuple[ChannelID, str]]:
        async with self._connection.read() as conn:
            rows = await self._repo.list_all(conn)
        return [(ChannelID(channel_id), name) for channel_id, name in rows]
