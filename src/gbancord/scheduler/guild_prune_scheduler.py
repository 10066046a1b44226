"""Periodic removal of inactive guilds from the gban target list.

A guild that has not produced a message for ``inactive_guild_days`` stops
being a gban target. It is registered again as soon as it shows activity.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List

from gbancord.datatypes.gban_datatypes import GuildRecord
from gbancord.engine.interfaces import Notifier
from gbancord.services.target_directory import SqliteTargetDirectory
from gbancord.ui import gban_messages as messages
from gbancord.util.logger import get_logger

logger = get_logger("guild_prune_scheduler")


class GuildPruneScheduler:
    """
    Background sweep over the registered guilds.

    Args:
        directory: Registered guilds.
        notifier: Log channel broadcaster for ``#GUILD_INACTIVE`` posts.
        get_inactive_days: Callable returning the inactivity threshold in days.
        get_interval: Callable returning the sweep interval in seconds (called at start).
    """

    def __init__(
        self,
        directory: SqliteTargetDirectory,
        notifier: Notifier,
        get_inactive_days: Callable[[], int],
        get_interval: Callable[[], float],
    ) -> None:
        self._directory = directory
        self._notifier = notifier
        self._get_inactive_days = get_inactive_days
        self._get_interval = get_interval
        self._task: asyncio.Task | None = None

    async def prune_once(self) -> List[GuildRecord]:
        """Remove every inactive guild and return the removed records."""
        inactive_days = self._get_inactive_days()
        removed: List[GuildRecord] = []
        for record in await self._directory.list_inactive(inactive_days):
            try:
                if not await self._directory.remove(record.guild_id):
                    continue
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[GUILD PRUNE] Failed to remove guild %s: %s", record.guild_id, exc)
                continue
            removed.append(record)
            logger.info("[GUILD PRUNE] Removed inactive guild %s (%s)", record.guild_name, record.guild_id)
            try:
                await self._notifier.post(messages.guild_inactive(record, inactive_days))
            except Exception as exc:
                logger.warning("[GUILD PRUNE] Failed to notify removal of %s: %s", record.guild_id, exc)
        return removed

    async def _run_loop(self, interval: float) -> None:
        """Infinite loop: prune, sleep, repeat."""
        logger.info("[GUILD PRUNE] Starting periodic sweep (interval=%.1fs)", interval)
        try:
            while True:
                try:
                    await self.prune_once()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[GUILD PRUNE] Unexpected error during sweep: %s", exc)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("[GUILD PRUNE] Periodic sweep cancelled")
            raise

    def start(self) -> None:
        """Start the background sweep if not already running."""
        if self._task and not self._task.done():
            logger.warning("[GUILD PRUNE] Sweep task already running")
            return
        interval = self._get_interval()
        self._task = asyncio.create_task(self._run_loop(interval), name="gbancord-guild-prune")

    async def shutdown(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[GUILD PRUNE] Scheduler shutdown complete")
