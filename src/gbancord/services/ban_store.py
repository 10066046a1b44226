"""
SQLite-backed Ban Store.

Wraps :class:`GbanRepository` with the shared connection so the engine only
sees keyed operations on active and pending gbans. Every write is its own
transaction, so each call is durable once it returns.
"""

from __future__ import annotations

import time
from typing import Optional

from gbancord.database.db_connection import ConnectionManager
from gbancord.datatypes.discord_datatypes import UserID
from gbancord.datatypes.gban_datatypes import BanRecord, PendingBanRecord
from gbancord.repositories.gban_repo import GbanRepository, GbanRow, GbanTable
from gbancord.util.logger import get_logger

logger = get_logger("ban_store")


class SqliteBanStore:
    """Keyed CRUD over the ``gbans`` / ``pending_gbans`` tables."""

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self._repo = GbanRepository()

    # ------------------------------------------------------------------
    # Active gbans
    # ------------------------------------------------------------------

    async def upsert_active(self, subject: UserID, reason: str, actor: UserID) -> None:
        """Commit an active gban.

        Any pending row for the same user is removed in the same transaction,
        so a user is never both pending and active.
        """
        row = GbanRow(str(subject), reason, str(actor), int(time.time()))
        async with self._connection.transaction() as conn:
            await self._repo.upsert(conn, GbanTable.ACTIVE, row)
            await self._repo.delete(conn, GbanTable.PENDING, str(subject))
        logger.debug("[BAN STORE] Active gban committed for %s", subject)

    async def delete_active(self, subject: UserID) -> bool:
        async with self._connection.transaction() as conn:
            deleted = await self._repo.delete(conn, GbanTable.ACTIVE, str(subject))
        logger.debug("[BAN STORE] Active gban removed for %s (existed=%s)", subject, deleted)
        return deleted

    async def get_active(self, subject: UserID) -> Optional[BanRecord]:
        async with self._connection.read() as conn:
            row = await self._repo.get(conn, GbanTable.ACTIVE, str(subject))
        if row is None:
            return None
        return BanRecord(UserID(row.user_id), row.reason, UserID(row.banned_by), row.created_at_datetime)

    async def append_reason(self, subject: UserID, addition: str, actor: UserID) -> Optional[BanRecord]:
        """Append ``| add. <actor>: <addition>`` to an active gban's reason.

        Returns the updated record, or None when the user has no active gban.
        """
        async with self._connection.transaction() as conn:
            row = await self._repo.get(conn, GbanTable.ACTIVE, str(subject))
            if row is None:
                return None
            new_reason = f"{row.reason} | add. {actor}: {addition}"
            await self._repo.update_reason(conn, GbanTable.ACTIVE, str(subject), new_reason)
        return BanRecord(UserID(row.user_id), new_reason, UserID(row.banned_by), row.created_at_datetime)

    async def count_active(self) -> int:
        async with self._connection.read() as conn:
            return await self._repo.count(conn, GbanTable.ACTIVE)

    # ------------------------------------------------------------------
    # Pending gbans
    # ------------------------------------------------------------------

    async def upsert_pending(self, subject: UserID, reason: str, actor: UserID) -> None:
        row = GbanRow(str(subject), reason, str(actor), int(time.time()))
        async with self._connection.transaction() as conn:
            await self._repo.upsert(conn, GbanTable.PENDING, row)
        logger.debug("[BAN STORE] Pending gban stored for %s", subject)

    async def delete_pending(self, subject: UserID) -> bool:
        async with self._connection.transaction() as conn:
            return await self._repo.delete(conn, GbanTable.PENDING, str(subject))

    async def get_pending(self, subject: UserID) -> Optional[PendingBanRecord]:
        async with self._connection.read() as conn:
            row = await self._repo.get(conn, GbanTable.PENDING, str(subject))
        if row is None:
            return None
        return PendingBanRecord(UserID(row.user_id), row.reason, UserID(row.banned_by), row.created_at_datetime)

    async def count_pending(self) -> int:
        async with self._connection.read() as conn:
            return await self._repo.count(conn, GbanTable.PENDING)
