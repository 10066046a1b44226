"""
Collaborator contracts of the gban engine.

The engine never touches Discord or SQLite directly; it talks to these
protocols. The production implementations live in
``gbancord.bot.discord_adapters`` and ``gbancord.services``.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from gbancord.datatypes.discord_datatypes import GuildID, UserID
from gbancord.datatypes.gban_datatypes import BanRecord, PendingBanRecord


class TargetDirectory(Protocol):
    async def list_targets(self) -> List[GuildID]:
        """Return the ordered target snapshot. Raising fails the whole task."""
        ...


class BanActuator(Protocol):
    """Applies a ban or unban in one target. Returns False on failure."""

    async def apply_ban(self, target: GuildID, subject: UserID, reason: str) -> bool:
        ...

    async def apply_unban(self, target: GuildID, subject: UserID, reason: str) -> bool:
        ...


class Notifier(Protocol):
    """Best-effort broadcast to the log channels."""

    async def post(self, message: str) -> None:
        ...


class StatusMessage(Protocol):
    """The operator-facing message a command edits for live progress."""

    async def edit(self, text: str) -> None:
        ...


class BanStore(Protocol):
    async def upsert_active(self, subject: UserID, reason: str, actor: UserID) -> None:
        ...

    async def delete_active(self, subject: UserID) -> bool:
        ...

    async def get_active(self, subject: UserID) -> Optional[BanRecord]:
        ...

    async def upsert_pending(self, subject: UserID, reason: str, actor: UserID) -> None:
        ...

    async def delete_pending(self, subject: UserID) -> bool:
        ...

    async def get_pending(self, subject: UserID) -> Optional[PendingBanRecord]:
        ...

    async def append_reason(self, subject: UserID, addition: str, actor: UserID) -> Optional[BanRecord]:
        ...
