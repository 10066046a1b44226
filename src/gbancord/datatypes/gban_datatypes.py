"""
Data structures shared by the gban engine, the store and the cogs.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from gbancord.datatypes.discord_datatypes import GuildID, UserID


@dataclass(frozen=True)
class BanRecord:
    """
    An active gban.

    Attributes:
        user_id (UserID): Banned user, unique key of the ``gbans`` table.
        reason (str): Operator supplied reason (may carry ``| add.`` suffixes).
        banned_by (UserID): Founder who issued the ban.
        created_at (datetime.datetime): UTC time the record was committed.
    """
    user_id: UserID
    reason: str
    banned_by: UserID
    created_at: datetime.datetime


@dataclass(frozen=True)
class PendingBanRecord:
    """
    A gban that has not been applied in any guild yet.

    Same shape as :class:`BanRecord`; it is promoted to an active record as
    soon as one actuation succeeds.
    """
    user_id: UserID
    reason: str
    banned_by: UserID
    created_at: datetime.datetime


@dataclass(frozen=True)
class GuildRecord:
    """A registered gban target."""
    guild_id: GuildID
    guild_name: str
    last_activity: Optional[datetime.datetime] = None


class GbanOperation(Enum):
    """Kind of work carried by a queued gban task."""
    BAN = "ban"
    MULTI_BAN = "multiban"
    RETRY = "retry"
    UNBAN = "unban"
    PROMOTE = "promote"


@dataclass
class SubjectOutcome:
    """Per-user outcome of a multi-ban task."""
    user_id: str
    succeeded: int = 0
    total: int = 0
    error: Optional[str] = None

    @property
    def banned(self) -> bool:
        return self.error is None and self.succeeded > 0


@dataclass
class GbanResult:
    """
    Structured result of one queued gban task.

    Attributes:
        success (bool): Whether the task achieved its goal.
        processed (int): Targets (or, for multi-ban, users) attempted.
        total (int): Size of the snapshot (or the user list for multi-ban).
        succeeded (int): Successful actuator calls.
        subjects (List[SubjectOutcome]): Multi-ban per-user outcomes.
    """
    success: bool
    processed: int
    total: int
    succeeded: int = 0
    subjects: List[SubjectOutcome] = field(default_factory=list)


class ApprovalDecision(Enum):
    """Result of submitting an unban request to the approval registry."""
    AWAITING_APPROVAL = "awaiting_approval"
    ALREADY_REQUESTED = "already_requested"
    APPROVED = "approved"


class CancelOutcome(Enum):
    """Result of a cancel call against the approval registry."""
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    NOT_REQUESTER = "not_requester"


@dataclass
class QueueInfo:
    """Snapshot of the gban queue for ``/queueinfo``."""
    size: int
    processing: bool
