"""
Two-founder approval workflow for gban removals.

A founder asking to lift a gban opens a pending approval for that user; a
*different* founder repeating the request approves it. The request expires
after a fixed timeout. Each subject has at most one pending approval and
every approval ends in exactly one of: approved, cancelled, expired.

All transitions are synchronous check-then-act sections. On a single event
loop nothing can interleave inside them, so whichever transition removes
the entry first wins and the others observe an absent entry and do nothing.
The expiry timer is an ``asyncio.TimerHandle``; approve and cancel cancel
it, and a timer that still fires checks that the entry it was armed for is
the current one before acting, so it can never hit a newer request for the
same user.
"""

from __future__ import annotations

import asyncio
import datetime
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from gbancord.datatypes.discord_datatypes import UserID
from gbancord.datatypes.gban_datatypes import ApprovalDecision, CancelOutcome
from gbancord.engine.interfaces import StatusMessage
from gbancord.util.logger import get_logger

logger = get_logger("approval")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(eq=False)
class PendingApproval:
    """
    A pending gban removal waiting for a second founder.

    Attributes:
        subject (UserID): User whose gban would be lifted.
        requester (UserID): Founder who opened the request.
        created_at (datetime.datetime): UTC creation time.
        expires_at (datetime.datetime): UTC time the timer fires.
        origin (StatusMessage | None): Request message, edited on expiry.
        timer (asyncio.TimerHandle | None): Expiry timer while armed.
        approved_by (UserID | None): Second founder, set on approval.
    """
    subject: UserID
    requester: UserID
    created_at: datetime.datetime
    expires_at: datetime.datetime
    origin: Optional[StatusMessage] = None
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)
    approved_by: Optional[UserID] = None

    def remaining(self, now: Optional[datetime.datetime] = None) -> datetime.timedelta:
        remaining = self.expires_at - (now or _utcnow())
        return max(remaining, datetime.timedelta(0))


@dataclass
class ApprovalResult:
    decision: ApprovalDecision
    entry: PendingApproval


ExpiryCallback = Callable[[PendingApproval], Awaitable[None]]


class ApprovalRegistry:
    """
    Registry of pending approvals keyed by subject.

    Args:
        timeout_seconds (float): Lifetime of a pending approval.
        on_expired (ExpiryCallback | None): Awaited, in its own task, after a
            timer removed an entry.
    """

    def __init__(self, timeout_seconds: float, on_expired: Optional[ExpiryCallback] = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.on_expired = on_expired
        self._entries: Dict[UserID, PendingApproval] = {}
        self._callback_tasks: Set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, subject: object) -> bool:
        return subject in self._entries

    def get(self, subject: UserID) -> Optional[PendingApproval]:
        return self._entries.get(subject)

    def list_pending(self) -> List[PendingApproval]:
        """Live entries, oldest first."""
        return sorted(self._entries.values(), key=lambda entry: entry.created_at)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def request(
        self,
        subject: UserID,
        requester: UserID,
        origin: Optional[StatusMessage] = None,
    ) -> ApprovalResult:
        """
        Open a request, or approve the one another founder opened.

        Returns:
            ApprovalResult: ``ALREADY_REQUESTED`` if ``requester`` opened the
            live request (nothing changes), ``APPROVED`` if a different
            founder opened it (entry removed, caller must execute), otherwise
            ``AWAITING_APPROVAL`` with the new entry.
        """
        entry = self._entries.get(subject)
        if entry is not None:
            if entry.requester == requester:
                logger.debug("[APPROVAL] %s repeated own unban request for %s", requester, subject)
                return ApprovalResult(ApprovalDecision.ALREADY_REQUESTED, entry)
            approved = self.approve(subject, requester)
            if approved is not None:
                return ApprovalResult(ApprovalDecision.APPROVED, approved)
            logger.warning("[APPROVAL] Unban request for %s vanished before approval; opening a new one", subject)

        loop = asyncio.get_running_loop()
        now = _utcnow()
        entry = PendingApproval(
            subject=subject,
            requester=requester,
            created_at=now,
            expires_at=now + datetime.timedelta(seconds=self.timeout_seconds),
            origin=origin,
        )
        entry.timer = loop.call_later(self.timeout_seconds, self._on_timer, subject, entry)
        self._entries[subject] = entry
        logger.info(
            "[APPROVAL] Unban request for %s opened by %s (expires %s)",
            subject, requester, entry.expires_at.isoformat(timespec="seconds"),
        )
        return ApprovalResult(ApprovalDecision.AWAITING_APPROVAL, entry)

    def approve(self, subject: UserID, approver: UserID) -> Optional[PendingApproval]:
        """
        Consume the pending request for ``subject``.

        Returns the removed entry, or None when there is nothing to approve
        (already approved, cancelled or expired) or ``approver`` is the
        requester.
        """
        entry = self._entries.get(subject)
        if entry is None:
            logger.debug("[APPROVAL] Nothing to approve for %s", subject)
            return None
        if entry.requester == approver:
            logger.debug("[APPROVAL] %s cannot approve their own request for %s", approver, subject)
            return None

        del self._entries[subject]
        self._disarm(entry)
        entry.approved_by = approver
        logger.info("[APPROVAL] Unban of %s approved by %s (requested by %s)", subject, approver, entry.requester)
        return entry

    def cancel(
        self, subject: UserID, actor: UserID, force: bool = False
    ) -> Tuple[CancelOutcome, Optional[PendingApproval]]:
        """
        Withdraw the pending request for ``subject``.

        Only the requester may cancel unless ``force`` is set. Cancelling an
        absent request is a silent no-op reported as ``NOT_FOUND``.
        """
        entry = self._entries.get(subject)
        if entry is None:
            return CancelOutcome.NOT_FOUND, None
        if entry.requester != actor and not force:
            return CancelOutcome.NOT_REQUESTER, entry

        del self._entries[subject]
        self._disarm(entry)
        logger.info("[APPROVAL] Unban request for %s cancelled by %s (force=%s)", subject, actor, force)
        return CancelOutcome.CANCELLED, entry

    def expire(self, subject: UserID, entry: Optional[PendingApproval] = None) -> Optional[PendingApproval]:
        """
        Drop the pending request for ``subject`` because its time ran out.

        When ``entry`` is given the removal only happens if it is still the
        live entry for ``subject``.
        """
        current = self._entries.get(subject)
        if current is None or (entry is not None and current is not entry):
            return None

        del self._entries[subject]
        self._disarm(current)
        logger.info("[APPROVAL] Unban request for %s expired", subject)
        return current

    # ------------------------------------------------------------------
    # Timer plumbing
    # ------------------------------------------------------------------

    def _on_timer(self, subject: UserID, entry: PendingApproval) -> None:
        expired = self.expire(subject, entry)
        if expired is None or self.on_expired is None:
            return
        task = asyncio.get_running_loop().create_task(
            self._run_expiry_callback(expired), name=f"gbancord-approval-expired-{subject}"
        )
        self._callback_tasks.add(task)
        task.add_done_callback(self._callback_tasks.discard)

    async def _run_expiry_callback(self, entry: PendingApproval) -> None:
        if self.on_expired is None:
            return
        try:
            await self.on_expired(entry)
        except Exception as exc:
            logger.error("[APPROVAL] Expiry callback failed for %s: %s", entry.subject, exc)

    @staticmethod
    def _disarm(entry: PendingApproval) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

    async def shutdown(self) -> None:
        """Cancel every timer and wait for running expiry callbacks."""
        for entry in self._entries.values():
            self._disarm(entry)
        self._entries.clear()
        if self._callback_tasks:
            await asyncio.gather(*self._callback_tasks, return_exceptions=True)
        logger.info("[APPROVAL] Approval registry shut down")
