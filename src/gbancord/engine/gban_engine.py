"""
Gban orchestration engine.

Owns the task queue and the unban approval registry, and turns operator
commands into queued tasks that walk the guild snapshot. Each queued task:

1. takes one target snapshot when it starts,
2. runs the sequential actuation loop with adaptive progress updates,
3. commits its outcome to the ban store,
4. posts exactly one terminal message to the log channels and mirrors it
   onto the operator's status message.

Precondition checks (founder protection, duplicates) happen before anything
is queued and raise :class:`GbanError` subclasses; they are repeated at task
start because the store may have changed while the task waited.
"""

from __future__ import annotations

import asyncio
import datetime
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, Set, Tuple

from gbancord.configuration.app_configuration import GbanSettings
from gbancord.datatypes.discord_datatypes import GuildID, UserID
from gbancord.datatypes.gban_datatypes import (
    ApprovalDecision,
    BanRecord,
    CancelOutcome,
    GbanOperation,
    GbanResult,
    PendingBanRecord,
    QueueInfo,
    SubjectOutcome,
)
from gbancord.engine.actuation import Actuate, ActuationOutcome, actuate_targets
from gbancord.engine.approval import ApprovalRegistry, PendingApproval
from gbancord.engine.errors import (
    AlreadyBannedError,
    FounderProtectedError,
    NoBanFoundError,
    NoPendingBanError,
    PendingBanExistsError,
    StoreCommitError,
)
from gbancord.engine.gban_queue import GbanQueue
from gbancord.engine.interfaces import BanActuator, BanStore, Notifier, StatusMessage, TargetDirectory
from gbancord.engine.progress import calculate_update_interval
from gbancord.ui import gban_messages as messages
from gbancord.util.logger import get_logger

logger = get_logger("gban_engine")

# Resolves whether a user id belongs to an existing account.
UserResolver = Callable[[UserID], Awaitable[bool]]
TaskBody = Callable[[], Awaitable[Tuple[GbanResult, str]]]


@dataclass
class UnbanRequestOutcome:
    """
    What happened to an ``/ungban`` invocation.

    Attributes:
        decision (ApprovalDecision): Registry decision.
        entry (PendingApproval): The request that was opened, repeated or approved.
        future (asyncio.Future | None): Set when the request was approved and
            the removal task was queued.
    """
    decision: ApprovalDecision
    entry: PendingApproval
    future: Optional["asyncio.Future[GbanResult]"] = None


class GbanEngine:
    """
    Coordinates gban tasks across every registered guild.

    Args:
        store (BanStore): Durable active/pending gban records.
        directory (TargetDirectory): Source of the guild snapshot.
        actuator (BanActuator): Applies bans and unbans in one guild.
        notifier (Notifier): Log channel broadcaster.
        settings (GbanSettings): Delays, throttles and timeouts.
        founders (Iterable[str]): User ids protected from gbans.
        clock (Callable[[], float]): Monotonic clock for progress throttling.
    """

    def __init__(
        self,
        store: BanStore,
        directory: TargetDirectory,
        actuator: BanActuator,
        notifier: Notifier,
        settings: GbanSettings,
        founders: Iterable[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.directory = directory
        self.actuator = actuator
        self.notifier = notifier
        self.settings = settings
        self.founders: Set[str] = {str(founder) for founder in founders}
        self.clock = clock
        self.queue = GbanQueue(settings.queue_yield_seconds)
        self.approvals = ApprovalRegistry(settings.approval_timeout_seconds, on_expired=self._on_approval_expired)
        self._promotions_in_flight: Set[UserID] = set()

    def is_founder(self, user_id: UserID | str) -> bool:
        return str(user_id) in self.founders

    # ------------------------------------------------------------------
    # Best-effort side channels
    # ------------------------------------------------------------------

    async def notify(self, text: str) -> None:
        try:
            await self.notifier.post(text)
        except Exception as exc:
            logger.warning("[GBAN ENGINE] Failed to post log message: %s", exc)

    async def _edit(self, status: Optional[StatusMessage], text: str) -> None:
        if status is None:
            return
        try:
            await status.edit(text)
        except Exception as exc:
            logger.warning("[GBAN ENGINE] Failed to edit status message: %s", exc)

    # ------------------------------------------------------------------
    # Task plumbing
    # ------------------------------------------------------------------

    async def _snapshot(self) -> List[GuildID]:
        """Read the guild list once. Failure fails the whole task."""
        targets = await asyncio.wait_for(
            self.directory.list_targets(), timeout=self.settings.directory_timeout_seconds
        )
        return list(targets)

    async def _actuate(
        self,
        targets: Sequence[GuildID],
        actuate: Actuate,
        status: Optional[StatusMessage],
        action: str,
    ) -> ActuationOutcome:
        await self._edit(status, messages.started(action, len(targets), calculate_update_interval(len(targets))))

        async def report(processed: int, total: int) -> None:
            await self._edit(status, messages.progress(action, processed, total))

        outcome = await actuate_targets(
            targets,
            actuate,
            delay=self.settings.ban_delay_seconds,
            min_update_interval=self.settings.min_update_interval_seconds,
            call_timeout=self.settings.ban_operation_timeout_seconds,
            on_progress=report if status is not None else None,
            clock=self.clock,
        )
        logger.info(
            "[GBAN ENGINE] %s finished: %d/%d succeeded, %d failed",
            action, outcome.succeeded, outcome.total, outcome.failed,
        )
        return outcome

    async def _enqueue(
        self,
        operation: GbanOperation,
        label: str,
        body: TaskBody,
        status: Optional[StatusMessage],
    ) -> "asyncio.Future[GbanResult]":
        await self._edit(status, messages.queued(label, self.queue.size + 1))

        async def run() -> GbanResult:
            logger.info("[GBAN ENGINE] Starting %s task: %s", operation.value, label)
            try:
                result, summary = await body()
            except Exception as exc:
                if isinstance(exc, StoreCommitError):
                    logger.critical("[GBAN ENGINE] %s", exc)
                text = messages.task_failed(label, exc)
                await self.notify(text)
                await self._edit(status, text)
                raise
            await self.notify(summary)
            await self._edit(status, summary)
            return result

        return self.queue.submit(run, label=label)

    async def _commit(self, subject: UserID, outcome: ActuationOutcome, write: Awaitable[object]) -> None:
        try:
            await write
        except Exception as exc:
            raise StoreCommitError(str(subject), outcome.succeeded, outcome.total, exc) from exc

    async def _check_bannable(self, subject: UserID) -> None:
        if self.is_founder(subject):
            raise FounderProtectedError(str(subject))
        if await self.store.get_active(subject) is not None:
            raise AlreadyBannedError(str(subject))
        if await self.store.get_pending(subject) is not None:
            raise PendingBanExistsError(str(subject))

    # ------------------------------------------------------------------
    # Ban
    # ------------------------------------------------------------------

    async def submit_ban(
        self,
        subject: UserID,
        reason: str,
        actor: UserID,
        status: Optional[StatusMessage] = None,
    ) -> "asyncio.Future[GbanResult]":
        """
        Queue a gban of ``subject`` in every registered guild.

        The record becomes active when at least one guild applied the ban;
        when none did it is stored as pending so activity or ``/retrygban``
        can apply it later.

        Raises:
            FounderProtectedError, AlreadyBannedError, PendingBanExistsError
        """
        await self._check_bannable(subject)

        async def body() -> Tuple[GbanResult, str]:
            if await self.store.get_active(subject) is not None:
                return GbanResult(success=False, processed=0, total=0), messages.already_banned(subject)

            targets = await self._snapshot()
            outcome = await self._actuate(
                targets,
                lambda guild_id: self.actuator.apply_ban(guild_id, subject, reason),
                status,
                f"gban of {subject}",
            )
            result = GbanResult(
                success=outcome.succeeded > 0,
                processed=outcome.processed,
                total=outcome.total,
                succeeded=outcome.succeeded,
            )
            if outcome.succeeded > 0:
                await self._commit(subject, outcome, self.store.upsert_active(subject, reason, actor))
                return result, messages.ban_summary(subject, reason, actor, outcome.succeeded, outcome.total)
            await self._commit(subject, outcome, self.store.upsert_pending(subject, reason, actor))
            return result, messages.ban_left_pending(subject, reason, actor, outcome.total)

        return await self._enqueue(GbanOperation.BAN, f"gban of {subject}", body, status)

    async def register_pending_ban(self, subject: UserID, reason: str, actor: UserID) -> PendingBanRecord:
        """
        Record a gban for a user the bot cannot see yet.

        Nothing is actuated; the ban is applied when the user shows up in a
        guild or on ``/retrygban``.
        """
        await self._check_bannable(subject)
        await self.store.upsert_pending(subject, reason, actor)
        record = await self.store.get_pending(subject)
        if record is None:
            record = PendingBanRecord(subject, reason, actor, datetime.datetime.now(datetime.timezone.utc))
        logger.info("[GBAN ENGINE] Pending gban registered for %s by %s", subject, actor)
        await self.notify(messages.pending_registered(subject, reason, actor))
        return record

    # ------------------------------------------------------------------
    # Multi-ban
    # ------------------------------------------------------------------

    async def submit_multi_ban(
        self,
        subjects: Sequence[str],
        reason: str,
        actor: UserID,
        status: Optional[StatusMessage] = None,
        resolve: Optional[UserResolver] = None,
    ) -> "asyncio.Future[GbanResult]":
        """
        Queue one task that gbans each user in ``subjects`` in turn.

        Users are validated inside the task; invalid ids, founders, unknown
        accounts and already gbanned users are reported per user and skipped.
        One snapshot is shared by every user of the task and one summary is
        posted at the end.
        """
        raw_subjects = list(subjects)

        async def body() -> Tuple[GbanResult, str]:
            targets = await self._snapshot()
            outcomes: List[SubjectOutcome] = []
            succeeded = 0

            for index, raw in enumerate(raw_subjects, start=1):
                subject = UserID.parse(raw)
                outcome = SubjectOutcome(user_id=str(raw).strip())
                outcomes.append(outcome)
                if subject is None:
                    outcome.error = "invalid ID"
                    continue
                if self.is_founder(subject):
                    outcome.error = "founder, protected"
                    continue
                if resolve is not None and not await resolve(subject):
                    outcome.error = "user not found"
                    continue
                if await self.store.get_active(subject) is not None:
                    outcome.error = "already gbanned"
                    continue

                actuation = await self._actuate(
                    targets,
                    lambda guild_id, user=subject: self.actuator.apply_ban(guild_id, user, reason),
                    status,
                    f"multigban {index}/{len(raw_subjects)} ({subject})",
                )
                outcome.succeeded = actuation.succeeded
                outcome.total = actuation.total
                succeeded += actuation.succeeded
                if actuation.succeeded > 0:
                    write = self.store.upsert_active(subject, reason, actor)
                else:
                    write = self.store.upsert_pending(subject, reason, actor)
                try:
                    await self._commit(subject, actuation, write)
                except StoreCommitError as exc:
                    # one lost record must not stop the remaining users
                    logger.critical("[GBAN ENGINE] %s", exc)
                    outcome.error = (
                        f"banned in {actuation.succeeded}/{actuation.total} guilds, record NOT saved"
                    )

            result = GbanResult(
                success=any(outcome.banned for outcome in outcomes),
                processed=len(outcomes),
                total=len(raw_subjects),
                succeeded=succeeded,
                subjects=outcomes,
            )
            return result, messages.multiban_summary(outcomes, reason, actor)

        label = f"multigban of {len(raw_subjects)} users"
        return await self._enqueue(GbanOperation.MULTI_BAN, label, body, status)

    # ------------------------------------------------------------------
    # Retry / promotion of pending gbans
    # ------------------------------------------------------------------

    async def submit_retry(
        self,
        subject: UserID,
        actor: UserID,
        status: Optional[StatusMessage] = None,
    ) -> "asyncio.Future[GbanResult]":
        """
        Queue another attempt at a pending gban.

        Raises:
            NoPendingBanError: ``subject`` has no pending gban.
        """
        if await self.store.get_pending(subject) is None:
            raise NoPendingBanError(str(subject))

        async def body() -> Tuple[GbanResult, str]:
            pending = await self.store.get_pending(subject)
            if pending is None:
                return GbanResult(success=False, processed=0, total=0), messages.no_longer_pending(subject)

            targets = await self._snapshot()
            outcome = await self._actuate(
                targets,
                lambda guild_id: self.actuator.apply_ban(guild_id, subject, pending.reason),
                status,
                f"retry gban of {subject}",
            )
            result = GbanResult(
                success=outcome.succeeded > 0,
                processed=outcome.processed,
                total=outcome.total,
                succeeded=outcome.succeeded,
            )
            if outcome.succeeded == 0:
                return result, messages.retry_failed(subject, pending, actor, outcome.total)
            await self._commit(
                subject, outcome, self.store.upsert_active(subject, pending.reason, pending.banned_by)
            )
            return result, messages.retry_success(subject, pending, actor, outcome.succeeded, outcome.total)

        return await self._enqueue(GbanOperation.RETRY, f"retry gban of {subject}", body, status)

    async def on_subject_activity(self, subject: UserID) -> Optional["asyncio.Future[GbanResult]"]:
        """
        Promote a pending gban once its user becomes visible.

        Called for joins and messages. Returns the queued task, or None when
        the user has no pending gban or a promotion is already in flight.
        """
        if subject in self._promotions_in_flight or self.is_founder(subject):
            return None
        if await self.store.get_pending(subject) is None:
            return None
        # re-check: another caller may have queued it while we awaited the store
        if subject in self._promotions_in_flight:
            return None
        self._promotions_in_flight.add(subject)

        async def body() -> Tuple[GbanResult, str]:
            pending = await self.store.get_pending(subject)
            if pending is None:
                return GbanResult(success=False, processed=0, total=0), messages.no_longer_pending(subject)

            targets = await self._snapshot()
            outcome = await self._actuate(
                targets,
                lambda guild_id: self.actuator.apply_ban(guild_id, subject, pending.reason),
                None,
                f"pending gban of {subject}",
            )
            result = GbanResult(
                success=outcome.succeeded > 0,
                processed=outcome.processed,
                total=outcome.total,
                succeeded=outcome.succeeded,
            )
            if outcome.succeeded == 0:
                return result, messages.promotion_failed(subject, pending, outcome.total)
            await self._commit(
                subject, outcome, self.store.upsert_active(subject, pending.reason, pending.banned_by)
            )
            return result, messages.promotion_summary(subject, pending, outcome.succeeded, outcome.total)

        try:
            future = await self._enqueue(GbanOperation.PROMOTE, f"pending gban of {subject}", body, None)
        except BaseException:
            self._promotions_in_flight.discard(subject)
            raise
        future.add_done_callback(lambda _: self._promotions_in_flight.discard(subject))
        return future

    async def enforce_on_join(self, guild_id: GuildID, guild_name: str, subject: UserID) -> Optional[BanRecord]:
        """
        Re-apply an active gban in one guild where the user just showed up.

        Returns the gban record when the ban was applied, None otherwise.
        """
        record = await self.store.get_active(subject)
        if record is None or self.is_founder(subject):
            return None
        try:
            applied = await asyncio.wait_for(
                self.actuator.apply_ban(guild_id, subject, record.reason),
                timeout=self.settings.ban_operation_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("[GBAN ENGINE] Autoban of %s in %s timed out", subject, guild_id)
            return None
        if not applied:
            return None
        logger.info("[GBAN ENGINE] Autobanned %s in %s", subject, guild_id)
        await self.notify(messages.autoban(subject, guild_name, guild_id, record.reason))
        return record

    # ------------------------------------------------------------------
    # Unban
    # ------------------------------------------------------------------

    async def request_unban(
        self,
        subject: UserID,
        requester: UserID,
        status: Optional[StatusMessage] = None,
    ) -> UnbanRequestOutcome:
        """
        Open an unban request, or approve the one another founder opened.

        Raises:
            NoBanFoundError: ``subject`` has neither an active nor a pending gban.
        """
        if await self.store.get_active(subject) is None and await self.store.get_pending(subject) is None:
            raise NoBanFoundError(str(subject))

        result = self.approvals.request(subject, requester, origin=status)
        entry = result.entry

        if result.decision is ApprovalDecision.ALREADY_REQUESTED:
            await self._edit(status, messages.unban_already_requested())
            return UnbanRequestOutcome(result.decision, entry)

        if result.decision is ApprovalDecision.AWAITING_APPROVAL:
            await self._edit(status, messages.unban_request(subject, requester, entry.expires_at))
            await self.notify(messages.unban_request_log(subject, requester, entry.expires_at))
            return UnbanRequestOutcome(result.decision, entry)

        await self._edit(entry.origin, messages.unban_approved(requester))
        future = await self.submit_approved_unban(subject, requester, entry.requester, status)
        return UnbanRequestOutcome(result.decision, entry, future)

    async def submit_approved_unban(
        self,
        subject: UserID,
        approver: UserID,
        requester: Optional[UserID] = None,
        status: Optional[StatusMessage] = None,
    ) -> "asyncio.Future[GbanResult]":
        """
        Queue the removal of an approved gban.

        A pending gban is simply deleted. An active gban is lifted in every
        guild and its record deleted regardless of how many guilds failed.
        """

        async def body() -> Tuple[GbanResult, str]:
            active = await self.store.get_active(subject)
            pending = await self.store.get_pending(subject)
            if active is None and pending is None:
                return GbanResult(success=False, processed=0, total=0), messages.nothing_to_unban(subject)

            outcome = ActuationOutcome(total=0)
            if active is not None:
                targets = await self._snapshot()
                outcome = await self._actuate(
                    targets,
                    lambda guild_id: self.actuator.apply_unban(guild_id, subject, active.reason),
                    status,
                    f"unban of {subject}",
                )

            # both records are removed only once the snapshot and loop are done
            if pending is not None:
                await self._commit(subject, outcome, self.store.delete_pending(subject))
            if active is not None:
                await self._commit(subject, outcome, self.store.delete_active(subject))

            result = GbanResult(
                success=True,
                processed=outcome.processed,
                total=outcome.total,
                succeeded=outcome.succeeded,
            )
            summary = messages.unban_summary(
                subject,
                approver,
                requester,
                removed_active=active is not None,
                removed_pending=pending is not None,
                succeeded=outcome.succeeded,
                total=outcome.total,
            )
            return result, summary

        return await self._enqueue(GbanOperation.UNBAN, f"unban of {subject}", body, status)

    async def cancel_unban(self, subject: UserID, actor: UserID, force: bool = False) -> CancelOutcome:
        """Withdraw a pending unban request; a second call is a no-op."""
        outcome, entry = self.approvals.cancel(subject, actor, force)
        if outcome is CancelOutcome.CANCELLED and entry is not None:
            await self._edit(entry.origin, messages.unban_cancelled_status(subject, actor))
            await self.notify(messages.unban_cancelled_log(subject, actor, force))
        return outcome

    async def _on_approval_expired(self, entry: PendingApproval) -> None:
        await self._edit(entry.origin, messages.unban_expired(entry.subject))

    def list_pending_approvals(self) -> List[PendingApproval]:
        return self.approvals.list_pending()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def lookup(self, subject: UserID) -> Tuple[Optional[BanRecord], Optional[PendingBanRecord]]:
        return await self.store.get_active(subject), await self.store.get_pending(subject)

    async def update_reason(self, subject: UserID, addition: str, actor: UserID) -> BanRecord:
        """
        Append extra information to an active gban's reason.

        Raises:
            NoBanFoundError: ``subject`` has no active gban.
        """
        record = await self.store.append_reason(subject, addition, actor)
        if record is None:
            raise NoBanFoundError(str(subject))
        logger.info("[GBAN ENGINE] Reason of %s updated by %s", subject, actor)
        await self.notify(messages.update_gban(subject, actor, addition, record))
        return record

    def queue_info(self) -> QueueInfo:
        return QueueInfo(size=self.queue.size, processing=self.queue.is_processing)

    async def shutdown(self) -> None:
        """Stop the queue runner and disarm approval timers."""
        await self.queue.shutdown()
        await self.approvals.shutdown()
        logger.info("[GBAN ENGINE] Engine shut down")
