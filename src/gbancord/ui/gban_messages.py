"""
Text builders for gban status messages and log channel posts.

Every log post starts with an emoji and a hashtag so log channels stay
searchable, and ends with ``#id<user>`` when it concerns a single user.
"""

from __future__ import annotations

import datetime
from typing import Iterable, List, Optional, Sequence

from gbancord.datatypes.discord_datatypes import GuildID, UserID
from gbancord.datatypes.gban_datatypes import (
    BanRecord,
    GuildRecord,
    PendingBanRecord,
    QueueInfo,
    SubjectOutcome,
)

HASHTAGS = {
    "BAN": "#BAN",
    "UNBAN": "#UNBAN",
    "UNBAN_PENDING": "#UNBAN_PENDING",
    "MULTIGBAN": "#MULTIGBAN",
    "AUTOBAN": "#AUTOBAN",
    "GBAN_PENDING": "#GBAN_PENDING",
    "GBAN_EXECUTED": "#GBAN_EXECUTED",
    "UNBAN_REQUEST": "#UNBAN_REQUEST",
    "UNBAN_CANCELLED": "#UNBAN_CANCELLED",
    "UPDATE_GBAN": "#UPDATE_GBAN",
    "RETRY_GBAN_SUCCESS": "#RETRY_GBAN_SUCCESS",
    "RETRY_GBAN_FAILED": "#RETRY_GBAN_FAILED",
    "GBAN_ERROR": "#GBAN_ERROR",
    "NEW_GUILD": "#NEW_GUILD",
    "GUILD_INACTIVE": "#GUILD_INACTIVE",
    "GUILD_REMOVED": "#GUILD_REMOVED",
    "LOG_CHANNEL_ADDED": "#LOG_CHANNEL_ADDED",
}


def mention(user_id: UserID | str) -> str:
    return f"<@{user_id}>"


def discord_time(moment: datetime.datetime, style: str = "f") -> str:
    """Render a Discord timestamp tag (localised by each reader's client)."""
    return f"<t:{int(moment.timestamp())}:{style}>"


def _id_tag(user_id: UserID | str) -> str:
    return f"#id{user_id}"


# ---------------------------------------------------------------------------
# Queue / progress (status message only)
# ---------------------------------------------------------------------------

def queued(action: str, position: int) -> str:
    return (
        f"⏳ {action} added to the gban queue.\n"
        f"Position in queue: {position}\n\n"
        "Processing will start automatically."
    )


def started(action: str, total: int, interval: int) -> str:
    return f"⏳ Processing {action}...\nTotal: {total} guilds (updating every {interval})"


def progress(action: str, processed: int, total: int) -> str:
    return f"⏳ Processing {action}...\nProgress: {processed}/{total} guilds"


def task_failed(action: str, error: BaseException) -> str:
    return f"❌ {HASHTAGS['GBAN_ERROR']}\nError while processing {action}: {error}"


# ---------------------------------------------------------------------------
# Ban / multi-ban / retry / promotion summaries
# ---------------------------------------------------------------------------

def ban_summary(subject: UserID, reason: str, actor: UserID, succeeded: int, total: int) -> str:
    header = "✅ Gban completed" if succeeded == total else "⚠️ Gban partially completed"
    return (
        f"🚨 {HASHTAGS['BAN']}\n"
        f"{header}\n"
        f"• By: {mention(actor)}\n"
        f"• User: {mention(subject)} (`{subject}`)\n"
        f"• Reason: {reason}\n"
        f"• Banned in: {succeeded}/{total} guilds\n"
        f"{_id_tag(subject)}"
    )


def ban_left_pending(subject: UserID, reason: str, actor: UserID, total: int) -> str:
    return (
        f"⚠️ {HASHTAGS['GBAN_PENDING']}\n"
        f"Gban could not be applied in any of {total} guilds and stays pending.\n"
        f"• By: {mention(actor)}\n"
        f"• User: `{subject}`\n"
        f"• Reason: {reason}\n"
        "It will be applied when the user is seen again or on /retrygban.\n"
        f"{_id_tag(subject)}"
    )


def pending_registered(subject: UserID, reason: str, actor: UserID) -> str:
    return (
        f"⚠️ {HASHTAGS['GBAN_PENDING']}\n"
        "User not found, gban registered for later.\n"
        f"• ID: `{subject}`\n"
        f"• Reason: {reason}\n"
        f"• By: {mention(actor)}\n"
        "The ban will be applied automatically when the user becomes visible to the bot.\n"
        f"{_id_tag(subject)}"
    )


def already_banned(subject: UserID) -> str:
    return f"ℹ️ User `{subject}` was gbanned by an earlier task; nothing to do.\n{_id_tag(subject)}"


def multiban_summary(outcomes: Sequence[SubjectOutcome], reason: str, actor: UserID) -> str:
    banned = [o for o in outcomes if o.banned]
    failed = [o for o in outcomes if not o.banned]
    lines: List[str] = [
        f"🚨 {HASHTAGS['MULTIGBAN']}",
        "✅ Multi-gban completed",
        f"• By: {mention(actor)}",
        f"• Reason: {reason}",
    ]
    if banned:
        lines.append("Banned:")
        lines.extend(f"• `{o.user_id}` ({o.succeeded}/{o.total})" for o in banned)
    if failed:
        lines.append("Failed:")
        lines.extend(f"• `{o.user_id}` ({o.error or 'not applied in any guild, left pending'})" for o in failed)
    lines.extend(_id_tag(o.user_id) for o in banned)
    return "\n".join(lines)


def retry_success(subject: UserID, record: PendingBanRecord, actor: UserID, succeeded: int, total: int) -> str:
    return (
        f"🔄 {HASHTAGS['RETRY_GBAN_SUCCESS']}\n"
        "Pending gban applied.\n"
        f"• By: {mention(actor)}\n"
        f"• User: {mention(subject)} (`{subject}`)\n"
        f"• Reason: {record.reason}\n"
        f"• Banned in: {succeeded}/{total} guilds\n"
        f"• Originally requested by: {mention(record.banned_by)}\n"
        "• Status: converted from pending to active\n"
        f"{_id_tag(subject)}"
    )


def retry_failed(subject: UserID, record: PendingBanRecord, actor: UserID, total: int) -> str:
    return (
        f"⚠️ {HASHTAGS['RETRY_GBAN_FAILED']}\n"
        "Pending gban could not be applied in any guild.\n"
        f"• By: {mention(actor)}\n"
        f"• User: `{subject}`\n"
        f"• Reason: {record.reason}\n"
        f"• Guilds attempted: {total}\n"
        f"• Originally requested by: {mention(record.banned_by)}\n"
        "• Status: still pending\n"
        f"{_id_tag(subject)}"
    )


def no_longer_pending(subject: UserID) -> str:
    return f"ℹ️ User `{subject}` no longer has a pending gban; nothing to do.\n{_id_tag(subject)}"


def promotion_summary(subject: UserID, record: PendingBanRecord, succeeded: int, total: int) -> str:
    return (
        f"🚨 {HASHTAGS['GBAN_EXECUTED']}\n"
        f"• User: {mention(subject)} (`{subject}`)\n"
        f"• Banned in: {succeeded}/{total} guilds\n"
        f"• Reason: {record.reason}\n"
        f"• Requested by: {mention(record.banned_by)}\n"
        f"{_id_tag(subject)}"
    )


def promotion_failed(subject: UserID, record: PendingBanRecord, total: int) -> str:
    return (
        f"⚠️ {HASHTAGS['GBAN_PENDING']}\n"
        f"User `{subject}` was seen but the pending gban failed in all {total} guilds.\n"
        f"• Reason: {record.reason}\n"
        "• Status: still pending\n"
        f"{_id_tag(subject)}"
    )


# ---------------------------------------------------------------------------
# Unban approval workflow
# ---------------------------------------------------------------------------

def unban_request(subject: UserID, requester: UserID, expires_at: datetime.datetime) -> str:
    return (
        "⏳ **Approval required to lift a gban**\n\n"
        f"• User: `{subject}`\n"
        f"• Requested by: {mention(requester)}\n\n"
        "**Another founder must run:**\n"
        f"`/ungban {subject}`\n\n"
        f"This request expires {discord_time(expires_at, 'R')}."
    )


def unban_request_log(subject: UserID, requester: UserID, expires_at: datetime.datetime) -> str:
    return (
        f"⏳ {HASHTAGS['UNBAN_REQUEST']}\n"
        f"• By: {mention(requester)}\n"
        f"• User: `{subject}`\n"
        f"• Expires: {discord_time(expires_at, 't')}\n"
        f"{_id_tag(subject)}"
    )


def unban_already_requested() -> str:
    return "⚠️ You already requested this unban. Wait for another founder to approve it."


def unban_approved(approver: UserID) -> str:
    return f"✅ Unban approved by {mention(approver)}. Processing..."


def unban_expired(subject: UserID) -> str:
    return f"⌛ The time to approve the unban of `{subject}` has expired."


def unban_cancelled_status(subject: UserID, actor: UserID) -> str:
    return f"🚫 The unban request for `{subject}` was cancelled by {mention(actor)}."


def unban_cancelled_log(subject: UserID, actor: UserID, force: bool) -> str:
    return (
        f"🚫 {HASHTAGS['UNBAN_CANCELLED']}\n"
        f"• By: {mention(actor)}\n"
        f"• User: `{subject}`\n"
        f"• Type: {'Forced' if force else 'Normal'}\n"
        f"{_id_tag(subject)}"
    )


def unban_summary(
    subject: UserID,
    approver: UserID,
    requester: Optional[UserID],
    *,
    removed_active: bool,
    removed_pending: bool,
    succeeded: int,
    total: int,
) -> str:
    lines = [f"🔓 {HASHTAGS['UNBAN']}" if removed_active else f"🔓 {HASHTAGS['UNBAN_PENDING']}"]
    if removed_active and removed_pending:
        lines.append("✅ User removed from the gban list and the pending gban list")
    elif removed_pending:
        lines.append("✅ User removed from the pending gban list")
    else:
        lines.append("✅ User unbanned from all guilds")
    lines.append(f"• User: `{subject}`")
    if requester is not None:
        lines.append(f"• Requested by: {mention(requester)}")
    lines.append(f"• Approved by: {mention(approver)}")
    if removed_active:
        lines.append(f"• Unbanned in: {succeeded}/{total} guilds")
    lines.append(_id_tag(subject))
    return "\n".join(lines)


def nothing_to_unban(subject: UserID) -> str:
    return f"ℹ️ User `{subject}` no longer has an active or pending gban; nothing to remove.\n{_id_tag(subject)}"


def pending_approvals(entries: Iterable, now: Optional[datetime.datetime] = None) -> str:
    entries = list(entries)
    if not entries:
        return "✅ There are no pending unban requests."
    lines = ["🕒 **Pending unban requests**", ""]
    for index, entry in enumerate(entries, start=1):
        minutes = int(entry.remaining(now).total_seconds() // 60)
        lines.append(f"{index}. **User:** `{entry.subject}`")
        lines.append(f"   **Requested by:** {mention(entry.requester)}")
        lines.append(f"   **Time:** {discord_time(entry.created_at, 't')} ({minutes} min. left)")
        lines.append(f"   **Approve with:** `/ungban {entry.subject}`")
        lines.append("")
    return "\n".join(lines).rstrip()


# ---------------------------------------------------------------------------
# Misc log posts and lookups
# ---------------------------------------------------------------------------

def autoban(subject: UserID, guild_name: str, guild_id: GuildID, reason: str) -> str:
    return (
        f"🚫 {HASHTAGS['AUTOBAN']}\n"
        f"• User: {mention(subject)} (`{subject}`)\n"
        f"• Guild: {guild_name} [`{guild_id}`]\n"
        f"• Original reason: {reason}\n"
        f"{_id_tag(subject)}"
    )


def update_gban(subject: UserID, actor: UserID, addition: str, record: BanRecord) -> str:
    return (
        f"🔄 {HASHTAGS['UPDATE_GBAN']}\n"
        f"• By: {mention(actor)}\n"
        f"• User: `{subject}`\n"
        f"• Addition: `{addition}`\n"
        f"• Full reason: `{record.reason}`\n"
        f"{_id_tag(subject)}"
    )


def new_guild(guild_id: GuildID, guild_name: str, member_count: Optional[int]) -> str:
    return (
        f"📥 {HASHTAGS['NEW_GUILD']}\n"
        f"• Name: {guild_name}\n"
        f"• ID: `{guild_id}`\n"
        f"• Members: {member_count if member_count is not None else 'unknown'}"
    )


def guild_inactive(record: GuildRecord, inactive_days: int) -> str:
    last = discord_time(record.last_activity, "f") if record.last_activity else "never"
    return (
        f"🗑️ {HASHTAGS['GUILD_INACTIVE']}\n"
        f"• Name: {record.guild_name}\n"
        f"• ID: `{record.guild_id}`\n"
        f"• Last activity: {last}\n"
        f"• Reason: more than {inactive_days} days without activity"
    )


def guild_removed(record: GuildRecord, actor: UserID) -> str:
    return (
        f"🗑️ {HASHTAGS['GUILD_REMOVED']}\n"
        f"• By: {mention(actor)}\n"
        f"• Name: {record.guild_name}\n"
        f"• ID: `{record.guild_id}`"
    )


def guild_list(records: Sequence[GuildRecord]) -> str:
    if not records:
        return "ℹ️ No guilds are registered."
    lines = [f"📋 **Registered guilds** ({len(records)})"]
    lines.extend(f"• {record.guild_name} [`{record.guild_id}`]" for record in records)
    return "\n".join(lines)


def log_channel_added(channel_name: str, actor: UserID) -> str:
    return (
        f"📝 {HASHTAGS['LOG_CHANNEL_ADDED']}\n"
        f"• Channel: {channel_name}\n"
        f"• Added by: {mention(actor)}"
    )


def ban_info(subject: UserID, active: Optional[BanRecord], pending: Optional[PendingBanRecord]) -> str:
    if active is not None:
        return (
            "🚫 **Gban information (ACTIVE)**\n\n"
            f"👤 **User:** {mention(subject)}\n"
            f"🆔 **ID:** `{subject}`\n\n"
            f"📝 **Reason:** `{active.reason}`\n"
            f"⏱️ **Date:** {discord_time(active.created_at)}\n"
            f"👮 **Banned by:** {mention(active.banned_by)}"
        )
    if pending is not None:
        return (
            "⚠️ **Gban information (PENDING)**\n\n"
            f"🆔 **ID:** `{subject}`\n\n"
            f"📝 **Reason:** `{pending.reason}`\n"
            f"⏱️ **Requested:** {discord_time(pending.created_at)}\n"
            f"👮 **Requested by:** {mention(pending.banned_by)}\n\n"
            "*This gban will be applied when the user is seen again.*"
        )
    return f"ℹ️ User `{subject}` has no registered or pending gban."


def queue_info(info: QueueInfo) -> str:
    if info.size == 0 and not info.processing:
        return "✅ There are no tasks in the gban queue."
    state = "⚙️ Processing" if info.processing else "⏸ Waiting"
    return (
        "📊 **Gban queue status**\n\n"
        f"• Pending tasks: **{info.size}**\n"
        f"• State: **{state}**"
    )
