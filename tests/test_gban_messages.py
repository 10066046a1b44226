import datetime

from gbancord.datatypes.discord_datatypes import GuildID, UserID
from gbancord.datatypes.gban_datatypes import GuildRecord, QueueInfo, SubjectOutcome
from gbancord.engine.approval import PendingApproval
from gbancord.ui import gban_messages as messages

NOW = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)


def test_discord_time_and_mention():
    assert messages.mention(UserID(5)) == "<@5>"
    assert messages.discord_time(NOW, "R") == f"<t:{int(NOW.timestamp())}:R>"


def test_ban_summary_reports_partial_completion():
    text = messages.ban_summary(UserID(1), "raid", UserID(9), succeeded=3, total=4)

    assert text.startswith("🚨 #BAN")
    assert "partially" in text
    assert "3/4 guilds" in text
    assert text.endswith("#id1")


def test_unban_summary_headers():
    active = messages.unban_summary(
        UserID(1), UserID(9), UserID(8), removed_active=True, removed_pending=False, succeeded=2, total=2
    )
    pending_only = messages.unban_summary(
        UserID(1), UserID(9), None, removed_active=False, removed_pending=True, succeeded=0, total=0
    )

    assert active.splitlines()[0] == "🔓 #UNBAN"
    assert "2/2 guilds" in active
    assert pending_only.splitlines()[0] == "🔓 #UNBAN_PENDING"
    assert "Requested by" not in pending_only


def test_multiban_summary_splits_banned_and_failed():
    outcomes = [
        SubjectOutcome("11", succeeded=2, total=2),
        SubjectOutcome("abc", error="invalid ID"),
        SubjectOutcome("12", succeeded=0, total=2),
    ]

    text = messages.multiban_summary(outcomes, "raid", UserID(9))

    banned, failed = text.split("Failed:")
    assert "`11` (2/2)" in banned
    assert "`abc` (invalid ID)" in failed
    assert "`12` (not applied in any guild, left pending)" in failed


def test_pending_approvals_lists_remaining_minutes():
    entry = PendingApproval(
        subject=UserID(1),
        requester=UserID(9),
        created_at=NOW,
        expires_at=NOW + datetime.timedelta(minutes=15),
    )

    text = messages.pending_approvals([entry], now=NOW + datetime.timedelta(minutes=5))

    assert "(10 min. left)" in text
    assert "`/ungban 1`" in text
    assert messages.pending_approvals([]) == "✅ There are no pending unban requests."


def test_queue_info_empty():
    assert "no tasks" in messages.queue_info(QueueInfo(size=0, processing=False))


def test_guild_removed_and_guild_list():
    record = GuildRecord(guild_id=GuildID(10), guild_name="Alpha", last_activity=NOW)

    removed = messages.guild_removed(record, UserID(9))
    assert removed.startswith("🗑️ #GUILD_REMOVED")
    assert "<@9>" in removed and "`10`" in removed

    assert messages.guild_list([]) == "ℹ️ No guilds are registered."
    assert messages.guild_list([record]).splitlines()[1] == "• Alpha [`10`]"
