import asyncio
import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from gbancord.bot.cogs import gban_cmds
from gbancord.datatypes.discord_datatypes import GuildID, UserID
from gbancord.datatypes.gban_datatypes import GuildRecord

FOUNDER = 900
OTHER_FOUNDER = 901


class FakeMessage:
    def __init__(self, content):
        self.content = content
        self.edit = AsyncMock(side_effect=self._edit)

    async def _edit(self, *, content):
        self.content = content


class FakeChannel:
    def __init__(self, channel_id=555, name="gban-ops"):
        self.id = channel_id
        self.name = name
        self.messages = []

    async def send(self, content):
        message = FakeMessage(content)
        self.messages.append(message)
        return message


def make_ctx(user_id=FOUNDER, channel=None):
    return SimpleNamespace(
        user=SimpleNamespace(id=user_id),
        channel=channel or FakeChannel(),
        respond=AsyncMock(),
    )


def make_cog(harness, log_channels=None, directory=None):
    cog = gban_cmds.GbanCog(
        SimpleNamespace(), harness.engine, log_channels or MagicMock(), directory or MagicMock()
    )
    cog.resolve_user = AsyncMock(return_value=True)
    return cog


async def drain(engine):
    runner = engine.queue.runner_task
    if runner is not None:
        await runner
    await asyncio.sleep(0)


def test_setup_registers_cog():
    captured = {}
    fake_bot = SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog))

    gban_cmds.setup(fake_bot, MagicMock(), MagicMock(), MagicMock())

    assert isinstance(captured["cog"], gban_cmds.GbanCog)


def test_split_user_ids():
    assert gban_cmds.split_user_ids("1, 2 3;<@4>,, 2") == ["1", "2", "3", "4"]
    assert gban_cmds.split_user_ids("") == []


@pytest.mark.asyncio
async def test_non_founder_is_refused(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    cog = make_cog(harness)
    ctx = make_ctx(user_id=123)

    await gban_cmds.GbanCog.gban.callback(cog, ctx, user_id="42", reason="raid")

    ctx.respond.assert_awaited_once_with(gban_cmds.FOUNDER_ONLY, ephemeral=True)
    assert harness.engine.queue_info().size == 0


@pytest.mark.asyncio
async def test_invalid_user_id(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    cog = make_cog(harness)
    ctx = make_ctx()

    await gban_cmds.GbanCog.gban.callback(cog, ctx, user_id="not-an-id", reason="raid")

    ctx.respond.assert_awaited_once_with(gban_cmds.INVALID_ID, ephemeral=True)


@pytest.mark.asyncio
async def test_gban_queues_ban_and_updates_status_message(make_harness):
    harness = make_harness(targets=5, founders=[str(FOUNDER)])
    cog = make_cog(harness)
    ctx = make_ctx()

    await gban_cmds.GbanCog.gban.callback(cog, ctx, user_id="42", reason="raid")
    await drain(harness.engine)

    assert UserID(42) in harness.store.active
    status_message = ctx.channel.messages[0]
    assert "#BAN" in status_message.content
    assert "5/5" in status_message.content


@pytest.mark.asyncio
async def test_gban_of_unknown_user_registers_pending(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    cog = make_cog(harness)
    cog.resolve_user = AsyncMock(return_value=False)
    ctx = make_ctx()

    await gban_cmds.GbanCog.gban.callback(cog, ctx, user_id="42", reason="alt")

    assert UserID(42) in harness.store.pending
    assert harness.actuator.calls == []
    assert "#GBAN_PENDING" in ctx.respond.await_args.args[0]


@pytest.mark.asyncio
async def test_gban_of_already_banned_user_reports_error(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    await harness.store.upsert_active(UserID(42), "raid", UserID(FOUNDER))
    cog = make_cog(harness)
    ctx = make_ctx()

    await gban_cmds.GbanCog.gban.callback(cog, ctx, user_id="42", reason="again")

    assert "already has an active gban" in ctx.respond.await_args.args[0]
    assert "already has an active gban" in ctx.channel.messages[0].content
    assert harness.engine.queue_info().size == 0


@pytest.mark.asyncio
async def test_multigban_skips_founders(make_harness):
    harness = make_harness(targets=2, founders=[str(FOUNDER)])
    cog = make_cog(harness)
    ctx = make_ctx()

    await gban_cmds.GbanCog.multigban.callback(cog, ctx, user_ids=f"11, 12 {FOUNDER}", reason="raid")
    await drain(harness.engine)

    assert "skipped founders" in ctx.respond.await_args_list[0].args[0]
    assert UserID(11) in harness.store.active and UserID(12) in harness.store.active
    assert "#MULTIGBAN" in ctx.channel.messages[0].content


@pytest.mark.asyncio
async def test_ungban_needs_two_founders(make_harness):
    harness = make_harness(targets=3, founders=[str(FOUNDER), str(OTHER_FOUNDER)])
    await harness.store.upsert_active(UserID(42), "raid", UserID(FOUNDER))
    cog = make_cog(harness)

    first_ctx = make_ctx(user_id=FOUNDER)
    await gban_cmds.GbanCog.ungban.callback(cog, first_ctx, user_id="42")
    assert UserID(42) in harness.store.active
    assert "Approval required" in first_ctx.channel.messages[0].content

    second_ctx = make_ctx(user_id=OTHER_FOUNDER)
    await gban_cmds.GbanCog.ungban.callback(cog, second_ctx, user_id="42")
    await drain(harness.engine)

    assert UserID(42) not in harness.store.active
    assert "approved" in first_ctx.channel.messages[0].content
    assert "#UNBAN" in second_ctx.channel.messages[0].content
    await harness.engine.shutdown()


@pytest.mark.asyncio
async def test_cancelunban_responses(make_harness):
    harness = make_harness(founders=[str(FOUNDER), str(OTHER_FOUNDER)])
    await harness.store.upsert_active(UserID(42), "raid", UserID(FOUNDER))
    cog = make_cog(harness)
    await gban_cmds.GbanCog.ungban.callback(cog, make_ctx(user_id=FOUNDER), user_id="42")

    other = make_ctx(user_id=OTHER_FOUNDER)
    await gban_cmds.GbanCog.cancelunban.callback(cog, other, user_id="42", force=False)
    assert "Only the founder" in other.respond.await_args.args[0]

    owner = make_ctx(user_id=FOUNDER)
    await gban_cmds.GbanCog.cancelunban.callback(cog, owner, user_id="42", force=False)
    assert "cancelled" in owner.respond.await_args.args[0]

    await gban_cmds.GbanCog.cancelunban.callback(cog, owner, user_id="42", force=False)
    assert "no pending unban request" in owner.respond.await_args.args[0]
    await harness.engine.shutdown()


@pytest.mark.asyncio
async def test_ginfo_and_queueinfo(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    await harness.store.upsert_pending(UserID(42), "alt", UserID(FOUNDER))
    cog = make_cog(harness)
    ctx = make_ctx()

    await gban_cmds.GbanCog.ginfo.callback(cog, ctx, user_id="42")
    assert "PENDING" in ctx.respond.await_args.args[0]

    await gban_cmds.GbanCog.queueinfo.callback(cog, ctx)
    assert "no tasks" in ctx.respond.await_args.args[0]


@pytest.mark.asyncio
async def test_logchannel_add_posts_to_log_channels(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    registry = MagicMock()
    registry.add = AsyncMock(return_value=True)
    cog = make_cog(harness, log_channels=registry)
    ctx = make_ctx()

    await gban_cmds.GbanCog.logchannel_add.callback(cog, ctx)

    registry.add.assert_awaited_once()
    assert harness.notifier.tagged("#LOG_CHANNEL_ADDED")


def make_directory(*records):
    directory = MagicMock()
    directory.list_guilds = AsyncMock(return_value=list(records))
    directory.get_guild = AsyncMock(
        side_effect=lambda guild_id: next((r for r in records if r.guild_id == guild_id), None)
    )
    directory.remove = AsyncMock(return_value=True)
    return directory


def guild_record(guild_id, name):
    return GuildRecord(
        guild_id=GuildID(guild_id),
        guild_name=name,
        last_activity=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
    )


@pytest.mark.asyncio
async def test_listchats_lists_registered_guilds(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    directory = make_directory(guild_record(10, "Alpha"), guild_record(20, "Beta"))
    cog = make_cog(harness, directory=directory)
    ctx = make_ctx()

    await gban_cmds.GbanCog.listchats.callback(cog, ctx)

    text = ctx.respond.await_args.args[0]
    assert "Registered guilds** (2)" in text
    assert "• Alpha [`10`]" in text and "• Beta [`20`]" in text


@pytest.mark.asyncio
async def test_drop_removes_guild_and_notifies(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    directory = make_directory(guild_record(10, "Alpha"))
    cog = make_cog(harness, directory=directory)
    ctx = make_ctx()

    await gban_cmds.GbanCog.drop.callback(cog, ctx, guild_id="10")

    directory.remove.assert_awaited_once_with(GuildID(10))
    assert "Alpha" in ctx.respond.await_args.args[0]
    posts = harness.notifier.tagged("#GUILD_REMOVED")
    assert len(posts) == 1 and "`10`" in posts[0]


@pytest.mark.asyncio
async def test_drop_unknown_or_invalid_guild(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    directory = make_directory()
    cog = make_cog(harness, directory=directory)
    ctx = make_ctx()

    await gban_cmds.GbanCog.drop.callback(cog, ctx, guild_id="nope")
    assert "Invalid guild ID" in ctx.respond.await_args.args[0]

    await gban_cmds.GbanCog.drop.callback(cog, ctx, guild_id="30")
    assert "No registered guild" in ctx.respond.await_args.args[0]
    directory.remove.assert_not_awaited()
    assert harness.notifier.posts == []


@pytest.mark.asyncio
async def test_drop_requires_founder(make_harness):
    harness = make_harness(founders=[str(FOUNDER)])
    directory = make_directory(guild_record(10, "Alpha"))
    cog = make_cog(harness, directory=directory)
    ctx = make_ctx(user_id=123)

    await gban_cmds.GbanCog.drop.callback(cog, ctx, guild_id="10")

    ctx.respond.assert_awaited_once_with(gban_cmds.FOUNDER_ONLY, ephemeral=True)
    directory.remove.assert_not_awaited()
