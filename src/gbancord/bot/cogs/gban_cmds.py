"""
Gban cog: founder-only slash commands driving the gban engine.

Commands
- /gban, /multigban, /retrygban: queue bans across every registered guild.
- /ungban, /cancelunban, /pendingapprovals: two-founder unban workflow.
- /ginfo, /gbanupdate: inspect or extend a gban record.
- /queueinfo: state of the gban queue.
- /listchats, /drop: inspect or prune the guilds that receive gbans.
- /logchannel add|remove|list: manage the channels receiving gban logs.

Long-running commands answer ephemerally and post a status message in the
invoking channel; the engine keeps editing that message while the task
runs. Interaction tokens expire after 15 minutes, a plain channel message
does not.

Quick usage example
    from gbancord.bot.cogs import gban_cmds
    gban_cmds.setup(bot, engine, log_channels, directory)
"""

from __future__ import annotations

import asyncio
import re
from typing import List, Optional

import discord
from discord import Option
from discord.ext import commands

from gbancord.bot.discord_adapters import MESSAGE_LIMIT, DiscordStatusMessage, DiscordUserResolver, truncate
from gbancord.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from gbancord.datatypes.gban_datatypes import ApprovalDecision, CancelOutcome, GbanResult
from gbancord.engine.errors import GbanError
from gbancord.engine.gban_engine import GbanEngine
from gbancord.services.log_channel_service import LogChannelRegistry
from gbancord.services.target_directory import SqliteTargetDirectory
from gbancord.ui import gban_messages as messages
from gbancord.util.logger import get_logger

logger = get_logger("gban_cog")

FOUNDER_ONLY = "⛔ Only founders can use this command."
INVALID_ID = "❌ Invalid user ID."

ID_SEPARATOR = re.compile(r"[\s,;]+")


def split_user_ids(raw: str) -> List[str]:
    """Split a comma/space separated list of ids, dropping empties and duplicates."""
    seen: List[str] = []
    for part in ID_SEPARATOR.split(raw or ""):
        part = part.strip().strip("<@!>")
        if part and part not in seen:
            seen.append(part)
    return seen


def _log_task_outcome(label: str):
    """Build a done-callback that logs (and consumes) a queued task's outcome."""

    def callback(future: "asyncio.Future[GbanResult]") -> None:
        if future.cancelled():
            logger.info("[GBAN COG] %s was cancelled before it ran", label)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("[GBAN COG] %s failed: %s", label, exc)
            return
        result = future.result()
        logger.info(
            "[GBAN COG] %s finished (success=%s, %d/%d succeeded)",
            label, result.success, result.succeeded, result.total,
        )

    return callback


class GbanCog(commands.Cog):
    """Founder-gated commands for global bans."""

    logchannel = discord.SlashCommandGroup("logchannel", "Manage the channels that receive gban logs")

    def __init__(
        self,
        discord_bot_instance,
        engine: GbanEngine,
        log_channels: LogChannelRegistry,
        directory: SqliteTargetDirectory,
    ):
        self.discord_bot_instance = discord_bot_instance
        self.engine = engine
        self.log_channels = log_channels
        self.directory = directory
        self.resolve_user = DiscordUserResolver(discord_bot_instance)
        logger.info("Gban cog loaded")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_founder(self, ctx: discord.ApplicationContext) -> bool:
        if self.engine.is_founder(UserID.from_user(ctx.user)):
            return True
        await ctx.respond(FOUNDER_ONLY, ephemeral=True)
        return False

    async def _parse_user(self, ctx: discord.ApplicationContext, raw: str) -> Optional[UserID]:
        subject = UserID.parse(raw.strip().strip("<@!>"))
        if subject is None:
            await ctx.respond(INVALID_ID, ephemeral=True)
        return subject

    async def _open_status(self, ctx: discord.ApplicationContext, text: str) -> Optional[DiscordStatusMessage]:
        if ctx.channel is None:
            return None
        try:
            return await DiscordStatusMessage.send(ctx.channel, text)
        except discord.HTTPException as exc:
            logger.warning("[GBAN COG] Could not post status message: %s", exc)
            return None

    async def _report_error(
        self,
        ctx: discord.ApplicationContext,
        status: Optional[DiscordStatusMessage],
        error: GbanError,
    ) -> None:
        text = f"⚠️ {error}"
        if status is not None:
            try:
                await status.edit(text)
            except discord.HTTPException as exc:
                logger.warning("[GBAN COG] Could not edit status message: %s", exc)
        await ctx.respond(text, ephemeral=True)

    # ------------------------------------------------------------------
    # Bans
    # ------------------------------------------------------------------

    @commands.slash_command(name="gban", description="Ban a user from every registered server.")
    async def gban(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the user to gban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the gban.", required=True),  # type: ignore
    ) -> None:
        """Queue a gban, or register it as pending when the user cannot be found."""
        if not await self._ensure_founder(ctx):
            return
        subject = await self._parse_user(ctx, user_id)
        if subject is None:
            return
        actor = UserID.from_user(ctx.user)

        status = None
        try:
            if not await self.resolve_user(subject):
                await self.engine.register_pending_ban(subject, reason, actor)
                await ctx.respond(messages.pending_registered(subject, reason, actor), ephemeral=True)
                return
            await ctx.respond(f"🔨 Gban of `{subject}` accepted.", ephemeral=True)
            status = await self._open_status(ctx, f"⏳ Preparing gban of `{subject}`...")
            future = await self.engine.submit_ban(subject, reason, actor, status)
        except GbanError as exc:
            await self._report_error(ctx, status, exc)
            return
        future.add_done_callback(_log_task_outcome(f"gban of {subject}"))

    @commands.slash_command(name="multigban", description="Ban several users from every registered server.")
    async def multigban(
        self,
        ctx: discord.ApplicationContext,
        user_ids: Option(str, "User IDs separated by commas or spaces.", required=True),  # type: ignore
        reason: Option(str, "Reason for the gban.", required=True),  # type: ignore
    ) -> None:
        if not await self._ensure_founder(ctx):
            return
        subjects = split_user_ids(user_ids)
        if not subjects:
            await ctx.respond("❌ Provide at least one user ID.", ephemeral=True)
            return
        founders = [raw for raw in subjects if self.engine.is_founder(raw)]
        subjects = [raw for raw in subjects if raw not in founders]
        if not subjects:
            await ctx.respond("⛔ Founders cannot be gbanned.", ephemeral=True)
            return

        note = f" (skipped founders: {', '.join(founders)})" if founders else ""
        await ctx.respond(f"🔨 Multi-gban of {len(subjects)} users accepted{note}.", ephemeral=True)
        status = await self._open_status(ctx, f"⏳ Preparing multi-gban of {len(subjects)} users...")
        future = await self.engine.submit_multi_ban(
            subjects, reason, UserID.from_user(ctx.user), status, resolve=self.resolve_user
        )
        future.add_done_callback(_log_task_outcome(f"multigban of {len(subjects)} users"))

    @commands.slash_command(name="retrygban", description="Retry applying a pending gban.")
    async def retrygban(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the user with a pending gban.", required=True),  # type: ignore
    ) -> None:
        if not await self._ensure_founder(ctx):
            return
        subject = await self._parse_user(ctx, user_id)
        if subject is None:
            return
        status = None
        try:
            await ctx.respond(f"🔄 Retrying pending gban of `{subject}`.", ephemeral=True)
            status = await self._open_status(ctx, f"⏳ Preparing retry of `{subject}`...")
            future = await self.engine.submit_retry(subject, UserID.from_user(ctx.user), status)
        except GbanError as exc:
            await self._report_error(ctx, status, exc)
            return
        future.add_done_callback(_log_task_outcome(f"retry gban of {subject}"))

    # ------------------------------------------------------------------
    # Unban approval workflow
    # ------------------------------------------------------------------

    @commands.slash_command(name="ungban", description="Request or approve lifting a gban.")
    async def ungban(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the gbanned user.", required=True),  # type: ignore
    ) -> None:
        """First founder opens the request; a different founder approves it."""
        if not await self._ensure_founder(ctx):
            return
        subject = await self._parse_user(ctx, user_id)
        if subject is None:
            return
        requester = UserID.from_user(ctx.user)

        status = None
        try:
            await ctx.respond(f"🔓 Unban of `{subject}` received.", ephemeral=True)
            status = await self._open_status(ctx, f"⏳ Checking unban of `{subject}`...")
            outcome = await self.engine.request_unban(subject, requester, status)
        except GbanError as exc:
            await self._report_error(ctx, status, exc)
            return

        if outcome.decision is ApprovalDecision.APPROVED and outcome.future is not None:
            outcome.future.add_done_callback(_log_task_outcome(f"unban of {subject}"))

    @commands.slash_command(name="cancelunban", description="Cancel a pending unban request.")
    async def cancelunban(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the user.", required=True),  # type: ignore
        force: Option(bool, "Cancel a request opened by another founder.", default=False),  # type: ignore
    ) -> None:
        if not await self._ensure_founder(ctx):
            return
        subject = await self._parse_user(ctx, user_id)
        if subject is None:
            return

        outcome = await self.engine.cancel_unban(subject, UserID.from_user(ctx.user), force)
        if outcome is CancelOutcome.CANCELLED:
            text = f"✅ Unban request for `{subject}` cancelled."
        elif outcome is CancelOutcome.NOT_REQUESTER:
            text = "⚠️ Only the founder who opened the request can cancel it (use `force` to override)."
        else:
            text = f"ℹ️ There is no pending unban request for `{subject}`."
        await ctx.respond(text, ephemeral=True)

    @commands.slash_command(name="pendingapprovals", description="List unban requests waiting for approval.")
    async def pendingapprovals(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_founder(ctx):
            return
        await ctx.respond(messages.pending_approvals(self.engine.list_pending_approvals()), ephemeral=True)

    # ------------------------------------------------------------------
    # Records and queue
    # ------------------------------------------------------------------

    @commands.slash_command(name="ginfo", description="Show gban information for a user.")
    async def ginfo(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the user.", required=True),  # type: ignore
    ) -> None:
        if not await self._ensure_founder(ctx):
            return
        subject = await self._parse_user(ctx, user_id)
        if subject is None:
            return
        active, pending = await self.engine.lookup(subject)
        await ctx.respond(messages.ban_info(subject, active, pending), ephemeral=True)

    @commands.slash_command(name="gbanupdate", description="Append information to a gban reason.")
    async def gbanupdate(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the gbanned user.", required=True),  # type: ignore
        addition: Option(str, "Text to append to the reason.", required=True),  # type: ignore
    ) -> None:
        if not await self._ensure_founder(ctx):
            return
        subject = await self._parse_user(ctx, user_id)
        if subject is None:
            return
        try:
            record = await self.engine.update_reason(subject, addition, UserID.from_user(ctx.user))
        except GbanError as exc:
            await ctx.respond(f"⚠️ {exc}", ephemeral=True)
            return
        await ctx.respond(f"✅ Reason updated.\n📝 `{record.reason}`", ephemeral=True)

    @commands.slash_command(name="queueinfo", description="Show the gban queue status.")
    async def queueinfo(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_founder(ctx):
            return
        await ctx.respond(messages.queue_info(self.engine.queue_info()), ephemeral=True)

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    @commands.slash_command(name="listchats", description="List the guilds that receive gbans.")
    async def listchats(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_founder(ctx):
            return
        records = await self.directory.list_guilds()
        await ctx.respond(truncate(messages.guild_list(records), MESSAGE_LIMIT), ephemeral=True)

    @commands.slash_command(name="drop", description="Remove a guild from the gban targets.")
    async def drop(
        self,
        ctx: discord.ApplicationContext,
        guild_id: Option(str, "ID of the guild to remove.", required=True),  # type: ignore
    ) -> None:
        """Stop sending gbans to a guild; it comes back if the bot sees activity there again."""
        if not await self._ensure_founder(ctx):
            return
        target = GuildID.parse(guild_id.strip())
        if target is None:
            await ctx.respond("❌ Invalid guild ID.", ephemeral=True)
            return

        record = await self.directory.get_guild(target)
        if record is None or not await self.directory.remove(target):
            await ctx.respond(f"❌ No registered guild has the ID `{target}`.", ephemeral=True)
            return

        actor = UserID.from_user(ctx.user)
        logger.info("[GBAN COG] Guild %s (%s) dropped by %s", record.guild_name, target, actor)
        await ctx.respond(f"✅ {record.guild_name} (`{target}`) removed from the gban targets.", ephemeral=True)
        await self.engine.notify(messages.guild_removed(record, actor))

    # ------------------------------------------------------------------
    # Log channels
    # ------------------------------------------------------------------

    @logchannel.command(name="add", description="Send gban logs to this channel.")
    async def logchannel_add(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_founder(ctx):
            return
        if ctx.channel is None:
            await ctx.respond("❌ Run this command in the channel to register.", ephemeral=True)
            return
        channel_id = ChannelID.from_channel(ctx.channel)
        channel_name = getattr(ctx.channel, "name", None) or str(channel_id)
        actor = UserID.from_user(ctx.user)

        if not await self.log_channels.add(channel_id, channel_name, actor):
            await ctx.respond("ℹ️ This channel is already a log channel.", ephemeral=True)
            return
        await ctx.respond(f"✅ {channel_name} will receive gban logs.", ephemeral=True)
        await self.engine.notify(messages.log_channel_added(channel_name, actor))

    @logchannel.command(name="remove", description="Stop sending gban logs to this channel.")
    async def logchannel_remove(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_founder(ctx):
            return
        if ctx.channel is None or not await self.log_channels.remove(ChannelID.from_channel(ctx.channel)):
            await ctx.respond("ℹ️ This channel is not a log channel.", ephemeral=True)
            return
        await ctx.respond("✅ This channel no longer receives gban logs.", ephemeral=True)

    @logchannel.command(name="list", description="List the channels that receive gban logs.")
    async def logchannel_list(self, ctx: discord.ApplicationContext) -> None:
        if not await self._ensure_founder(ctx):
            return
        channels = await self.log_channels.list_channels()
        if not channels:
            await ctx.respond("ℹ️ No log channels registered.", ephemeral=True)
            return
        lines = ["📝 **Log channels**"] + [f"• {name} (`{channel_id}`)" for channel_id, name in channels]
        await ctx.respond("\n".join(lines), ephemeral=True)


def setup(
    discord_bot_instance,
    engine: GbanEngine,
    log_channels: LogChannelRegistry,
    directory: SqliteTargetDirectory,
):
    """Register the GbanCog with the bot."""
    discord_bot_instance.add_cog(GbanCog(discord_bot_instance, engine, log_channels, directory))
