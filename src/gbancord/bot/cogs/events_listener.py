"""Event listener Cog for gbancord.

Keeps the gban target list in sync with the guilds the bot is in, enforces
gbans on users who join or speak, and reports command errors.
"""

import discord
from discord.ext import commands

from gbancord.datatypes.discord_datatypes import GuildID, UserID
from gbancord.engine.gban_engine import GbanEngine
from gbancord.scheduler.guild_prune_scheduler import GuildPruneScheduler
from gbancord.services.target_directory import SqliteTargetDirectory
from gbancord.ui import gban_messages as messages
from gbancord.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing guild lifecycle, member and message handlers."""

    def __init__(
        self,
        discord_bot_instance,
        engine: GbanEngine,
        directory: SqliteTargetDirectory,
        prune_scheduler: GuildPruneScheduler | None = None,
    ):
        self.bot = discord_bot_instance
        self.engine = engine
        self.directory = directory
        self.prune_scheduler = prune_scheduler
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """Register every guild the bot is in and start the inactive guild sweep."""
        if self.bot.user:
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

        for guild in self.bot.guilds:
            try:
                await self.directory.register(GuildID.from_guild(guild), guild.name)
            except Exception as exc:
                logger.error("Failed to register guild %s: %s", guild.id, exc)
        logger.info("Registered %d guilds as gban targets", len(self.bot.guilds))

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(type=discord.ActivityType.watching, name="for gbanned users"),
        )

        if self.prune_scheduler is not None:
            self.prune_scheduler.start()

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild):
        guild_id = GuildID.from_guild(guild)
        await self.directory.register(guild_id, guild.name)
        logger.info("Joined guild %s (%s)", guild.name, guild_id)
        await self.engine.notify(messages.new_guild(guild_id, guild.name, guild.member_count))

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild):
        await self.directory.remove(GuildID.from_guild(guild))
        logger.info("Left guild %s (%s)", guild.name, guild.id)

    async def _enforce(self, guild: discord.Guild, user: discord.abc.User) -> None:
        """Autoban an actively gbanned user, or promote a pending gban."""
        subject = UserID.from_user(user)
        record = await self.engine.enforce_on_join(GuildID.from_guild(guild), guild.name, subject)
        if record is None:
            await self.engine.on_subject_activity(subject)

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member):
        if member.bot:
            return
        try:
            await self._enforce(member.guild, member)
        except Exception as exc:
            logger.error("Failed to enforce gban on join of %s in %s: %s", member.id, member.guild.id, exc)

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        if message.author.bot or message.guild is None:
            return

        guild = message.guild
        guild_id = GuildID.from_guild(guild)
        try:
            if not await self.directory.touch(guild_id):
                await self.directory.register(guild_id, guild.name)
            await self._enforce(guild, message.author)
        except Exception as exc:
            logger.error("Failed to process message activity in %s: %s", guild_id, exc)

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Handle errors from application commands with logging and user feedback."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, "name", "<unknown>")
        logger.error(f"Error in command '{command_name}': {error}", exc_info=True)

        error_message = "A :bug: showed up while running this command."
        try:
            await application_context.respond(error_message, ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(error_message, ephemeral=True)


def setup(discord_bot_instance, engine, directory, prune_scheduler=None):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, engine, directory, prune_scheduler))
