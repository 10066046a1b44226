"""
py-cord implementations of the gban engine's collaborator protocols.

- :class:`DiscordBanActuator` bans/unbans one user in one guild.
- :class:`DiscordLogNotifier` broadcasts to every registered log channel.
- :class:`DiscordStatusMessage` edits the operator's status message.
- :class:`DiscordUserResolver` checks whether a user id is a real account.

Discord API errors are caught here and turned into ``False`` or a log line;
they never reach the engine as exceptions.
"""

from __future__ import annotations

from typing import Optional

import discord

from gbancord.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from gbancord.services.log_channel_service import LogChannelRegistry
from gbancord.util.logger import get_logger

logger = get_logger("discord_adapters")

# Discord limits
MESSAGE_LIMIT = 2000
AUDIT_REASON_LIMIT = 512


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class DiscordBanActuator:
    """Apply gbans through the guild ban endpoints."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def _resolve_guild(self, guild_id: GuildID) -> Optional[discord.Guild]:
        guild = self.bot.get_guild(guild_id.to_int())
        if guild is not None:
            return guild
        try:
            return await self.bot.fetch_guild(guild_id.to_int())
        except discord.HTTPException as exc:
            logger.debug("[ACTUATOR] Guild %s is not reachable: %s", guild_id, exc)
            return None

    async def apply_ban(self, target: GuildID, subject: UserID, reason: str) -> bool:
        guild = await self._resolve_guild(target)
        if guild is None:
            return False
        try:
            await guild.ban(
                discord.Object(id=subject.to_int()),
                reason=truncate(f"Gban: {reason}", AUDIT_REASON_LIMIT),
            )
        except discord.HTTPException as exc:
            logger.warning("[ACTUATOR] Could not ban %s in %s (%s): %s", subject, guild.name, target, exc)
            return False
        return True

    async def apply_unban(self, target: GuildID, subject: UserID, reason: str) -> bool:
        guild = await self._resolve_guild(target)
        if guild is None:
            return False
        try:
            await guild.unban(discord.Object(id=subject.to_int()), reason="Gban lifted")
        except discord.NotFound:
            # not banned in this guild; the desired state already holds
            logger.debug("[ACTUATOR] %s was not banned in %s", subject, target)
            return True
        except discord.HTTPException as exc:
            logger.warning("[ACTUATOR] Could not unban %s in %s (%s): %s", subject, guild.name, target, exc)
            return False
        return True


class DiscordLogNotifier:
    """Send a message to every registered log channel."""

    def __init__(self, bot: discord.Bot, registry: LogChannelRegistry) -> None:
        self.bot = bot
        self.registry = registry

    async def _resolve_channel(self, channel_id: ChannelID) -> Optional[discord.abc.Messageable]:
        channel = self.bot.get_channel(channel_id.to_int())
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id.to_int())
            except discord.HTTPException as exc:
                logger.warning("[LOG CHANNELS] Channel %s is not reachable: %s", channel_id, exc)
                return None
        if not isinstance(channel, discord.abc.Messageable):
            logger.warning("[LOG CHANNELS] Channel %s cannot receive messages", channel_id)
            return None
        return channel

    async def post(self, message: str) -> None:
        text = truncate(message, MESSAGE_LIMIT)
        for channel_id, channel_name in await self.registry.list_channels():
            channel = await self._resolve_channel(channel_id)
            if channel is None:
                continue
            try:
                await channel.send(text)
            except discord.HTTPException as exc:
                logger.warning("[LOG CHANNELS] Failed to post to %s (%s): %s", channel_name, channel_id, exc)


class DiscordStatusMessage:
    """The channel message a command keeps editing while its task runs."""

    def __init__(self, message: discord.Message) -> None:
        self.message = message

    @classmethod
    async def send(cls, channel: discord.abc.Messageable, text: str) -> "DiscordStatusMessage":
        message = await channel.send(truncate(text, MESSAGE_LIMIT))
        return cls(message)

    async def edit(self, text: str) -> None:
        await self.message.edit(content=truncate(text, MESSAGE_LIMIT))


class DiscordUserResolver:
    """Tell whether a user id resolves to an existing Discord account."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def __call__(self, user_id: UserID) -> bool:
        if self.bot.get_user(user_id.to_int()) is not None:
            return True
        try:
            await self.bot.fetch_user(user_id.to_int())
        except discord.NotFound:
            return False
        except discord.HTTPException as exc:
            logger.warning("[USERS] Could not resolve %s: %s", user_id, exc)
            return False
        return True
