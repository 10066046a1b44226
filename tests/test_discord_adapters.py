"""
Tests for the py-cord adapters of the gban engine.
"""

import unittest
from unittest.mock import AsyncMock, MagicMock

import discord

from gbancord.bot.discord_adapters import (
    MESSAGE_LIMIT,
    DiscordBanActuator,
    DiscordLogNotifier,
    DiscordStatusMessage,
    DiscordUserResolver,
    truncate,
)
from gbancord.datatypes.discord_datatypes import ChannelID, GuildID, UserID


def _http_error(cls, status):
    response = MagicMock(status=status, reason="error")
    return cls(response, "request failed")


class TestDiscordBanActuator(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.guild = MagicMock()
        self.guild.name = "Test Guild"
        self.guild.ban = AsyncMock()
        self.guild.unban = AsyncMock()
        self.bot = MagicMock()
        self.bot.get_guild.return_value = self.guild
        self.bot.fetch_guild = AsyncMock()
        self.actuator = DiscordBanActuator(self.bot)

    async def test_apply_ban_bans_by_object_id(self):
        ok = await self.actuator.apply_ban(GuildID(10), UserID(42), "raid")

        self.assertTrue(ok)
        self.bot.get_guild.assert_called_once_with(10)
        banned = self.guild.ban.await_args
        self.assertEqual(banned.args[0].id, 42)
        self.assertEqual(banned.kwargs["reason"], "Gban: raid")

    async def test_apply_ban_returns_false_on_forbidden(self):
        self.guild.ban.side_effect = _http_error(discord.Forbidden, 403)

        self.assertFalse(await self.actuator.apply_ban(GuildID(10), UserID(42), "raid"))

    async def test_unreachable_guild_is_a_failure(self):
        self.bot.get_guild.return_value = None
        self.bot.fetch_guild.side_effect = _http_error(discord.NotFound, 404)

        self.assertFalse(await self.actuator.apply_ban(GuildID(10), UserID(42), "raid"))
        self.guild.ban.assert_not_awaited()

    async def test_unban_of_user_not_banned_counts_as_success(self):
        self.guild.unban.side_effect = _http_error(discord.NotFound, 404)

        self.assertTrue(await self.actuator.apply_unban(GuildID(10), UserID(42), "raid"))

    async def test_unban_http_error_is_a_failure(self):
        self.guild.unban.side_effect = _http_error(discord.HTTPException, 500)

        self.assertFalse(await self.actuator.apply_unban(GuildID(10), UserID(42), "raid"))

    async def test_long_reason_is_truncated_for_audit_log(self):
        await self.actuator.apply_ban(GuildID(10), UserID(42), "x" * 1000)

        self.assertLessEqual(len(self.guild.ban.await_args.kwargs["reason"]), 512)


class TestDiscordLogNotifier(unittest.IsolatedAsyncioTestCase):
    async def test_post_reaches_every_channel_despite_failures(self):
        broken = MagicMock(spec=discord.TextChannel)
        broken.send = AsyncMock(side_effect=_http_error(discord.Forbidden, 403))
        working = MagicMock(spec=discord.TextChannel)
        working.send = AsyncMock()

        bot = MagicMock()
        bot.get_channel.side_effect = lambda channel_id: {1: broken, 2: working}[channel_id]
        registry = MagicMock()
        registry.list_channels = AsyncMock(return_value=[(ChannelID(1), "one"), (ChannelID(2), "two")])

        await DiscordLogNotifier(bot, registry).post("🚨 #BAN")

        broken.send.assert_awaited_once_with("🚨 #BAN")
        working.send.assert_awaited_once_with("🚨 #BAN")

    async def test_missing_channel_is_skipped(self):
        bot = MagicMock()
        bot.get_channel.return_value = None
        bot.fetch_channel = AsyncMock(side_effect=_http_error(discord.NotFound, 404))
        registry = MagicMock()
        registry.list_channels = AsyncMock(return_value=[(ChannelID(1), "gone")])

        await DiscordLogNotifier(bot, registry).post("hello")

        bot.fetch_channel.assert_awaited_once_with(1)


class TestDiscordStatusMessage(unittest.IsolatedAsyncioTestCase):
    async def test_send_and_edit(self):
        message = MagicMock()
        message.edit = AsyncMock()
        channel = MagicMock()
        channel.send = AsyncMock(return_value=message)

        status = await DiscordStatusMessage.send(channel, "queued")
        await status.edit("y" * 3000)

        channel.send.assert_awaited_once_with("queued")
        edited = message.edit.await_args.kwargs["content"]
        self.assertEqual(len(edited), MESSAGE_LIMIT)


class TestDiscordUserResolver(unittest.IsolatedAsyncioTestCase):
    async def test_cached_user_resolves(self):
        bot = MagicMock()
        bot.get_user.return_value = object()

        self.assertTrue(await DiscordUserResolver(bot)(UserID(5)))

    async def test_unknown_user_does_not_resolve(self):
        bot = MagicMock()
        bot.get_user.return_value = None
        bot.fetch_user = AsyncMock(side_effect=_http_error(discord.NotFound, 404))

        self.assertFalse(await DiscordUserResolver(bot)(UserID(5)))


def test_truncate_keeps_short_text():
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghijkl", 5) == "abcd…"
