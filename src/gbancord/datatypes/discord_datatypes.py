"""
Type-safe wrapper classes for Discord identifiers.

Gbans are keyed by user snowflakes and fan out over guild snowflakes, while
the log channel registry is keyed by channel snowflakes. Snowflakes are
64-bit integers but are stored as TEXT in SQLite for parity with the way
operators type them, so each wrapper accepts both forms and compares equal
to either.
"""

from __future__ import annotations

from typing import Union

import discord


class _Snowflake:
    """Shared behaviour for the snowflake wrappers below."""

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "_Snowflake"]) -> None:
        """
        Initialize from a string, int, or another wrapper of the same kind.

        Raises:
            ValueError: If the value is not a non-negative integer snowflake.
        """
        if isinstance(value, type(self)):
            self._value = value._value
            return
        if isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str):
            number = int(value.strip())
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")
        if number < 0:
            raise ValueError(f"{type(self).__name__} must be non-negative, got {number}")
        self._value = str(number)

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    @classmethod
    def parse(cls, raw: str):
        """Parse operator input, returning None instead of raising on garbage."""
        try:
            return cls(raw)
        except (ValueError, TypeError):
            return None

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(_Snowflake):
    """
    Type-safe wrapper for Discord user snowflake IDs.

    Example:
        >>> uid = UserID("123456789012345678")
        >>> uid.to_int()
        123456789012345678
        >>> uid == 123456789012345678
        True
    """

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class GuildID(_Snowflake):
    """Type-safe wrapper for Discord guild snowflake IDs (gban targets)."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class ChannelID(_Snowflake):
    """Type-safe wrapper for Discord channel snowflake IDs (log channels)."""

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: discord.abc.Snowflake) -> "ChannelID":
        return cls(channel.id)
