"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit unsigned integers. Each wrapper validates that
range once on construction so the rest of the bot can pass guild, channel,
role, user and message IDs around without mixing them up.
"""

from __future__ import annotations

from typing import Optional, Union

SNOWFLAKE_MAX = 2 ** 64 - 1

# SQLite INTEGER is signed 64-bit; ids above this are stored wrapped negative
_SQLITE_INTEGER_MAX = 2 ** 63 - 1
_UINT64_MODULUS = 2 ** 64


class Snowflake:
    """
    Base wrapper for a Discord snowflake ID.

    Snowflakes are often transmitted as strings for JSON compatibility, so the
    constructor accepts ints, numeric strings or another wrapper of the same
    kind.

    Example:
        >>> gid = GuildID.from_int(123456789012345678)
        >>> gid.to_int()
        123456789012345678
        >>> str(gid)
        '123456789012345678'
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Initialize the wrapper.

        Args:
            value: The snowflake as an int, numeric string or wrapper.

        Raises:
            ValueError: If the value is not a valid 64-bit unsigned snowflake.
        """
        if isinstance(value, Snowflake):
            if not isinstance(value, type(self)):
                raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}")
            number = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            number = value
        elif isinstance(value, str):
            number = int(value.strip())
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

        if not 0 <= number <= SNOWFLAKE_MAX:
            raise ValueError(f"{type(self).__name__} out of range: {number}")
        self._value = number

    @classmethod
    def from_int(cls, value: int):
        """Create a wrapper from an integer snowflake."""
        return cls(value)

    def to_int(self) -> int:
        """Return the snowflake as an integer for Discord API calls."""
        return self._value

    def to_db(self) -> int:
        """Return the snowflake as a signed 64-bit integer for an SQLite column."""
        if self._value > _SQLITE_INTEGER_MAX:
            return self._value - _UINT64_MODULUS
        return self._value

    @classmethod
    def from_db(cls, value: int):
        """Create a wrapper from a value written by :meth:`to_db`."""
        return cls(value + _UINT64_MODULUS if value < 0 else value)

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, bool):
            return NotImplemented
        if isinstance(other, int):
            return self._value == other
        if isinstance(other, str):
            return str(self._value) == other.strip()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(Snowflake):
    """Snowflake of a Discord guild (the tenant every setting and event belongs to)."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake of a guild channel."""

    __slots__ = ()

    @property
    def mention(self) -> str:
        return f"<#{self._value}>"


class RoleID(Snowflake):
    """Snowflake of a guild role."""

    __slots__ = ()

    @property
    def mention(self) -> str:
        return f"<@&{self._value}>"


class UserID(Snowflake):
    """Snowflake of a Discord user."""

    __slots__ = ()

    @property
    def mention(self) -> str:
        return f"<@{self._value}>"


class MessageID(Snowflake):
    """Snowflake of a posted message."""

    __slots__ = ()


def optional_id(wrapper: type, value):
    """Wrap ``value`` with ``wrapper`` unless it is None."""
    return None if value is None else wrapper(value)


def optional_db_id(wrapper: type, value):
    """Like :func:`optional_id` for a nullable column written by :meth:`Snowflake.to_db`."""
    return None if value is None else wrapper.from_db(value)


def db_value(snowflake: Optional[Snowflake]) -> Optional[int]:
    """Column value for an optional snowflake."""
    return None if snowflake is None else snowflake.to_db()
