"""Logging priorities and the helpers that name, parse and colour them."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Protocol, runtime_checkable


class Level(IntEnum):
    """A logging priority. Higher levels are more important.

    Any value that fits in a signed byte is a valid ``Level``; values outside
    the named range are rendered as ``Level(n)``.
    """

    DEBUG = -1
    INFO = 0
    WARN = 1
    ERROR = 2
    DPANIC = 3
    PANIC = 4
    FATAL = 5
    INVALID = 6

    @classmethod
    def _missing_(cls, value: object) -> Level | None:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        if not -128 <= value <= 127:
            return None
        member = int.__new__(cls, value)
        member._name_ = f"LEVEL_{value}"
        member._value_ = value
        return cls._value2member_map_.setdefault(value, member)

    def _is_named(self) -> bool:
        return _MIN_LEVEL <= self <= _MAX_LEVEL

    def __str__(self) -> str:
        """Lower-case name of the level, e.g. ``info``."""
        if self._is_named():
            return self.name.lower()
        return f"Level({int(self)})"

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)

    def capital_string(self) -> str:
        """All-caps name of the level, e.g. ``INFO``."""
        if self._is_named():
            return self.name
        return f"LEVEL({int(self)})"

    def enabled(self, lvl: int) -> bool:
        """Report whether ``lvl`` is at or above this level."""
        return lvl >= self


_MIN_LEVEL = -1
_MAX_LEVEL = 5

_LEVELS = tuple(Level(value) for value in range(_MIN_LEVEL, _MAX_LEVEL + 1))


@runtime_checkable
class LevelEnabler(Protocol):
    """Anything that decides whether a level is enabled."""

    def enabled(self, lvl: Level) -> bool: ...


_TEXT_TO_LEVEL: dict[str, Level] = {"": Level.INFO}
for _lvl in _LEVELS:
    _TEXT_TO_LEVEL[str(_lvl)] = _lvl
    _TEXT_TO_LEVEL[_lvl.capital_string()] = _lvl
del _lvl


def parse_level(text: str) -> Level:
    """Parse a level from its lower-case or all-caps name.

    The empty string parses as ``Level.INFO``; other case mixes are accepted
    by lower-casing. Unknown names raise ``ValueError``.
    """
    level = _TEXT_TO_LEVEL.get(text)
    if level is None:
        level = _TEXT_TO_LEVEL.get(text.lower())
    if level is None:
        raise ValueError(f"unrecognized level: {json.dumps(text, ensure_ascii=False)}")
    return level


def level_of(enab: LevelEnabler) -> Level:
    """Return the lowest enabled level of ``enab``, or ``Level.INVALID``.

    An enabler that has a ``level()`` method decides for itself.
    """
    get_level = getattr(enab, "level", None)
    if callable(get_level):
        return get_level()
    for lvl in _LEVELS:
        if enab.enabled(lvl):
            return lvl
    return Level.INVALID


_MAGENTA = 35
_BLUE = 34
_YELLOW = 33
_RED = 31

_LEVEL_TO_COLOR = {
    Level.DEBUG: _MAGENTA,
    Level.INFO: _BLUE,
    Level.WARN: _YELLOW,
    Level.ERROR: _RED,
    Level.DPANIC: _RED,
    Level.PANIC: _RED,
    Level.FATAL: _RED,
}
_UNKNOWN_LEVEL_COLOR = _RED


def _colorize(code: int, text: str) -> str:
    return f"\x1b[{code}m{text}\x1b[0m"


_LOWERCASE_COLOR_STRINGS = {
    level: _colorize(code, str(level)) for level, code in _LEVEL_TO_COLOR.items()
}
_CAPITAL_COLOR_STRINGS = {
    level: _colorize(code, level.capital_string()) for level, code in _LEVEL_TO_COLOR.items()
}


def color_string(level: Level) -> str:
    """Lower-case level name wrapped in the level's terminal colour."""
    cached = _LOWERCASE_COLOR_STRINGS.get(level)
    if cached is not None:
        return cached
    return _colorize(_UNKNOWN_LEVEL_COLOR, str(Level(level)))


def capital_color_string(level: Level) -> str:
    """All-caps level name wrapped in the level's terminal colour."""
    cached = _CAPITAL_COLOR_STRINGS.get(level)
    if cached is not None:
        return cached
    return _colorize(_UNKNOWN_LEVEL_COLOR, Level(level).capital_string())