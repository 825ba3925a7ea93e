"""A core wrapper that raises the minimum level of another core."""

from __future__ import annotations

import json
from typing import Any

from zapcore.entry import CheckedEntry, Entry
from zapcore.level import Level, LevelEnabler, level_of

_LEVELS_HIGH_TO_LOW = tuple(Level(value) for value in range(5, -2, -1))


class LevelFilterCore:
    """Filters entries through ``level`` before handing them to ``core``."""

    def __init__(self, core: Any, level: LevelEnabler) -> None:
        self._core = core
        self._level = level

    def enabled(self, lvl: Level) -> bool:
        return self._level.enabled(lvl)

    def level(self) -> Level:
        """The lowest level the filter lets through."""
        return level_of(self._level)

    def with_fields(self, fields: list[Any]) -> LevelFilterCore:
        return LevelFilterCore(self._core.with_fields(fields), self._level)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        if not self.enabled(ent.level):
            return ce
        return self._core.check(ent, ce)

    def write(self, ent: Entry, fields: list[Any]) -> None:
        self._core.write(ent, fields)

    def sync(self) -> None:
        self._core.sync()


def new_increase_level_core(core: Any, level: LevelEnabler) -> LevelFilterCore:
    """Wrap ``core`` so that only levels enabled by ``level`` are logged.

    Raises ``ValueError`` if ``level`` would enable a level that ``core``
    does not, since this wrapper cannot lower a core's level.
    """
    for lvl in _LEVELS_HIGH_TO_LOW:
        if not core.enabled(lvl) and level.enabled(lvl):
            raise ValueError(
                "invalid increase level, as level "
                f"{json.dumps(str(lvl))} is allowed by increased level, "
                "but not by existing core"
            )
    return LevelFilterCore(core, level)