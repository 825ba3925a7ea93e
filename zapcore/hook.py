"""A core wrapper that runs user callbacks for every entry it logs."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from zapcore.entry import CheckedEntry, Entry, add_core
from zapcore.level import Level, level_of

Hook = Callable[[Entry], None]


def _raise_collected(errors: list[Exception], message: str) -> None:
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise ExceptionGroup(message, errors)


class HookedCore:
    """Wraps a core and calls each hook, in order, for every written entry.

    The wrapped core still decides which entries are logged and writes them
    itself; this core only runs the hooks. A hook reports failure by raising.
    """

    def __init__(self, core: Any, hooks: tuple[Hook, ...] | list[Hook]) -> None:
        self._core = core
        self._hooks = tuple(hooks)

    @property
    def core(self) -> Any:
        """The wrapped core."""
        return self._core

    def level(self) -> Level:
        """The lowest level enabled by the wrapped core."""
        return level_of(self._core)

    def enabled(self, lvl: Level) -> bool:
        return self._core.enabled(lvl)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        """Let the wrapped core decide; if it accepts, register this core too."""
        downstream = self._core.check(ent, ce)
        if downstream is not None:
            return add_core(downstream, ent, self)
        return ce

    def with_fields(self, fields: list[Any]) -> HookedCore:
        return HookedCore(self._core.with_fields(fields), self._hooks)

    def write(self, ent: Entry, fields: list[Any]) -> None:
        """Run every hook; failures are collected and raised together."""
        errors: list[Exception] = []
        for hook in self._hooks:
            try:
                hook(ent)
            except Exception as exc:  # every hook gets its chance to run
                errors.append(exc)
        _raise_collected(errors, "hook errors")

    def sync(self) -> None:
        self._core.sync()


def register_hooks(core: Any, *args: Hook) -> HookedCore:
    """Wrap ``core`` so that each hook in ``args`` runs whenever it logs."""
    return HookedCore(core, args)