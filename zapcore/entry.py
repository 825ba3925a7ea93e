"""Log entries, their call sites, and entries that cores agreed to write."""

from __future__ import annotations

import datetime
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol

from zapcore.level import Level

_ZERO_TIME = datetime.datetime(1, 1, 1, tzinfo=datetime.timezone.utc)


@dataclass(frozen=True)
class EntryCaller:
    """The call site of a logging function."""

    defined: bool = False
    pc: int = 0
    file: str = ""
    line: int = 0
    function: str = ""

    def __str__(self) -> str:
        return self.full_path()

    def full_path(self) -> str:
        """Return ``/full/path/to/file:line``, or ``undefined``."""
        if not self.defined:
            return "undefined"
        return f"{self.file}:{self.line}"

    def trimmed_path(self) -> str:
        """Return ``dir/file:line``, keeping only the leaf directory."""
        if not self.defined:
            return "undefined"
        idx = self.file.rfind("/")
        if idx == -1:
            return self.full_path()
        idx = self.file.rfind("/", 0, idx)
        if idx == -1:
            return self.full_path()
        return f"{self.file[idx + 1:]}:{self.line}"


def new_entry_caller(pc: int, file: str, line: int, ok: bool) -> EntryCaller:
    """Build an EntryCaller; an undefined one when ``ok`` is false."""
    if not ok:
        return EntryCaller()
    return EntryCaller(defined=True, pc=pc, file=file, line=line)


@dataclass(frozen=True)
class Entry:
    """A complete log message apart from its structured context."""

    level: Level = Level.INFO
    time: datetime.datetime = _ZERO_TIME
    logger_name: str = ""
    message: str = ""
    caller: EntryCaller = field(default_factory=EntryCaller)
    stack: str = ""


class PanicError(RuntimeError):
    """Raised after writing an entry that demands a panic."""


class CheckWriteHook(Protocol):
    """An action run after a checked entry has been written."""

    def on_write(self, ce: CheckedEntry, fields: list[Any]) -> None: ...


class CheckWriteAction(IntEnum):
    """Built-in actions after writing, in increasing severity."""

    WRITE_THEN_NOOP = 0
    WRITE_THEN_GOEXIT = 1
    WRITE_THEN_PANIC = 2
    WRITE_THEN_FATAL = 3

    def on_write(self, ce: CheckedEntry, fields: list[Any]) -> None:
        """Carry out the action: nothing, end the thread, raise, or exit(1)."""
        if self is CheckWriteAction.WRITE_THEN_GOEXIT:
            raise SystemExit()
        if self is CheckWriteAction.WRITE_THEN_PANIC:
            raise PanicError(ce.entry.message)
        if self is CheckWriteAction.WRITE_THEN_FATAL:
            sys.exit(1)


def _sync(out: Any) -> None:
    flush = getattr(out, "sync", None) or getattr(out, "flush", None)
    if callable(flush):
        flush()


@dataclass(eq=False)
class CheckedEntry:
    """An entry together with the cores that agreed to log it.

    Build one with :func:`add_core` or :func:`after`. It may be written once;
    later writes are reported to ``error_output`` and otherwise ignored.
    """

    entry: Entry = field(default_factory=Entry)
    error_output: Any = None
    _cores: list[Any] = field(default_factory=list, init=False, repr=False)
    _after: CheckWriteHook | None = field(default=None, init=False, repr=False)
    _dirty: bool = field(default=False, init=False, repr=False)

    @property
    def cores(self) -> tuple[Any, ...]:
        """The cores that will receive this entry."""
        return tuple(self._cores)

    @property
    def hook(self) -> CheckWriteHook | None:
        """The action run after writing, if any."""
        return self._after

    def write(self, *fields: Any) -> None:
        """Write the entry and ``fields`` to every core, then run the hook."""
        if self._dirty:
            if self.error_output is not None:
                self.error_output.write(
                    f"{self.entry.time} Unsafe CheckedEntry re-use near Entry {self.entry!r}.\n"
                )
                _sync(self.error_output)
            return
        self._dirty = True

        field_list = list(fields)
        errors: list[Exception] = []
        for core in self._cores:
            try:
                core.write(self.entry, field_list)
            except Exception as exc:  # every core gets its chance to write
                errors.append(exc)
        if errors and self.error_output is not None:
            message = "; ".join(str(err) for err in errors)
            self.error_output.write(f"{self.entry.time} write error: {message}\n")
            _sync(self.error_output)

        if self._after is not None:
            self._after.on_write(self, field_list)


def add_core(ce: CheckedEntry | None, ent: Entry, core: Any) -> CheckedEntry:
    """Register ``core`` on ``ce``, creating the checked entry if it is None."""
    if ce is None:
        ce = CheckedEntry(entry=ent)
    ce._cores.append(core)
    return ce


def after(ce: CheckedEntry | None, ent: Entry, hook: CheckWriteHook) -> CheckedEntry:
    """Set the hook run after writing, creating the checked entry if it is None."""
    if ce is None:
        ce = CheckedEntry(entry=ent)
    ce._after = hook
    return ce