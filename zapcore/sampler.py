"""A core wrapper that samples repetitive log entries."""

from __future__ import annotations

import datetime
import threading
from collections.abc import Callable
from enum import IntFlag
from typing import Any

from zapcore.entry import CheckedEntry, Entry
from zapcore.level import Level, level_of

_MIN_LEVEL = -1
_MAX_LEVEL = 5
_COUNTERS_PER_LEVEL = 4096

_UTC = datetime.timezone.utc
_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=_UTC)

_FNV_OFFSET32 = 2166136261
_FNV_PRIME32 = 16777619


def fnv32a(s: str | bytes) -> int:
    """32-bit FNV-1a hash of the UTF-8 bytes of ``s``."""
    data = s if isinstance(s, (bytes, bytearray)) else s.encode("utf-8", errors="surrogateescape")
    h = _FNV_OFFSET32
    for byte in data:
        h ^= byte
        h = (h * _FNV_PRIME32) & 0xFFFFFFFF
    return h


def _unix_nanos(t: datetime.datetime) -> int:
    if t.tzinfo is None:
        t = t.replace(tzinfo=_UTC)
    delta = t - _EPOCH
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros * 1000


def _duration_nanos(d: Any) -> int:
    if isinstance(d, datetime.timedelta):
        return (d.days * 86400 + d.seconds) * 1_000_000_000 + d.microseconds * 1000
    return int(d)


class _Counter:
    __slots__ = ("_lock", "_reset_at", "_count")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reset_at: int | None = None
        self._count = 0

    def inc_check_reset(self, t: datetime.datetime, tick_nanos: int) -> int:
        tn = _unix_nanos(t)
        with self._lock:
            if self._reset_at is not None and self._reset_at > tn:
                self._count += 1
                return self._count
            self._count = 1
            self._reset_at = tn + tick_nanos
            return 1


class _Counters:
    """Per-level tables of counters, indexed by message hash."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._table: dict[tuple[int, int], _Counter] = {}

    def get(self, lvl: Level, key: str) -> _Counter:
        slot = (int(lvl) - _MIN_LEVEL, fnv32a(key) % _COUNTERS_PER_LEVEL)
        with self._lock:
            counter = self._table.get(slot)
            if counter is None:
                counter = self._table[slot] = _Counter()
            return counter


class SamplingDecision(IntFlag):
    """What the sampler did with an entry."""

    LOG_DROPPED = 1
    LOG_SAMPLED = 2


SamplingHook = Callable[[Entry, SamplingDecision], None]
SamplerOption = Callable[["Sampler"], None]


def _nop_sampling_hook(_ent: Entry, _dec: SamplingDecision) -> None:
    pass


class Sampler:
    """Logs the first ``first`` entries per level and message each tick,
    then every ``thereafter``-th; with ``thereafter`` zero the rest are dropped.

    Counters are shared with every core derived through :meth:`with_fields`.
    """

    def __init__(
        self,
        core: Any,
        tick: Any,
        first: int,
        thereafter: int,
        hook: SamplingHook | None = None,
        counts: _Counters | None = None,
    ) -> None:
        self._core = core
        self._tick = _duration_nanos(tick)
        self._first = first
        self._thereafter = thereafter
        self.hook: SamplingHook = hook or _nop_sampling_hook
        self._counts = counts if counts is not None else _Counters()

    def level(self) -> Level:
        """The lowest level enabled by the wrapped core."""
        return level_of(self._core)

    def enabled(self, lvl: Level) -> bool:
        return self._core.enabled(lvl)

    def with_fields(self, fields: list[Any]) -> Sampler:
        return Sampler(
            self._core.with_fields(fields),
            self._tick,
            self._first,
            self._thereafter,
            self.hook,
            self._counts,
        )

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        """Drop the entry if its quota for this tick is used up, else pass it on."""
        if not self.enabled(ent.level):
            return ce
        if _MIN_LEVEL <= ent.level <= _MAX_LEVEL:
            counter = self._counts.get(ent.level, ent.message)
            n = counter.inc_check_reset(ent.time, self._tick)
            if n > self._first and (
                self._thereafter == 0 or (n - self._first) % self._thereafter != 0
            ):
                self.hook(ent, SamplingDecision.LOG_DROPPED)
                return ce
            self.hook(ent, SamplingDecision.LOG_SAMPLED)
        return self._core.check(ent, ce)

    def write(self, ent: Entry, fields: list[Any]) -> None:
        self._core.write(ent, fields)

    def sync(self) -> None:
        self._core.sync()


def sampler_hook(hook: SamplingHook) -> SamplerOption:
    """Option that calls ``hook`` with every sampling decision."""

    def apply(sampler: Sampler) -> None:
        sampler.hook = hook

    return apply


def new_sampler_with_options(
    core: Any, tick: Any, first: int, thereafter: int, *args: SamplerOption
) -> Sampler:
    """Create a sampling core; ``tick`` is nanoseconds or a ``timedelta``."""
    sampler = Sampler(core, tick, first, thereafter)
    for option in args:
        option(sampler)
    return sampler


def new_sampler(core: Any, tick: Any, first: int, thereafter: int) -> Sampler:
    """Create a sampling core with no options."""
    return new_sampler_with_options(core, tick, first, thereafter)