import datetime
import threading

import pytest

from zapcore.entry import Entry, add_core
from zapcore.field import Field, FieldType
from zapcore.level import Level, level_of
from zapcore.sampler import (
    SamplingDecision,
    fnv32a,
    new_sampler,
    new_sampler_with_options,
    sampler_hook,
)

MINUTE = 60 * 1_000_000_000
MS = 1_000_000
BASE = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
ALL_LEVELS = [Level(v) for v in range(-1, 6)]


class _Logs:
    def __init__(self):
        self.entries = []

    def take_all(self):
        taken, self.entries = self.entries, []
        return taken


class _ObserverCore:
    def __init__(self, enab, logs, context=()):
        self._enab = enab
        self._logs = logs
        self._context = tuple(context)

    def enabled(self, lvl):
        return self._enab.enabled(lvl)

    def with_fields(self, fields):
        return _ObserverCore(self._enab, self._logs, self._context + tuple(fields))

    def check(self, ent, ce):
        if self.enabled(ent.level):
            return add_core(ce, ent, self)
        return ce

    def write(self, ent, fields):
        self._logs.entries.append((ent, list(self._context) + list(fields)))

    def sync(self):
        pass


class _CountingCore:
    def __init__(self):
        self.logs = 0
        self._lock = threading.Lock()

    def check(self, ent, ce):
        return add_core(ce, ent, self)

    def write(self, ent, fields):
        with self._lock:
            self.logs += 1

    def with_fields(self, fields):
        return self

    def enabled(self, lvl):
        return True

    def sync(self):
        pass


def _fake_sampler(lvl, tick, first, thereafter):
    logs = _Logs()
    return new_sampler(_ObserverCore(lvl, logs), tick, first, thereafter), logs


def _write_sequence(core, n, lvl, when=BASE):
    core = core.with_fields([Field(key="iter", type=FieldType.INT64, integer=n)])
    ce = core.check(Entry(level=lvl, time=when), None)
    if ce is not None:
        ce.write()


def _assert_sequence(logs, lvl, *seq):
    seen = []
    for ent, context in logs:
        assert ent.message == ""
        assert len(context) == 1
        assert ent.level == lvl
        f = context[0]
        assert f.key == "iter"
        assert f.type == FieldType.INT64
        seen.append(f.integer)
    assert seen == list(seq)


@pytest.mark.parametrize("lvl", ALL_LEVELS)
def test_sampler(lvl):
    sampler, logs = _fake_sampler(Level.DEBUG, MINUTE, 2, 3)
    probe = Level.INFO if lvl == Level.DEBUG else Level.DEBUG
    for _ in range(10):
        _write_sequence(sampler, 1, probe)
    logs.take_all()

    for i in range(1, 10):
        _write_sequence(sampler, i, lvl)
    _assert_sequence(logs.take_all(), lvl, 1, 2, 5, 8)


@pytest.mark.parametrize("lvl", ALL_LEVELS)
def test_level_of_sampler(lvl):
    sampler, _ = _fake_sampler(lvl, MINUTE, 2, 3)
    assert level_of(sampler) == lvl


def test_sampler_disabled_levels():
    sampler, logs = _fake_sampler(Level.INFO, MINUTE, 1, 100)
    _write_sequence(sampler, 1, Level.DEBUG)
    _write_sequence(sampler, 2, Level.INFO)
    _assert_sequence(logs.take_all(), Level.INFO, 2)


def test_sampler_ticking():
    sampler, logs = _fake_sampler(Level.DEBUG, 10 * MS, 5, 10)
    now = BASE
    for _ in range(2):
        for i in range(1, 6):
            _write_sequence(sampler, i, Level.INFO, now)
        now += datetime.timedelta(milliseconds=15)
    _assert_sequence(logs.take_all(), Level.INFO, 1, 2, 3, 4, 5, 1, 2, 3, 4, 5)

    for _ in range(3):
        for i in range(1, 18):
            _write_sequence(sampler, i, Level.INFO, now)
        now += datetime.timedelta(milliseconds=10)
    _assert_sequence(
        logs.take_all(),
        Level.INFO,
        1, 2, 3, 4, 5, 15,
        1, 2, 3, 4, 5, 15,
        1, 2, 3, 4, 5, 15,
    )


def test_sampler_accepts_timedelta_tick():
    sampler, logs = _fake_sampler(Level.DEBUG, datetime.timedelta(minutes=1), 1, 0)
    for i in range(1, 4):
        _write_sequence(sampler, i, Level.INFO)
    _assert_sequence(logs.take_all(), Level.INFO, 1)


def test_sampler_concurrent_counts():
    counting = _CountingCore()
    decisions = {SamplingDecision.LOG_DROPPED: 0, SamplingDecision.LOG_SAMPLED: 0}
    lock = threading.Lock()

    def hook(_ent, dec):
        with lock:
            decisions[dec] += 1

    sampler = new_sampler_with_options(counting, MINUTE, 10, 0, sampler_hook(hook))
    num_messages, num_threads, per_thread = 5, 10, 40

    def worker(i):
        for _ in range(per_thread):
            ent = Entry(level=Level.DEBUG, message=f"msg{i % num_messages}", time=BASE)
            ce = sampler.check(ent, None)
            if ce is not None:
                ce.write()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(num_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    expected = num_messages * 10
    assert counting.logs == expected
    assert decisions[SamplingDecision.LOG_SAMPLED] == expected
    assert decisions[SamplingDecision.LOG_DROPPED] == num_threads * per_thread - expected


@pytest.mark.parametrize("lvl", [Level(-2), Level(6)])
def test_sampler_unknown_levels(lvl):
    sampler, logs = _fake_sampler(lvl, MINUTE, 2, 3)
    for i in range(1, 10):
        _write_sequence(sampler, i, lvl)
    _assert_sequence(logs.take_all(), lvl, 1, 2, 3, 4, 5, 6, 7, 8, 9)


def test_sampler_with_zero_thereafter():
    counter = _CountingCore()
    sampler = new_sampler_with_options(counter, 1_000_000_000, 2, 0)
    now = BASE
    for _ in range(1000):
        ce = sampler.check(Entry(level=Level.INFO, message="msg", time=now), None)
        if ce is not None:
            ce.write()
    assert counter.logs == 2

    now += datetime.timedelta(seconds=1)
    for _ in range(1000):
        ce = sampler.check(Entry(level=Level.INFO, message="msg", time=now), None)
        if ce is not None:
            ce.write()
    assert counter.logs == 4


def test_sampler_hook_reports_decisions():
    decisions = []
    sampler = new_sampler_with_options(
        _CountingCore(), MINUTE, 1, 0, sampler_hook(lambda e, d: decisions.append(d))
    )
    for _ in range(3):
        sampler.check(Entry(level=Level.INFO, message="m", time=BASE), None)
    assert decisions == [
        SamplingDecision.LOG_SAMPLED,
        SamplingDecision.LOG_DROPPED,
        SamplingDecision.LOG_DROPPED,
    ]


def test_different_messages_counted_separately():
    counter = _CountingCore()
    sampler = new_sampler(counter, MINUTE, 1, 0)
    for msg in ("a", "b", "a", "b", "c"):
        ce = sampler.check(Entry(level=Level.INFO, message=msg, time=BASE), None)
        if ce is not None:
            ce.write()
    assert counter.logs == 3


def test_fnv32a_known_values():
    assert fnv32a("") == 2166136261
    assert fnv32a("a") == 0xE40C292C
    assert fnv32a(b"a") == fnv32a("a")


def test_reported_decisions_are_distinct_bits():
    decisions = []
    sampler = new_sampler_with_options(
        _CountingCore(), MINUTE, 1, 0, sampler_hook(lambda e, d: decisions.append(d))
    )
    for _ in range(2):
        sampler.check(Entry(level=Level.INFO, message="bits", time=BASE), None)
    sampled, dropped = decisions
    assert int(sampled) == 2
    assert int(dropped) == 1
    assert sampled & SamplingDecision.LOG_SAMPLED
    assert not sampled & SamplingDecision.LOG_DROPPED
    assert dropped & SamplingDecision.LOG_DROPPED
    assert not dropped & SamplingDecision.LOG_SAMPLED