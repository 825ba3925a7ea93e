import pytest

from zapcore.entry import Entry, add_core
from zapcore.field import Field, FieldType
from zapcore.increase_level import LevelFilterCore, new_increase_level_core
from zapcore.level import Level, level_of


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
        self.synced = 0

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
        self.synced += 1


ALL_LEVELS = [Level(v) for v in range(-1, 6)]


@pytest.mark.parametrize(
    "core_level, increase_level, want_err, with_fields",
    [
        (Level.INFO, Level.DEBUG, True, None),
        (Level.INFO, Level.INFO, False, None),
        (Level.INFO, Level.ERROR, False, None),
        (Level.INFO, Level.ERROR, False, [Field(key="k", type=FieldType.STRING, string="v")]),
        (Level.ERROR, Level.DEBUG, True, None),
        (Level.ERROR, Level.INFO, True, None),
        (Level.ERROR, Level.WARN, True, None),
        (Level.ERROR, Level.PANIC, False, None),
    ],
)
def test_increase_level(core_level, increase_level, want_err, with_fields):
    logs = _Logs()
    logger = _ObserverCore(core_level, logs)
    assert level_of(logger) == core_level

    if want_err:
        with pytest.raises(ValueError, match="invalid increase level"):
            new_increase_level_core(logger, increase_level)
        return

    filtered = new_increase_level_core(logger, increase_level)
    if with_fields:
        filtered = filtered.with_fields(with_fields)

    assert level_of(filtered) == increase_level

    for lvl in ALL_LEVELS:
        enabled = filtered.enabled(lvl)
        entry = Entry(level=lvl)
        ce = filtered.check(entry, None)
        if ce is not None:
            ce.write()
        entries = logs.take_all()

        if lvl >= increase_level:
            assert enabled is True
            assert ce is not None
            assert entries
        else:
            assert enabled is False
            assert ce is None
            assert entries == []

        filtered.write(entry, [])
        filtered.sync()
        assert logs.take_all()


def test_error_message_names_the_level():
    logger = _ObserverCore(Level.ERROR, _Logs())
    with pytest.raises(ValueError) as info:
        new_increase_level_core(logger, Level.DEBUG)
    assert str(info.value) == (
        'invalid increase level, as level "warn" is allowed by increased level, '
        "but not by existing core"
    )


def test_with_fields_adds_context_and_keeps_filter():
    logs = _Logs()
    core = new_increase_level_core(_ObserverCore(Level.INFO, logs), Level.WARN)
    field = Field(key="k", type=FieldType.STRING, string="v")
    child = core.with_fields([field])
    assert isinstance(child, LevelFilterCore)
    assert child.check(Entry(level=Level.INFO), None) is None
    child.check(Entry(level=Level.ERROR), None).write()
    assert logs.take_all() == [(Entry(level=Level.ERROR), [field])]


def test_sync_reaches_wrapped_core():
    inner = _ObserverCore(Level.INFO, _Logs())
    core = new_increase_level_core(inner, Level.ERROR)
    core.sync()
    core.sync()
    assert inner.synced == 2