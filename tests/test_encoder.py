import datetime
import json

import pytest
import yaml

from zapcore.encoder import (
    EncoderConfig,
    capital_color_level_encoder,
    capital_level_encoder,
    caller_encoder_from_text,
    duration_encoder_from_text,
    epoch_nanos_time_encoder,
    epoch_time_encoder,
    format_duration,
    format_time,
    full_name_encoder,
    iso8601_time_encoder,
    level_encoder_from_text,
    lowercase_color_level_encoder,
    millis_duration_encoder,
    name_encoder_from_text,
    rfc3339_time_encoder,
    string_duration_encoder,
    time_encoder_from_text,
    time_encoder_from_value,
    time_encoder_of_layout,
)
from zapcore.entry import EntryCaller
from zapcore.level import Level
from zapcore.marshaler import ArrayMarshalerFunc
from zapcore.memory_encoder import MapObjectEncoder

UTC = datetime.timezone.utc
MOMENT = datetime.datetime(1970, 1, 1, 0, 1, 40, 50005, tzinfo=UTC)


def appended(func):
    mem = MapObjectEncoder()
    mem.add_array("k", ArrayMarshalerFunc(func))
    arr = mem.fields["k"]
    assert len(arr) == 1
    return arr[0]


@pytest.mark.parametrize(
    "name,expected",
    [("capital", "INFO"), ("lower", "info"), ("", "info"), ("something-random", "info")],
)
def test_level_encoders(name, expected):
    le = level_encoder_from_text(name)
    assert appended(lambda arr: le(Level.INFO, arr)) == expected


def test_colored_level_encoders():
    assert level_encoder_from_text("color") is lowercase_color_level_encoder
    assert level_encoder_from_text("capitalColor") is capital_color_level_encoder
    assert appended(lambda arr: lowercase_color_level_encoder(Level.INFO, arr)) == "\x1b[34minfo\x1b[0m"
    assert appended(lambda arr: capital_color_level_encoder(Level.WARN, arr)) == "\x1b[33mWARN\x1b[0m"


def test_capital_level_encoder_unknown_level():
    assert appended(lambda arr: capital_level_encoder(Level(-42), arr)) == "LEVEL(-42)"


@pytest.mark.parametrize(
    "doc,expected",
    [
        ("timeEncoder: iso8601", "1970-01-01T00:01:40.050Z"),
        ("timeEncoder: ISO8601", "1970-01-01T00:01:40.050Z"),
        ("timeEncoder: millis", 100050.005),
        ("timeEncoder: nanos", 100050005000),
        ("timeEncoder: {layout: 06/01/02 03:04pm}", "70/01/01 12:01am"),
        ("timeEncoder: ''", 100.050005),
        ("timeEncoder: something-random", 100.050005),
        ("timeEncoder: rfc3339", "1970-01-01T00:01:40Z"),
        ("timeEncoder: RFC3339", "1970-01-01T00:01:40Z"),
        ("timeEncoder: rfc3339nano", "1970-01-01T00:01:40.050005Z"),
        ("timeEncoder: RFC3339Nano", "1970-01-01T00:01:40.050005Z"),
    ],
)
def test_time_encoders_from_yaml(doc, expected):
    cfg = EncoderConfig.from_dict(yaml.safe_load(doc))
    assert cfg.encode_time is not None
    result = appended(lambda arr: cfg.encode_time(MOMENT, arr))
    assert result == expected
    assert type(result) is type(expected)


def test_time_encoders_wrong_yaml():
    with pytest.raises(TypeError):
        EncoderConfig.from_dict(yaml.safe_load("timeEncoder: [1, 2, 3]"))


@pytest.mark.parametrize(
    "doc,expected",
    [
        ('{"timeEncoder": "iso8601"}', "1970-01-01T00:01:40.050Z"),
        ('{"timeEncoder": {"layout": "06/01/02 03:04pm"}}', "70/01/01 12:01am"),
    ],
)
def test_time_encoders_parse_from_json(doc, expected):
    cfg = EncoderConfig.from_dict(json.loads(doc))
    assert appended(lambda arr: cfg.encode_time(MOMENT, arr)) == expected


def test_time_encoder_from_value_rejects_bad_layout():
    with pytest.raises(TypeError):
        time_encoder_from_value({"layout": 5})


def test_time_encoder_from_text_default():
    assert time_encoder_from_text("whatever") is epoch_time_encoder
    assert time_encoder_from_text("nanos") is epoch_nanos_time_encoder


def test_time_layout_uses_encoder_hook():
    calls = []

    class LayoutEncoder:
        def append_time_layout(self, t, layout):
            calls.append((t, layout))

        def append_string(self, value):
            calls.append(value)

    rfc3339_time_encoder(MOMENT, LayoutEncoder())
    assert calls == [(MOMENT, "2006-01-02T15:04:05Z07:00")]


def test_iso8601_with_offset():
    tz = datetime.timezone(datetime.timedelta(hours=-7))
    t = datetime.datetime(2018, 6, 19, 9, 33, 42, 123456, tzinfo=tz)
    assert appended(lambda arr: iso8601_time_encoder(t, arr)) == "2018-06-19T09:33:42.123-0700"


def test_format_time_layouts():
    tz = datetime.timezone(datetime.timedelta(hours=5, minutes=30))
    t = datetime.datetime(2020, 3, 4, 17, 5, 6, tzinfo=tz)
    assert format_time(t, "2006-01-02T15:04:05Z07:00") == "2020-03-04T17:05:06+05:30"
    assert format_time(MOMENT, "Mon Jan _2 15:04:05 2006") == "Thu Jan  1 00:01:40 1970"
    assert format_time(MOMENT, "Monday, 02-January-06 3:4:5 PM") == "Thursday, 01-January-70 12:1:40 AM"


def test_time_encoder_of_layout():
    enc = time_encoder_of_layout("2006/01/02")
    assert appended(lambda arr: enc(MOMENT, arr)) == "1970/01/01"


def test_epoch_encoders_at_epoch():
    epoch = datetime.datetime(1970, 1, 1, tzinfo=UTC)
    assert appended(lambda arr: epoch_time_encoder(epoch, arr)) == 0.0
    assert appended(lambda arr: epoch_nanos_time_encoder(epoch, arr)) == 0


ELAPSED = 1_000_000_500


@pytest.mark.parametrize(
    "name,expected",
    [
        ("string", "1.0000005s"),
        ("nanos", 1000000500),
        ("ms", 1000),
        ("", 1.0000005),
        ("something-random", 1.0000005),
    ],
)
def test_duration_encoders(name, expected):
    de = duration_encoder_from_text(name)
    result = appended(lambda arr: de(ELAPSED, arr))
    assert result == expected
    assert type(result) is type(expected)


def test_duration_encoders_accept_timedelta():
    assert appended(lambda arr: millis_duration_encoder(datetime.timedelta(seconds=2), arr)) == 2000
    assert appended(lambda arr: string_duration_encoder(datetime.timedelta(minutes=1), arr)) == "1m0s"


@pytest.mark.parametrize(
    "nanos,expected",
    [
        (0, "0s"),
        (1_000_000_000, "1s"),
        (60_000_000_000, "1m0s"),
        (3_600_000_000_000, "1h0m0s"),
        (1500, "1.5µs"),
        (1_500_000, "1.5ms"),
        (999, "999ns"),
        (-1_000_000_000, "-1s"),
    ],
)
def test_format_duration(nanos, expected):
    assert format_duration(nanos) == expected


CALLER = EntryCaller(defined=True, file="/home/jack/src/github.com/foo/foo.go", line=42)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("", "foo/foo.go:42"),
        ("something-random", "foo/foo.go:42"),
        ("short", "foo/foo.go:42"),
        ("full", "/home/jack/src/github.com/foo/foo.go:42"),
    ],
)
def test_caller_encoders(name, expected):
    ce = caller_encoder_from_text(name)
    assert appended(lambda arr: ce(CALLER, arr)) == expected


@pytest.mark.parametrize("name", ["", "full", "something-random"])
def test_name_encoders(name):
    ne = name_encoder_from_text(name)
    assert ne is full_name_encoder
    assert appended(lambda arr: ne("main", arr)) == "main"


def test_encoder_config_from_dict():
    cfg = EncoderConfig.from_dict(
        {
            "messageKey": "msg",
            "levelKey": "level",
            "skipLineEnding": True,
            "levelEncoder": "capital",
            "callerEncoder": "full",
            "unknown": 1,
        }
    )
    assert cfg.message_key == "msg"
    assert cfg.level_key == "level"
    assert cfg.time_key == ""
    assert cfg.skip_line_ending is True
    assert cfg.encode_level is capital_level_encoder
    assert appended(lambda arr: cfg.encode_caller(CALLER, arr)) == "/home/jack/src/github.com/foo/foo.go:42"
    assert cfg.encode_time is None


def test_encoder_config_from_dict_rejects_wrong_types():
    with pytest.raises(TypeError):
        EncoderConfig.from_dict({"messageKey": 3})
    with pytest.raises(TypeError):
        EncoderConfig.from_dict({"levelEncoder": ["capital"]})