"""Encoders for levels, times, durations, callers and names, and their configuration.

Each primitive encoder is a plain function ``(value, enc)`` that appends one
element to a primitive array encoder (anything with ``append_string``,
``append_int`` and ``append_float64``).

Times are ``datetime.datetime`` values; naive datetimes are treated as UTC.
Durations are integer nanoseconds, or ``datetime.timedelta`` values.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from zapcore.entry import EntryCaller
from zapcore.level import Level, capital_color_string, color_string

DEFAULT_LINE_ENDING = "\n"
OMIT_KEY = ""

_UTC = datetime.timezone.utc
_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=_UTC)


class PrimitiveArrayEncoder(Protocol):
    """The subset of an array encoder that primitive encoders may use."""

    def append_string(self, value: str) -> None: ...

    def append_int(self, value: int) -> None: ...

    def append_float64(self, value: float) -> None: ...


LevelEncoder = Callable[[Level, Any], None]
TimeEncoder = Callable[[datetime.datetime, Any], None]
DurationEncoder = Callable[[Any], None]
CallerEncoder = Callable[[EntryCaller, Any], None]
NameEncoder = Callable[[str, Any], None]


def _as_text(text: str | bytes) -> str:
    if isinstance(text, (bytes, bytearray)):
        return bytes(text).decode("utf-8", errors="replace")
    return text


# Levels


def lowercase_level_encoder(level: Level, enc: Any) -> None:
    """Append the level as a lower-case string, e.g. ``info``."""
    enc.append_string(str(Level(level)))


def lowercase_color_level_encoder(level: Level, enc: Any) -> None:
    """Append the level as a coloured lower-case string."""
    enc.append_string(color_string(Level(level)))


def capital_level_encoder(level: Level, enc: Any) -> None:
    """Append the level as an all-caps string, e.g. ``INFO``."""
    enc.append_string(Level(level).capital_string())


def capital_color_level_encoder(level: Level, enc: Any) -> None:
    """Append the level as a coloured all-caps string."""
    enc.append_string(capital_color_string(Level(level)))


def level_encoder_from_text(text: str | bytes) -> LevelEncoder:
    """Choose a level encoder by name; unknown names give the lower-case one."""
    match _as_text(text):
        case "capital":
            return capital_level_encoder
        case "capitalColor":
            return capital_color_level_encoder
        case "color":
            return lowercase_color_level_encoder
        case _:
            return lowercase_level_encoder


# Times


def _aware(t: datetime.datetime) -> datetime.datetime:
    return t if t.tzinfo is not None else t.replace(tzinfo=_UTC)


def _unix_nanos(t: datetime.datetime) -> int:
    delta = _aware(t) - _EPOCH
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros * 1000


def epoch_time_encoder(t: datetime.datetime, enc: Any) -> None:
    """Append floating-point seconds since the Unix epoch."""
    enc.append_float64(_unix_nanos(t) / 1_000_000_000)


def epoch_millis_time_encoder(t: datetime.datetime, enc: Any) -> None:
    """Append floating-point milliseconds since the Unix epoch."""
    enc.append_float64(_unix_nanos(t) / 1_000_000)


def epoch_nanos_time_encoder(t: datetime.datetime, enc: Any) -> None:
    """Append integer nanoseconds since the Unix epoch."""
    enc.append_int(_unix_nanos(t))


_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_ZONE_SUFFIXES = ("070000", "07:00:00", "0700", "07:00", "07")


def _std_at(layout: str, i: int) -> str | None:
    """Return the layout element starting at ``i``, or None for a literal."""
    rest = layout[i:]
    c = rest[0]
    if c == "J":
        for word in ("January", "Jan"):
            if rest.startswith(word):
                return word
    elif c == "M":
        for word in ("Monday", "Mon", "MST"):
            if rest.startswith(word):
                return word
    elif c == "0":
        if rest.startswith("002"):
            return "002"
        if len(rest) >= 2 and rest[1] in "123456":
            return rest[:2]
    elif c == "1":
        return "15" if rest.startswith("15") else "1"
    elif c == "2":
        return "2006" if rest.startswith("2006") else "2"
    elif c == "_":
        if rest.startswith("_2"):
            if rest.startswith("_2006"):
                return None
            return "_2"
        if rest.startswith("__2"):
            return "__2"
    elif c in "345":
        return c
    elif c == "P" and rest.startswith("PM"):
        return "PM"
    elif c == "p" and rest.startswith("pm"):
        return "pm"
    elif c in "-Z":
        for suffix in _ZONE_SUFFIXES:
            if rest.startswith(suffix, 1):
                return c + suffix
    elif c in ".," and len(rest) > 1 and rest[1] in "09":
        j = 1
        while j < len(rest) and rest[j] == rest[1]:
            j += 1
        if not (j < len(rest) and rest[j].isdigit()):
            return rest[:j]
    return None


def _format_zone(token: str, offset: int) -> str:
    if token[0] == "Z" and offset == 0:
        return "Z"
    sign = "-" if offset < 0 else "+"
    hours, rem = divmod(abs(offset), 3600)
    minutes, seconds = divmod(rem, 60)
    match token[1:]:
        case "070000":
            return f"{sign}{hours:02d}{minutes:02d}{seconds:02d}"
        case "07:00:00":
            return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
        case "0700":
            return f"{sign}{hours:02d}{minutes:02d}"
        case "07:00":
            return f"{sign}{hours:02d}:{minutes:02d}"
        case _:
            return f"{sign}{hours:02d}"


def _render(token: str, t: datetime.datetime) -> str:
    offset_delta = t.utcoffset() or datetime.timedelta(0)
    offset = int(offset_delta.total_seconds())
    hour12 = t.hour % 12 or 12
    yday = t.timetuple().tm_yday
    match token:
        case "January":
            return _MONTHS[t.month - 1]
        case "Jan":
            return _MONTHS[t.month - 1][:3]
        case "Monday":
            return _DAYS[t.weekday()]
        case "Mon":
            return _DAYS[t.weekday()][:3]
        case "MST":
            name = t.tzname()
            if name:
                return name
            return _format_zone("-0700" if offset % 3600 else "-07", offset)
        case "01":
            return f"{t.month:02d}"
        case "1":
            return str(t.month)
        case "02":
            return f"{t.day:02d}"
        case "2":
            return str(t.day)
        case "_2":
            return f"{t.day:>2}"
        case "002":
            return f"{yday:03d}"
        case "__2":
            return f"{yday:>3}"
        case "2006":
            return f"{t.year:04d}"
        case "06":
            return f"{t.year % 100:02d}"
        case "15":
            return f"{t.hour:02d}"
        case "03":
            return f"{hour12:02d}"
        case "3":
            return str(hour12)
        case "04":
            return f"{t.minute:02d}"
        case "4":
            return str(t.minute)
        case "05":
            return f"{t.second:02d}"
        case "5":
            return str(t.second)
        case "PM":
            return "PM" if t.hour >= 12 else "AM"
        case "pm":
            return "pm" if t.hour >= 12 else "am"
    if token[0] in "-Z":
        return _format_zone(token, offset)
    digits = f"{t.microsecond * 1000:09d}"[: len(token) - 1]
    if token[1] == "9":
        digits = digits.rstrip("0")
        if not digits:
            return ""
    return token[0] + digits


def format_time(t: datetime.datetime, layout: str) -> str:
    """Format ``t`` using a reference-time layout such as ``2006-01-02T15:04:05Z07:00``."""
    t = _aware(t)
    out: list[str] = []
    i = 0
    while i < len(layout):
        token = _std_at(layout, i)
        if token is None:
            out.append(layout[i])
            i += 1
            continue
        out.append(_render(token, t))
        i += len(token)
    return "".join(out)


_ISO8601_LAYOUT = "2006-01-02T15:04:05.000Z0700"
_RFC3339_LAYOUT = "2006-01-02T15:04:05Z07:00"
_RFC3339_NANO_LAYOUT = "2006-01-02T15:04:05.999999999Z07:00"


def _encode_time_layout(t: datetime.datetime, layout: str, enc: Any) -> None:
    append_layout = getattr(enc, "append_time_layout", None)
    if callable(append_layout):
        append_layout(t, layout)
        return
    enc.append_string(format_time(t, layout))


def iso8601_time_encoder(t: datetime.datetime, enc: Any) -> None:
    """Append an ISO8601 string with millisecond precision."""
    _encode_time_layout(t, _ISO8601_LAYOUT, enc)


def rfc3339_time_encoder(t: datetime.datetime, enc: Any) -> None:
    """Append an RFC3339 string."""
    _encode_time_layout(t, _RFC3339_LAYOUT, enc)


def rfc3339_nano_time_encoder(t: datetime.datetime, enc: Any) -> None:
    """Append an RFC3339 string with sub-second precision."""
    _encode_time_layout(t, _RFC3339_NANO_LAYOUT, enc)


def time_encoder_of_layout(layout: str) -> TimeEncoder:
    """Return a time encoder that formats with ``layout``."""

    def encode(t: datetime.datetime, enc: Any) -> None:
        _encode_time_layout(t, layout, enc)

    return encode


def time_encoder_from_text(text: str | bytes) -> TimeEncoder:
    """Choose a time encoder by name; unknown names give epoch seconds."""
    match _as_text(text):
        case "rfc3339nano" | "RFC3339Nano":
            return rfc3339_nano_time_encoder
        case "rfc3339" | "RFC3339":
            return rfc3339_time_encoder
        case "iso8601" | "ISO8601":
            return iso8601_time_encoder
        case "millis":
            return epoch_millis_time_encoder
        case "nanos":
            return epoch_nanos_time_encoder
        case _:
            return epoch_time_encoder


def time_encoder_from_value(value: Any) -> TimeEncoder:
    """Build a time encoder from a decoded config value.

    A mapping selects a custom ``layout``; a string is a name as in
    :func:`time_encoder_from_text`. Anything else raises ``TypeError``.
    """
    if value is None:
        return time_encoder_of_layout("")
    if isinstance(value, Mapping):
        layout = value.get("layout", "")
        if layout is None:
            layout = ""
        if not isinstance(layout, str):
            raise TypeError(f"time encoder layout must be a string, not {type(layout).__name__}")
        return time_encoder_of_layout(layout)
    if isinstance(value, (str, bytes, bytearray)):
        return time_encoder_from_text(value)
    raise TypeError(f"cannot build a time encoder from {type(value).__name__}")


# Durations


def _duration_nanos(d: Any) -> int:
    if isinstance(d, datetime.timedelta):
        return (d.days * 86400 + d.seconds) * 1_000_000_000 + d.microseconds * 1000
    return int(d)


def _fraction(value: int, precision: int) -> str:
    whole, frac = divmod(value, 10**precision)
    digits = f"{frac:0{precision}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(d: Any) -> str:
    """Render a duration like ``1h2m3.5s``, ``1.5ms`` or ``0s``."""
    nanos = _duration_nanos(d)
    if nanos == 0:
        return "0s"
    u = abs(nanos)
    if u < 1_000_000_000:
        if u < 1000:
            body = f"{u}ns"
        elif u < 1_000_000:
            body = _fraction(u, 3) + "µs"
        else:
            body = _fraction(u, 6) + "ms"
    else:
        secs, frac = divmod(u, 1_000_000_000)
        body = _fraction((secs % 60) * 1_000_000_000 + frac, 9) + "s"
        minutes = secs // 60
        if minutes:
            body = f"{minutes % 60}m{body}"
            hours = minutes // 60
            if hours:
                body = f"{hours}h{body}"
    return "-" + body if nanos < 0 else body


def seconds_duration_encoder(d: Any, enc: Any) -> None:
    """Append floating-point seconds elapsed."""
    enc.append_float64(_duration_nanos(d) / 1_000_000_000)


def nanos_duration_encoder(d: Any, enc: Any) -> None:
    """Append integer nanoseconds elapsed."""
    enc.append_int(_duration_nanos(d))


def millis_duration_encoder(d: Any, enc: Any) -> None:
    """Append integer milliseconds elapsed, truncated toward zero."""
    nanos = _duration_nanos(d)
    millis = nanos // 1_000_000 if nanos >= 0 else -(-nanos // 1_000_000)
    enc.append_int(millis)


def string_duration_encoder(d: Any, enc: Any) -> None:
    """Append the duration in its human-readable form."""
    enc.append_string(format_duration(d))


def duration_encoder_from_text(text: str | bytes) -> DurationEncoder:
    """Choose a duration encoder by name; unknown names give seconds."""
    match _as_text(text):
        case "string":
            return string_duration_encoder
        case "nanos":
            return nanos_duration_encoder
        case "ms":
            return millis_duration_encoder
        case _:
            return seconds_duration_encoder


# Callers and names


def full_caller_encoder(caller: EntryCaller, enc: Any) -> None:
    """Append the caller as ``/full/path/to/file:line``."""
    enc.append_string(str(caller))


def short_caller_encoder(caller: EntryCaller, enc: Any) -> None:
    """Append the caller as ``dir/file:line``."""
    enc.append_string(caller.trimmed_path())


def caller_encoder_from_text(text: str | bytes) -> CallerEncoder:
    """Return the full caller encoder for ``full``, the short one otherwise."""
    if _as_text(text) == "full":
        return full_caller_encoder
    return short_caller_encoder


def full_name_encoder(logger_name: str, enc: Any) -> None:
    """Append the logger name as it is."""
    enc.append_string(logger_name)


def name_encoder_from_text(text: str | bytes) -> NameEncoder:
    """Return the full name encoder, whatever the name."""
    _as_text(text)
    return full_name_encoder


# Configuration

_STRING_KEYS = {
    "messageKey": "message_key",
    "levelKey": "level_key",
    "timeKey": "time_key",
    "nameKey": "name_key",
    "callerKey": "caller_key",
    "functionKey": "function_key",
    "stacktraceKey": "stacktrace_key",
    "lineEnding": "line_ending",
    "consoleSeparator": "console_separator",
}

_TEXT_ENCODERS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "levelEncoder": ("encode_level", level_encoder_from_text),
    "durationEncoder": ("encode_duration", duration_encoder_from_text),
    "callerEncoder": ("encode_caller", caller_encoder_from_text),
    "nameEncoder": ("encode_name", name_encoder_from_text),
}


@dataclass
class EncoderConfig:
    """Keys and primitive encoders used by the entry encoders.

    An empty key omits that part of the entry.
    """

    message_key: str = ""
    level_key: str = ""
    time_key: str = ""
    name_key: str = ""
    caller_key: str = ""
    function_key: str = ""
    stacktrace_key: str = ""
    skip_line_ending: bool = False
    line_ending: str = ""
    encode_level: LevelEncoder | None = None
    encode_time: TimeEncoder | None = None
    encode_duration: DurationEncoder | None = None
    encode_caller: CallerEncoder | None = None
    encode_name: NameEncoder | None = None
    new_reflected_encoder: Callable[[Any], Any] | None = None
    console_separator: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EncoderConfig:
        """Build a config from a decoded JSON or YAML mapping with camelCase keys.

        Unknown keys are ignored; values of the wrong type raise ``TypeError``.
        """
        values: dict[str, Any] = {}
        for key, attr in _STRING_KEYS.items():
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise TypeError(f"{key}: expected a string, not {type(value).__name__}")
            values[attr] = value

        skip = data.get("skipLineEnding")
        if skip is not None:
            if not isinstance(skip, bool):
                raise TypeError(f"skipLineEnding: expected a boolean, not {type(skip).__name__}")
            values["skip_line_ending"] = skip

        for key, (attr, convert) in _TEXT_ENCODERS.items():
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise TypeError(f"{key}: expected a string, not {type(value).__name__}")
            values[attr] = convert(value)

        if "timeEncoder" in data:
            values["encode_time"] = time_encoder_from_value(data["timeEncoder"])

        return cls(**values)