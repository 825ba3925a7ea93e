"""A fast JSON encoder for log entries and their structured context."""

from __future__ import annotations

import base64
import dataclasses
import datetime
import io
import math
import re
import struct
from decimal import Decimal
from typing import Any

from zapcore.encoder import (
    DEFAULT_LINE_ENDING,
    EncoderConfig,
    format_time,
    full_name_encoder,
)
from zapcore.entry import Entry
from zapcore.field import Field, add_fields
from zapcore.reflected_encoder import default_reflected_encoder

_UTC = datetime.timezone.utc
_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=_UTC)

_ESCAPES: dict[int, str] = {code: f"\\u{code:04x}" for code in range(0x20)}
_ESCAPES.update(
    {
        ord("\n"): "\\n",
        ord("\r"): "\\r",
        ord("\t"): "\\t",
        ord('"'): '\\"',
        ord("\\"): "\\\\",
    }
)
_SURROGATES = re.compile("[\ud800-\udfff]")
_NO_SEPARATOR_AFTER = frozenset("{[:, ")


def _escape(text: str) -> str:
    # Lone surrogates stand for bytes that were not valid UTF-8.
    return _SURROGATES.sub(lambda _m: "\\ufffd", text.translate(_ESCAPES))


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _shortest32(value: float) -> str:
    for precision in range(1, 18):
        text = format(value, f".{precision}g")
        if _to_float32(float(text)) == value:
            return text
    return repr(value)


def _format_float(value: float, bits: int) -> str:
    """Shortest decimal form without an exponent, as plain digits."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if bits == 32:
        text = _shortest32(_to_float32(value))
    else:
        text = repr(float(value))
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


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


class _Buffer:
    """Append-only text buffer that knows its length and last character."""

    __slots__ = ("_parts", "_size")

    def __init__(self, initial: str = "") -> None:
        self._parts: list[str] = []
        self._size = 0
        self.write(initial)

    def write(self, text: str) -> None:
        if text:
            self._parts.append(text)
            self._size += len(text)

    def __len__(self) -> int:
        return self._size

    def last(self) -> str:
        return self._parts[-1][-1] if self._parts else ""

    def getvalue(self) -> str:
        return "".join(self._parts)


class JSONEncoder:
    """Encodes log entries as single-line JSON objects.

    Keys and values are escaped but never de-duplicated. When ``spaced`` is
    true a space follows every colon and comma.
    """

    def __init__(self, cfg: EncoderConfig | None = None, spaced: bool = False) -> None:
        cfg = dataclasses.replace(cfg) if cfg is not None else EncoderConfig()
        if cfg.skip_line_ending:
            cfg.line_ending = ""
        elif not cfg.line_ending:
            cfg.line_ending = DEFAULT_LINE_ENDING
        if cfg.new_reflected_encoder is None:
            cfg.new_reflected_encoder = default_reflected_encoder
        self.config = cfg
        self._spaced = spaced
        self._buf = _Buffer()
        self._open_namespaces = 0
        self._reflect_buf: io.StringIO | None = None
        self._reflect_enc: Any = None

    # Object encoder

    def add_array(self, key: str, marshaler: Any) -> None:
        self._add_key(key)
        self.append_array(marshaler)

    def add_object(self, key: str, marshaler: Any) -> None:
        self._add_key(key)
        self.append_object(marshaler)

    def add_binary(self, key: str, value: bytes) -> None:
        """Add ``value`` as a base64 string."""
        self.add_string(key, base64.standard_b64encode(bytes(value)).decode("ascii"))

    def add_byte_string(self, key: str, value: bytes) -> None:
        self._add_key(key)
        self.append_byte_string(value)

    def add_bool(self, key: str, value: bool) -> None:
        self._add_key(key)
        self.append_bool(value)

    def add_complex128(self, key: str, value: complex) -> None:
        self._add_key(key)
        self.append_complex128(value)

    def add_complex64(self, key: str, value: complex) -> None:
        self._add_key(key)
        self.append_complex64(value)

    def add_duration(self, key: str, value: Any) -> None:
        self._add_key(key)
        self.append_duration(value)

    def add_float64(self, key: str, value: float) -> None:
        self._add_key(key)
        self.append_float64(value)

    def add_float32(self, key: str, value: float) -> None:
        self._add_key(key)
        self.append_float32(value)

    def add_int(self, key: str, value: int) -> None:
        self._add_key(key)
        self.append_int(value)

    def add_uint(self, key: str, value: int) -> None:
        self._add_key(key)
        self.append_uint(value)

    def add_string(self, key: str, value: str) -> None:
        self._add_key(key)
        self.append_string(value)

    def add_time(self, key: str, value: datetime.datetime) -> None:
        self._add_key(key)
        self.append_time(value)

    def add_reflected(self, key: str, value: Any) -> None:
        """Add ``value`` through the reflected encoder; nothing is written on failure."""
        encoded = self._encode_reflected(value)
        self._add_key(key)
        self._buf.write(encoded)

    def open_namespace(self, key: str) -> None:
        """Nest every later field under ``key`` until the entry is closed."""
        self._add_key(key)
        self._buf.write("{")
        self._open_namespaces += 1

    # Array encoder

    def append_array(self, marshaler: Any) -> None:
        self._add_element_separator()
        self._buf.write("[")
        try:
            marshaler.marshal_log_array(self)
        finally:
            self._buf.write("]")

    def append_object(self, marshaler: Any) -> None:
        # Close only the namespaces opened inside this object.
        old = self._open_namespaces
        self._open_namespaces = 0
        self._add_element_separator()
        self._buf.write("{")
        try:
            marshaler.marshal_log_object(self)
        finally:
            self._buf.write("}")
            self._close_open_namespaces()
            self._open_namespaces = old

    def append_bool(self, value: bool) -> None:
        self._add_element_separator()
        self._buf.write("true" if value else "false")

    def append_byte_string(self, value: bytes) -> None:
        self._add_element_separator()
        text = bytes(value).decode("utf-8", errors="surrogateescape")
        self._buf.write(f'"{_escape(text)}"')

    def _append_complex(self, value: complex, bits: int) -> None:
        self._add_element_separator()
        value = complex(value)
        real, imag = value.real, value.imag
        sign = "+" if imag >= 0 else ""
        self._buf.write(f'"{_format_float(real, bits)}{sign}{_format_float(imag, bits)}i"')

    def append_complex128(self, value: complex) -> None:
        self._append_complex(value, 64)

    def append_complex64(self, value: complex) -> None:
        self._append_complex(value, 32)

    def append_duration(self, value: Any) -> None:
        """Append via the configured duration encoder, else as nanoseconds."""
        cur = len(self._buf)
        if self.config.encode_duration is not None:
            self.config.encode_duration(value, self)
        if cur == len(self._buf):
            self.append_int(_duration_nanos(value))

    def _append_float(self, value: float, bits: int) -> None:
        self._add_element_separator()
        if math.isnan(value):
            self._buf.write('"NaN"')
        elif math.isinf(value):
            self._buf.write('"+Inf"' if value > 0 else '"-Inf"')
        else:
            self._buf.write(_format_float(value, bits))

    def append_float64(self, value: float) -> None:
        self._append_float(float(value), 64)

    def append_float32(self, value: float) -> None:
        self._append_float(float(value), 32)

    def append_int(self, value: int) -> None:
        self._add_element_separator()
        self._buf.write(str(int(value)))

    def append_uint(self, value: int) -> None:
        self._add_element_separator()
        self._buf.write(str(int(value)))

    def append_string(self, value: str) -> None:
        self._add_element_separator()
        self._buf.write(f'"{_escape(value)}"')

    def append_time(self, value: datetime.datetime) -> None:
        """Append via the configured time encoder, else as Unix nanoseconds."""
        cur = len(self._buf)
        if self.config.encode_time is not None:
            self.config.encode_time(value, self)
        if cur == len(self._buf):
            self.append_int(_unix_nanos(value))

    def append_time_layout(self, t: datetime.datetime, layout: str) -> None:
        self._add_element_separator()
        self._buf.write(f'"{format_time(t, layout)}"')

    def append_reflected(self, value: Any) -> None:
        encoded = self._encode_reflected(value)
        self._add_element_separator()
        self._buf.write(encoded)

    # Entries

    def _empty_clone(self) -> JSONEncoder:
        clone = JSONEncoder.__new__(JSONEncoder)
        clone.config = self.config
        clone._spaced = self._spaced
        clone._buf = _Buffer()
        clone._open_namespaces = self._open_namespaces
        clone._reflect_buf = None
        clone._reflect_enc = None
        return clone

    def clone(self) -> JSONEncoder:
        """Copy the encoder so that fields added to the copy stay out of this one."""
        clone = self._empty_clone()
        clone._buf.write(self._buf.getvalue())
        return clone

    def encode_entry(self, ent: Entry, fields: list[Field] | None) -> str:
        """Encode ``ent``, the accumulated context and ``fields`` as one JSON line."""
        cfg = self.config
        final = self._empty_clone()
        final._buf.write("{")

        if cfg.level_key and cfg.encode_level is not None:
            final._add_key(cfg.level_key)
            cur = len(final._buf)
            cfg.encode_level(ent.level, final)
            if cur == len(final._buf):
                final.append_string(str(ent.level))
        if cfg.time_key:
            final.add_time(cfg.time_key, ent.time)
        if ent.logger_name and cfg.name_key:
            final._add_key(cfg.name_key)
            cur = len(final._buf)
            name_encoder = cfg.encode_name or full_name_encoder
            name_encoder(ent.logger_name, final)
            if cur == len(final._buf):
                final.append_string(ent.logger_name)
        if ent.caller.defined:
            if cfg.caller_key:
                final._add_key(cfg.caller_key)
                cur = len(final._buf)
                if cfg.encode_caller is not None:
                    cfg.encode_caller(ent.caller, final)
                if cur == len(final._buf):
                    final.append_string(str(ent.caller))
            if cfg.function_key:
                final._add_key(cfg.function_key)
                final.append_string(ent.caller.function)
        if cfg.message_key:
            final._add_key(cfg.message_key)
            final.append_string(ent.message)
        if len(self._buf) > 0:
            final._add_element_separator()
            final._buf.write(self._buf.getvalue())
        add_fields(final, list(fields or ()))
        final._close_open_namespaces()
        if ent.stack and cfg.stacktrace_key:
            final.add_string(cfg.stacktrace_key, ent.stack)
        final._buf.write("}")
        final._buf.write(cfg.line_ending)
        return final._buf.getvalue()

    # Internals

    def _encode_reflected(self, obj: Any) -> str:
        if obj is None:
            return "null"
        if self._reflect_buf is None:
            self._reflect_buf = io.StringIO()
            self._reflect_enc = self.config.new_reflected_encoder(self._reflect_buf)
        else:
            self._reflect_buf.seek(0)
            self._reflect_buf.truncate(0)
        self._reflect_enc.encode(obj)
        text = self._reflect_buf.getvalue()
        if text.endswith("\n"):
            text = text[:-1]
        return text

    def _close_open_namespaces(self) -> None:
        self._buf.write("}" * self._open_namespaces)
        self._open_namespaces = 0

    def _add_key(self, key: str) -> None:
        self._add_element_separator()
        self._buf.write(f'"{_escape(key)}":')
        if self._spaced:
            self._buf.write(" ")

    def _add_element_separator(self) -> None:
        last = self._buf.last()
        if not last or last in _NO_SEPARATOR_AFTER:
            return
        self._buf.write(", " if self._spaced else ",")


def new_json_encoder(cfg: EncoderConfig | None) -> JSONEncoder:
    """Create a JSON encoder for ``cfg``."""
    return JSONEncoder(cfg)