"""Typed key-value pairs that add themselves to an object encoder."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


class FieldType(IntEnum):
    """Which member of a Field carries its value, and how to encode it."""

    UNKNOWN = 0
    ARRAY_MARSHALER = 1
    OBJECT_MARSHALER = 2
    BINARY = 3
    BOOL = 4
    BYTE_STRING = 5
    COMPLEX128 = 6
    COMPLEX64 = 7
    DURATION = 8
    FLOAT64 = 9
    FLOAT32 = 10
    INT64 = 11
    INT32 = 12
    INT16 = 13
    INT8 = 14
    STRING = 15
    TIME = 16
    TIME_FULL = 17
    UINT64 = 18
    UINT32 = 19
    UINT16 = 20
    UINT8 = 21
    UINTPTR = 22
    REFLECT = 23
    NAMESPACE = 24
    STRINGER = 25
    ERROR = 26
    SKIP = 27
    INLINE_MARSHALER = 28


def _wrap_signed(value: int, bits: int) -> int:
    mask = (1 << bits) - 1
    value &= mask
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _wrap_unsigned(value: int, bits: int) -> int:
    return value & ((1 << bits) - 1)


def _time_from_nanos(nanos: int, tz: datetime.tzinfo | None) -> datetime.datetime:
    moment = _EPOCH + datetime.timedelta(microseconds=nanos // 1000)
    return moment.astimezone(tz)


def _deep_equal(a: Any, b: Any) -> bool:
    if isinstance(a, BaseException) and isinstance(b, BaseException):
        return a is b or (type(a) is type(b) and a.args == b.args)
    return a == b


@dataclass(frozen=True)
class Field:
    """A lazily encoded key-value pair for a log context.

    Integers, booleans (as 0/1), durations (nanoseconds) and ``TIME`` values
    (Unix nanoseconds, with an optional tzinfo in ``interface``) live in
    ``integer``; strings in ``string``; everything else in ``interface``.
    """

    key: str = ""
    type: FieldType = FieldType.UNKNOWN
    integer: int = 0
    string: str = ""
    interface: Any = None

    def _report(self, enc: Any, func: Any, *args: Any) -> None:
        try:
            func(*args)
        except Exception as exc:
            enc.add_string(f"{self.key}Error", str(exc))

    def add_to(self, enc: Any) -> None:
        """Add this field to the object encoder ``enc``.

        Failures of marshalers, stringers and errors are recorded under
        ``<key>Error``; an unknown field type raises ``ValueError``.
        """
        key = self.key
        match self.type:
            case FieldType.ARRAY_MARSHALER:
                self._report(enc, enc.add_array, key, self.interface)
            case FieldType.OBJECT_MARSHALER:
                self._report(enc, enc.add_object, key, self.interface)
            case FieldType.INLINE_MARSHALER:
                self._report(enc, self.interface.marshal_log_object, enc)
            case FieldType.BINARY:
                enc.add_binary(key, self.interface)
            case FieldType.BOOL:
                enc.add_bool(key, self.integer == 1)
            case FieldType.BYTE_STRING:
                enc.add_byte_string(key, self.interface)
            case FieldType.COMPLEX128:
                enc.add_complex128(key, self.interface)
            case FieldType.COMPLEX64:
                enc.add_complex64(key, self.interface)
            case FieldType.DURATION:
                enc.add_duration(key, self.integer)
            case FieldType.FLOAT64:
                enc.add_float64(key, self.interface)
            case FieldType.FLOAT32:
                enc.add_float32(key, self.interface)
            case FieldType.INT64:
                enc.add_int(key, _wrap_signed(self.integer, 64))
            case FieldType.INT32:
                enc.add_int(key, _wrap_signed(self.integer, 32))
            case FieldType.INT16:
                enc.add_int(key, _wrap_signed(self.integer, 16))
            case FieldType.INT8:
                enc.add_int(key, _wrap_signed(self.integer, 8))
            case FieldType.STRING:
                enc.add_string(key, self.string)
            case FieldType.TIME:
                enc.add_time(key, _time_from_nanos(self.integer, self.interface))
            case FieldType.TIME_FULL:
                enc.add_time(key, self.interface)
            case FieldType.UINT64 | FieldType.UINTPTR:
                enc.add_uint(key, _wrap_unsigned(self.integer, 64))
            case FieldType.UINT32:
                enc.add_uint(key, _wrap_unsigned(self.integer, 32))
            case FieldType.UINT16:
                enc.add_uint(key, _wrap_unsigned(self.integer, 16))
            case FieldType.UINT8:
                enc.add_uint(key, _wrap_unsigned(self.integer, 8))
            case FieldType.REFLECT:
                self._report(enc, enc.add_reflected, key, self.interface)
            case FieldType.NAMESPACE:
                enc.open_namespace(key)
            case FieldType.STRINGER:
                self._report(enc, _encode_stringer, key, self.interface, enc)
            case FieldType.ERROR:
                self._report(enc, encode_error, key, self.interface, enc)
            case FieldType.SKIP:
                pass
            case _:
                raise ValueError(f"unknown field type: {self!r}")

    def equals(self, other: Field) -> bool:
        """Report whether two fields are equal, comparing payloads deeply."""
        if self.type != other.type or self.key != other.key:
            return False
        match self.type:
            case FieldType.BINARY | FieldType.BYTE_STRING:
                return bytes(self.interface) == bytes(other.interface)
            case (
                FieldType.ARRAY_MARSHALER
                | FieldType.OBJECT_MARSHALER
                | FieldType.ERROR
                | FieldType.REFLECT
            ):
                return _deep_equal(self.interface, other.interface)
            case FieldType.TIME_FULL:
                return (
                    self.interface == other.interface
                    and self.interface.tzinfo == other.interface.tzinfo
                )
            case _:
                return self == other


def add_fields(enc: Any, fields: list[Field]) -> None:
    """Add every field in ``fields`` to ``enc`` in order."""
    for fld in fields:
        fld.add_to(enc)


def _panic(exc: BaseException) -> RuntimeError:
    return RuntimeError(f"PANIC={exc}")


def _encode_stringer(key: str, stringer: Any, enc: Any) -> None:
    if stringer is None:
        enc.add_string(key, "<nil>")
        return
    try:
        text = str(stringer)
    except Exception as exc:
        raise _panic(exc) from exc
    enc.add_string(key, text)


def _causes(err: BaseException) -> list[Any] | None:
    if isinstance(err, BaseExceptionGroup):
        return list(err.exceptions)
    errors = getattr(err, "errors", None)
    if callable(errors):
        return list(errors())
    return None


def _verbose(err: BaseException) -> str | None:
    if type(err).__format__ is object.__format__:
        return None
    return format(err, "+v")


def encode_error(key: str, err: Any, enc: Any) -> None:
    """Add ``err`` to ``enc`` under ``key``.

    Error groups (exception groups, or errors with an ``errors()`` method)
    add a ``<key>Causes`` array; errors with a custom ``__format__`` whose
    ``+v`` form differs from ``str`` add ``<key>Verbose``. A failure while
    rendering the error raises ``RuntimeError("PANIC=...")``.
    """
    if err is None:
        enc.add_string(key, "<nil>")
        return
    try:
        basic = str(err)
    except Exception as exc:
        raise _panic(exc) from exc
    enc.add_string(key, basic)

    causes = _causes(err)
    if causes is not None:
        enc.add_array(f"{key}Causes", _ErrArray(causes))
        return
    try:
        verbose = _verbose(err)
    except Exception as exc:
        raise _panic(exc) from exc
    if verbose is not None and verbose != basic:
        enc.add_string(f"{key}Verbose", verbose)


@dataclass(frozen=True)
class _ErrArrayElem:
    err: Any

    def marshal_log_array(self, arr: Any) -> None:
        arr.append_object(self)

    def marshal_log_object(self, enc: Any) -> None:
        encode_error("error", self.err, enc)


@dataclass(frozen=True)
class _ErrArray:
    errors: list[Any]

    def marshal_log_array(self, arr: Any) -> None:
        for err in self.errors:
            if err is None:
                continue
            try:
                arr.append_object(_ErrArrayElem(err))
            except Exception:
                continue