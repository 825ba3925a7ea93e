"""An object encoder backed by plain dicts and lists, handy in tests."""

from __future__ import annotations

import math
import struct
from typing import Any


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _to_complex64(value: complex) -> complex:
    value = complex(value)
    return complex(_to_float32(value.real), _to_float32(value.imag))


class _SliceArrayEncoder:
    """Array encoder that collects elements in a list."""

    def __init__(self) -> None:
        self.elems: list[Any] = []

    def append_array(self, marshaler: Any) -> None:
        inner = _SliceArrayEncoder()
        try:
            marshaler.marshal_log_array(inner)
        finally:
            self.elems.append(inner.elems)

    def append_object(self, marshaler: Any) -> None:
        obj = MapObjectEncoder()
        try:
            marshaler.marshal_log_object(obj)
        finally:
            self.elems.append(obj.fields)

    def append_reflected(self, value: Any) -> None:
        self.elems.append(value)

    def append_bool(self, value: bool) -> None:
        self.elems.append(value)

    def append_byte_string(self, value: bytes) -> None:
        self.elems.append(bytes(value).decode("utf-8", errors="replace"))

    def append_complex128(self, value: complex) -> None:
        self.elems.append(complex(value))

    def append_complex64(self, value: complex) -> None:
        self.elems.append(_to_complex64(value))

    def append_duration(self, value: Any) -> None:
        self.elems.append(value)

    def append_float64(self, value: float) -> None:
        self.elems.append(value)

    def append_float32(self, value: float) -> None:
        self.elems.append(_to_float32(value))

    def append_int(self, value: int) -> None:
        self.elems.append(value)

    def append_uint(self, value: int) -> None:
        self.elems.append(value)

    def append_string(self, value: str) -> None:
        self.elems.append(value)

    def append_time(self, value: Any) -> None:
        self.elems.append(value)


class MapObjectEncoder:
    """Object encoder that stores everything in a nested ``dict``.

    ``fields`` holds the whole encoded context. Not meant for production use.
    """

    def __init__(self) -> None:
        self.fields: dict[str, Any] = {}
        self._cur = self.fields

    def add_array(self, key: str, marshaler: Any) -> None:
        """Store the elements written by ``marshaler`` as a list."""
        arr = _SliceArrayEncoder()
        try:
            marshaler.marshal_log_array(arr)
        finally:
            self._cur[key] = arr.elems

    def add_object(self, key: str, marshaler: Any) -> None:
        """Store the fields written by ``marshaler`` as a nested dict."""
        obj = MapObjectEncoder()
        self._cur[key] = obj.fields
        marshaler.marshal_log_object(obj)

    def add_binary(self, key: str, value: bytes) -> None:
        self._cur[key] = bytes(value)

    def add_byte_string(self, key: str, value: bytes) -> None:
        self._cur[key] = bytes(value).decode("utf-8", errors="replace")

    def add_bool(self, key: str, value: bool) -> None:
        self._cur[key] = value

    def add_complex128(self, key: str, value: complex) -> None:
        self._cur[key] = complex(value)

    def add_complex64(self, key: str, value: complex) -> None:
        self._cur[key] = _to_complex64(value)

    def add_duration(self, key: str, value: Any) -> None:
        self._cur[key] = value

    def add_float64(self, key: str, value: float) -> None:
        self._cur[key] = value

    def add_float32(self, key: str, value: float) -> None:
        self._cur[key] = _to_float32(value)

    def add_int(self, key: str, value: int) -> None:
        self._cur[key] = value

    def add_uint(self, key: str, value: int) -> None:
        self._cur[key] = value

    def add_string(self, key: str, value: str) -> None:
        self._cur[key] = value

    def add_time(self, key: str, value: Any) -> None:
        self._cur[key] = value

    def add_reflected(self, key: str, value: Any) -> None:
        self._cur[key] = value

    def open_namespace(self, key: str) -> None:
        """Nest every later field under ``key``."""
        namespace: dict[str, Any] = {}
        self._cur[key] = namespace
        self._cur = namespace