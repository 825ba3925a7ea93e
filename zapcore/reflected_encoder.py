"""Fallback serialisation of arbitrary values as JSON."""

from __future__ import annotations

import base64
import dataclasses
import datetime
import json
import math
from collections.abc import Mapping
from typing import Any, Protocol, TextIO


class ReflectedEncoder(Protocol):
    """Serialises values the structured encoders cannot handle directly."""

    def encode(self, obj: Any) -> None: ...


def _float_name(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "+Inf" if value > 0 else "-Inf"


def _map_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, int) and not isinstance(key, bool):
        return str(key)
    raise TypeError(f"json: unsupported type: map key {type(key).__name__}")


def _to_json_value(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, str)):
        return obj
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise ValueError(f"json: unsupported value: {_float_name(obj)}")
        return obj
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return base64.standard_b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, Mapping):
        items = sorted((_map_key(k), v) for k, v in obj.items())
        return {k: _to_json_value(v) for k, v in items}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: _to_json_value(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
            if not f.name.startswith("_")
        }
    if isinstance(obj, (list, tuple)):
        return [_to_json_value(item) for item in obj]
    if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
        return obj.isoformat()
    if callable(obj) or isinstance(obj, complex):
        raise TypeError(f"json: unsupported type: {type(obj).__name__}")
    attrs = getattr(obj, "__dict__", None)
    if attrs is not None:
        return {k: _to_json_value(v) for k, v in attrs.items() if not k.startswith("_")}
    raise TypeError(f"json: unsupported type: {type(obj).__name__}")


class JSONReflectedEncoder:
    """Writes each value as one line of compact JSON to a text writer.

    Mapping keys are sorted; dataclass fields keep their declared order.
    Nothing is written when a value cannot be encoded.
    """

    def __init__(self, writer: TextIO) -> None:
        self._writer = writer

    def encode(self, obj: Any) -> None:
        """Encode ``obj`` and write it followed by a newline."""
        text = json.dumps(
            _to_json_value(obj),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        self._writer.write(text + "\n")


def default_reflected_encoder(writer: TextIO) -> ReflectedEncoder:
    """Return the reflected encoder used when none is configured."""
    return JSONReflectedEncoder(writer)