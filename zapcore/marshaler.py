"""Interfaces through which values add themselves to a log context.

Marshalers report failure by raising an exception.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ObjectMarshaler(Protocol):
    """A value that writes itself as a map-like object."""

    def marshal_log_object(self, enc: Any) -> None: ...


@runtime_checkable
class ArrayMarshaler(Protocol):
    """A value that writes itself as an array."""

    def marshal_log_array(self, enc: Any) -> None: ...


@dataclass(frozen=True)
class ObjectMarshalerFunc:
    """Adapts a plain function into an ObjectMarshaler."""

    func: Callable[[Any], None]

    def marshal_log_object(self, enc: Any) -> None:
        """Call the wrapped function with the encoder."""
        self.func(enc)


@dataclass(frozen=True)
class ArrayMarshalerFunc:
    """Adapts a plain function into an ArrayMarshaler."""

    func: Callable[[Any], None]

    def marshal_log_array(self, enc: Any) -> None:
        """Call the wrapped function with the encoder."""
        self.func(enc)