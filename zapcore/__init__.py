"""Structured, leveled logging core: levels, entries, fields, JSON encoding and wrapping cores."""

__version__ = "0.1.0"