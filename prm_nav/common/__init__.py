# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Shared helpers: atomic JSON I/O and query telemetry."""

from .io import atomic_write_json, atomic_write_text, read_json
from .telemetry import QueryStats

__all__ = [
    "atomic_write_text",
    "atomic_write_json",
    "read_json",
    "QueryStats",
]
