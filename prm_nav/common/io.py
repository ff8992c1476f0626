# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Atomic JSON persistence for roadmaps and run summaries.

Writes go to a sibling temp file that is flushed, synced and renamed over
the target, so a roadmap on disk is always either the old or the new one.
Non-finite floats are stored as the strings ``"inf"``, ``"-inf"`` and
``"nan"``; ``float()`` reads them back.
"""

from __future__ import annotations

import json
import math
import os
import tempfile
import threading
from collections import defaultdict
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import numpy as np

_path_locks: defaultdict[Path, threading.Lock] = defaultdict(threading.Lock)
_registry_lock = threading.Lock()


@contextmanager
def _locked(path: Path) -> Iterator[Path]:
    """Hold the in-process lock of ``path`` and yield its resolved form."""

    resolved = path.resolve()
    with _registry_lock:
        lock = _path_locks[resolved]
    with lock:
        yield resolved


def _encode(obj: Any) -> Any:
    """Convert numpy values and non-finite floats into JSON-safe values."""

    if isinstance(obj, np.ndarray):
        return [_encode(v) for v in obj.tolist()]
    if isinstance(obj, (list, tuple)):
        return [_encode(v) for v in obj]
    if isinstance(obj, dict):
        return {str(k): _encode(v) for k, v in obj.items()}
    if isinstance(obj, np.generic):
        obj = obj.item()
    if isinstance(obj, float) and not math.isfinite(obj):
        return "inf" if obj > 0 else "-inf" if obj < 0 else "nan"
    return obj


def atomic_write_text(path: str | Path, text: str) -> None:
    """Replace ``path`` with ``text`` in one rename."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with _locked(target) as resolved:
        fd, tmp_name = tempfile.mkstemp(
            dir=resolved.parent, prefix=f".{resolved.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, resolved)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def atomic_write_json(path: str | Path, obj: Any) -> None:
    """Atomically write ``obj`` as JSON, converting numpy values."""

    atomic_write_text(path, json.dumps(_encode(obj)))


def read_json(path: str | Path) -> Any:
    """Load a JSON file written by :func:`atomic_write_json`."""

    with _locked(Path(path)) as resolved:
        return json.loads(resolved.read_text(encoding="utf-8"))


__all__ = ["atomic_write_text", "atomic_write_json", "read_json"]
