"""Small vector helpers shared by the geometry and planning modules."""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

ArrayLike3 = Union[Sequence[float], np.ndarray]

_EPS = 1e-12


def as_point(value: ArrayLike3) -> np.ndarray:
    """Return ``value`` as a read-only ``float64`` array of shape ``(3,)``."""

    arr = np.array(value, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3D point, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


def as_points(values: Union[Sequence[ArrayLike3], np.ndarray]) -> np.ndarray:
    """Return ``values`` as a read-only ``(n, 3)`` array."""

    arr = np.array(values, dtype=np.float64)
    if arr.size == 0:
        arr = arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"expected an (n, 3) array, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


def normalize(vec: np.ndarray) -> Optional[np.ndarray]:
    """Return ``vec`` scaled to unit length or ``None`` for a zero vector."""

    norm = float(np.linalg.norm(vec))
    if norm < _EPS:
        return None
    return vec / norm


def clamp_magnitude(vec: np.ndarray, max_length: float) -> np.ndarray:
    """Scale ``vec`` down so its length does not exceed ``max_length``."""

    norm = float(np.linalg.norm(vec))
    if norm <= max_length or norm < _EPS:
        return np.array(vec, dtype=np.float64)
    return vec * (max_length / norm)


def segment_point_distance(a: np.ndarray, b: np.ndarray, p: np.ndarray) -> float:
    """Return the distance from ``p`` to the closed segment ``a``-``b``."""

    ab = b - a
    denom = float(ab @ ab)
    if denom < _EPS:
        return float(np.linalg.norm(p - a))
    t = float(np.clip((p - a) @ ab / denom, 0.0, 1.0))
    return float(np.linalg.norm(p - (a + t * ab)))


__all__ = [
    "ArrayLike3",
    "as_point",
    "as_points",
    "normalize",
    "clamp_magnitude",
    "segment_point_distance",
]
