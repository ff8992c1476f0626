# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Geometry oracle protocol and a reference obstacle implementation.

Summary
-------
The planner never performs collision tests itself. All questions of the
form "is this point free?" or "does this swept segment hit anything?" go
through a :class:`GeometryOracle`. A host application normally adapts its
physics engine to this interface; :class:`ObstacleField` is a small exact
implementation over spheres and axis-aligned boxes used by the demo and
the tests.

Edge validity uses a capsule test: a segment is blocked when the minimum
signed distance from any point on it to an obstacle is below the sweep
radius. For spheres this is closed form. For boxes the signed distance is
convex along the segment, so a golden-section search brackets the minimum
to ``1e-9`` of the segment length; thin obstacles are therefore never
skipped, unlike point sampling along the segment.

See Also
--------
prm_nav.spatial.builder
prm_nav.planning.gradient
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .vectors import ArrayLike3, as_point, segment_point_distance

_INV_PHI = (math.sqrt(5.0) - 1.0) / 2.0
_SEARCH_STEPS = 48


class GeometryOracle(ABC):
    """Collision queries the planner relies on."""

    @abstractmethod
    def is_point_valid(self, point: ArrayLike3, radius: float = 0.0) -> bool:
        """Return ``True`` if a sphere of ``radius`` at ``point`` is free."""

    @abstractmethod
    def segment_blocked(self, a: ArrayLike3, b: ArrayLike3, radius: float = 0.0) -> bool:
        """Return ``True`` if the capsule ``a``-``b`` of ``radius`` hits an obstacle."""

    @abstractmethod
    def penetration_resolve(self, point: ArrayLike3, radius: float) -> np.ndarray:
        """Return the displacement that pushes a sphere at ``point`` out of obstacles."""

    @abstractmethod
    def nearest_surface(self, point: ArrayLike3) -> Tuple[Optional[np.ndarray], float]:
        """Return the closest obstacle surface point and its signed distance."""


@dataclass(frozen=True)
class SphereObstacle:
    center: Tuple[float, float, float]
    radius: float

    def signed_distance(self, p: np.ndarray) -> float:
        return float(np.linalg.norm(p - np.asarray(self.center))) - self.radius

    def normal(self, p: np.ndarray) -> np.ndarray:
        d = p - np.asarray(self.center)
        n = float(np.linalg.norm(d))
        if n < 1e-12:
            return np.array([0.0, 1.0, 0.0])
        return d / n


@dataclass(frozen=True)
class BoxObstacle:
    """Axis-aligned box given by its centre and half extents."""

    center: Tuple[float, float, float]
    half_extents: Tuple[float, float, float]

    def signed_distance(self, p: np.ndarray) -> float:
        q = np.abs(p - np.asarray(self.center)) - np.asarray(self.half_extents)
        outside = float(np.linalg.norm(np.maximum(q, 0.0)))
        inside = min(float(q.max()), 0.0)
        return outside + inside

    def normal(self, p: np.ndarray) -> np.ndarray:
        center = np.asarray(self.center)
        half = np.asarray(self.half_extents)
        rel = p - center
        q = np.abs(rel) - half
        if (q > 0).any():
            closest = center + np.clip(rel, -half, half)
            d = p - closest
            return d / float(np.linalg.norm(d))
        axis = int(np.argmax(q))
        n = np.zeros(3)
        n[axis] = 1.0 if rel[axis] >= 0 else -1.0
        return n


class ObstacleField(GeometryOracle):
    """Exact :class:`GeometryOracle` over spheres and axis-aligned boxes."""

    def __init__(
        self,
        spheres: Iterable[SphereObstacle] = (),
        boxes: Iterable[BoxObstacle] = (),
    ) -> None:
        self.spheres: List[SphereObstacle] = list(spheres)
        self.boxes: List[BoxObstacle] = list(boxes)

    @classmethod
    def from_config(cls, obstacles: Sequence[object]) -> "ObstacleField":
        """Build a field from ``ObstacleConfig``-like records.

        Each record has ``kind`` (``"sphere"`` or ``"box"``), ``center`` and
        either ``radius`` or ``half_extents``.
        """

        spheres: List[SphereObstacle] = []
        boxes: List[BoxObstacle] = []
        for obs in obstacles:
            kind = getattr(obs, "kind")
            center = tuple(float(c) for c in getattr(obs, "center"))
            if kind == "sphere":
                spheres.append(SphereObstacle(center, float(getattr(obs, "radius"))))
            elif kind == "box":
                half = tuple(float(h) for h in getattr(obs, "half_extents"))
                boxes.append(BoxObstacle(center, half))
            else:
                raise ValueError(f"Unknown obstacle kind: {kind}")
        return cls(spheres, boxes)

    def __len__(self) -> int:
        return len(self.spheres) + len(self.boxes)

    # ------------------------------------------------------------------
    def is_point_valid(self, point: ArrayLike3, radius: float = 0.0) -> bool:
        p = as_point(point)
        for obs in self._obstacles():
            if obs.signed_distance(p) < radius:
                return False
        return True

    def segment_blocked(self, a: ArrayLike3, b: ArrayLike3, radius: float = 0.0) -> bool:
        pa = as_point(a)
        pb = as_point(b)
        for sphere in self.spheres:
            if _segment_sphere_distance(pa, pb, sphere) < radius:
                return True
        for box in self.boxes:
            if _segment_min_distance(pa, pb, box) < radius:
                return True
        return False

    def penetration_resolve(self, point: ArrayLike3, radius: float) -> np.ndarray:
        p = np.array(as_point(point))
        total = np.zeros(3)
        for obs in self._obstacles():
            depth = radius - obs.signed_distance(p)
            if depth > 0:
                push = obs.normal(p) * depth
                total += push
                p = p + push
        return total

    def nearest_surface(self, point: ArrayLike3) -> Tuple[Optional[np.ndarray], float]:
        p = as_point(point)
        best: Optional[np.ndarray] = None
        best_dist = math.inf
        for obs in self._obstacles():
            d = obs.signed_distance(p)
            if d < best_dist:
                best_dist = d
                best = p - obs.normal(p) * d
        return best, best_dist

    def _obstacles(self) -> Iterable[object]:
        yield from self.spheres
        yield from self.boxes


def _segment_sphere_distance(a: np.ndarray, b: np.ndarray, sphere: SphereObstacle) -> float:
    return segment_point_distance(a, b, np.asarray(sphere.center)) - sphere.radius


def _segment_min_distance(a: np.ndarray, b: np.ndarray, box: BoxObstacle) -> float:
    """Minimise the convex signed distance of ``box`` along ``a``-``b``."""

    ab = b - a
    lo, hi = 0.0, 1.0
    x1 = hi - _INV_PHI * (hi - lo)
    x2 = lo + _INV_PHI * (hi - lo)
    f1 = box.signed_distance(a + x1 * ab)
    f2 = box.signed_distance(a + x2 * ab)
    for _ in range(_SEARCH_STEPS):
        if f1 <= f2:
            hi, x2, f2 = x2, x1, f1
            x1 = hi - _INV_PHI * (hi - lo)
            f1 = box.signed_distance(a + x1 * ab)
        else:
            lo, x1, f1 = x1, x2, f2
            x2 = lo + _INV_PHI * (hi - lo)
            f2 = box.signed_distance(a + x2 * ab)
    return min(f1, f2, box.signed_distance(a), box.signed_distance(b))


__all__ = [
    "GeometryOracle",
    "ObstacleField",
    "SphereObstacle",
    "BoxObstacle",
]
