"""Roadmap graph: sampled points plus a symmetric weight matrix.

Summary
-------
Node ``i`` is ``points[i]``; node ``0`` is the goal. ``weights[i, j]`` is
the Euclidean edge length or :data:`NO_EDGE` (``-inf``) when the pair is
not connected. The diagonal always holds :data:`NO_EDGE`.

The roadmap and its octree are read-only for an episode, so any number of
threads may query them concurrently.

See Also
--------
prm_nav.spatial.builder.RoadmapBuilder
"""

from __future__ import annotations

import math
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from prm_nav.common import io
from prm_nav.geometry.vectors import as_points

from .octree import DEFAULT_LEAF_SIZE, Octree

NO_EDGE = -math.inf
GOAL_ID = 0


class Roadmap:
    """Probabilistic roadmap over a static scene."""

    def __init__(
        self,
        points: np.ndarray,
        weights: np.ndarray,
        *,
        leaf_size: int = DEFAULT_LEAF_SIZE,
        index: Optional[Octree] = None,
    ) -> None:
        pts = as_points(points)
        w = np.array(weights, dtype=np.float64)
        n = len(pts)
        if w.shape != (n, n):
            raise ValueError(f"weights must be ({n}, {n}), got {w.shape}")
        np.fill_diagonal(w, NO_EDGE)
        if not np.array_equal(w, w.T):
            raise ValueError("weights must be symmetric")
        if (w[np.isfinite(w)] < 0).any():
            raise ValueError("edge weights must be non-negative")
        w.setflags(write=False)
        self.points = pts
        self.weights = w
        self.leaf_size = leaf_size
        self._index = index

    @classmethod
    def from_edges(
        cls,
        points: np.ndarray,
        edges: List[Tuple[int, int]],
        *,
        leaf_size: int = DEFAULT_LEAF_SIZE,
    ) -> "Roadmap":
        """Connect ``edges`` with Euclidean weights."""

        pts = as_points(points)
        w = np.full((len(pts), len(pts)), NO_EDGE)
        for i, j in edges:
            if i == j:
                continue
            d = float(np.linalg.norm(pts[i] - pts[j]))
            w[i, j] = w[j, i] = d
        return cls(pts, w, leaf_size=leaf_size)

    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.points)

    @property
    def goal(self) -> np.ndarray:
        return self.points[GOAL_ID]

    @property
    def index(self) -> Octree:
        """Octree over :attr:`points`, built on first use."""

        if self._index is None:
            self._index = Octree.from_points(self.points, leaf_size=self.leaf_size)
        return self._index

    @cached_property
    def edge_count(self) -> int:
        return int(np.isfinite(self.weights).sum()) // 2

    def has_edge(self, i: int, j: int) -> bool:
        return i != j and not math.isinf(self.weights[i, j])

    def neighbors(self, i: int) -> Iterator[Tuple[int, float]]:
        """Yield ``(j, weight)`` for every node connected to ``i``."""

        row = self.weights[i]
        for j in np.flatnonzero(np.isfinite(row)):
            yield int(j), float(row[j])

    def degree(self, i: int) -> int:
        return int(np.isfinite(self.weights[i]).sum())

    def isolated(self) -> List[int]:
        """Return ids of nodes without any edge."""

        return [int(i) for i in np.flatnonzero(~np.isfinite(self.weights).any(axis=1))]

    # ------------------------------------------------------------------
    # Persistence
    def to_dict(self) -> Dict[str, Any]:
        edges = [
            [i, j, float(self.weights[i, j])]
            for i, j in zip(*np.nonzero(np.triu(np.isfinite(self.weights), k=1)))
        ]
        return {
            "schema": "prm_nav.roadmap.v1",
            "leaf_size": self.leaf_size,
            "points": self.points,
            "edges": edges,
        }

    def save(self, path: str | Path) -> None:
        """Write the roadmap to ``path`` as JSON."""

        io.atomic_write_json(path, self.to_dict())

    @classmethod
    def load(cls, path: str | Path, *, leaf_size: Optional[int] = None) -> "Roadmap":
        """Read a roadmap written by :meth:`save`."""

        rec = io.read_json(path)
        if rec.get("schema") != "prm_nav.roadmap.v1":
            raise ValueError(f"unsupported roadmap schema: {rec.get('schema')}")
        pts = as_points(rec["points"])
        w = np.full((len(pts), len(pts)), NO_EDGE)
        for i, j, weight in rec["edges"]:
            w[int(i), int(j)] = w[int(j), int(i)] = float(weight)
        return cls(pts, w, leaf_size=leaf_size or int(rec.get("leaf_size", DEFAULT_LEAF_SIZE)))


__all__ = ["Roadmap", "NO_EDGE", "GOAL_ID"]
