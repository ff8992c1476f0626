"""Flow field derived from a solved roadmap.

Summary
-------
Every reached node stores the vector towards its parent on the shortest
path to the goal. :meth:`GradientField.query_direction` turns those into a
steering direction for an arbitrary point:

1. with a free line to the goal, head straight for it;
2. otherwise average the stored directions of the nearest visible nodes.

A field is immutable once built. :class:`FieldRef` publishes new fields by
reference swap so readers on the control loop always see a complete
snapshot.

Examples
--------
>>> GradientField.empty().query_direction((0.0, 0.0, 0.0)) is None
True
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from prm_nav.config import FieldConfig
from prm_nav.geometry.oracle import GeometryOracle
from prm_nav.geometry.vectors import ArrayLike3, as_point, clamp_magnitude, normalize
from prm_nav.spatial.octree import Octree
from prm_nav.spatial.roadmap import Roadmap

from .pathfinder import SolveResult


@dataclass(frozen=True)
class GradientEntry:
    node_id: int
    position: np.ndarray
    direction: np.ndarray
    depth: float


class GradientField:
    """Read-only per-node directions plus the query that blends them.

    Parameters
    ----------
    positions : numpy.ndarray
        ``(n, 3)`` roadmap points.
    directions : numpy.ndarray
        ``(n, 3)`` vectors ``parent - node``; zero for the goal and for
        unreached nodes.
    depths : numpy.ndarray
        Distance to the goal along the roadmap, ``inf`` if unreached.
    goal_id : int
        Node the field converges on.
    oracle : GeometryOracle, optional
        Line-of-sight test; ``None`` only for :meth:`empty`.
    config : FieldConfig, optional
        Sampling radius, neighbour count and weighting.
    index : Octree, optional
        Spatial index over ``positions``.
    """

    def __init__(
        self,
        positions: np.ndarray,
        directions: np.ndarray,
        depths: np.ndarray,
        goal_id: int,
        oracle: Optional[GeometryOracle],
        config: Optional[FieldConfig] = None,
        *,
        index: Optional[Octree] = None,
    ) -> None:
        self.positions = positions
        self.directions = directions
        self.depths = depths
        self.goal_id = goal_id
        self.oracle = oracle
        self.config = config or FieldConfig()
        self.config.validate()
        self.reached = np.isfinite(depths)
        self._index = index
        for arr in (self.directions, self.depths, self.reached):
            arr.setflags(write=False)

    @classmethod
    def empty(cls) -> "GradientField":
        """Field of an unsolved scene; every query yields ``None``."""

        return cls(np.zeros((0, 3)), np.zeros((0, 3)), np.zeros(0), -1, None)

    @classmethod
    def from_solve(
        cls,
        roadmap: Roadmap,
        result: SolveResult,
        oracle: GeometryOracle,
        config: Optional[FieldConfig] = None,
    ) -> "GradientField":
        """Derive per-node directions from a finished solve."""

        points = roadmap.points
        directions = np.zeros_like(points)
        has_parent = result.parents >= 0
        directions[has_parent] = points[result.parents[has_parent]] - points[has_parent]
        return cls(
            points,
            directions,
            np.array(result.depths, dtype=np.float64),
            result.goal_id,
            oracle,
            config,
            index=roadmap.index,
        )

    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.positions)

    @property
    def solved(self) -> bool:
        return self.oracle is not None and 0 <= self.goal_id < len(self.positions)

    @property
    def reached_count(self) -> int:
        return int(self.reached.sum())

    @property
    def max_depth(self) -> float:
        """Largest finite depth, ``0.0`` for an empty field."""

        if not self.reached.any():
            return 0.0
        return float(self.depths[self.reached].max())

    def direction_at(self, node_id: int) -> Optional[np.ndarray]:
        """Stored direction of ``node_id`` or ``None`` if unreached."""

        if not self.reached[node_id]:
            return None
        return self.directions[node_id]

    def entries(self) -> Iterator[GradientEntry]:
        for i in np.flatnonzero(self.reached):
            yield GradientEntry(int(i), self.positions[i], self.directions[i], float(self.depths[i]))

    # ------------------------------------------------------------------
    def query_direction(self, point: ArrayLike3) -> Optional[np.ndarray]:
        """Return the steering direction at ``point``.

        Returns
        -------
        numpy.ndarray or None
            The goal offset clamped to unit length when the goal is in
            sight, else the normalised blend of nearby stored directions.
            ``None`` if the field is unsolved or nothing usable is visible.
        """

        return self.query(point)[0]

    def query(self, point: ArrayLike3) -> Tuple[Optional[np.ndarray], bool]:
        """Like :meth:`query_direction` but also report whether the goal was in sight."""

        if not self.solved:
            return None, False
        assert self.oracle is not None
        p = as_point(point)
        sight = self.config.sight_radius
        goal = self.positions[self.goal_id]
        if not self.oracle.segment_blocked(p, goal, sight):
            return clamp_magnitude(goal - p, 1.0), True

        visible = [
            (i, dist)
            for i, dist in self.nearest_reached(p)
            if not self.oracle.segment_blocked(p, self.positions[i], sight)
        ]
        if not visible:
            return None, False
        ids = np.array([i for i, _ in visible])
        if self.config.weighting == "inverse_distance":
            dists = np.array([d for _, d in visible])
            weights = 1.0 / np.maximum(dists, 1e-6)
        else:
            weights = np.ones(len(ids))
        blended = (self.directions[ids] * weights[:, None]).sum(axis=0) / weights.sum()
        return normalize(blended), False

    def nearest_reached(self, point: ArrayLike3) -> List[Tuple[int, float]]:
        """Return up to ``neighbor_count`` reached nodes within the sampling radius."""

        p = as_point(point)
        radius = self.config.sampling_radius
        found: List[Tuple[int, float]] = []
        for i in self._spatial_index().query_radius(p, radius):
            if not self.reached[i]:
                continue
            found.append((i, float(np.linalg.norm(self.positions[i] - p))))
            if len(found) == self.config.neighbor_count:
                break
        return found

    def _spatial_index(self) -> Octree:
        if self._index is None:
            self._index = Octree.from_points(self.positions)
        return self._index


class FieldRef:
    """Current field plus a version number, swapped atomically."""

    def __init__(self, field: Optional[GradientField] = None) -> None:
        self._lock = threading.Lock()
        self._field = field if field is not None else GradientField.empty()
        self._version = 0

    def publish(self, field: GradientField) -> int:
        """Replace the current field; return the new version."""

        with self._lock:
            self._field = field
            self._version += 1
            return self._version

    def current(self) -> GradientField:
        with self._lock:
            return self._field

    def snapshot(self) -> Tuple[GradientField, int]:
        with self._lock:
            return self._field, self._version

    @property
    def version(self) -> int:
        with self._lock:
            return self._version


__all__ = ["GradientEntry", "GradientField", "FieldRef"]
