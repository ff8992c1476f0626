"""Probabilistic roadmap construction.

Summary
-------
Places waypoints with Mitchell's best-candidate approximation of
Poisson-disc sampling and connects every pair that is close enough and
whose swept segment is free of obstacles. Construction never fails for
lack of connectivity: a poorly sampled scene simply yields a sparser or
disconnected graph, which downstream shows up as unreached nodes.

Side Effects
------------
Logs point and edge counts with timings at ``INFO``.

Complexity
----------
Sampling is ``O(N^2 K)`` for ``N`` slots and ``K`` candidates; connection
is ``O(N^2)`` oracle calls in the worst case. The octree only prunes pairs
beyond the connection distance and never changes the result.

See Also
--------
prm_nav.spatial.roadmap.Roadmap
prm_nav.geometry.oracle.GeometryOracle
"""

from __future__ import annotations

import logging
import time
from typing import List, Optional

import numpy as np

from prm_nav.config import BoundsConfig, OctreeConfig, RoadmapConfig
from prm_nav.geometry.oracle import GeometryOracle
from prm_nav.geometry.vectors import ArrayLike3, as_point, as_points

from .octree import Octree
from .roadmap import NO_EDGE, Roadmap

logger = logging.getLogger(__name__)


class RoadmapBuilder:
    """Build :class:`Roadmap` objects for one scene.

    Parameters
    ----------
    bounds : BoundsConfig
        Raw sampling volume; shrunk by ``config.agent_radius`` before use.
    oracle : GeometryOracle
        Collision queries for points and swept segments.
    config : RoadmapConfig, optional
        Sampling and connection parameters.
    octree : OctreeConfig, optional
        Leaf size used for the roadmap's spatial index.
    rng : numpy.random.Generator, optional
        Random source; defaults to one seeded from ``config.seed``.
    """

    def __init__(
        self,
        bounds: BoundsConfig,
        oracle: GeometryOracle,
        config: Optional[RoadmapConfig] = None,
        *,
        octree: Optional[OctreeConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = config or RoadmapConfig()
        self.config.validate()
        self.octree = octree or OctreeConfig()
        self.oracle = oracle
        self.bounds = bounds
        self.safe_bounds = bounds.shrink(self.config.agent_radius)
        self.safe_bounds.validate()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self._log = {
            "builds": 0,
            "points_accepted": 0,
            "points_rejected": 0,
            "edges_added": 0,
            "edges_blocked": 0,
        }

    # ------------------------------------------------------------------
    def build(self, start: ArrayLike3, goal: ArrayLike3) -> Roadmap:
        """Sample points around ``start``/``goal`` and connect them.

        The goal becomes node ``0`` and the start node ``1``.
        """

        t0 = time.perf_counter()
        points = self.sample_points(start, goal)
        t1 = time.perf_counter()
        logger.info("spawned %d roadmap points in %.1fms", len(points), (t1 - t0) * 1000)

        roadmap = self.connect_points(points)
        t2 = time.perf_counter()
        logger.info("connected %d roadmap edges in %.1fms", roadmap.edge_count, (t2 - t1) * 1000)
        if len(roadmap) > 1 and roadmap.degree(0) == 0:
            logger.warning("goal node is isolated; every other node will be unreached")
        self._log["builds"] += 1
        return roadmap

    def sample_points(self, start: ArrayLike3, goal: ArrayLike3) -> np.ndarray:
        """Return ``(n, 3)`` points: goal, start, then accepted samples.

        Goal and start are always nodes ``0`` and ``1``; a start on top of
        the goal becomes a zero-length edge.
        """

        cfg = self.config
        accepted: List[np.ndarray] = [np.array(as_point(goal)), np.array(as_point(start))]

        lo = np.array(self.safe_bounds.lower())
        hi = np.array(self.safe_bounds.upper())
        min_dist = cfg.min_point_distance
        for _ in range(cfg.num_points):
            existing = np.stack(accepted)
            candidates = self.rng.uniform(lo, hi, size=(cfg.num_candidates, 3))
            # distance from each candidate to its nearest accepted point
            diffs = candidates[:, None, :] - existing[None, :, :]
            nearest = np.sqrt(np.einsum("ijk,ijk->ij", diffs, diffs).min(axis=1))
            best = int(np.argmax(nearest))
            candidate = candidates[best]

            if (
                not self.safe_bounds.contains(candidate)
                or nearest[best] < min_dist
                or not self.oracle.is_point_valid(candidate, cfg.agent_radius)
            ):
                self._log["points_rejected"] += 1
                continue
            accepted.append(candidate)
            self._log["points_accepted"] += 1
        return as_points(np.stack(accepted))

    def connect_points(self, points: np.ndarray) -> Roadmap:
        """Connect ``points`` into a roadmap.

        An edge ``(i, j)`` exists iff ``|p_i - p_j| <= max_connection_distance``
        and the oracle reports the capsule of ``agent_radius`` between them as
        free.
        """

        cfg = self.config
        pts = as_points(points)
        n = len(pts)
        weights = np.full((n, n), NO_EDGE)
        index = (
            Octree.from_points(pts, self.octree.leaf_size, self.octree.max_depth)
            if cfg.use_index
            else None
        )
        for i in range(n):
            if index is not None:
                candidates = [j for j in index.query_sphere(pts[i], cfg.max_connection_distance) if j > i]
                candidates.sort()
            else:
                candidates = list(range(i + 1, n))
            for j in candidates:
                dist = float(np.linalg.norm(pts[i] - pts[j]))
                if dist > cfg.max_connection_distance:
                    continue
                if self.oracle.segment_blocked(pts[i], pts[j], cfg.agent_radius):
                    self._log["edges_blocked"] += 1
                    continue
                weights[i, j] = weights[j, i] = dist
                self._log["edges_added"] += 1
        return Roadmap(pts, weights, leaf_size=self.octree.leaf_size, index=index)

    def log_status(self) -> dict:
        """Return counters for builds, points and edges."""

        return dict(self._log)


__all__ = ["RoadmapBuilder"]
