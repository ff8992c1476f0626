"""Control-loop facade tying roadmap building, solving and field queries.

Summary
-------
:class:`NavigationController` is driven from a single control loop. It
builds a roadmap for the current start and goal, hands solves to a
:class:`~prm_nav.planning.pathfinder.PathfinderService` and, on every
:meth:`~NavigationController.tick`, publishes a finished field. Agents read
the published field through :meth:`~NavigationController.query_direction`,
which never blocks on a running solve.

Side Effects
------------
Starts daemon solve threads. Logs build timings at ``INFO`` and failed
solves at ``ERROR``.

Examples
--------
>>> from prm_nav.config import NavConfig
>>> from prm_nav.geometry import ObstacleField
>>> nav = NavigationController(NavConfig(), ObstacleField())
>>> nav.query_direction((0.0, 1.0, 0.0)) is None
True
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import numpy as np

from prm_nav.common.telemetry import QueryStats
from prm_nav.config import NavConfig
from prm_nav.geometry.oracle import GeometryOracle
from prm_nav.geometry.vectors import ArrayLike3, as_point
from prm_nav.planning.gradient import FieldRef, GradientField
from prm_nav.planning.pathfinder import (
    PathfinderService,
    SolveHandle,
    SolveResult,
    SolveStatus,
)
from prm_nav.spatial.builder import RoadmapBuilder
from prm_nav.spatial.roadmap import GOAL_ID, Roadmap

logger = logging.getLogger(__name__)


class NavigationController:
    """Own the roadmap, the in-flight solve and the published field.

    Parameters
    ----------
    config : NavConfig
        Validated configuration tree.
    oracle : GeometryOracle
        Scene collision queries.
    rng : numpy.random.Generator, optional
        Sampling source passed to the :class:`RoadmapBuilder`.
    """

    def __init__(
        self,
        config: NavConfig,
        oracle: GeometryOracle,
        *,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = config.validate()
        self.oracle = oracle
        self.builder = RoadmapBuilder(
            config.bounds, oracle, config.roadmap, octree=config.octree, rng=rng
        )
        self.service = PathfinderService(self._make_field)
        self.field_ref = FieldRef()
        self.stats = QueryStats()
        self.roadmap: Optional[Roadmap] = None
        self.last_error: Optional[BaseException] = None
        self._handle: Optional[SolveHandle] = None
        self._start: Optional[np.ndarray] = None
        self._settled: Optional[SolveHandle] = None
        self._lock = threading.Lock()
        self._log = {
            "builds": 0,
            "solves_requested": 0,
            "fields_published": 0,
            "solves_cancelled": 0,
            "solves_failed": 0,
        }

    # ------------------------------------------------------------------
    @property
    def field(self) -> GradientField:
        return self.field_ref.current()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def build(self, start: ArrayLike3, goal: ArrayLike3) -> Roadmap:
        """Build a roadmap with ``goal`` as node 0 and ``start`` as node 1.

        The published field stays in place until the next solve completes.
        """

        t0 = time.perf_counter()
        roadmap = self.builder.build(start, goal)
        index = roadmap.index
        logger.info(
            "roadmap ready: %d nodes, %d edges, octree depth %d in %.1fms",
            len(roadmap),
            roadmap.edge_count,
            index.depth(),
            (time.perf_counter() - t0) * 1000,
        )
        self.roadmap = roadmap
        self._start = as_point(start)
        self._log["builds"] += 1
        return roadmap

    def request_solve(self) -> SolveHandle:
        """Start a background solve from the goal of the current roadmap.

        Raises
        ------
        RuntimeError
            If :meth:`build` has not been called yet.
        """

        if self.roadmap is None:
            raise RuntimeError("build a roadmap before requesting a solve")
        handle = self.service.start_solve(self.roadmap, GOAL_ID)
        with self._lock:
            self._handle = handle
            self._log["solves_requested"] += 1
        return handle

    def relocate_goal(self, goal: ArrayLike3, start: Optional[ArrayLike3] = None) -> SolveHandle:
        """Rebuild around a new goal and request a solve.

        ``start`` defaults to the start passed to the last :meth:`build`.
        """

        if start is None:
            if self._start is None:
                raise RuntimeError("no start position known; pass start explicitly")
            start = self._start
        with self._lock:
            handle = self._handle
        if handle is not None:
            handle.cancel()
        self.build(start, goal)
        return self.request_solve()

    def tick(self) -> Optional[SolveStatus]:
        """Poll the in-flight solve and publish its field if it completed.

        Returns
        -------
        SolveStatus or None
            Status observed this tick, ``None`` when nothing is in flight.
        """

        with self._lock:
            handle = self._handle
        if handle is None:
            return None
        outcome = self.service.poll_result(handle)
        if outcome.status is SolveStatus.PENDING:
            return outcome.status
        with self._lock:
            if handle is self._settled:
                return outcome.status
            self._settled = handle
            # a solve requested while polling stays in flight
            if self._handle is handle:
                self._handle = None
        if outcome.status is SolveStatus.COMPLETED:
            version = self.field_ref.publish(outcome.field)
            self._log["fields_published"] += 1
            logger.info(
                "published field v%d: %d/%d nodes reached",
                version,
                outcome.field.reached_count,
                len(outcome.field),
            )
        elif outcome.status is SolveStatus.CANCELLED:
            self._log["solves_cancelled"] += 1
        else:
            self._log["solves_failed"] += 1
            self.last_error = outcome.error
            logger.error("solve failed, keeping previous field: %s", outcome.error)
        return outcome.status

    def wait_for_solve(self, timeout: Optional[float] = None) -> Optional[SolveStatus]:
        """Block until the in-flight solve finishes, then :meth:`tick`."""

        with self._lock:
            handle = self._handle
        if handle is not None:
            handle.wait(timeout)
        return self.tick()

    # ------------------------------------------------------------------
    def query_direction(self, point: ArrayLike3) -> Optional[np.ndarray]:
        """Steering direction at ``point`` from the current field."""

        t0 = time.perf_counter()
        direction, direct = self.field_ref.current().query(point)
        self.stats.update(
            hit=direction is not None,
            direct=direct,
            latency_ms=(time.perf_counter() - t0) * 1000,
        )
        return direction

    def resolve_position(self, point: ArrayLike3, radius: Optional[float] = None) -> np.ndarray:
        """Push ``point`` out of any obstacle it penetrates."""

        r = self.config.roadmap.agent_radius if radius is None else radius
        p = as_point(point)
        return p + self.oracle.penetration_resolve(p, r)

    def log_status(self) -> dict:
        field, version = self.field_ref.snapshot()
        status = dict(self._log)
        status.update(
            {
                "field_version": version,
                "reached": field.reached_count,
                "nodes": 0 if self.roadmap is None else len(self.roadmap),
                "edges": 0 if self.roadmap is None else self.roadmap.edge_count,
                "queries": self.stats.snapshot(),
                "builder": self.builder.log_status(),
                "service": self.service.log_status(),
            }
        )
        return status

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Cancel and join the in-flight solve."""

        self.service.shutdown(timeout)
        with self._lock:
            self._handle = None

    # ------------------------------------------------------------------
    def _make_field(self, roadmap: Roadmap, result: SolveResult) -> GradientField:
        return GradientField.from_solve(roadmap, result, self.oracle, self.config.gradient)


__all__ = ["NavigationController"]
