# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Single-source Dijkstra over a roadmap, run off the control loop.

Summary
-------
:func:`solve` expands the roadmap from the goal and returns, for every
reached node, its shortest distance to the goal and the next hop towards
it. It polls a cancel flag once per popped node, so cancellation latency
is bounded by one relaxation step.

:class:`SolveHandle` runs one solve on a daemon thread and is polled by the
control loop. :class:`PathfinderService` keeps at most one solve in flight:
starting a new solve cancels the running one and waits until it has
stopped, so two solves never race to publish a field.

State machine of a handle::

    IDLE -> RUNNING -> {COMPLETED, CANCELLED, FAILED}

Complexity
----------
``O((V + E) log V)`` per solve.

See Also
--------
prm_nav.planning.queue.PriorityQueue
prm_nav.planning.gradient.GradientField
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from prm_nav.errors import SolveCancelled, SolveFailed
from prm_nav.spatial.roadmap import GOAL_ID, Roadmap

from .queue import PriorityQueue, SearchNode

logger = logging.getLogger(__name__)

NO_PARENT = -1


@dataclass
class SolveResult:
    """Shortest-path tree rooted at ``goal_id``.

    ``depths[i]`` is ``inf`` and ``parents[i]`` is ``-1`` for unreached
    nodes; the goal has depth ``0`` and parent ``-1``.
    """

    goal_id: int
    depths: np.ndarray
    parents: np.ndarray
    elapsed_ms: float = 0.0

    @property
    def reached(self) -> np.ndarray:
        return np.isfinite(self.depths)

    @property
    def reached_count(self) -> int:
        return int(self.reached.sum())

    def path_to_goal(self, node_id: int) -> List[int]:
        """Return ``[node_id, ..., goal_id]`` or ``[]`` if unreached."""

        if not np.isfinite(self.depths[node_id]):
            return []
        path = [int(node_id)]
        while path[-1] != self.goal_id:
            path.append(int(self.parents[path[-1]]))
        return path


def solve(
    roadmap: Roadmap,
    goal_id: int = GOAL_ID,
    cancel_event: Optional[threading.Event] = None,
) -> SolveResult:
    """Run Dijkstra from ``goal_id`` over ``roadmap``.

    Parameters
    ----------
    roadmap : Roadmap
        Undirected weighted graph; ``NO_EDGE`` entries are skipped.
    goal_id : int, optional
        Search root, by default node ``0``.
    cancel_event : threading.Event, optional
        Checked once per popped node.

    Returns
    -------
    SolveResult
        Depth and parent for every node.

    Raises
    ------
    SolveCancelled
        If ``cancel_event`` is set when a node is about to be expanded.
    ValueError
        If ``goal_id`` is not a node of ``roadmap``.
    """

    n = len(roadmap)
    if not 0 <= goal_id < n:
        raise ValueError(f"goal id {goal_id} outside roadmap of {n} nodes")

    start = time.perf_counter()
    points = roadmap.points
    open_list = PriorityQueue(max(1, n // 2))
    open_list.push(SearchNode(points[goal_id], 0.0, None, goal_id))
    closed: Dict[int, SearchNode] = {}

    while not open_list.is_empty():
        if cancel_event is not None and cancel_event.is_set():
            raise SolveCancelled(f"solve from node {goal_id} cancelled")
        current = open_list.pop()
        closed[current.node_id] = current
        for nxt, cost in roadmap.neighbors(current.node_id):
            if nxt in closed:
                continue
            if open_list.contains(nxt):
                open_list.reparent(nxt, current, cost)
            else:
                open_list.push(SearchNode(points[nxt], current.depth + cost, current.node_id, nxt))

    depths = np.full(n, np.inf)
    parents = np.full(n, NO_PARENT, dtype=np.int64)
    for node_id, node in closed.items():
        depths[node_id] = node.depth
        if node.parent is not None:
            parents[node_id] = node.parent
    elapsed = (time.perf_counter() - start) * 1000
    logger.info("found paths for %d/%d nodes in %.1fms", len(closed), n, elapsed)
    return SolveResult(goal_id, depths, parents, elapsed)


class SolveState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class SolveStatus(enum.Enum):
    """What :meth:`SolveHandle.poll` reports to the control loop."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class SolveOutcome:
    status: SolveStatus
    result: Optional[SolveResult] = None
    field: Any = None
    error: Optional[SolveFailed] = None


FieldFactory = Callable[[Roadmap, SolveResult], Any]


class SolveHandle:
    """One background solve.

    Summary
    -------
    Created idle; :meth:`start` launches a daemon thread running
    :func:`solve` followed by the optional ``field_factory``. Exceptions
    other than cancellation are logged, wrapped in :class:`SolveFailed` and
    surfaced through :meth:`poll`, never raised on the worker thread.
    """

    def __init__(
        self,
        roadmap: Roadmap,
        goal_id: int = GOAL_ID,
        field_factory: Optional[FieldFactory] = None,
    ) -> None:
        self.roadmap = roadmap
        self.goal_id = goal_id
        self._factory = field_factory
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._state = SolveState.IDLE
        self._result: Optional[SolveResult] = None
        self._field: Any = None
        self._error: Optional[SolveFailed] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SolveState:
        with self._lock:
            return self._state

    def start(self) -> "SolveHandle":
        """Launch the worker thread; a second call is a no-op."""

        with self._lock:
            if self._thread is not None:
                return self
            self._state = SolveState.RUNNING
            self._thread = threading.Thread(
                target=self._run, name=f"prm-solve-{self.goal_id}", daemon=True
            )
        self._thread.start()
        return self

    def cancel(self) -> None:
        """Request cooperative cancellation."""

        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the solve has finished; return ``True`` if it has."""

        if self._thread is None:
            return self._done.is_set()
        return self._done.wait(timeout)

    def poll(self) -> SolveOutcome:
        """Return the current outcome without blocking."""

        with self._lock:
            state = self._state
            if state in (SolveState.IDLE, SolveState.RUNNING):
                return SolveOutcome(SolveStatus.PENDING)
            if state is SolveState.CANCELLED:
                return SolveOutcome(SolveStatus.CANCELLED)
            if state is SolveState.FAILED:
                return SolveOutcome(SolveStatus.FAILED, error=self._error)
            return SolveOutcome(SolveStatus.COMPLETED, result=self._result, field=self._field)

    # ------------------------------------------------------------------
    def _run(self) -> None:
        try:
            result = solve(self.roadmap, self.goal_id, self._cancel)
            field = self._factory(self.roadmap, result) if self._factory is not None else None
        except SolveCancelled:
            logger.info("solve from node %d cancelled", self.goal_id)
            self._finish(SolveState.CANCELLED)
        except Exception as exc:
            logger.exception("solve from node %d failed", self.goal_id)
            error = SolveFailed(f"solve from node {self.goal_id} failed: {exc}")
            error.__cause__ = exc
            self._finish(SolveState.FAILED, error=error)
        else:
            self._finish(SolveState.COMPLETED, result=result, field=field)

    def _finish(
        self,
        state: SolveState,
        *,
        result: Optional[SolveResult] = None,
        field: Any = None,
        error: Optional[SolveFailed] = None,
    ) -> None:
        with self._lock:
            self._state = state
            self._result = result
            self._field = field
            self._error = error
        self._done.set()


class PathfinderService:
    """Start, cancel and poll background solves; one in flight at a time."""

    def __init__(self, field_factory: Optional[FieldFactory] = None) -> None:
        self._factory = field_factory
        self._lock = threading.Lock()
        self._current: Optional[SolveHandle] = None
        self._log = {"started": 0, "superseded": 0}

    @property
    def current(self) -> Optional[SolveHandle]:
        return self._current

    def start_solve(self, roadmap: Roadmap, goal_id: int = GOAL_ID) -> SolveHandle:
        """Start a solve, cancelling and joining any solve still running."""

        with self._lock:
            previous = self._current
            if previous is not None and not previous.done():
                previous.cancel()
                previous.wait()
                self._log["superseded"] += 1
            handle = SolveHandle(roadmap, goal_id, self._factory)
            self._current = handle
            self._log["started"] += 1
        return handle.start()

    def cancel(self, handle: SolveHandle) -> None:
        handle.cancel()

    def poll_result(self, handle: SolveHandle) -> SolveOutcome:
        return handle.poll()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Cancel the in-flight solve, if any, and wait for it."""

        with self._lock:
            handle = self._current
        if handle is not None and not handle.done():
            handle.cancel()
            handle.wait(timeout)

    def log_status(self) -> dict:
        return dict(self._log)


__all__ = [
    "NO_PARENT",
    "SolveResult",
    "SolveState",
    "SolveStatus",
    "SolveOutcome",
    "SolveHandle",
    "PathfinderService",
    "solve",
]
