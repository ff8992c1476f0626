"""Indexable binary min-heap with decrease-key for Dijkstra search.

Summary
-------
Elements are :class:`SearchNode` records ordered by ``depth``: the lowest
cumulative cost has the highest priority. The heap lives in a 1-indexed
list whose capacity doubles on overflow. A ``node_id -> slot`` map makes
:meth:`PriorityQueue.contains` and :meth:`PriorityQueue.reparent` ``O(1)``
lookups, so a reparent costs a single ``O(log n)`` sift-up.

Ties in depth are broken by heap structure only; Dijkstra stays optimal
regardless of tie order.

Examples
--------
>>> q = PriorityQueue()
>>> q.push(SearchNode(None, 2.0, None, 1)); q.push(SearchNode(None, 1.0, None, 2))
>>> q.pop().node_id
2
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from prm_nav.errors import EmptyQueueError

DEFAULT_CAPACITY = 8


@dataclass
class SearchNode:
    """Open or closed node of a single solve.

    Parameters
    ----------
    position : numpy.ndarray
        Roadmap point of ``node_id``.
    depth : float
        Cost of the best path found so far to the search root.
    parent : int, optional
        Id of the predecessor towards the root; ``None`` for the root.
    node_id : int
        Roadmap node id.
    """

    position: Any
    depth: float
    parent: Optional[int]
    node_id: int


def _higher_priority(a: SearchNode, b: SearchNode) -> bool:
    """Lower depth means greater priority."""

    return a.depth < b.depth


class PriorityQueue:
    """Binary heap keyed on :attr:`SearchNode.depth`."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._capacity = max(1, int(capacity))
        self._array: List[Optional[SearchNode]] = [None] * (self._capacity + 1)
        self._slots: Dict[int, int] = {}
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        return self._capacity

    def is_empty(self) -> bool:
        return self._count == 0

    # ------------------------------------------------------------------
    def push(self, node: SearchNode) -> None:
        """Insert ``node``; ``O(log n)``.

        Raises
        ------
        ValueError
            If a node with the same id is already queued.
        """

        if node.node_id in self._slots:
            raise ValueError(f"node {node.node_id} is already queued")
        if self._count + 1 > self._capacity:
            self._grow()
        self._count += 1
        self._place(self._count, node)
        self._sift_up(self._count)

    def peek(self) -> SearchNode:
        """Return the lowest-depth node without removing it."""

        if self._count == 0:
            raise EmptyQueueError("peek from an empty priority queue")
        node = self._array[1]
        assert node is not None
        return node

    def pop(self) -> SearchNode:
        """Remove and return the lowest-depth node; ``O(log n)``.

        Raises
        ------
        EmptyQueueError
            If the queue is empty.
        """

        if self._count == 0:
            raise EmptyQueueError("pop from an empty priority queue")
        result = self._array[1]
        assert result is not None
        last = self._array[self._count]
        self._array[self._count] = None
        self._count -= 1
        del self._slots[result.node_id]
        if self._count > 0:
            assert last is not None
            self._place(1, last)
            self._sift_down(1)
        return result

    def contains(self, node_id: int) -> bool:
        return node_id in self._slots

    def get(self, node_id: int) -> Optional[SearchNode]:
        """Return the queued node with ``node_id`` or ``None``."""

        slot = self._slots.get(node_id)
        return None if slot is None else self._array[slot]

    def reparent(self, node_id: int, new_parent: SearchNode, edge_weight: float) -> bool:
        """Decrease-key: route ``node_id`` through ``new_parent`` if cheaper.

        Parameters
        ----------
        node_id : int
            Queued node to update.
        new_parent : SearchNode
            Candidate predecessor.
        edge_weight : float
            Cost of the edge ``new_parent -> node_id``.

        Returns
        -------
        bool
            ``True`` if depth strictly decreased and the node moved; ``False``
            if the node is not queued or the new route is not cheaper.
        """

        slot = self._slots.get(node_id)
        if slot is None:
            return False
        node = self._array[slot]
        assert node is not None
        new_depth = new_parent.depth + edge_weight
        if new_depth >= node.depth:
            return False
        node.parent = new_parent.node_id
        node.depth = new_depth
        # depth only decreases, so sifting up restores the heap
        self._sift_up(slot)
        return True

    # ------------------------------------------------------------------
    def _grow(self) -> None:
        self._capacity *= 2
        self._array.extend([None] * (self._capacity + 1 - len(self._array)))

    def _place(self, slot: int, node: SearchNode) -> None:
        self._array[slot] = node
        self._slots[node.node_id] = slot

    def _swap(self, a: int, b: int) -> None:
        na, nb = self._array[a], self._array[b]
        assert na is not None and nb is not None
        self._place(a, nb)
        self._place(b, na)

    def _sift_up(self, slot: int) -> None:
        while slot > 1:
            parent = slot >> 1
            node, above = self._array[slot], self._array[parent]
            assert node is not None and above is not None
            if not _higher_priority(node, above):
                break
            self._swap(slot, parent)
            slot = parent

    def _sift_down(self, slot: int) -> None:
        while True:
            best = slot
            left = slot << 1
            right = left + 1
            if left <= self._count and _higher_priority(self._array[left], self._array[best]):  # type: ignore[arg-type]
                best = left
            if right <= self._count and _higher_priority(self._array[right], self._array[best]):  # type: ignore[arg-type]
                best = right
            if best == slot:
                return
            self._swap(slot, best)
            slot = best


__all__ = ["SearchNode", "PriorityQueue"]
