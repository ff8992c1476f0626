"""Static octree over a fixed point set.

Summary
-------
Recursively partitions a cube into eight equal octants. Nodes holding at
least ``leaf_size`` points become :class:`BranchNode` objects; smaller ones
become :class:`LeafNode` objects storing point indices. The tree is built
once and never mutated, so concurrent readers need no lock.

:meth:`Octree.query_sphere` is a broad-phase query: it returns every index
stored in a leaf whose bounds touch the sphere. Callers still have to check
the actual point distance, or use :meth:`Octree.query_radius`.

Complexity
----------
Build is ``O(n log n)`` for well-spread points; a sphere query visits only
octants overlapping the sphere.

Examples
--------
>>> import numpy as np
>>> tree = Octree.from_points(np.zeros((1, 3)))
>>> sorted(tree.query_sphere((0.0, 0.0, 0.0), 1.0))
[0]
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Set

import numpy as np

from prm_nav.geometry.vectors import ArrayLike3, as_point, as_points

DEFAULT_LEAF_SIZE = 64
DEFAULT_MAX_DEPTH = 16
_SLACK = 1e-9

# octant offsets; bit 0 -> x, bit 1 -> y, bit 2 -> z
_OCTANT_SIGNS = np.array(
    [[1 if (i >> axis) & 1 else -1 for axis in range(3)] for i in range(8)],
    dtype=np.float64,
)


class OctreeNode(ABC):
    """Cubic cell of the tree."""

    __slots__ = ("center", "side_length")

    def __init__(self, center: np.ndarray, side_length: float) -> None:
        self.center = center
        self.side_length = side_length

    def overlaps_sphere(self, center: np.ndarray, radius: float) -> bool:
        """Return ``True`` if the sphere touches this node's bounds."""

        half = self.side_length / 2.0
        closest = np.clip(center, self.center - half, self.center + half)
        diff = closest - center
        # small slack keeps points sitting on a split plane inside both cells
        reach = radius + _SLACK
        return float(diff @ diff) <= reach * reach

    @abstractmethod
    def collect(self, center: np.ndarray, radius: float, out: Set[int]) -> None:
        """Add candidate indices for the sphere to ``out``."""

    @abstractmethod
    def depth(self) -> int:
        """Height of the subtree rooted here."""

    @abstractmethod
    def leaf_count(self) -> int:
        """Number of leaves in the subtree rooted here."""


class BranchNode(OctreeNode):
    """Node with exactly eight children."""

    __slots__ = ("children", "count")

    def __init__(
        self,
        center: np.ndarray,
        side_length: float,
        children: List[OctreeNode],
        count: int,
    ) -> None:
        super().__init__(center, side_length)
        self.children = children
        self.count = count

    def collect(self, center: np.ndarray, radius: float, out: Set[int]) -> None:
        if self.count == 0 or not self.overlaps_sphere(center, radius):
            return
        for child in self.children:
            child.collect(center, radius, out)

    def depth(self) -> int:
        return 1 + max(child.depth() for child in self.children)

    def leaf_count(self) -> int:
        return sum(child.leaf_count() for child in self.children)


class LeafNode(OctreeNode):
    """Node storing the indices of the points inside its bounds."""

    __slots__ = ("indices",)

    def __init__(self, center: np.ndarray, side_length: float, indices: frozenset) -> None:
        super().__init__(center, side_length)
        self.indices = indices

    def collect(self, center: np.ndarray, radius: float, out: Set[int]) -> None:
        if self.indices and self.overlaps_sphere(center, radius):
            out.update(self.indices)

    def depth(self) -> int:
        return 1

    def leaf_count(self) -> int:
        return 1


class Octree:
    """Spatial index answering "which points may lie near this sphere"."""

    def __init__(self, points: np.ndarray, root: OctreeNode, leaf_size: int) -> None:
        self.points = points
        self.root = root
        self.leaf_size = leaf_size

    @classmethod
    def build(
        cls,
        points: np.ndarray,
        center: ArrayLike3,
        side_length: float,
        leaf_size: int = DEFAULT_LEAF_SIZE,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> "Octree":
        """Build a tree over ``points`` inside the cube ``center``/``side_length``.

        Parameters
        ----------
        points : numpy.ndarray
            ``(n, 3)`` coordinates; indices into this array are returned by
            queries.
        center, side_length :
            Cube enclosing all points.
        leaf_size : int, optional
            Nodes with at least this many points are subdivided.
        max_depth : int, optional
            Depth at which subdivision stops regardless of count.

        Raises
        ------
        ValueError
            If a point lies outside the cube or parameters are invalid.
        """

        if leaf_size < 1:
            raise ValueError("leaf_size must be positive")
        if side_length <= 0:
            raise ValueError("side_length must be positive")
        pts = as_points(points)
        c = np.array(as_point(center))
        half = side_length / 2.0
        if len(pts) and (np.abs(pts - c) > half).any():
            raise ValueError("all points must lie inside the octree bounds")
        indices = np.arange(len(pts))
        root = _build_node(pts, indices, c, float(side_length), leaf_size, max_depth, 0)
        return cls(pts, root, leaf_size)

    @classmethod
    def from_points(
        cls,
        points: np.ndarray,
        leaf_size: int = DEFAULT_LEAF_SIZE,
        max_depth: int = DEFAULT_MAX_DEPTH,
        padding: float = 1e-6,
    ) -> "Octree":
        """Build a tree whose root cube tightly encloses ``points``."""

        pts = as_points(points)
        if len(pts) == 0:
            return cls.build(pts, (0.0, 0.0, 0.0), 1.0, leaf_size, max_depth)
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        center = (lo + hi) / 2.0
        side = float((hi - lo).max()) + 2.0 * padding
        return cls.build(pts, center, max(side, padding), leaf_size, max_depth)

    def __len__(self) -> int:
        return len(self.points)

    def query_sphere(self, center: ArrayLike3, radius: float) -> Set[int]:
        """Return a superset of the indices within ``radius`` of ``center``."""

        out: Set[int] = set()
        if radius < 0:
            return out
        self.root.collect(np.asarray(as_point(center)), float(radius), out)
        return out

    def query_radius(self, center: ArrayLike3, radius: float) -> List[int]:
        """Return indices within ``radius`` of ``center`` sorted by distance."""

        c = as_point(center)
        candidates = self.query_sphere(c, radius)
        if not candidates:
            return []
        idx = np.fromiter(candidates, dtype=np.int64, count=len(candidates))
        dist = np.linalg.norm(self.points[idx] - c, axis=1)
        keep = dist <= radius
        idx, dist = idx[keep], dist[keep]
        order = np.argsort(dist, kind="stable")
        return [int(i) for i in idx[order]]

    def depth(self) -> int:
        return self.root.depth()

    def leaf_count(self) -> int:
        return self.root.leaf_count()


def _build_node(
    points: np.ndarray,
    indices: np.ndarray,
    center: np.ndarray,
    side_length: float,
    leaf_size: int,
    max_depth: int,
    level: int,
) -> OctreeNode:
    if len(indices) < leaf_size or level >= max_depth:
        return LeafNode(center, side_length, frozenset(int(i) for i in indices))

    quarter = side_length / 4.0
    # half-open split: a point on a split plane goes to the upper octant
    upper = points[indices] >= center
    codes = upper[:, 0] * 1 + upper[:, 1] * 2 + upper[:, 2] * 4
    children: List[OctreeNode] = []
    for octant in range(8):
        child_center = center + _OCTANT_SIGNS[octant] * quarter
        child_indices = indices[codes == octant]
        children.append(
            _build_node(
                points,
                child_indices,
                child_center,
                side_length / 2.0,
                leaf_size,
                max_depth,
                level + 1,
            )
        )
    return BranchNode(center, side_length, children, len(indices))


__all__ = ["Octree", "OctreeNode", "BranchNode", "LeafNode", "DEFAULT_LEAF_SIZE"]
