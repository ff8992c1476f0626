# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Roadmap graph, its construction and the octree index."""

from .builder import RoadmapBuilder
from .octree import BranchNode, LeafNode, Octree, OctreeNode
from .roadmap import GOAL_ID, NO_EDGE, Roadmap

__all__ = [
    "Roadmap",
    "RoadmapBuilder",
    "Octree",
    "OctreeNode",
    "BranchNode",
    "LeafNode",
    "NO_EDGE",
    "GOAL_ID",
]
