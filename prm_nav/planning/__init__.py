# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Shortest-path solving and the gradient field built from it."""

from .gradient import FieldRef, GradientEntry, GradientField
from .pathfinder import (
    PathfinderService,
    SolveHandle,
    SolveOutcome,
    SolveResult,
    SolveState,
    SolveStatus,
    solve,
)
from .queue import PriorityQueue, SearchNode

__all__ = [
    "PriorityQueue",
    "SearchNode",
    "solve",
    "SolveResult",
    "SolveState",
    "SolveStatus",
    "SolveOutcome",
    "SolveHandle",
    "PathfinderService",
    "GradientEntry",
    "GradientField",
    "FieldRef",
]
