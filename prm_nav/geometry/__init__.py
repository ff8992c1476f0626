# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Geometry oracle interface and vector helpers."""

from .oracle import BoxObstacle, GeometryOracle, ObstacleField, SphereObstacle
from .vectors import as_point, as_points, clamp_magnitude, normalize

__all__ = [
    "GeometryOracle",
    "ObstacleField",
    "SphereObstacle",
    "BoxObstacle",
    "as_point",
    "as_points",
    "clamp_magnitude",
    "normalize",
]
