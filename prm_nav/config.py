"""Structured configuration for roadmap building, solving and field queries.

The dataclasses double as an OmegaConf schema: :func:`load_config` merges
the defaults with an optional YAML file and ``key=value`` overrides, e.g.
``roadmap.num_points=200 gradient.neighbor_count=4``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from omegaconf import OmegaConf

WEIGHTINGS = ("uniform", "inverse_distance")


@dataclass
class BoundsConfig:
    """Axis-aligned sampling volume; x spans left/right, y bottom/top, z back/front."""

    left: float = -10.0
    right: float = 10.0
    bottom: float = 0.0
    top: float = 10.0
    back: float = -10.0
    front: float = 10.0

    def lower(self) -> Tuple[float, float, float]:
        return (self.left, self.bottom, self.back)

    def upper(self) -> Tuple[float, float, float]:
        return (self.right, self.top, self.front)

    def shrink(self, margin: float) -> "BoundsConfig":
        """Return bounds moved inwards by ``margin`` on every side."""

        return BoundsConfig(
            left=self.left + margin,
            right=self.right - margin,
            bottom=self.bottom + margin,
            top=self.top - margin,
            back=self.back + margin,
            front=self.front - margin,
        )

    def contains(self, point: Sequence[float]) -> bool:
        lo, hi = self.lower(), self.upper()
        return all(lo[i] <= point[i] <= hi[i] for i in range(3))

    def validate(self) -> None:
        lo, hi = self.lower(), self.upper()
        for axis in range(3):
            if lo[axis] > hi[axis]:
                raise ValueError(f"inverted bounds on axis {axis}: {lo[axis]} > {hi[axis]}")


@dataclass
class RoadmapConfig:
    """Sampling and connection parameters."""

    agent_radius: float = 0.5
    num_points: int = 50
    num_candidates: int = 5
    max_connection_distance: float = 10.0
    min_point_distance: float = 0.0
    use_index: bool = True
    seed: Optional[int] = None

    def validate(self) -> None:
        if self.agent_radius < 0:
            raise ValueError("agent_radius must be non-negative")
        if self.num_points < 0:
            raise ValueError("num_points must be non-negative")
        if self.num_candidates < 1:
            raise ValueError("num_candidates must be at least 1")
        if self.max_connection_distance <= 0:
            raise ValueError("max_connection_distance must be positive")
        if self.min_point_distance < 0:
            raise ValueError("min_point_distance must be non-negative")


@dataclass
class OctreeConfig:
    leaf_size: int = 64
    max_depth: int = 16

    def validate(self) -> None:
        if self.leaf_size < 1:
            raise ValueError("leaf_size must be positive")
        if self.max_depth < 0:
            raise ValueError("max_depth must be non-negative")


@dataclass
class FieldConfig:
    """Gradient field query parameters."""

    sampling_radius: float = 5.0
    neighbor_count: int = 3
    sight_radius: float = 0.0
    weighting: str = "uniform"  # {"uniform","inverse_distance"}

    def validate(self) -> None:
        if self.sampling_radius <= 0:
            raise ValueError("sampling_radius must be positive")
        if self.neighbor_count < 1:
            raise ValueError("neighbor_count must be at least 1")
        if self.sight_radius < 0:
            raise ValueError("sight_radius must be non-negative")
        if self.weighting not in WEIGHTINGS:
            raise ValueError(f"Unknown weighting: {self.weighting}")


@dataclass
class ObstacleConfig:
    kind: str = "sphere"  # {"sphere","box"}
    center: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    radius: float = 1.0
    half_extents: List[float] = field(default_factory=lambda: [1.0, 1.0, 1.0])


@dataclass
class SimulationConfig:
    """Demo control loop settings."""

    start: List[float] = field(default_factory=lambda: [-8.0, 1.0, -8.0])
    goal: List[float] = field(default_factory=lambda: [8.0, 1.0, 8.0])
    num_agents: int = 10
    spawn_spread: float = 1.0
    ticks: int = 400
    dt: float = 0.05
    max_speed: float = 3.0
    arrival_radius: float = 0.75
    poll_interval: float = 0.0
    roadmap_path: Optional[str] = None

    def validate(self) -> None:
        if self.num_agents < 0:
            raise ValueError("num_agents must be non-negative")
        if self.ticks < 0:
            raise ValueError("ticks must be non-negative")
        if self.dt <= 0:
            raise ValueError("dt must be positive")


@dataclass
class NavConfig:
    """Top-level configuration tree."""

    bounds: BoundsConfig = field(default_factory=BoundsConfig)
    roadmap: RoadmapConfig = field(default_factory=RoadmapConfig)
    octree: OctreeConfig = field(default_factory=OctreeConfig)
    gradient: FieldConfig = field(default_factory=FieldConfig)
    obstacles: List[ObstacleConfig] = field(default_factory=list)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    log_level: str = "INFO"

    def validate(self) -> "NavConfig":
        self.bounds.validate()
        self.roadmap.validate()
        self.bounds.shrink(self.roadmap.agent_radius).validate()
        self.octree.validate()
        self.gradient.validate()
        self.simulation.validate()
        for obs in self.obstacles:
            if obs.kind not in ("sphere", "box"):
                raise ValueError(f"Unknown obstacle kind: {obs.kind}")
        return self


def load_config(
    path: Optional[str | Path] = None,
    overrides: Optional[Sequence[str]] = None,
) -> NavConfig:
    """Merge defaults, an optional YAML file and dotlist ``overrides``.

    Raises
    ------
    ValueError
        If the merged configuration fails validation.
    """

    cfg = OmegaConf.structured(NavConfig)
    if path is not None:
        cfg = OmegaConf.merge(cfg, OmegaConf.load(path))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    nav: NavConfig = OmegaConf.to_object(cfg)  # type: ignore[assignment]
    return nav.validate()


__all__ = [
    "BoundsConfig",
    "RoadmapConfig",
    "OctreeConfig",
    "FieldConfig",
    "ObstacleConfig",
    "SimulationConfig",
    "NavConfig",
    "load_config",
]
