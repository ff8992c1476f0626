# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Headless crowd demo: point agents following the gradient field.

The configuration is handled through `hydra` so any :class:`NavConfig`
field can be overridden from the command line::

    python scripts/run_demo.py roadmap.num_points=200 simulation.num_agents=25

The demo builds an :class:`ObstacleField` from ``obstacles``, builds and
solves a roadmap, then moves agents with an Euler step along the queried
direction, resolving penetration after every step. A JSON summary is
printed at the end.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional

import hydra
import numpy as np
from hydra.core.config_store import ConfigStore
from omegaconf import OmegaConf

from prm_nav.config import NavConfig
from prm_nav.geometry.oracle import ObstacleField
from prm_nav.geometry.vectors import as_point
from prm_nav.navigation import NavigationController

logger = logging.getLogger(__name__)

ConfigStore.instance().store(name="prm_nav_config", node=NavConfig)


def spawn_agents(
    nav: NavigationController, start: np.ndarray, count: int, spread: float, rng: np.random.Generator
) -> List[np.ndarray]:
    """Scatter ``count`` agents on the horizontal plane around ``start``."""

    agents = []
    for _ in range(count):
        offset = np.zeros(3)
        offset[[0, 2]] = rng.uniform(-spread, spread, size=2)
        agents.append(nav.resolve_position(start + offset))
    return agents


def _mean_distance(agents: List[np.ndarray], goal: np.ndarray) -> float:
    """Average agent distance to ``goal``; ``0.0`` without agents."""

    if not agents:
        return 0.0
    return float(np.mean([np.linalg.norm(a - goal) for a in agents]))


def run(cfg: NavConfig) -> Dict[str, Any]:
    """Run one episode and return its summary."""

    cfg.validate()
    sim = cfg.simulation
    oracle = ObstacleField.from_config(cfg.obstacles)
    rng = np.random.default_rng(cfg.roadmap.seed)
    nav = NavigationController(cfg, oracle, rng=rng)
    start = as_point(sim.start)
    goal = as_point(sim.goal)
    try:
        roadmap = nav.build(start, goal)
        if sim.roadmap_path:
            roadmap.save(sim.roadmap_path)
        nav.request_solve()
        nav.wait_for_solve()

        agents = spawn_agents(nav, start, sim.num_agents, sim.spawn_spread, rng)
        arrived = [False] * len(agents)
        start_distance = _mean_distance(agents, goal)
        step = sim.max_speed * sim.dt
        ticks = 0
        for ticks in range(1, sim.ticks + 1):
            nav.tick()
            for i, pos in enumerate(agents):
                if arrived[i]:
                    continue
                direction = nav.query_direction(pos)
                if direction is None:
                    continue
                agents[i] = nav.resolve_position(pos + direction * step)
                arrived[i] = float(np.linalg.norm(agents[i] - goal)) <= sim.arrival_radius
            logger.debug("tick %d: %d/%d arrived", ticks, sum(arrived), len(agents))
            if all(arrived):
                break
            if sim.poll_interval > 0:
                time.sleep(sim.poll_interval)

        status = nav.log_status()
        field = nav.field
        return {
            "agents": len(agents),
            "arrived": int(sum(arrived)),
            "ticks": ticks,
            "nodes": status["nodes"],
            "edges": status["edges"],
            "reached": status["reached"],
            "max_depth": field.max_depth,
            "start_distance": start_distance,
            "final_distance": _mean_distance(agents, goal),
            "field_version": status["field_version"],
            "queries": status["queries"],
        }
    finally:
        nav.shutdown()


@hydra.main(config_name="prm_nav_config", version_base=None)
def main(cfg: NavConfig) -> None:  # pragma: no cover - thin wrapper
    """Hydra entry point."""

    nav_cfg: NavConfig = OmegaConf.to_object(cfg)  # type: ignore[assignment]
    logging.basicConfig(level=getattr(logging, nav_cfg.log_level.upper(), logging.INFO))
    print(json.dumps(run(nav_cfg), indent=2))


def parse_args(args: Optional[List[str]] = None) -> NavConfig:
    """Parse a list of Hydra style overrides into a :class:`NavConfig`."""

    cfg = OmegaConf.structured(NavConfig)
    cli_cfg = OmegaConf.from_cli(args or [])
    merged = OmegaConf.merge(cfg, cli_cfg)
    nav_cfg: NavConfig = OmegaConf.to_object(merged)  # type: ignore[assignment]
    return nav_cfg.validate()


__all__ = ["main", "parse_args", "run", "spawn_agents"]
