"""Pytest configuration for path setup, shared scenes and marker handling."""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parent.parent))

from prm_nav.geometry import ObstacleField  # noqa: E402
from prm_nav.spatial import Roadmap  # noqa: E402


def pytest_addoption(parser):
    parser.addoption(
        "--runslow", action="store_true", default=False, help="run tests marked as slow"
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: long running test")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--runslow"):
        return
    skip_slow = pytest.mark.skip(reason="need --runslow to run slow tests")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def grid_points(size: int = 5, spacing: float = 1.0) -> np.ndarray:
    """``size x size`` grid on the ``y = 0`` plane, row-major with (0, 0) first."""

    return np.array(
        [[x * spacing, 0.0, z * spacing] for x in range(size) for z in range(size)],
        dtype=np.float64,
    )


def connect_within(points: np.ndarray, max_dist: float) -> Roadmap:
    """Roadmap linking every pair closer than ``max_dist`` (no obstacles)."""

    n = len(points)
    edges = [
        (i, j)
        for i in range(n)
        for j in range(i + 1, n)
        if np.linalg.norm(points[i] - points[j]) <= max_dist + 1e-9
    ]
    return Roadmap.from_edges(points, edges)


@pytest.fixture
def empty_scene() -> ObstacleField:
    return ObstacleField()
