import numpy as np
import pytest
from conftest import connect_within, grid_points

from prm_nav.config import BoundsConfig, RoadmapConfig
from prm_nav.geometry import ObstacleField, SphereObstacle
from prm_nav.spatial import NO_EDGE, Roadmap, RoadmapBuilder


def test_weights_symmetric_with_sentinel_diagonal() -> None:
    rm = connect_within(grid_points(3), 1.0)
    assert np.array_equal(rm.weights, rm.weights.T)
    assert all(rm.weights[i, i] == NO_EDGE for i in range(len(rm)))
    assert rm.has_edge(0, 1) and not rm.has_edge(0, 4) and not rm.has_edge(0, 0)
    assert rm.edge_count == 12
    assert sorted(j for j, _ in rm.neighbors(4)) == [1, 3, 5, 7]


def test_rejects_asymmetric_or_negative_weights() -> None:
    pts = np.zeros((2, 3))
    with pytest.raises(ValueError):
        Roadmap(pts, np.array([[NO_EDGE, 1.0], [2.0, NO_EDGE]]))
    with pytest.raises(ValueError):
        Roadmap(pts, np.array([[NO_EDGE, -1.0], [-1.0, NO_EDGE]]))
    with pytest.raises(ValueError):
        Roadmap(pts, np.zeros((3, 3)))


def test_isolated_nodes_reported() -> None:
    pts = np.array([[0.0, 0, 0], [1.0, 0, 0], [9.0, 0, 0]])
    rm = Roadmap.from_edges(pts, [(0, 1)])
    assert rm.isolated() == [2]
    assert rm.degree(2) == 0


def test_save_load_roundtrip(tmp_path) -> None:
    rm = connect_within(grid_points(3), 1.5)
    path = tmp_path / "nested" / "roadmap.json"
    rm.save(path)
    loaded = Roadmap.load(path)
    assert np.array_equal(loaded.points, rm.points)
    assert np.array_equal(loaded.weights, rm.weights)
    assert loaded.leaf_size == rm.leaf_size


def test_load_rejects_unknown_schema(tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text('{"schema": "other"}')
    with pytest.raises(ValueError):
        Roadmap.load(path)


def _builder(oracle, **overrides) -> RoadmapBuilder:
    cfg = RoadmapConfig(**{"agent_radius": 0.5, "num_points": 40, "seed": 3, **overrides})
    return RoadmapBuilder(BoundsConfig(), oracle, cfg)


def test_goal_first_then_start(empty_scene) -> None:
    rm = _builder(empty_scene).build((-5.0, 1.0, -5.0), (5.0, 1.0, 5.0))
    assert np.allclose(rm.points[0], (5.0, 1.0, 5.0))
    assert np.allclose(rm.points[1], (-5.0, 1.0, -5.0))
    assert len(rm) == 42


def test_start_on_goal_gets_zero_length_edge(empty_scene) -> None:
    rm = _builder(empty_scene, num_points=0).build((1.0, 1.0, 1.0), (1.0, 1.0, 1.0))
    assert len(rm) == 2
    assert np.allclose(rm.points[1], rm.points[0])
    assert rm.has_edge(0, 1)
    assert rm.weights[0, 1] == 0.0


def test_samples_respect_safe_bounds_and_obstacles() -> None:
    oracle = ObstacleField(spheres=[SphereObstacle((0.0, 5.0, 0.0), 3.0)])
    builder = _builder(oracle, num_points=80)
    rm = builder.build((-8.0, 1.0, -8.0), (8.0, 1.0, 8.0))
    safe = BoundsConfig().shrink(0.5)
    for p in rm.points[2:]:
        assert safe.contains(p)
        assert oracle.is_point_valid(p, 0.5)
    status = builder.log_status()
    assert status["points_accepted"] == len(rm) - 2
    assert status["points_accepted"] + status["points_rejected"] == 80


def test_min_point_distance_enforced(empty_scene) -> None:
    rm = _builder(empty_scene, num_points=60, min_point_distance=2.0).build(
        (-8.0, 1.0, -8.0), (8.0, 1.0, 8.0)
    )
    pts = rm.points
    for i in range(2, len(pts)):
        dists = np.linalg.norm(pts[:i] - pts[i], axis=1)
        assert dists.min() >= 2.0


def test_edges_follow_distance_and_line_of_sight() -> None:
    oracle = ObstacleField(spheres=[SphereObstacle((0.0, 0.0, 0.0), 1.0)])
    builder = _builder(oracle, max_connection_distance=5.0, agent_radius=0.25)
    pts = np.array([[-3.0, 0, 0], [3.0, 0, 0], [-3.0, 0, 3.0], [6.0, 0, 0]])
    rm = builder.connect_points(pts)
    assert not rm.has_edge(0, 1)  # blocked by the sphere
    assert rm.has_edge(0, 2)
    assert rm.weights[0, 2] == pytest.approx(3.0)
    assert rm.has_edge(1, 3)
    assert not rm.has_edge(0, 3)  # too far


def test_index_pruning_does_not_change_edges(empty_scene) -> None:
    pts = np.random.default_rng(5).uniform(-9, 9, size=(80, 3))
    with_index = _builder(empty_scene, max_connection_distance=4.0).connect_points(pts)
    without = _builder(empty_scene, max_connection_distance=4.0, use_index=False).connect_points(pts)
    assert np.array_equal(with_index.weights, without.weights)


def test_isolated_goal_still_builds(caplog, empty_scene) -> None:
    builder = _builder(empty_scene, num_points=0, max_connection_distance=0.1)
    with caplog.at_level("WARNING"):
        rm = builder.build((-8.0, 1.0, -8.0), (8.0, 1.0, 8.0))
    assert rm.edge_count == 0
    assert "isolated" in caplog.text


def test_same_seed_same_roadmap(empty_scene) -> None:
    a = _builder(empty_scene).build((-5.0, 1.0, -5.0), (5.0, 1.0, 5.0))
    b = _builder(empty_scene).build((-5.0, 1.0, -5.0), (5.0, 1.0, 5.0))
    assert np.array_equal(a.points, b.points)
    assert np.array_equal(a.weights, b.weights)
