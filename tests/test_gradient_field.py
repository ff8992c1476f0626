import math
import threading

import numpy as np
import pytest
from conftest import connect_within, grid_points

from prm_nav.config import BoundsConfig, FieldConfig, RoadmapConfig
from prm_nav.geometry import BoxObstacle, ObstacleField
from prm_nav.planning.gradient import FieldRef, GradientField
from prm_nav.planning.pathfinder import solve
from prm_nav.spatial import RoadmapBuilder

# wall at x = 5 spanning z in [-3, 3]
WALL = ObstacleField(boxes=[BoxObstacle((5.0, 0.0, 0.0), (0.2, 10.0, 3.0))])


def _field(points, oracle, **cfg) -> GradientField:
    builder = RoadmapBuilder(
        BoundsConfig(left=-20, right=20, bottom=-20, top=20, back=-20, front=20),
        oracle,
        RoadmapConfig(agent_radius=0.0, max_connection_distance=20.0),
    )
    roadmap = builder.connect_points(np.array(points, dtype=float))
    return GradientField.from_solve(roadmap, solve(roadmap), oracle, FieldConfig(**cfg))


def _detour_field(**cfg) -> GradientField:
    return _field([[0, 0, 0], [5, 0, 5], [10, 0, 4]], WALL, **cfg)


def test_directions_point_to_parent() -> None:
    field = _detour_field()
    assert field.reached_count == 3
    assert np.allclose(field.direction_at(0), 0.0)
    assert np.allclose(field.direction_at(1), (-5, 0, -5))
    assert np.allclose(field.direction_at(2), (-5, 0, 1))
    assert field.max_depth == pytest.approx(math.sqrt(50) + math.sqrt(26))
    entries = {e.node_id: e for e in field.entries()}
    assert entries[2].depth == pytest.approx(field.max_depth)


def test_goal_in_sight_heads_straight_for_it() -> None:
    field = _detour_field()
    far = field.query_direction((0.0, 0.0, 8.0))
    assert np.allclose(far, (0.0, 0.0, -1.0))
    near = field.query_direction((0.3, 0.0, 0.4))
    assert np.allclose(near, (-0.3, 0.0, -0.4))


def test_blocked_goal_uses_nearby_node() -> None:
    field = _detour_field(sampling_radius=5.0)
    direction = field.query_direction((10.0, 0.0, 0.0))
    expected = np.array([-5.0, 0.0, 1.0]) / math.sqrt(26)
    assert np.allclose(direction, expected)
    assert field.query((10.0, 0.0, 0.0))[1] is False


def test_visible_neighbours_are_averaged() -> None:
    uniform = _detour_field(sampling_radius=5.0).query_direction((9.0, 0.0, 3.0))
    expected = np.array([-5.0, 0.0, -2.0]) / math.sqrt(29)
    assert np.allclose(uniform, expected)

    weighted = _detour_field(sampling_radius=5.0, weighting="inverse_distance").query_direction(
        (9.0, 0.0, 3.0)
    )
    # the closer node 2 pulls the blend towards its own direction
    assert weighted[2] > uniform[2]
    assert np.linalg.norm(weighted) == pytest.approx(1.0)


def test_neighbor_count_limits_candidates() -> None:
    field = _detour_field(sampling_radius=5.0, neighbor_count=1)
    assert [i for i, _ in field.nearest_reached((9.0, 0.0, 3.0))] == [2]


def test_nothing_in_range_returns_none() -> None:
    field = _detour_field(sampling_radius=2.0)
    assert field.query_direction((15.0, 0.0, 0.0)) is None


def test_occluded_candidates_are_dropped() -> None:
    # every node in range is behind the wall as seen from the query point
    field = _field([[0, 0, 0], [0, 0, 5], [4.0, 0, 0]], WALL, sampling_radius=6.0)
    assert field.query_direction((6.0, 0.0, 0.0)) is None


def test_disconnected_cluster_yields_none() -> None:
    a = grid_points(2)
    b = grid_points(2) + np.array([10.0, 0.0, 0.0])
    roadmap = connect_within(np.vstack([a, b]), 1.5)
    result = solve(roadmap)
    field = GradientField.from_solve(roadmap, result, WALL, FieldConfig(sampling_radius=3.0))
    assert field.reached_count == 4
    assert field.direction_at(5) is None
    assert field.query_direction((10.5, 0.0, 0.5)) is None


def test_opposite_directions_cancel_to_none() -> None:
    positions = np.array([[0.0, 0, 0], [10.0, 0, 1.0], [10.0, 0, -1.0]])
    directions = np.array([[0.0, 0, 0], [0.0, 0, 1.0], [0.0, 0, -1.0]])
    depths = np.array([0.0, 1.0, 1.0])
    field = GradientField(positions, directions, depths, 0, WALL, FieldConfig(sampling_radius=3.0))
    assert field.query_direction((10.0, 0.0, 0.0)) is None


def test_empty_field() -> None:
    field = GradientField.empty()
    assert not field.solved
    assert field.reached_count == 0
    assert field.max_depth == 0.0
    assert list(field.entries()) == []
    assert field.query_direction((0.0, 0.0, 0.0)) is None


def test_field_ref_swaps_snapshot_and_version() -> None:
    ref = FieldRef()
    assert ref.version == 0
    assert not ref.current().solved
    field = _detour_field()
    assert ref.publish(field) == 1
    current, version = ref.snapshot()
    assert current is field and version == 1


def test_field_ref_readers_see_whole_fields() -> None:
    ref = FieldRef()
    fields = [_detour_field(), GradientField.empty()]
    seen = []
    stop = threading.Event()

    def reader() -> None:
        while not stop.is_set():
            seen.append(ref.current())

    t = threading.Thread(target=reader)
    t.start()
    for i in range(200):
        ref.publish(fields[i % 2])
    stop.set()
    t.join()
    assert ref.version == 200
    assert all(any(f is g for g in fields) or not f.solved for f in seen)
