import pytest

from prm_nav.config import (
    BoundsConfig,
    FieldConfig,
    NavConfig,
    RoadmapConfig,
    load_config,
)


def test_defaults_validate() -> None:
    cfg = load_config()
    assert isinstance(cfg, NavConfig)
    assert cfg.roadmap.agent_radius == 0.5
    assert cfg.octree.leaf_size == 64
    assert cfg.gradient.neighbor_count == 3
    assert cfg.obstacles == []


def test_yaml_file_and_overrides_merge(tmp_path) -> None:
    path = tmp_path / "scene.yaml"
    path.write_text(
        "roadmap:\n"
        "  num_points: 120\n"
        "obstacles:\n"
        "  - kind: box\n"
        "    center: [0.0, 2.0, 0.0]\n"
        "    half_extents: [1.0, 2.0, 5.0]\n"
    )
    cfg = load_config(path, ["roadmap.num_points=80", "gradient.weighting=inverse_distance"])
    assert cfg.roadmap.num_points == 80
    assert cfg.gradient.weighting == "inverse_distance"
    assert cfg.obstacles[0].kind == "box"
    assert cfg.obstacles[0].half_extents == [1.0, 2.0, 5.0]


@pytest.mark.parametrize(
    "overrides",
    [
        ["roadmap.num_candidates=0"],
        ["roadmap.agent_radius=-1"],
        ["roadmap.max_connection_distance=0"],
        ["bounds.left=5", "bounds.right=-5"],
        ["roadmap.agent_radius=6"],
        ["gradient.weighting=cubic"],
        ["gradient.neighbor_count=0"],
        ["octree.leaf_size=0"],
    ],
)
def test_invalid_values_rejected(overrides) -> None:
    with pytest.raises(ValueError):
        load_config(overrides=overrides)


def test_bounds_shrink_and_contains() -> None:
    safe = BoundsConfig().shrink(1.0)
    assert safe.lower() == (-9.0, 1.0, -9.0)
    assert safe.upper() == (9.0, 9.0, 9.0)
    assert safe.contains((0.0, 5.0, 0.0))
    assert not safe.contains((9.5, 5.0, 0.0))


def test_section_validators() -> None:
    RoadmapConfig().validate()
    FieldConfig(weighting="inverse_distance").validate()
    with pytest.raises(ValueError):
        FieldConfig(sampling_radius=0.0).validate()
