from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from flora.sim.core.config import (
    AgentConfig,
    AttractorConfig,
    ConfigError,
    RepellerConfig,
    SimulationConfig,
    WorldConfig,
    load_config,
)

SCENARIOS = Path(__file__).resolve().parents[2] / "scenarios"


def test_agent_defaults_resolve_size_relative_radii():
    config = AgentConfig(width=15.0)
    assert config.desired_separation == 30.0
    assert config.align_radius == 30.0
    assert config.cohesion_radius == 10.0
    assert AgentConfig(width=15.0, desired_separation=5.0).desired_separation == 5.0


def test_agent_config_reports_every_problem():
    with pytest.raises(ConfigError) as excinfo:
        AgentConfig(mass=0.0, max_speed="fast", flocking=1, lifespan=-3)
    error = excinfo.value
    assert error.section == "agent"
    fields = sorted(problem.split(":", 1)[0] for problem in error.problems)
    assert fields == ["flocking", "lifespan", "mass", "max_speed"]
    assert "invalid agent configuration" in str(error)


def test_world_config_normalizes_pairs():
    config = WorldConfig(gravity=[0, 2], wind=(1, 0))
    assert config.gravity == (0.0, 2.0)
    assert config.wind == (1.0, 0.0)
    with pytest.raises(ConfigError):
        WorldConfig(width=-1.0)


def test_repeller_defaults_to_negative_gravity():
    assert RepellerConfig(location=(0, 0)).G == -10.0
    assert RepellerConfig(location=(0, 0)).class_name == "repeller"
    with pytest.raises(ConfigError) as excinfo:
        RepellerConfig(location="here")
    assert excinfo.value.section == "repeller"
    with pytest.raises(ConfigError) as excinfo:
        AttractorConfig(location=(1, 2, 3))
    assert excinfo.value.section == "attractor"


def test_load_config_builds_nested_sections():
    config = load_config(
        {
            "seed": 9,
            "world": {"width": 400, "height": 300},
            "flow_fields": {"drift": {"resolution": 20, "angle": 90}},
            "attractors": [{"location": [200, 150], "G": 2}],
            "liquids": [{"location": [100, 100], "c": 0.5}],
            "agents": [
                {
                    "count": 3,
                    "flow_field": "drift",
                    "agent": {"class_name": "seed", "max_speed": 2},
                    "sensors": [{"stimulus": "sun", "behavior": "coward"}],
                }
            ],
        }
    )
    assert config.seed == 9
    assert config.world.width == 400
    assert config.flow_fields["drift"].angle == 90
    assert config.attractors[0].location == (200.0, 150.0)
    assert config.liquids[0].c == 0.5
    group = config.agents[0]
    assert group.count == 3
    assert group.agent.class_name == "seed"
    assert group.sensors[0].behavior == "coward"


def test_load_config_rejects_unknown_and_missing_fields():
    with pytest.raises(ConfigError) as excinfo:
        load_config({"attractors": [{"G": 1, "colour": "red"}]})
    problems = excinfo.value.problems
    assert "colour: unknown field" in problems
    assert "location: missing required field" in problems


def test_load_config_rejects_unknown_flow_field_reference():
    with pytest.raises(ConfigError) as excinfo:
        load_config({"agents": [{"flow_field": "missing"}]})
    assert "unknown flow field" in excinfo.value.problems[0]


def test_load_config_rejects_bad_sensor_behavior():
    with pytest.raises(ConfigError) as excinfo:
        load_config({"agents": [{"sensors": [{"stimulus": "food", "behavior": "curious"}]}]})
    assert excinfo.value.section == "sensor"


def test_from_yaml_reads_file(tmp_path):
    path = tmp_path / "scenario.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "seed": 3,
                "double_buffer": False,
                "agents": [{"count": 2, "location": [10, 20], "agent": {"wrap_edges": True}}],
            }
        )
    )
    config = SimulationConfig.from_yaml(path)
    assert config.seed == 3
    assert config.double_buffer is False
    assert config.agents[0].location == (10.0, 20.0)
    assert config.agents[0].agent.wrap_edges is True


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    config = SimulationConfig.from_yaml(path)
    assert config == SimulationConfig()


@pytest.mark.config_change
def test_bundled_scenarios_load():
    paths = sorted(SCENARIOS.glob("*.yaml"))
    assert paths
    for path in paths:
        config = SimulationConfig.from_yaml(path)
        assert config.agents
