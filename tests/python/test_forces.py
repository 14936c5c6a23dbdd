from __future__ import annotations

import pytest
from pygame.math import Vector2
from pytest import approx

from flora.sim.core.agent import Agent
from flora.sim.core.config import AgentConfig, ConfigError
from flora.sim.systems import forces
from flora.sim.types.sources import Attractor, Liquid, Repeller


def _make_agent(location=(0.0, 0.0), velocity=(0.0, 0.0), **options) -> Agent:
    return Agent(id=0, location=Vector2(location), velocity=Vector2(velocity), config=AgentConfig(**options))


def test_attract_inverse_square_magnitude():
    agent = _make_agent(location=(0.0, 0.0), mass=1.0, width=10.0, height=10.0)
    attractor = Attractor(id=1, location=Vector2(20.0, 0.0), G=1.0, mass=100.0, width=10.0, height=10.0)
    force = forces.attract(agent, attractor)
    assert force.length() == approx(0.25)
    assert force.x > 0
    assert force.y == approx(0.0)


def test_attract_constrains_distance_for_overlapping_bodies():
    agent = _make_agent(location=(0.0, 0.0), mass=1.0, width=10.0, height=10.0)
    close = Attractor(id=1, location=Vector2(1.0, 0.0), G=1.0, mass=100.0, width=10.0, height=10.0)
    force = forces.attract(agent, close)
    # distance is raised to the agent's area / 8 = 12.5
    assert force.length() == approx(100.0 / (12.5 * 12.5))


def test_attract_returns_zero_when_constrained_distance_is_zero():
    agent = _make_agent(width=0.0, height=0.0)
    point = Attractor(id=1, location=Vector2(0.0, 0.0), width=0.0, height=0.0)
    assert forces.attract(agent, point) == Vector2()


def test_repeller_pushes_away():
    agent = _make_agent(location=(0.0, 0.0), mass=1.0, width=10.0, height=10.0)
    repeller = Repeller(id=1, location=Vector2(20.0, 0.0), mass=100.0, width=10.0, height=10.0)
    force = forces.attract(agent, repeller)
    assert force.x < 0
    assert force.length() == approx(10.0 * 100.0 / 400.0)


def test_drag_opposes_velocity_with_speed_squared():
    agent = _make_agent(velocity=(2.0, 0.0))
    liquid = Liquid(id=1, location=Vector2(), c=1.0)
    force = forces.drag(agent, liquid)
    assert force.x == approx(-4.0)
    assert force.y == approx(0.0)


def test_friction_opposes_velocity():
    agent = _make_agent(velocity=(3.0, 4.0))
    force = forces.friction(agent, 0.1)
    assert force.x == approx(-0.06)
    assert force.y == approx(-0.08)


def test_motor_pushes_toward_motor_speed():
    slow = _make_agent(velocity=(1.0, 0.0), motor_speed=2.0)
    fast = _make_agent(velocity=(5.0, 0.0), motor_speed=2.0)
    assert forces.motor(slow).x == approx(2.0)
    assert forces.motor(fast).x == approx(-2.0)


def test_is_inside_uses_strict_bounding_box_overlap():
    liquid = Liquid(id=1, location=Vector2(100.0, 100.0), width=100.0, height=100.0)
    inside = _make_agent(location=(100.0, 100.0))
    touching = _make_agent(location=(160.0, 100.0), width=20.0)
    outside = _make_agent(location=(300.0, 300.0))
    assert forces.is_inside(inside, liquid)
    assert not forces.is_inside(touching, liquid)
    assert not forces.is_inside(outside, liquid)


def test_sources_validate_fields_at_construction():
    with pytest.raises(ConfigError) as excinfo:
        Liquid(id=1, location=Vector2(), c="thick")
    assert excinfo.value.section == "liquid"
    assert [problem.split(":", 1)[0] for problem in excinfo.value.problems] == ["c"]

    with pytest.raises(ConfigError) as excinfo:
        Attractor(id=1, location=(1.0, 2.0), mass=None)
    assert excinfo.value.section == "attractor"
    assert sorted(problem.split(":", 1)[0] for problem in excinfo.value.problems) == ["location", "mass"]

    with pytest.raises(ConfigError) as excinfo:
        Repeller(id=1, location=Vector2(), G="push")
    assert excinfo.value.section == "repeller"
