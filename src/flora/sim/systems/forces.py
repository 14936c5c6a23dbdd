from __future__ import annotations

from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..types.sources import Element, ForceSource, Liquid
from ..utils.math2d import constrain, normalize, scaled_direction, subtract

if TYPE_CHECKING:
    from ..core.agent import Agent


def attract(agent: Agent, source: ForceSource) -> Vector2:
    """Inverse-square pull toward ``source``; a negative ``G`` pushes away instead.

    The distance is constrained between an eighth of the agent's area and the
    source's area so that overlapping bodies do not produce huge forces.
    """
    force = subtract(source.location, agent.location)
    distance = constrain(force.length(), agent.width * agent.height / 8, source.width * source.height)
    if distance <= 0:
        return Vector2()
    normalize(force)
    force *= (source.G * source.mass * agent.mass) / (distance * distance)
    return force


def drag(agent: Agent, liquid: Liquid) -> Vector2:
    speed = agent.velocity.length()
    return scaled_direction(agent.velocity, -liquid.c * speed * speed)


def friction(agent: Agent, c: float) -> Vector2:
    return scaled_direction(agent.velocity, -c)


def motor(agent: Agent) -> Vector2:
    motor_speed = agent.config.motor_speed
    if agent.velocity.length() > motor_speed:
        return scaled_direction(agent.velocity, -motor_speed)
    return scaled_direction(agent.velocity, motor_speed)


def is_inside(agent: Element, container: Element) -> bool:
    return (
        agent.location.x + agent.width / 2 > container.location.x - container.width / 2
        and agent.location.x - agent.width / 2 < container.location.x + container.width / 2
        and agent.location.y + agent.height / 2 > container.location.y - container.height / 2
        and agent.location.y - agent.height / 2 < container.location.y + container.height / 2
    )
