from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from pygame.math import Vector2

from ..types.sources import Mover
from ..utils.math2d import limit, map_range, normalize, subtract

if TYPE_CHECKING:
    from ..core.agent import Agent
    from ..types.world import World


def _to_steering(agent: Agent, desired: Vector2) -> Vector2:
    desired -= agent.velocity
    return limit(desired, agent.config.max_steering_force)


def seek(agent: Agent, target: Vector2, world: World) -> Vector2:
    config = agent.config
    desired = subtract(target, agent.location)
    distance = desired.length()
    normalize(desired)
    half_width = world.width / 2
    if distance < half_width:
        # arrival: slow down linearly inside half the world width
        desired *= map_range(distance, 0, half_width, 0, config.max_speed)
    else:
        desired *= config.max_speed
    return _to_steering(agent, desired)


def follow(agent: Agent, target: Vector2) -> Vector2:
    # target is already a direction (a flow-field cell), not a point to reach
    desired = Vector2(target.x, target.y) * agent.config.max_speed
    return _to_steering(agent, desired)


def flee(agent: Agent, target: Vector2) -> Vector2:
    desired = normalize(subtract(target, agent.location))
    desired *= -agent.config.max_speed
    return desired


def steer(agent: Agent, direction: Vector2) -> Vector2:
    desired = normalize(Vector2(direction.x, direction.y))
    desired *= agent.config.max_speed
    return _to_steering(agent, desired)


def _is_peer(agent: Agent, other: Mover) -> bool:
    return other.class_name == agent.class_name and other.id != agent.id


def separate(agent: Agent, population: Sequence[Mover]) -> Vector2:
    radius = agent.config.desired_separation
    total = Vector2()
    count = 0
    for other in population:
        if not _is_peer(agent, other):
            continue
        distance = agent.location.distance_to(other.location)
        if 0 < distance < radius:
            away = normalize(subtract(agent.location, other.location))
            away /= distance
            total += away
            count += 1
    if count == 0:
        return Vector2()
    total /= count
    return steer(agent, total)


def align(agent: Agent, population: Sequence[Mover]) -> Vector2:
    radius = agent.config.align_radius
    total = Vector2()
    count = 0
    for other in population:
        if not _is_peer(agent, other):
            continue
        distance = agent.location.distance_to(other.location)
        if 0 < distance < radius:
            total += other.velocity
            count += 1
    if count == 0:
        return Vector2()
    total /= count
    return steer(agent, total)


def cohesion(agent: Agent, population: Sequence[Mover]) -> Vector2:
    radius = agent.config.cohesion_radius
    total = Vector2()
    count = 0
    for other in population:
        if not _is_peer(agent, other):
            continue
        distance = agent.location.distance_to(other.location)
        if 0 < distance < radius:
            total += other.location
            count += 1
    if count == 0:
        return Vector2()
    total /= count
    total -= agent.location
    return steer(agent, total)


def flock(agent: Agent, population: Sequence[Mover]) -> None:
    config = agent.config
    agent.apply_force(separate(agent, population) * config.separate_strength)
    agent.apply_force(align(agent, population) * config.align_strength)
    agent.apply_force(cohesion(agent, population) * config.cohesion_strength)


def _edge_speed(position: float, extent: float, margin: float, max_speed: float) -> float:
    if position < margin:
        return max_speed
    if position > extent - margin:
        return -max_speed
    return 0.0


def avoid_edges(agent: Agent, world: World) -> None:
    config = agent.config
    margin = config.avoid_edges_strength
    velocity = agent.velocity
    desired_x = _edge_speed(agent.location.x, world.width, margin, config.max_speed)
    if desired_x:
        agent.apply_force(limit(Vector2(desired_x - velocity.x, 0.0), config.max_steering_force))
    desired_y = _edge_speed(agent.location.y, world.height, margin, config.max_speed)
    if desired_y:
        agent.apply_force(limit(Vector2(0.0, desired_y - velocity.y), config.max_steering_force))
