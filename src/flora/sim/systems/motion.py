from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..utils.math2d import heading_degrees, limit, limit_low, polar_offset
from . import boundaries, forces, steering

if TYPE_CHECKING:
    from ..core.agent import Agent
    from ..types.context import StepContext
    from ..types.sensor import Sensor

log = logging.getLogger(__name__)

_POINT_TO_DIRECTION_MIN_SPEED = 0.1


def step_agent(agent: Agent, context: StepContext) -> None:
    if agent.before_step is not None:
        agent.before_step(agent, context)

    if agent.config.is_static or agent.is_pressed:
        if agent.after_step is not None:
            agent.after_step(agent, context)
        return

    apply_forces(agent, context)
    integrate(agent, context)

    if agent.after_step is not None:
        agent.after_step(agent, context)

    agent.acceleration.update(0.0, 0.0)
    if agent.lifespan > 0:
        agent.lifespan -= 1


def apply_forces(agent: Agent, context: StepContext) -> None:
    config = agent.config
    world = context.world

    for liquid in context.liquids:
        if liquid.id != agent.id and forces.is_inside(agent, liquid):
            agent.apply_force(forces.drag(agent, liquid))
            liquid.occupied = True

    for repeller in context.repellers:
        if repeller.id != agent.id:
            agent.apply_force(forces.attract(agent, repeller))

    for attractor in context.attractors:
        if attractor.id != agent.id:
            agent.apply_force(forces.attract(agent, attractor))

    sensor_activated = False
    for sensor in agent.sensors:
        place_sensor(agent, sensor)
        if sensor.activated:
            agent.apply_force(sensor.get_activation_force(agent))
            sensor_activated = True

    if not sensor_activated and config.motor_speed:
        agent.apply_force(forces.motor(agent))

    if world.c:
        agent.apply_force(forces.friction(agent, world.c))
    agent.apply_force(world.wind)
    agent.apply_force(world.gravity)

    if config.follow_mouse:
        agent.apply_force(steering.seek(agent, context.mouse.location, world))

    if agent.seek_target is not None:
        target = context.find(agent.seek_target)
        if target is None:
            log.debug("agent %s: seek target %s is not registered", agent.id, agent.seek_target)
        else:
            agent.apply_force(steering.seek(agent, target.location, world))

    if agent.flow_field is not None:
        apply_flow_field(agent, context)

    if agent.follow_target is not None:
        agent.apply_force(steering.follow(agent, agent.follow_target))

    if config.flocking:
        steering.flock(agent, context.elements)

    if config.avoid_edges:
        steering.avoid_edges(agent, world)


def place_sensor(agent: Agent, sensor: Sensor) -> None:
    sensor.location.update(agent.location + polar_offset(sensor.offset_distance, agent.angle + sensor.offset_angle))


def apply_flow_field(agent: Agent, context: StepContext) -> None:
    flow_field = context.flow_field(agent.flow_field)
    if flow_field is None:
        log.debug("agent %s: flow field %r is not registered", agent.id, agent.flow_field)
        return
    col, row = flow_field.cell_key(agent.location)
    column = flow_field.column(col)
    if column is None:
        return
    cell = column.get(row)
    # rows can be missing along the field's edge; fall back to the agent's own location
    target = Vector2(cell) if cell is not None else agent.location.copy()
    agent.apply_force(steering.follow(agent, target))


def integrate(agent: Agent, context: StepContext) -> None:
    config = agent.config
    world = context.world

    agent.velocity += agent.acceleration
    if config.max_speed:
        limit(agent.velocity, config.max_speed)
    if config.min_speed:
        limit_low(agent.velocity, config.min_speed)
    agent.location += agent.velocity

    if config.point_to_direction and agent.velocity.length() > _POINT_TO_DIRECTION_MIN_SPEED:
        agent.angle = heading_degrees(agent.velocity)

    if config.control_camera:
        boundaries.check_camera_edges(agent, world)

    if config.check_edges or config.wrap_edges:
        boundaries.check_world_edges(agent, world)

    if agent.parent is not None:
        follow_parent(agent, context)


def follow_parent(agent: Agent, context: StepContext) -> None:
    parent = context.find(agent.parent)
    if parent is None:
        log.debug("agent %s: parent %s is not registered", agent.id, agent.parent)
        return
    offset_distance = agent.config.offset_distance
    if offset_distance:
        angle = parent.angle + agent.config.offset_angle
        agent.location.update(parent.location + polar_offset(offset_distance, angle))
    else:
        agent.location.update(parent.location)
