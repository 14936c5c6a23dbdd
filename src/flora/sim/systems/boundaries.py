from __future__ import annotations

from typing import TYPE_CHECKING

from pygame.math import Vector2

if TYPE_CHECKING:
    from ..core.agent import Agent
    from ..types.world import World


def _wrap(position: float, extent: float) -> float | None:
    if position > extent:
        return 0.0
    if position < 0:
        return extent
    return None


def _bounce(position: float, half_size: float, extent: float) -> float | None:
    if position + half_size > extent:
        return extent - half_size
    if position < half_size:
        return half_size
    return None


def check_world_edges(agent: Agent, world: World) -> bool:
    """Wrap or bounce the agent back inside the world.

    Wrapping tests the agent's center against the world bounds; bouncing keeps
    the whole bounding box inside and reflects the crossing velocity component
    scaled by ``bounciness``. Returns True when any edge was crossed.
    """
    config = agent.config
    location = agent.location
    before = location.copy()
    if config.wrap_edges:
        new_x = _wrap(location.x, world.width)
        new_y = _wrap(location.y, world.height)
    else:
        new_x = _bounce(location.x, agent.width / 2, world.width)
        new_y = _bounce(location.y, agent.height / 2, world.height)
        if new_x is not None:
            agent.velocity.x *= -config.bounciness
        if new_y is not None:
            agent.velocity.y *= -config.bounciness
    if new_x is not None:
        location.x = new_x
    if new_y is not None:
        location.y = new_y
    crossed = new_x is not None or new_y is not None
    if crossed and config.control_camera:
        world.location += Vector2(before.x - location.x, before.y - location.y)
    return crossed


def check_camera_edges(agent: Agent, world: World) -> None:
    world.location -= agent.velocity
