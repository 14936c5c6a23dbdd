from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ..types.metrics import FrameMetrics

if TYPE_CHECKING:
    from ..core.agent import Agent


def create_metrics(
    tick: int,
    agents: Sequence[Agent],
    removed: int,
    duration_ms: float,
) -> FrameMetrics:
    speed_sum = 0.0
    max_speed = 0.0
    active = 0
    for agent in agents:
        speed = agent.velocity.length()
        speed_sum += speed
        if speed > max_speed:
            max_speed = speed
        if not agent.config.is_static and not agent.is_pressed:
            active += 1
    population = len(agents)
    return FrameMetrics(
        tick=tick,
        population=population,
        removed=removed,
        average_speed=speed_sum / population if population else 0.0,
        max_speed=max_speed,
        active=active,
        tick_duration_ms=duration_ms,
    )
