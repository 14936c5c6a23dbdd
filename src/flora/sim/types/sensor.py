from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from pygame.math import Vector2

from ..core.config import ConfigError, SensorConfig
from ..systems import steering

if TYPE_CHECKING:
    from ..core.agent import Agent
    from .context import StepContext


class Sensor(Protocol):
    offset_distance: float
    offset_angle: float
    location: Vector2

    @property
    def activated(self) -> bool: ...

    def get_activation_force(self, agent: Agent) -> Vector2: ...


@runtime_checkable
class Sensing(Protocol):
    def sense(self, context: StepContext, owner_id: Optional[int] = None) -> None: ...


@dataclass(slots=True)
class StimulusSensor:
    stimulus: str
    sensitivity: float = 100.0
    behavior: str = "aggressive"
    offset_distance: float = 30.0
    offset_angle: float = 0.0
    location: Vector2 = field(default_factory=Vector2)
    activated: bool = False
    target: Optional[Vector2] = None

    def __post_init__(self) -> None:
        if self.behavior not in ("aggressive", "coward"):
            raise ConfigError("sensor", [f"behavior: expected one of aggressive, coward, got {self.behavior!r}"])

    @classmethod
    def from_config(cls, config: SensorConfig) -> "StimulusSensor":
        return cls(
            stimulus=config.stimulus,
            sensitivity=config.sensitivity,
            behavior=config.behavior,
            offset_distance=config.offset_distance,
            offset_angle=config.offset_angle,
        )

    def sense(self, context: StepContext, owner_id: Optional[int] = None) -> None:
        nearest: Optional[Vector2] = None
        nearest_dist = self.sensitivity
        for element in context.stimuli():
            if element.id == owner_id:
                continue
            if element.class_name != self.stimulus:
                continue
            dist = self.location.distance_to(element.location)
            if dist < nearest_dist:
                nearest = element.location
                nearest_dist = dist
        self.activated = nearest is not None
        self.target = nearest.copy() if nearest is not None else None

    def get_activation_force(self, agent: Agent) -> Vector2:
        if self.target is None:
            return Vector2()
        if self.behavior == "coward":
            return steering.flee(agent, self.target)
        return steering.steer(agent, self.target - agent.location)
