from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

from pygame.math import Vector2

from ..systems import motion
from .config import AgentConfig, ConfigError

if TYPE_CHECKING:
    from ..types.context import StepContext
    from ..types.sensor import Sensor

StepHook = Callable[["Agent", "StepContext"], None]


@dataclass(slots=True)
class Agent:
    id: int
    location: Vector2
    config: AgentConfig = field(default_factory=AgentConfig)
    velocity: Vector2 = field(default_factory=Vector2)
    acceleration: Vector2 = field(default_factory=Vector2)
    angle: float = 0.0
    lifespan: Optional[int] = None
    parent: Optional[int] = None
    seek_target: Optional[int] = None
    follow_target: Optional[Vector2] = None
    flow_field: Optional[str] = None
    sensors: List[Sensor] = field(default_factory=list)
    before_step: Optional[StepHook] = None
    after_step: Optional[StepHook] = None
    is_pressed: bool = False

    def __post_init__(self) -> None:
        problems = []
        if not isinstance(self.config, AgentConfig):
            problems.append(f"config: expected AgentConfig, got {type(self.config).__name__}")
        if not isinstance(self.location, Vector2):
            problems.append(f"location: expected Vector2, got {type(self.location).__name__}")
        if not isinstance(self.velocity, Vector2):
            problems.append(f"velocity: expected Vector2, got {type(self.velocity).__name__}")
        for name in ("before_step", "after_step"):
            hook = getattr(self, name)
            if hook is not None and not callable(hook):
                problems.append(f"{name}: expected a callable, got {type(hook).__name__}")
        if problems:
            raise ConfigError("agent", problems)
        if self.lifespan is None:
            self.lifespan = self.config.lifespan

    @property
    def mass(self) -> float:
        return self.config.mass

    @property
    def width(self) -> float:
        return self.config.width

    @property
    def height(self) -> float:
        return self.config.height

    @property
    def class_name(self) -> str:
        return self.config.class_name

    @property
    def expired(self) -> bool:
        return self.lifespan == 0

    def step(self, context: StepContext) -> None:
        motion.step_agent(self, context)

    def apply_force(self, force: Vector2) -> None:
        self.acceleration += force / self.config.mass

    def get_location(self, axis: Optional[str] = None) -> Vector2 | float:
        return _component(self.location, axis)

    def get_velocity(self, axis: Optional[str] = None) -> Vector2 | float:
        return _component(self.velocity, axis)


def _component(vector: Vector2, axis: Optional[str]) -> Vector2 | float:
    if axis is None:
        return Vector2(vector.x, vector.y)
    if axis == "x":
        return vector.x
    if axis == "y":
        return vector.y
    raise ValueError(f"Unknown axis: {axis}")
