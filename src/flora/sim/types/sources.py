from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Protocol

from pygame.math import Vector2

from ..core.config import ConfigError, _type_problems

if TYPE_CHECKING:
    from ..core.agent import Agent


class Element(Protocol):
    @property
    def id(self) -> int: ...

    @property
    def class_name(self) -> str: ...

    @property
    def location(self) -> Vector2: ...

    @property
    def width(self) -> float: ...

    @property
    def height(self) -> float: ...


class Mover(Element, Protocol):
    @property
    def velocity(self) -> Vector2: ...

    @property
    def angle(self) -> float: ...


class ForceSource(Element, Protocol):
    @property
    def G(self) -> float: ...

    @property
    def mass(self) -> float: ...


def _validate(source: Any, kinds: Dict[str, str]) -> None:
    problems = _type_problems(source, {"id": "integer", "class_name": "string", **kinds})
    if not isinstance(source.location, Vector2):
        problems.append(f"location: expected Vector2, got {type(source.location).__name__}")
    if problems:
        raise ConfigError(type(source).__name__.lower(), problems)


@dataclass
class Attractor:
    id: int
    location: Vector2
    G: float = 10.0
    mass: float = 1000.0
    width: float = 100.0
    height: float = 100.0
    class_name: str = "attractor"

    def __post_init__(self) -> None:
        _validate(self, {"G": "number", "mass": "number", "width": "number", "height": "number"})


@dataclass
class Repeller(Attractor):
    G: float = -10.0
    class_name: str = "repeller"


@dataclass
class Liquid:
    id: int
    location: Vector2
    width: float = 200.0
    height: float = 200.0
    c: float = 1.0
    class_name: str = "liquid"
    # set while any agent overlaps the liquid during the current frame
    occupied: bool = False

    def __post_init__(self) -> None:
        _validate(self, {"width": "number", "height": "number", "c": "number", "occupied": "bool"})


@dataclass(frozen=True, slots=True)
class PeerState:
    """Read-only copy of an agent's public state taken before a frame starts."""

    id: int
    class_name: str
    location: Vector2
    velocity: Vector2
    angle: float
    width: float
    height: float
    mass: float = 1.0

    @classmethod
    def of(cls, agent: Agent) -> "PeerState":
        return cls(
            id=agent.id,
            class_name=agent.class_name,
            location=agent.location.copy(),
            velocity=agent.velocity.copy(),
            angle=agent.angle,
            width=agent.width,
            height=agent.height,
            mass=agent.mass,
        )
