from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pygame.math import Vector2

from ..core.config import WorldConfig


@dataclass(slots=True)
class World:
    width: float
    height: float
    gravity: Vector2 = field(default_factory=lambda: Vector2(0.0, 1.0))
    wind: Vector2 = field(default_factory=Vector2)
    c: Optional[float] = 0.1
    # camera offset, shifted by agents with control_camera
    location: Vector2 = field(default_factory=Vector2)

    @classmethod
    def from_config(cls, config: WorldConfig) -> "World":
        return cls(
            width=config.width,
            height=config.height,
            gravity=Vector2(config.gravity),
            wind=Vector2(config.wind),
            c=config.c,
        )


@dataclass(slots=True)
class Mouse:
    location: Vector2 = field(default_factory=Vector2)
