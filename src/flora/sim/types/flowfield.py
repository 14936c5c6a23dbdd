from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

from pygame.math import Vector2

from ..utils.math2d import polar_offset


@dataclass(slots=True)
class FlowField:
    resolution: float
    field: Mapping[int, Mapping[int, Vector2]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        width: float,
        height: float,
        resolution: float,
        angle_fn: Callable[[int, int], float],
    ) -> "FlowField":
        """Fill every cell of a width x height area with a unit vector at ``angle_fn(col, row)`` degrees."""
        cols = int(math.ceil(width / resolution))
        rows = int(math.ceil(height / resolution))
        cells: Dict[int, Dict[int, Vector2]] = {}
        for col in range(cols):
            column = cells[col] = {}
            for row in range(rows):
                column[row] = polar_offset(1.0, angle_fn(col, row))
        return cls(resolution=resolution, field=cells)

    @classmethod
    def uniform(cls, width: float, height: float, resolution: float, angle: float) -> "FlowField":
        return cls.build(width, height, resolution, lambda _col, _row: angle)

    def cell_key(self, location: Vector2) -> tuple[int, int]:
        return (math.floor(location.x / self.resolution), math.floor(location.y / self.resolution))

    def column(self, col: int) -> Optional[Mapping[int, Vector2]]:
        return self.field.get(col)
