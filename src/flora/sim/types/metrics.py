from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class FrameMetrics:
    tick: int
    population: int
    removed: int
    average_speed: float
    max_speed: float
    active: int
    tick_duration_ms: float = 0.0
