from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import FrameMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: FrameMetrics
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    sources: "SnapshotSources"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float
    camera_x: float
    camera_y: float


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str


@dataclass(slots=True)
class SnapshotSources:
    attractors: List[Dict[str, Any]]
    repellers: List[Dict[str, Any]]
    liquids: List[Dict[str, Any]]
