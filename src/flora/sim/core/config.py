from __future__ import annotations

import logging
from dataclasses import MISSING, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

import yaml

log = logging.getLogger(__name__)

T = TypeVar("T")

_BEHAVIORS = ("aggressive", "coward")


class ConfigError(ValueError):
    def __init__(self, section: str, problems: List[str]):
        self.section = section
        self.problems = list(problems)
        super().__init__(f"invalid {section} configuration: " + "; ".join(self.problems))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches(value: Any, kind: str) -> bool:
    if kind.startswith("optional "):
        return value is None or _matches(value, kind[len("optional ") :])
    if kind == "number":
        return _is_number(value)
    if kind == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if kind == "bool":
        return isinstance(value, bool)
    if kind == "string":
        return isinstance(value, str)
    if kind == "pair":
        return isinstance(value, (tuple, list)) and len(value) == 2 and all(_is_number(v) for v in value)
    raise AssertionError(f"unknown field kind {kind}")


def _type_problems(instance: Any, kinds: Dict[str, str]) -> List[str]:
    problems = []
    for name, kind in kinds.items():
        value = getattr(instance, name)
        if not _matches(value, kind):
            problems.append(f"{name}: expected {kind}, got {type(value).__name__} {value!r}")
    return problems


def _pair(value: Tuple[float, float] | List[float]) -> Tuple[float, float]:
    return (float(value[0]), float(value[1]))


@dataclass
class WorldConfig:
    width: float = 800.0
    height: float = 600.0
    gravity: Tuple[float, float] = (0.0, 1.0)
    wind: Tuple[float, float] = (0.0, 0.0)
    c: Optional[float] = 0.1

    def __post_init__(self) -> None:
        problems = _type_problems(
            self,
            {
                "width": "number",
                "height": "number",
                "gravity": "pair",
                "wind": "pair",
                "c": "optional number",
            },
        )
        problems.extend(_range_problems(self, [("width", 0.0, False), ("height", 0.0, False)], problems))
        if problems:
            raise ConfigError("world", problems)
        self.gravity = _pair(self.gravity)
        self.wind = _pair(self.wind)


@dataclass
class AgentConfig:
    mass: float = 10.0
    width: float = 20.0
    height: float = 20.0
    class_name: str = "agent"
    max_speed: float = 10.0
    min_speed: float = 0.0
    motor_speed: float = 0.0
    lifespan: int = -1
    offset_distance: float = 30.0
    offset_angle: float = 0.0
    point_to_direction: bool = True
    follow_mouse: bool = False
    is_static: bool = False
    check_edges: bool = True
    wrap_edges: bool = False
    avoid_edges: bool = False
    avoid_edges_strength: float = 200.0
    bounciness: float = 0.75
    max_steering_force: float = 100.0
    turning_radius: float = 90.0
    thrust: float = 5.0
    flocking: bool = False
    desired_separation: Optional[float] = None
    separate_strength: float = 0.3
    align_strength: float = 0.2
    cohesion_strength: float = 0.1
    # align looks twice the body width out unless set; cohesion uses a fixed radius
    align_radius: Optional[float] = None
    cohesion_radius: float = 10.0
    control_camera: bool = False

    def __post_init__(self) -> None:
        kinds = {
            "mass": "number",
            "width": "number",
            "height": "number",
            "class_name": "string",
            "max_speed": "number",
            "min_speed": "number",
            "motor_speed": "number",
            "lifespan": "integer",
            "offset_distance": "number",
            "offset_angle": "number",
            "point_to_direction": "bool",
            "follow_mouse": "bool",
            "is_static": "bool",
            "check_edges": "bool",
            "wrap_edges": "bool",
            "avoid_edges": "bool",
            "avoid_edges_strength": "number",
            "bounciness": "number",
            "max_steering_force": "number",
            "turning_radius": "number",
            "thrust": "number",
            "flocking": "bool",
            "desired_separation": "optional number",
            "separate_strength": "number",
            "align_strength": "number",
            "cohesion_strength": "number",
            "align_radius": "optional number",
            "cohesion_radius": "number",
            "control_camera": "bool",
        }
        problems = _type_problems(self, kinds)
        non_negative = ("width", "height", "max_speed", "min_speed", "motor_speed", "max_steering_force", "bounciness")
        rules = [("mass", 0.0, False), ("lifespan", -1, True)] + [(name, 0.0, True) for name in non_negative]
        problems.extend(_range_problems(self, rules, problems))
        if problems:
            raise ConfigError("agent", problems)
        if self.desired_separation is None:
            self.desired_separation = self.width * 2
        if self.align_radius is None:
            self.align_radius = self.width * 2


def _range_problems(instance: Any, rules: List[Tuple[str, float, bool]], type_problems: List[str]) -> List[str]:
    invalid = {problem.split(":", 1)[0] for problem in type_problems}
    problems = []
    for name, low, inclusive in rules:
        if name in invalid:
            continue
        value = getattr(instance, name)
        if value < low or (value == low and not inclusive):
            relation = ">=" if inclusive else ">"
            problems.append(f"{name}: must be {relation} {low}, got {value!r}")
    return problems


@dataclass
class SensorConfig:
    stimulus: str
    sensitivity: float = 100.0
    behavior: str = "aggressive"
    offset_distance: float = 30.0
    offset_angle: float = 0.0

    def __post_init__(self) -> None:
        problems = _type_problems(
            self,
            {
                "stimulus": "string",
                "sensitivity": "number",
                "behavior": "string",
                "offset_distance": "number",
                "offset_angle": "number",
            },
        )
        if isinstance(self.behavior, str) and self.behavior not in _BEHAVIORS:
            problems.append(f"behavior: expected one of {', '.join(_BEHAVIORS)}, got {self.behavior!r}")
        if problems:
            raise ConfigError("sensor", problems)


@dataclass
class AgentGroupConfig:
    count: int = 1
    agent: AgentConfig = field(default_factory=AgentConfig)
    location: Optional[Tuple[float, float]] = None
    velocity: Tuple[float, float] = (0.0, 0.0)
    flow_field: Optional[str] = None
    sensors: List[SensorConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        problems = _type_problems(
            self,
            {
                "count": "integer",
                "location": "optional pair",
                "velocity": "pair",
                "flow_field": "optional string",
            },
        )
        problems.extend(_range_problems(self, [("count", 0, True)], problems))
        if problems:
            raise ConfigError("agents", problems)
        if self.location is not None:
            self.location = _pair(self.location)
        self.velocity = _pair(self.velocity)


@dataclass
class AttractorConfig:
    location: Tuple[float, float]
    G: float = 10.0
    mass: float = 1000.0
    width: float = 100.0
    height: float = 100.0
    class_name: str = "attractor"

    def __post_init__(self) -> None:
        problems = _type_problems(
            self,
            {
                "location": "pair",
                "G": "number",
                "mass": "number",
                "width": "number",
                "height": "number",
                "class_name": "string",
            },
        )
        if problems:
            raise ConfigError(type(self).__name__[: -len("Config")].lower(), problems)
        self.location = _pair(self.location)


@dataclass
class RepellerConfig(AttractorConfig):
    G: float = -10.0
    class_name: str = "repeller"


@dataclass
class LiquidConfig:
    location: Tuple[float, float]
    width: float = 200.0
    height: float = 200.0
    c: float = 1.0
    class_name: str = "liquid"

    def __post_init__(self) -> None:
        problems = _type_problems(
            self,
            {"location": "pair", "width": "number", "height": "number", "c": "number", "class_name": "string"},
        )
        if problems:
            raise ConfigError("liquid", problems)
        self.location = _pair(self.location)


@dataclass
class FlowFieldConfig:
    resolution: float
    angle: float = 0.0
    width: Optional[float] = None
    height: Optional[float] = None

    def __post_init__(self) -> None:
        problems = _type_problems(
            self,
            {"resolution": "number", "angle": "number", "width": "optional number", "height": "optional number"},
        )
        problems.extend(_range_problems(self, [("resolution", 0.0, False)], problems))
        if problems:
            raise ConfigError("flow_field", problems)


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    seed: int = 42
    config_version: str = "v1"
    double_buffer: bool = True
    remove_expired: bool = True
    world: WorldConfig = field(default_factory=WorldConfig)
    agents: List[AgentGroupConfig] = field(default_factory=list)
    attractors: List[AttractorConfig] = field(default_factory=list)
    repellers: List[RepellerConfig] = field(default_factory=list)
    liquids: List[LiquidConfig] = field(default_factory=list)
    flow_fields: Dict[str, FlowFieldConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        problems = _type_problems(
            self,
            {
                "time_step": "number",
                "seed": "integer",
                "config_version": "string",
                "double_buffer": "bool",
                "remove_expired": "bool",
            },
        )
        problems.extend(_range_problems(self, [("time_step", 0.0, False)], problems))
        if problems:
            raise ConfigError("simulation", problems)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        log.debug("loaded scenario %s", path)
        return load_config(data)


def from_mapping(cls: Type[T], raw: Any, section: str) -> T:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError(section, [f"expected a mapping, got {type(raw).__name__}"])
    known = {f.name for f in fields(cls)}
    required = [f.name for f in fields(cls) if f.default is MISSING and f.default_factory is MISSING]
    problems = [f"{key}: unknown field" for key in raw if key not in known]
    problems.extend(f"{name}: missing required field" for name in required if name not in raw)
    if problems:
        raise ConfigError(section, problems)
    return cls(**raw)


def _sequence(raw: Any, section: str) -> List[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(section, [f"expected a list, got {type(raw).__name__}"])
    return raw


def load_agent_group(raw: Any) -> AgentGroupConfig:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError("agents", [f"expected a mapping, got {type(raw).__name__}"])
    agent = from_mapping(AgentConfig, raw.get("agent"), "agent")
    sensors = [from_mapping(SensorConfig, item, "sensor") for item in _sequence(raw.get("sensors"), "sensors")]
    values = {k: v for k, v in raw.items() if k not in {"agent", "sensors"}}
    return from_mapping(AgentGroupConfig, {**values, "agent": agent, "sensors": sensors}, "agents")


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, Mapping):
        raise ConfigError("simulation", [f"expected a mapping, got {type(raw).__name__}"])
    world = from_mapping(WorldConfig, raw.get("world"), "world")
    agents = [load_agent_group(item) for item in _sequence(raw.get("agents"), "agents")]
    attractors = [from_mapping(AttractorConfig, item, "attractor") for item in _sequence(raw.get("attractors"), "attractors")]
    repellers = [from_mapping(RepellerConfig, item, "repeller") for item in _sequence(raw.get("repellers"), "repellers")]
    liquids = [from_mapping(LiquidConfig, item, "liquid") for item in _sequence(raw.get("liquids"), "liquids")]
    flow_raw = raw.get("flow_fields") or {}
    if not isinstance(flow_raw, Mapping):
        raise ConfigError("flow_fields", [f"expected a mapping, got {type(flow_raw).__name__}"])
    flow_fields = {str(name): from_mapping(FlowFieldConfig, item, f"flow_fields.{name}") for name, item in flow_raw.items()}
    nested = {"world", "agents", "attractors", "repellers", "liquids", "flow_fields"}
    sim_values = {k: v for k, v in raw.items() if k not in nested}
    config = from_mapping(
        SimulationConfig,
        {
            **sim_values,
            "world": world,
            "agents": agents,
            "attractors": attractors,
            "repellers": repellers,
            "liquids": liquids,
            "flow_fields": flow_fields,
        },
        "simulation",
    )
    problems = [
        f"agents[{index}].flow_field: unknown flow field {group.flow_field!r}"
        for index, group in enumerate(agents)
        if group.flow_field is not None and group.flow_field not in flow_fields
    ]
    if problems:
        raise ConfigError("simulation", problems)
    return config
