from __future__ import annotations

import logging
from dataclasses import replace
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional

from pygame.math import Vector2

from ..systems import metrics as metrics_system
from ..systems import motion
from ..types.context import StepContext
from ..types.flowfield import FlowField
from ..types.metrics import FrameMetrics
from ..types.sensor import Sensing, Sensor, StimulusSensor
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotSources, SnapshotWorld
from ..types.sources import Attractor, Liquid, PeerState, Repeller
from ..types.world import Mouse, World
from .agent import Agent, StepHook
from .config import AgentConfig, AgentGroupConfig, SimulationConfig
from .rng import DeterministicRng

log = logging.getLogger(__name__)


class Simulation:
    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._world = World.from_config(config.world)
        self._mouse = Mouse()
        self._agents: List[Agent] = []
        self._attractors: List[Attractor] = []
        self._repellers: List[Repeller] = []
        self._liquids: List[Liquid] = []
        self._flow_fields: Dict[str, FlowField] = {}
        self._next_id = 0
        self._metrics: FrameMetrics | None = None
        self._bootstrap()

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def world(self) -> World:
        return self._world

    @property
    def mouse(self) -> Mouse:
        return self._mouse

    @property
    def attractors(self) -> List[Attractor]:
        return self._attractors

    @property
    def repellers(self) -> List[Repeller]:
        return self._repellers

    @property
    def liquids(self) -> List[Liquid]:
        return self._liquids

    @property
    def metrics(self) -> FrameMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._agents.clear()
        self._attractors.clear()
        self._repellers.clear()
        self._liquids.clear()
        self._flow_fields.clear()
        self._rng.reset()
        self._world = World.from_config(self._config.world)
        self._mouse = Mouse()
        self._next_id = 0
        self._metrics = None
        self._bootstrap()

    def add_agent(
        self,
        config: AgentConfig | None = None,
        location: Vector2 | None = None,
        velocity: Vector2 | None = None,
        parent: int | None = None,
        seek_target: int | None = None,
        follow_target: Vector2 | None = None,
        flow_field: str | None = None,
        sensors: Iterable[Sensor] = (),
        before_step: StepHook | None = None,
        after_step: StepHook | None = None,
    ) -> Agent:
        agent = Agent(
            id=self._allocate_id(),
            location=location if location is not None else Vector2(self._world.width / 2, self._world.height / 2),
            config=config if config is not None else AgentConfig(),
            velocity=velocity if velocity is not None else Vector2(),
            parent=parent,
            seek_target=seek_target,
            follow_target=follow_target,
            flow_field=flow_field,
            sensors=list(sensors),
            before_step=before_step,
            after_step=after_step,
        )
        self._agents.append(agent)
        log.debug("registered agent %s (%s)", agent.id, agent.class_name)
        return agent

    def add_attractor(self, location: Vector2, **options: Any) -> Attractor:
        attractor = Attractor(id=self._allocate_id(), location=location, **options)
        self._attractors.append(attractor)
        return attractor

    def add_repeller(self, location: Vector2, **options: Any) -> Repeller:
        repeller = Repeller(id=self._allocate_id(), location=location, **options)
        self._repellers.append(repeller)
        return repeller

    def add_liquid(self, location: Vector2, **options: Any) -> Liquid:
        liquid = Liquid(id=self._allocate_id(), location=location, **options)
        self._liquids.append(liquid)
        return liquid

    def add_flow_field(self, name: str, flow_field: FlowField) -> FlowField:
        self._flow_fields[name] = flow_field
        return flow_field

    def set_mouse(self, x: float, y: float) -> None:
        self._mouse.location.update(x, y)

    def find(self, element_id: int) -> Optional[Any]:
        for registry in (self._agents, self._attractors, self._repellers, self._liquids):
            for element in registry:
                if element.id == element_id:
                    return element
        return None

    def remove(self, element_id: int) -> bool:
        for registry in (self._agents, self._attractors, self._repellers, self._liquids):
            for index, element in enumerate(registry):
                if element.id == element_id:
                    del registry[index]
                    log.debug("removed element %s", element_id)
                    return True
        return False

    def context(self) -> StepContext:
        if self._config.double_buffer:
            elements = [PeerState.of(agent) for agent in self._agents]
        else:
            elements = list(self._agents)
        return StepContext(
            world=self._world,
            elements=elements,
            liquids=self._liquids,
            attractors=self._attractors,
            repellers=self._repellers,
            mouse=self._mouse,
            flow_fields=self._flow_fields,
        )

    def step(self, tick: int) -> FrameMetrics:
        start = perf_counter()
        for liquid in self._liquids:
            liquid.occupied = False
        context = self.context()
        for agent in self._agents:
            for sensor in agent.sensors:
                motion.place_sensor(agent, sensor)
                if isinstance(sensor, Sensing):
                    sensor.sense(context, owner_id=agent.id)

        for agent in list(self._agents):
            agent.step(context)

        removed = self._remove_expired() if self._config.remove_expired else 0
        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(tick, self._agents, removed, elapsed_ms)
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = (
            self._metrics
            if self._metrics is not None
            else metrics_system.create_metrics(tick, self._agents, 0, 0.0)
        )
        time_step = self._config.time_step
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            world=SnapshotWorld(
                width=self._world.width,
                height=self._world.height,
                camera_x=self._world.location.x,
                camera_y=self._world.location.y,
            ),
            metadata=SnapshotMetadata(
                sim_dt=time_step,
                tick_rate=0.0 if time_step <= 0 else 1.0 / time_step,
                seed=self._config.seed,
                config_version=self._config.config_version,
            ),
            sources=SnapshotSources(
                attractors=[self._source_snapshot(item) for item in self._attractors],
                repellers=[self._source_snapshot(item) for item in self._repellers],
                liquids=[
                    {**self._source_snapshot(item), "occupied": item.occupied} for item in self._liquids
                ],
            ),
        )

    def _bootstrap(self) -> None:
        world = self._world
        for name, flow_config in self._config.flow_fields.items():
            width = flow_config.width if flow_config.width is not None else world.width
            height = flow_config.height if flow_config.height is not None else world.height
            self.add_flow_field(name, FlowField.uniform(width, height, flow_config.resolution, flow_config.angle))
        for attractor in self._config.attractors:
            self.add_attractor(
                Vector2(attractor.location),
                G=attractor.G,
                mass=attractor.mass,
                width=attractor.width,
                height=attractor.height,
                class_name=attractor.class_name,
            )
        for repeller in self._config.repellers:
            self.add_repeller(
                Vector2(repeller.location),
                G=repeller.G,
                mass=repeller.mass,
                width=repeller.width,
                height=repeller.height,
                class_name=repeller.class_name,
            )
        for liquid in self._config.liquids:
            self.add_liquid(
                Vector2(liquid.location),
                width=liquid.width,
                height=liquid.height,
                c=liquid.c,
                class_name=liquid.class_name,
            )
        for group in self._config.agents:
            self._spawn_group(group)

    def _spawn_group(self, group: AgentGroupConfig) -> None:
        for _ in range(group.count):
            if group.location is not None:
                location = Vector2(group.location)
            else:
                location = self._rng.next_location(self._world.width, self._world.height)
            self.add_agent(
                config=replace(group.agent),
                location=location,
                velocity=Vector2(group.velocity),
                flow_field=group.flow_field,
                sensors=[StimulusSensor.from_config(sensor) for sensor in group.sensors],
            )

    def _allocate_id(self) -> int:
        element_id = self._next_id
        self._next_id += 1
        return element_id

    def _remove_expired(self) -> int:
        survivors = []
        removed = 0
        for agent in self._agents:
            if agent.expired:
                removed += 1
                log.debug("agent %s expired", agent.id)
            else:
                survivors.append(agent)
        self._agents = survivors
        return removed

    @staticmethod
    def _agent_snapshot(agent: Agent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "class_name": agent.class_name,
            "x": agent.location.x,
            "y": agent.location.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "angle": agent.angle,
            "speed": agent.velocity.length(),
            "width": agent.width,
            "height": agent.height,
            "lifespan": agent.lifespan,
            "is_static": agent.config.is_static,
            "parent": agent.parent,
        }

    @staticmethod
    def _source_snapshot(source: Attractor | Liquid) -> Dict[str, Any]:
        return {
            "id": source.id,
            "class_name": source.class_name,
            "x": source.location.x,
            "y": source.location.y,
            "width": source.width,
            "height": source.height,
        }
