from __future__ import annotations

from dataclasses import dataclass, field
from itertools import chain
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence

from .flowfield import FlowField
from .sources import Attractor, Element, Liquid, Mover, Repeller
from .world import Mouse, World


@dataclass(slots=True)
class StepContext:
    """Everything an agent reads during one frame.

    ``elements`` is the flocking population; the Simulation fills it with
    PeerState copies when double buffering, or with the live agents otherwise.
    """

    world: World
    elements: Sequence[Mover] = ()
    liquids: Sequence[Liquid] = ()
    attractors: Sequence[Attractor] = ()
    repellers: Sequence[Repeller] = ()
    mouse: Mouse = field(default_factory=Mouse)
    flow_fields: Mapping[str, FlowField] = field(default_factory=dict)
    _index: Dict[int, Any] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for element in chain(self.liquids, self.repellers, self.attractors, self.elements):
            self._index[element.id] = element

    def find(self, element_id: int) -> Optional[Any]:
        return self._index.get(element_id)

    def flow_field(self, name: str) -> Optional[FlowField]:
        return self.flow_fields.get(name)

    def stimuli(self) -> Iterator[Element]:
        return chain(self.elements, self.attractors, self.repellers, self.liquids)
