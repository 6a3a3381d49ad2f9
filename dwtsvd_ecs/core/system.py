"""System base class for ECS transformations.

Systems are the "logic" layer of the ECS architecture. They operate on
components attached to entities, reading required components and producing
new components.

Every transform stage of the watermark pipeline is a System with two modes:
- 'forward': image -> planes -> wavelet bands -> blocks -> DCT -> SVD
- 'inverse': SVD -> DCT -> blocks -> wavelet bands -> planes -> image

Example:
    >>> class MySystem(System):
    ...     def required_components(self):
    ...         return [InputComponent]
    ...     def produced_components(self):
    ...         return [OutputComponent]
    ...     def run(self, world, eids):
    ...         for eid in eids:
    ...             src = world.get_component(eid, InputComponent)
    ...             world.add_component(eid, OutputComponent(...))
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from dwtsvd_ecs.core.world import World

logger = logging.getLogger(__name__)

Mode = Literal["forward", "inverse"]


class System(ABC):
    """Base class for all ECS systems.

    Systems transform components attached to entities. They declare:
    - required_components(): What inputs they need
    - produced_components(): What outputs they create
    - run(): The actual transformation logic

    Attributes:
        mode: Transformation direction ('forward' or 'inverse')
    """

    def __init__(self, mode: Mode = "forward") -> None:
        """Initialize system with transformation mode.

        Args:
            mode: Direction of transformation

        Raises:
            ValueError: If mode is not 'forward' or 'inverse'
        """
        if mode not in ("forward", "inverse"):
            raise ValueError(f"mode must be 'forward' or 'inverse', got {mode!r}")
        self.mode = mode

    @property
    def is_forward(self) -> bool:
        """True when running in the forward (analysis) direction."""
        return self.mode == "forward"

    @abstractmethod
    def required_components(self) -> list[type]:
        """Return list of component types this system requires as input."""

    @abstractmethod
    def produced_components(self) -> list[type]:
        """Return list of component types this system produces as output."""

    @abstractmethod
    def run(self, world: World, eids: list[int]) -> None:
        """Execute system on given entities.

        Args:
            world: World instance with entities and components
            eids: List of entity IDs to process

        Note:
            Implementations must add produced_components to each entity and
            must not mutate tensors they only read.
        """

    def can_run(self, world: World, eid: int) -> bool:
        """Check if entity has all required components."""
        return all(world.has_component(eid, ct) for ct in self.required_components())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(mode={self.mode})"
