"""World: Entity-Component-System manager.

The World is the central ECS registry that manages:
- Entity creation (integer IDs)
- Component storage (type -> entity -> component mapping)
- Component queries (find entities with specific component combinations)
- Arena memory management

A World can be frozen once a pipeline has been prepared, and overlaid by a
scratch World that reads through to the frozen parent while writing into its
own arena. The watermark engine runs every embed call in such an overlay.

Example:
    >>> world = World()
    >>> eid = world.spawn_image(img)
    >>> world.pipe(eid).to(ColorConvert()).execute()
    >>> world.freeze()
    >>> scratch = world.overlay()
    >>> planes = scratch.get_component(eid, YUVPlanes)  # read from parent
"""

from __future__ import annotations

from typing import Any, TypeVar

import numpy as np
from pydantic import BaseModel

from dwtsvd_ecs.core.arena import Arena, TensorRef

Component = BaseModel

T = TypeVar("T", bound=Component)


class World:
    """Central ECS registry managing entities, components, and memory.

    Attributes:
        arena: Memory arena for tensor allocation
        metadata: Per-entity metadata dict
        parent: Frozen World this one overlays, if any

    Example:
        >>> world = World(arena_bytes=64 << 20)
        >>> eid = world.spawn_image(np.zeros((256, 256, 3), dtype=np.uint8))
        >>> world.has_component(eid, RGB)
        True
    """

    def __init__(self, arena_bytes: int = 64 << 20, parent: World | None = None):
        """Create World with specified arena size.

        Args:
            arena_bytes: Arena size in bytes (default 64 MB)
            parent: Frozen World to read through to (see ``overlay``)
        """
        if parent is not None and not parent.frozen:
            raise RuntimeError("Only a frozen World can be overlaid")
        self.arena = Arena(size_bytes=arena_bytes)
        self.parent = parent
        self._components: dict[type[Component], dict[int, Component]] = {}
        self._frozen = False
        if parent is None:
            self._next_eid = 0
            self.metadata: dict[int, dict[str, Any]] = {}
        else:
            self._next_eid = parent._next_eid
            self.metadata = {eid: dict(meta) for eid, meta in parent.metadata.items()}

    @property
    def frozen(self) -> bool:
        """Whether the World refuses new components and allocations."""
        return self._frozen

    def freeze(self) -> None:
        """Freeze the World and its arena.

        After freezing, components cannot be added or removed, the arena
        refuses allocations, and every view is read-only. Overlays created
        with ``overlay()`` can then safely share the cached tensors.
        """
        self._frozen = True
        self.arena.freeze()

    def overlay(self, arena_bytes: int | None = None) -> World:
        """Create a scratch World layered over this frozen World.

        Args:
            arena_bytes: Size of the overlay's own arena (defaults to this
                World's arena size)

        Returns:
            New World whose reads fall through to this one
        """
        return World(arena_bytes=arena_bytes or self.arena.size, parent=self)

    def view(self, ref: TensorRef) -> np.ndarray:
        """Get a NumPy view of ``ref`` from whichever arena owns it.

        Refs owned by a parent World resolve to read-only views.

        Raises:
            ValueError: If no arena in the chain owns the ref
        """
        if self.arena.owns(ref):
            return self.arena.view(ref)
        if self.parent is not None:
            return self.parent.view(ref)
        raise ValueError(
            f"TensorRef from arena {ref.arena_id} does not belong to this World"
        )

    def new_entity(self) -> int:
        """Create a new entity and return its ID.

        Returns:
            Entity ID (monotonically increasing integer)
        """
        self._check_writable()
        eid = self._next_eid
        self._next_eid += 1
        self.metadata[eid] = {}
        return eid

    def spawn_image(self, img: np.ndarray) -> int:
        """Ingest an RGB image into the world.

        Args:
            img: RGB image array (H, W, 3) with dtype uint8 (0-255) or
                float32 (0-1)

        Returns:
            Entity ID with RGB component attached

        Raises:
            ValueError: If image shape or dtype is invalid
        """
        from dwtsvd_ecs.components.image import RGB

        if img.ndim != 3 or img.shape[2] != 3:
            raise ValueError(
                f"Expected image with shape (H, W, 3), got {img.shape}"
            )
        if img.dtype not in (np.uint8, np.float32):
            raise ValueError(
                f"Expected dtype uint8 or float32, got {img.dtype}"
            )

        eid = self.new_entity()
        pix_ref = self.arena.copy_tensor(img)
        self.add_component(eid, RGB(pix=pix_ref, colorspace='sRGB'))

        self.metadata[eid]['image_shape'] = img.shape
        self.metadata[eid]['image_dtype'] = str(img.dtype)

        return eid

    def clear(self) -> None:
        """Reset arena and clear all entities/components for reuse.

        After clear(), all TensorRefs from previous entities are invalidated.
        """
        self._check_writable()
        self.arena.reset()
        self._next_eid = 0
        self._components.clear()
        self.metadata.clear()

    def add_component(self, eid: int, component: Component) -> None:
        """Attach a component to an entity.

        In an overlay this shadows the parent's component of the same type.

        Args:
            eid: Entity ID
            component: Component instance

        Raises:
            ValueError: If entity does not exist
            RuntimeError: If the World is frozen
        """
        self._check_writable()
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")

        self._components.setdefault(type(component), {})[eid] = component

    def get_component(self, eid: int, comp_type: type[T]) -> T:
        """Retrieve a component from an entity.

        Args:
            eid: Entity ID
            comp_type: Component class to retrieve

        Returns:
            Component instance (own first, then parent's)

        Raises:
            KeyError: If entity does not have the component
        """
        store = self._components.get(comp_type, {})
        if eid in store:
            return store[eid]  # type: ignore[return-value]
        if self.parent is not None and self.parent.has_component(eid, comp_type):
            return self.parent.get_component(eid, comp_type)
        raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")

    def has_component(self, eid: int, comp_type: type[Component]) -> bool:
        """Check if entity has a specific component type (own or parent's)."""
        if eid in self._components.get(comp_type, {}):
            return True
        return self.parent is not None and self.parent.has_component(eid, comp_type)

    def remove_component(self, eid: int, comp_type: type[Component]) -> None:
        """Remove a component owned by this World.

        Raises:
            KeyError: If this World does not own the component
            RuntimeError: If the World is frozen
        """
        self._check_writable()
        if eid not in self._components.get(comp_type, {}):
            raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")

        del self._components[comp_type][eid]

    def query(self, *comp_types: type[Component]) -> list[int]:
        """Query entities that have ALL specified component types.

        Example:
            >>> eids = world.query(RGB, SingularBlocks)
        """
        if not comp_types:
            return sorted(self.metadata.keys())

        return sorted(
            eid for eid in self.metadata
            if all(self.has_component(eid, ct) for ct in comp_types)
        )

    def destroy_entity(self, eid: int) -> None:
        """Remove entity and all its components.

        Note:
            This does not free arena memory (use clear() for that).
        """
        self._check_writable()
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")

        for comp_store in self._components.values():
            comp_store.pop(eid, None)

        del self.metadata[eid]

    def pipe(self, entity: int) -> Any:
        """Create a fluent pipeline for the given entity.

        Example:
            >>> (
            ...     world.pipe(entity)
            ...     .to(ColorConvert())
            ...     .to(WaveletDWT(levels=1))
            ...     .out(WaveletBands)
            ... )
        """
        from dwtsvd_ecs.core.pipeline import Pipe

        return Pipe(world=self, entity=entity)

    def _check_writable(self) -> None:
        if self._frozen:
            raise RuntimeError("World is frozen")

    def __repr__(self) -> str:
        num_entities = len(self.metadata)
        num_comp_types = len(self._components)
        return (
            f"World(entities={num_entities}, component_types={num_comp_types}, "
            f"arena={self.arena}, overlay={self.parent is not None})"
        )
