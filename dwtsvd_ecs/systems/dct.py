"""Block DCT system."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import numpy as np

from dwtsvd_ecs.components.blocks import DCTBlocks, SpatialBlocks
from dwtsvd_ecs.core.parallel import map_chunks
from dwtsvd_ecs.core.system import Mode, System
from dwtsvd_ecs.transforms.dct import CosineTransform

if TYPE_CHECKING:
    from dwtsvd_ecs.core.world import World


class BlockDCT(System):
    """Orthonormal 2D DCT of every block in the grid.

    Forward mode: SpatialBlocks -> DCTBlocks
    Inverse mode: DCTBlocks -> SpatialBlocks (requires the forward
    SpatialBlocks for the band size)

    Block rows are split across a thread pool.
    """

    def __init__(self, mode: Mode = "forward", workers: int | None = None):
        super().__init__(mode=mode)
        self.workers = workers

    def required_components(self) -> list[type]:
        return [SpatialBlocks] if self.is_forward else [DCTBlocks, SpatialBlocks]

    def produced_components(self) -> list[type]:
        return [DCTBlocks] if self.is_forward else [SpatialBlocks]

    def run(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            if self.is_forward:
                spatial = world.get_component(eid, SpatialBlocks)
                dct = CosineTransform.create(spatial.block_size)
                coeffs = self._apply(dct.forward, world.view(spatial.blocks))
                world.add_component(
                    eid,
                    DCTBlocks(
                        coeffs=world.arena.copy_tensor(coeffs),
                        block_size=spatial.block_size,
                    ),
                )
            else:
                component = world.get_component(eid, DCTBlocks)
                spatial = world.get_component(eid, SpatialBlocks)
                dct = CosineTransform.create(component.block_size)
                blocks = self._apply(dct.inverse, world.view(component.coeffs))
                world.add_component(
                    eid,
                    spatial.model_copy(update={"blocks": world.arena.copy_tensor(blocks)}),
                )

    def _apply(
        self, func: Callable[[np.ndarray], np.ndarray], grid: np.ndarray
    ) -> np.ndarray:
        # (3, rows, cols, k, k): one chunk per band of block rows
        return map_chunks(func, grid, axis=1, max_workers=self.workers)
