"""Block partition system: low-low band <-> grid of k x k blocks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dwtsvd_ecs.components.blocks import SpatialBlocks
from dwtsvd_ecs.components.wavelet import WaveletBands
from dwtsvd_ecs.core.system import Mode, System
from dwtsvd_ecs.transforms.blocks import partition, reassemble

if TYPE_CHECKING:
    from dwtsvd_ecs.core.world import World


class BlockPartition(System):
    """Cut the coarsest low band into square blocks.

    Forward mode: WaveletBands -> SpatialBlocks
    Inverse mode: SpatialBlocks + WaveletBands -> WaveletBands

    The inverse stitches the blocks back into a low band and produces a new
    WaveletBands whose detail bands are the untouched ones of the input.
    """

    def __init__(self, block_size: int = 4, mode: Mode = "forward"):
        """Initialize block partition.

        Args:
            block_size: Block edge length k (2-64)
            mode: 'forward' to partition, 'inverse' to reassemble
        """
        super().__init__(mode=mode)
        if not 2 <= block_size <= 64:
            raise ValueError(f"block_size must be in [2, 64], got {block_size}")
        self.block_size = block_size

    def required_components(self) -> list[type]:
        return [WaveletBands] if self.is_forward else [SpatialBlocks, WaveletBands]

    def produced_components(self) -> list[type]:
        return [SpatialBlocks] if self.is_forward else [WaveletBands]

    def run(self, world: World, eids: list[int]) -> None:
        if self.is_forward:
            self._run_forward(world, eids)
        else:
            self._run_inverse(world, eids)

    def _run_forward(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            bands = world.get_component(eid, WaveletBands)
            low = world.view(bands.low)  # (3, h, w)
            grid = partition(low, self.block_size)
            world.add_component(
                eid,
                SpatialBlocks(
                    blocks=world.arena.copy_tensor(grid),
                    block_size=self.block_size,
                    band_height=low.shape[1],
                    band_width=low.shape[2],
                ),
            )

    def _run_inverse(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            blocks = world.get_component(eid, SpatialBlocks)
            bands = world.get_component(eid, WaveletBands)
            low = reassemble(world.view(blocks.blocks), blocks.band_width, blocks.band_height)
            world.add_component(
                eid,
                bands.model_copy(update={"low": world.arena.copy_tensor(low)}),
            )
