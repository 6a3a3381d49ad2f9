"""Per-block SVD system."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from dwtsvd_ecs.components.blocks import DCTBlocks, SingularBlocks
from dwtsvd_ecs.core.errors import ShapeError
from dwtsvd_ecs.core.parallel import fork_join
from dwtsvd_ecs.core.system import Mode, System
from dwtsvd_ecs.transforms.svd import block_svd, compose

if TYPE_CHECKING:
    from dwtsvd_ecs.core.world import World

logger = logging.getLogger(__name__)


class BlockSVD(System):
    """Singular value decomposition of every DCT block.

    Forward mode: DCTBlocks -> SingularBlocks
    Inverse mode: SingularBlocks -> DCTBlocks

    The three channels are decomposed in parallel. S is stored as full
    diagonal k x k matrices so the inverse is a plain ``U @ S @ V^T``.
    """

    def __init__(self, mode: Mode = "forward", workers: int | None = None):
        super().__init__(mode=mode)
        self.workers = workers

    def required_components(self) -> list[type]:
        return [DCTBlocks] if self.is_forward else [SingularBlocks]

    def produced_components(self) -> list[type]:
        return [SingularBlocks] if self.is_forward else [DCTBlocks]

    def run(self, world: World, eids: list[int]) -> None:
        if self.is_forward:
            self._run_forward(world, eids)
        else:
            self._run_inverse(world, eids)

    def _run_forward(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            component = world.get_component(eid, DCTBlocks)
            coeffs = world.view(component.coeffs)

            results = fork_join(
                lambda c: block_svd(coeffs[c], channel=c),
                range(coeffs.shape[0]),
                self.workers,
            )
            u, s, vt = (np.stack(parts) for parts in zip(*results))
            logger.debug("SVD of %s blocks", coeffs.shape[:-2])

            copy = world.arena.copy_tensor
            world.add_component(
                eid,
                SingularBlocks(
                    u=copy(u), s=copy(s), vt=copy(vt), block_size=component.block_size
                ),
            )

    def _run_inverse(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            component = world.get_component(eid, SingularBlocks)
            u = world.view(component.u)
            s = world.view(component.s)
            vt = world.view(component.vt)
            if s.shape[:-2] != u.shape[:-2] or s.shape[:-2] != vt.shape[:-2]:
                raise ShapeError(
                    f"Channel grids differ: U {u.shape}, S {s.shape}, V^T {vt.shape}"
                )
            coeffs = compose(u, s, vt)
            world.add_component(
                eid,
                DCTBlocks(
                    coeffs=world.arena.copy_tensor(coeffs),
                    block_size=component.block_size,
                ),
            )
