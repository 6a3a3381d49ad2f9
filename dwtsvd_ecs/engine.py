"""Watermark engine: prepare the transform pipeline once, embed many times.

Preparation runs the forward pipeline

    RGB -> YUVPlanes -> WaveletBands -> SpatialBlocks -> DCTBlocks -> SingularBlocks

on a World and freezes it. Every ``embed`` call then works in an overlay of
that World: it copies the singular value grids, hands them to a caller
mutator, and runs the inverse pipeline against the cached U and V^T and
the cached wavelet detail bands. Nothing is recomputed and the prepared
World is never written, so concurrent ``embed`` calls are safe.

Example:
    >>> engine = WatermarkEngine.prepare(img)
    >>> def mutator(s_y, s_u, s_v):
    ...     s_y[..., 0, 0] += 10.0
    >>> stego = engine.embed(mutator)
    >>> engine.dominant_values().shape
    (3, 64, 64)
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import numpy as np

from dwtsvd_ecs.components.blocks import SingularBlocks
from dwtsvd_ecs.components.image import ReconRGB
from dwtsvd_ecs.core.arena import estimate_arena_bytes
from dwtsvd_ecs.core.config import EngineConfig, load_config
from dwtsvd_ecs.core.errors import DegenerateBlockError, ShapeError
from dwtsvd_ecs.core.system import System
from dwtsvd_ecs.core.world import World
from dwtsvd_ecs.systems.blocks import BlockPartition
from dwtsvd_ecs.systems.color import ColorConvert
from dwtsvd_ecs.systems.dct import BlockDCT
from dwtsvd_ecs.systems.svd import BlockSVD
from dwtsvd_ecs.systems.wavelet import WaveletDWT

logger = logging.getLogger(__name__)

Mutator = Callable[[np.ndarray, np.ndarray, np.ndarray], None]

CHANNELS = ("Y", "U", "V")


def forward_systems(config: EngineConfig) -> list[System]:
    """Systems taking an RGB entity to SingularBlocks."""
    return [
        ColorConvert(mode="forward", luma_shift=config.luma_shift, pad_mode=config.pad_mode),
        WaveletDWT(
            levels=config.levels, wavelet=config.wavelet, mode="forward",
            workers=config.workers,
        ),
        BlockPartition(block_size=config.block_size, mode="forward"),
        BlockDCT(mode="forward", workers=config.workers),
        BlockSVD(mode="forward", workers=config.workers),
    ]


def inverse_systems(config: EngineConfig) -> list[System]:
    """Systems taking SingularBlocks back to a ReconRGB image."""
    return [
        BlockSVD(mode="inverse", workers=config.workers),
        BlockDCT(mode="inverse", workers=config.workers),
        BlockPartition(block_size=config.block_size, mode="inverse"),
        WaveletDWT(
            levels=config.levels, wavelet=config.wavelet, mode="inverse",
            workers=config.workers,
        ),
        ColorConvert(mode="inverse", luma_shift=config.luma_shift, pad_mode=config.pad_mode),
    ]


class WatermarkEngine:
    """Prepared DWT-DCT-SVD pipeline for one cover image.

    Create with ``WatermarkEngine.prepare``; the constructor only wraps an
    already prepared, frozen World.

    Attributes:
        config: Parameters the pipeline was prepared with
        world: Frozen World holding the forward pipeline's components
        entity: Entity ID of the cover image
    """

    def __init__(self, world: World, entity: int, config: EngineConfig):
        if not world.frozen:
            raise RuntimeError("WatermarkEngine needs a prepared (frozen) World")
        self.world = world
        self.entity = entity
        self.config = config
        self._scratch_bytes = max(world.arena.size // 2, 1 << 20)

    @classmethod
    def prepare(
        cls,
        image: np.ndarray,
        config: EngineConfig | None = None,
        config_path: str | None = None,
    ) -> WatermarkEngine:
        """Run the forward pipeline on ``image`` and cache its SVD.

        Args:
            image: RGB image (H, W, 3), uint8 (0-255) or float32 (0-1)
            config: Engine parameters; loaded with ``load_config`` if None
            config_path: Path to dwtsvd_ecs.toml, used when ``config`` is None

        Returns:
            Prepared engine

        Raises:
            ValueError: If the image shape or dtype is invalid
            LevelOutOfRangeError: If the image is too small for the DWT levels
            DegenerateBlockError: If a block's SVD fails
        """
        if config is None:
            config = load_config(config_path)
        if not isinstance(image, np.ndarray):
            raise TypeError(f"Expected ndarray, got {type(image)}")
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected image with shape (H, W, 3), got {image.shape}")

        start = time.perf_counter()
        height, width = image.shape[:2]
        world = World(arena_bytes=estimate_arena_bytes(height, width, config.block_size))
        entity = world.spawn_image(image)

        pipe = world.pipe(entity)
        for system in forward_systems(config):
            pipe = pipe.to(system)
        pipe.out(SingularBlocks)
        world.freeze()

        engine = cls(world, entity, config)
        logger.info(
            "Prepared %dx%d image: %d level(s) %s, %s grid of %dx%d blocks in %.3fs",
            width, height, config.levels, config.wavelet, engine.grid_shape,
            config.block_size, config.block_size, time.perf_counter() - start,
        )
        return engine

    @property
    def image_shape(self) -> tuple[int, int, int]:
        """Shape of the cover image and of every embedded output."""
        return tuple(self.world.metadata[self.entity]["image_shape"])  # type: ignore[return-value]

    @property
    def block_size(self) -> int:
        return self.config.block_size

    @property
    def grid_shape(self) -> tuple[int, int]:
        """(rows, cols) of the block grid of every channel."""
        s = self._singular_blocks().s
        return s.shape[1], s.shape[2]

    def _singular_blocks(self) -> SingularBlocks:
        return self.world.get_component(self.entity, SingularBlocks)

    def dominant_values(self) -> np.ndarray:
        """Largest singular value of every block.

        Returns:
            Array (3, rows, cols) in Y, U, V order (a copy)
        """
        s = self.world.view(self._singular_blocks().s)
        return s[..., 0, 0].copy()

    def singular_values(self) -> np.ndarray:
        """Full diagonal S matrices of every block.

        Returns:
            Array (3, rows, cols, k, k) in Y, U, V order (a copy)
        """
        return self.world.view(self._singular_blocks().s).copy()

    def embed(self, mutator: Mutator) -> np.ndarray:
        """Mutate copies of the S grids and rebuild the image.

        ``mutator(s_y, s_u, s_v)`` receives three owned (rows, cols, k, k)
        arrays and edits them in place; its return value is ignored. The
        cached decomposition is not modified.

        Returns:
            Reconstructed RGB image (H, W, 3) uint8

        Raises:
            ShapeError: If the mutator changed the shape of a grid
            DegenerateBlockError: If the mutator left NaN or Inf in a grid
        """
        start = time.perf_counter()
        scratch = self.world.overlay(arena_bytes=self._scratch_bytes)
        svd = scratch.get_component(self.entity, SingularBlocks)
        cached = scratch.view(svd.s)

        grids = [np.array(cached[c]) for c in range(cached.shape[0])]
        mutator(*grids)

        for c, (grid, name) in enumerate(zip(grids, CHANNELS)):
            if grid.shape != cached.shape[1:]:
                raise ShapeError(
                    f"Mutator changed the {name} grid from {cached.shape[1:]} to {grid.shape}"
                )
            bad = np.argwhere(~np.isfinite(grid).all(axis=(-2, -1)))
            if len(bad):
                positions = [tuple(int(i) for i in pos) for pos in bad]
                raise DegenerateBlockError(
                    f"Mutator left NaN/Inf in {len(positions)} {name} block(s), "
                    f"first at {positions[0]}",
                    channel=c, positions=positions,
                )

        s_ref = scratch.arena.copy_tensor(np.stack(grids))
        scratch.add_component(self.entity, svd.model_copy(update={"s": s_ref}))

        pipe = scratch.pipe(self.entity)
        for system in inverse_systems(self.config):
            pipe = pipe.to(system)
        recon = pipe.out(ReconRGB)

        pix = scratch.view(recon.pix).copy()
        logger.info("Embedded into %s image in %.3fs", pix.shape, time.perf_counter() - start)
        return pix

    def __repr__(self) -> str:
        return (
            f"WatermarkEngine(image_shape={self.image_shape}, grid={self.grid_shape}, "
            f"block_size={self.block_size}, levels={self.config.levels})"
        )
