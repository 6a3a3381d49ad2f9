"""Tests for the block partition system."""

from __future__ import annotations

import numpy as np
import pytest

from dwtsvd_ecs.components.blocks import SpatialBlocks
from dwtsvd_ecs.components.planes import YUVPlanes
from dwtsvd_ecs.components.wavelet import WaveletBands
from dwtsvd_ecs.core.world import World
from dwtsvd_ecs.systems.blocks import BlockPartition
from dwtsvd_ecs.systems.wavelet import WaveletDWT


@pytest.fixture
def banded() -> tuple[World, int]:
    world = World(arena_bytes=4 << 20)
    entity = world.new_entity()
    data = np.random.default_rng(0).normal(size=(3, 22, 18))
    world.add_component(entity, YUVPlanes(data=world.arena.copy_tensor(data)))
    WaveletDWT().run(world, [entity])
    return world, entity


class TestBlockPartition:
    """Test BlockPartition system."""

    def test_init_invalid_block_size(self):
        """Test block sizes outside 2-64."""
        with pytest.raises(ValueError, match="block_size must be in"):
            BlockPartition(block_size=1)
        with pytest.raises(ValueError, match="block_size must be in"):
            BlockPartition(block_size=65)

    def test_components(self):
        """Test required and produced components per mode."""
        assert BlockPartition().required_components() == [WaveletBands]
        assert BlockPartition().produced_components() == [SpatialBlocks]
        assert BlockPartition(mode="inverse").required_components() == [
            SpatialBlocks, WaveletBands,
        ]
        assert BlockPartition(mode="inverse").produced_components() == [WaveletBands]

    def test_forward(self, banded):
        """Test the low band is cut into a zero padded grid."""
        world, entity = banded
        BlockPartition(block_size=4).run(world, [entity])

        blocks = world.get_component(entity, SpatialBlocks)
        grid = world.view(blocks.blocks)
        low = world.view(world.get_component(entity, WaveletBands).low)

        assert (blocks.band_height, blocks.band_width) == (11, 9)
        assert grid.shape == (3, 3, 3, 4, 4)
        np.testing.assert_array_equal(grid[1, 2, 2, :3, :1], low[1, 8:11, 8:9])
        assert np.all(grid[:, 2, :, 3, :] == 0.0)

    def test_inverse_replaces_low_band_only(self, banded):
        """Test the inverse builds new bands around the stitched low band."""
        world, entity = banded
        BlockPartition().run(world, [entity])
        before = world.get_component(entity, WaveletBands)

        BlockPartition(mode="inverse").run(world, [entity])

        after = world.get_component(entity, WaveletBands)
        assert after.low != before.low
        assert after.horizontal == before.horizontal
        assert after.diagonal == before.diagonal
        assert np.array_equal(world.view(after.low), world.view(before.low))
