"""Tests for the wavelet decomposition system."""

from __future__ import annotations

import numpy as np
import pytest
import pywt

from dwtsvd_ecs.components.planes import YUVPlanes
from dwtsvd_ecs.components.wavelet import WaveletBands
from dwtsvd_ecs.core.errors import ConfigurationError, LevelOutOfRangeError
from dwtsvd_ecs.core.world import World
from dwtsvd_ecs.systems.wavelet import WaveletDWT


def _planes_entity(world: World, data: np.ndarray, luma_shift: float = 128.0) -> int:
    entity = world.new_entity()
    world.add_component(
        entity, YUVPlanes(data=world.arena.copy_tensor(data), luma_shift=luma_shift)
    )
    return entity


class TestWaveletDWT:
    """Test WaveletDWT system."""

    def test_init(self):
        """Test wavelet system initialization."""
        system = WaveletDWT(levels=3, wavelet="db2", mode="inverse", workers=2)
        assert system.levels == 3
        assert system.wavelet == "db2"
        assert system.filter_bank.decompose_length == 4
        assert system.workers == 2

    def test_init_invalid(self):
        """Test invalid levels and wavelet names."""
        with pytest.raises(ValueError, match="levels must be in"):
            WaveletDWT(levels=0)
        with pytest.raises(ValueError, match="levels must be in"):
            WaveletDWT(levels=11)
        with pytest.raises(ConfigurationError, match="Unknown wavelet"):
            WaveletDWT(wavelet="nope")

    def test_components(self):
        """Test required and produced components per mode."""
        assert WaveletDWT().required_components() == [YUVPlanes]
        assert WaveletDWT().produced_components() == [WaveletBands]
        assert WaveletDWT(mode="inverse").required_components() == [WaveletBands]
        assert WaveletDWT(mode="inverse").produced_components() == [YUVPlanes]

    def test_forward_decomposition(self):
        """Test forward mode stores one band set per level."""
        world = World(arena_bytes=4 << 20)
        data = np.random.default_rng(0).normal(size=(3, 32, 24))
        entity = _planes_entity(world, data)

        WaveletDWT(levels=2).run(world, [entity])

        bands = world.get_component(entity, WaveletBands)
        assert bands.levels == 2
        assert bands.wavelet == "haar"
        assert (bands.height, bands.width) == (32, 24)
        assert world.view(bands.low).shape == (3, 8, 6)
        assert world.view(bands.horizontal[0]).shape == (3, 16, 12)
        assert world.view(bands.diagonal[1]).shape == (3, 8, 6)

        ca, (ch, _, _) = pywt.dwt2(data[1], "haar", mode="symmetric")
        np.testing.assert_allclose(world.view(bands.horizontal[0])[1], ch, atol=1e-10)

    def test_round_trip(self):
        """Test forward then inverse restores the planes and luma shift."""
        world = World(arena_bytes=4 << 20)
        data = np.random.default_rng(1).uniform(-128, 128, size=(3, 30, 22))
        entity = _planes_entity(world, data, luma_shift=100.0)

        WaveletDWT(levels=2, wavelet="db2").run(world, [entity])
        world.remove_component(entity, YUVPlanes)
        WaveletDWT(levels=2, wavelet="db2", mode="inverse").run(world, [entity])

        planes = world.get_component(entity, YUVPlanes)
        assert planes.luma_shift == 100.0
        np.testing.assert_allclose(world.view(planes.data), data, atol=1e-9)

    def test_inverse_uses_band_wavelet(self):
        """Test the inverse follows the wavelet recorded on the bands."""
        world = World(arena_bytes=4 << 20)
        data = np.random.default_rng(2).normal(size=(3, 16, 16))
        entity = _planes_entity(world, data)

        WaveletDWT(wavelet="db2").run(world, [entity])
        world.remove_component(entity, YUVPlanes)
        WaveletDWT(wavelet="haar", mode="inverse").run(world, [entity])

        np.testing.assert_allclose(
            world.view(world.get_component(entity, YUVPlanes).data), data, atol=1e-9
        )

    def test_too_many_levels(self):
        """Test levels beyond what the plane supports."""
        world = World(arena_bytes=1 << 20)
        entity = _planes_entity(world, np.zeros((3, 8, 8)))
        with pytest.raises(LevelOutOfRangeError):
            WaveletDWT(levels=4).run(world, [entity])


class TestWaveletBands:
    """Test the WaveletBands component."""

    def test_level_lists_must_match(self):
        """Test detail lists of different lengths are rejected."""
        world = World(arena_bytes=1 << 16)
        ref = world.arena.copy_tensor(np.zeros((3, 2, 2)))
        with pytest.raises(ValueError, match="same non-zero number of levels"):
            WaveletBands(
                low=ref, horizontal=[ref], vertical=[ref, ref], diagonal=[ref],
                height=4, width=4,
            )
        with pytest.raises(ValueError):
            WaveletBands(low=ref, horizontal=[], vertical=[], diagonal=[], height=4, width=4)
