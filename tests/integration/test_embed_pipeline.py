"""Integration tests for the full embed and extract flow.

Tests the complete chain: RGB -> YCbCr -> DWT -> block DCT -> SVD -> bits
-> inverse -> RGB, and reading the bits back from the stego image.
"""

from __future__ import annotations

import numpy as np
import pytest

from dwtsvd_ecs.api import embed_bits, extract_fractions
from dwtsvd_ecs.bits import read_fraction, set_bit
from dwtsvd_ecs.core.config import EngineConfig, QuantSteps
from dwtsvd_ecs.engine import WatermarkEngine

STEPS = (46.0, 58.0, 86.0)


def checkerboard(size: int = 256, cell: int = 8) -> np.ndarray:
    """Gray checkerboard with levels 64 and 192."""
    y, x = np.mgrid[0:size, 0:size]
    board = np.where(((y // cell) + (x // cell)) % 2 == 0, 64, 192).astype(np.uint8)
    return np.repeat(board[..., np.newaxis], 3, axis=-1)


class TestIdempotence:
    """Embedding nothing gives the cover back."""

    @pytest.mark.parametrize("levels", [1, 2])
    @pytest.mark.parametrize("wavelet", ["haar", "db2"])
    def test_noop(self, levels: int, wavelet: str):
        """Test an identity mutator within two levels per pixel."""
        img = np.random.default_rng(levels).integers(0, 256, (96, 80, 3), dtype=np.uint8)
        engine = WatermarkEngine.prepare(
            img, config=EngineConfig(levels=levels, wavelet=wavelet)
        )

        stego = engine.embed(lambda s_y, s_u, s_v: None)

        diff = np.abs(stego.astype(np.int16) - img.astype(np.int16))
        assert diff.max() <= 2


class TestCheckerboard:
    """Uniform 8x8 cells map to rank-one 4x4 blocks after one Haar level."""

    def test_blocks_are_rank_one(self):
        """Test every block has a single non-zero singular value."""
        engine = WatermarkEngine.prepare(checkerboard(), config=EngineConfig())
        s = np.diagonal(engine.singular_values(), axis1=-2, axis2=-1)

        assert engine.grid_shape == (32, 32)
        np.testing.assert_allclose(s[..., 1:], 0.0, atol=1e-8)
        # chroma of gray is 128: 2 * 128 on the low band, 4 * that from the DCT
        np.testing.assert_allclose(s[1:, ..., 0], 1024.0, atol=1e-8)

    def test_top_left_blocks(self):
        """Test 64 bits in the top-left 8x8 blocks are read back exactly."""
        cover = checkerboard()
        bits = np.random.default_rng(7).integers(0, 2, size=(8, 8))

        def write(s_y, s_u, s_v):
            for grid, step in zip((s_y, s_u, s_v), STEPS):
                block = grid[:8, :8]
                set_bit(block, bits, step)

        stego = WatermarkEngine.prepare(cover, config=EngineConfig()).embed(write)
        s = WatermarkEngine.prepare(stego, config=EngineConfig()).singular_values()

        for c, step in enumerate(STEPS):
            fractions = read_fraction(s[c, :8, :8], step)
            np.testing.assert_array_equal((fractions > 0.5).astype(int), bits)
            # rounding to uint8 moves a fraction by less than 0.1
            np.testing.assert_allclose(fractions, np.where(bits, 0.75, 0.25), atol=0.1)

        untouched = np.abs(stego[64:].astype(int) - cover[64:].astype(int))
        assert untouched.max() == 0

    def test_api_round_trip(self):
        """Test the full-capacity payload through the one-shot API."""
        cover = checkerboard()
        config = EngineConfig(steps=QuantSteps(y=STEPS[0], u=STEPS[1], v=STEPS[2]))
        bits = np.random.default_rng(11).integers(0, 2, size=31 * 31)

        stego = embed_bits(cover, bits, config=config)
        fractions = extract_fractions(stego, config=config)

        assert fractions.shape == (3, 961)
        for channel in fractions:
            np.testing.assert_array_equal((channel > 0.5).astype(int), bits)
