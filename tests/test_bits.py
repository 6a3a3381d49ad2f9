"""Tests for the quantization bit policy."""

from __future__ import annotations

import numpy as np
import pytest

from dwtsvd_ecs.bits import (
    ONE,
    ZERO,
    bit_mutator,
    block_positions,
    capacity,
    read_fraction,
    read_fractions,
    set_bit,
)
from dwtsvd_ecs.core.config import QuantSteps
from dwtsvd_ecs.core.errors import ConfigurationError, InsufficientCapacityError, ShapeError


def _grids(rows: int, cols: int, k: int = 2, seed: int = 0) -> list[np.ndarray]:
    rng = np.random.default_rng(seed)
    grids = []
    for _ in range(3):
        grid = np.zeros((rows, cols, k, k))
        grid[..., 0, 0] = rng.uniform(100, 2000, size=(rows, cols))
        grid[..., 1, 1] = rng.uniform(0, 50, size=(rows, cols))
        grids.append(grid)
    return grids


class TestSetBit:
    """Test writing and reading single bits."""

    def test_random_values_and_steps(self):
        """Test the fraction lands on 0.75 / 0.25 for any value and step."""
        rng = np.random.default_rng(42)
        for _ in range(1000):
            value = rng.uniform(0, 5000)
            step = rng.uniform(20, 150)
            bit = bool(rng.integers(0, 2))

            s = np.diag([value, 1.0])
            set_bit(s, bit, step)

            expected = ONE if bit else ZERO
            assert read_fraction(s, step) == pytest.approx(expected, abs=1e-9)
            assert s[1, 1] == 1.0

    def test_stays_in_bucket(self):
        """Test the value moves within its own bucket."""
        s = np.diag([100.0, 3.0])
        set_bit(s, 1, 46.0)
        assert s[0, 0] == pytest.approx((2 + 0.75) * 46.0)

        s = np.diag([100.0, 3.0])
        set_bit(s, 0, 46.0)
        assert s[0, 0] == pytest.approx((2 + 0.25) * 46.0)

    def test_broadcast_bits(self):
        """Test an array of bits over a stack of matrices."""
        s = np.zeros((2, 3, 4, 4))
        s[..., 0, 0] = 500.0
        bits = np.array([[1, 0, 1], [0, 0, 1]])

        set_bit(s, bits, 58.0)

        fractions = read_fraction(s, 58.0)
        np.testing.assert_allclose(fractions, np.where(bits, 0.75, 0.25), atol=1e-9)

    def test_invalid_step(self):
        """Test a non-positive step is rejected."""
        with pytest.raises(ConfigurationError, match="must be positive"):
            set_bit(np.eye(2), 1, 0.0)


class TestPositions:
    """Test block positions and capacity."""

    def test_skip_edges(self):
        """Test the last row and column are left out."""
        assert block_positions((3, 4)) == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]
        assert capacity((3, 4)) == 6

    def test_all_blocks(self):
        """Test every block is used without skipping."""
        assert len(block_positions((3, 4), skip_edges=False)) == 12
        assert capacity((3, 4), skip_edges=False) == 12

    def test_single_row(self):
        """Test a one-row grid has no capacity when edges are skipped."""
        assert block_positions((1, 5)) == []
        assert capacity((1, 5)) == 0
        assert capacity((0, 0), skip_edges=False) == 0


class TestBitMutator:
    """Test the engine mutator built from a bit payload."""

    def test_writes_row_major(self):
        """Test bits are written row-major over the usable blocks."""
        grids = _grids(4, 4)
        original = [g.copy() for g in grids]
        bits = [1, 0, 1, 1]

        bit_mutator(bits)(*grids)

        steps = QuantSteps().as_tuple()
        for c in range(3):
            positions = [(0, 0), (0, 1), (0, 2), (1, 0)]
            for bit, (r, col) in zip(bits, positions):
                fraction = np.mod(grids[c][r, col, 0, 0], steps[c]) / steps[c]
                assert fraction == pytest.approx(0.75 if bit else 0.25, abs=1e-9)
            # untouched blocks and entries
            np.testing.assert_array_equal(grids[c][1, 1:], original[c][1, 1:])
            np.testing.assert_array_equal(grids[c][3], original[c][3])
            np.testing.assert_array_equal(grids[c][..., 1, 1], original[c][..., 1, 1])

    def test_channel_selection(self):
        """Test only the selected channels are written."""
        grids = _grids(3, 3)
        original = [g.copy() for g in grids]

        bit_mutator([1, 1, 1], steps=(20, 30, 40), channels="v")(*grids)

        np.testing.assert_array_equal(grids[0], original[0])
        np.testing.assert_array_equal(grids[1], original[1])
        assert not np.array_equal(grids[2], original[2])

    def test_insufficient_capacity(self):
        """Test a payload larger than the grid raises when applied."""
        mutator = bit_mutator([1] * 5)
        with pytest.raises(InsufficientCapacityError) as info:
            mutator(*_grids(3, 3))
        assert info.value.required == 5
        assert info.value.available == 4

    @pytest.mark.parametrize("channels", ["", "yx", "yy", "rgb"])
    def test_invalid_channels(self, channels: str):
        """Test unknown or repeated channel letters."""
        with pytest.raises(ConfigurationError, match="distinct letters"):
            bit_mutator([1], channels=channels)

    def test_invalid_steps(self):
        """Test steps of the wrong length or sign."""
        with pytest.raises(ConfigurationError, match="Expected 3"):
            bit_mutator([1], steps=(10.0, 20.0))
        with pytest.raises(ValueError):
            bit_mutator([1], steps=(10.0, -1.0, 20.0))


class TestReadFractions:
    """Test reading fractions from dominant values."""

    def test_round_trip_with_mutator(self):
        """Test fractions read back what the mutator wrote."""
        grids = _grids(5, 6)
        bits = np.random.default_rng(3).integers(0, 2, size=20)

        bit_mutator(bits, steps=QuantSteps(y=30, u=40, v=50))(*grids)
        values = np.stack([g[..., 0, 0] for g in grids])

        fractions = read_fractions(values, steps=(30, 40, 50))

        assert fractions.shape == (3, 20)
        expected = np.broadcast_to(np.where(bits, 0.75, 0.25), (3, 20))
        np.testing.assert_allclose(fractions, expected, atol=1e-9)

    def test_count_and_channels(self):
        """Test reading a prefix from a subset of channels."""
        values = np.full((3, 4, 4), 100.0)
        fractions = read_fractions(values, steps=(40, 40, 40), count=2, channels="uy")
        assert fractions.shape == (2, 2)
        np.testing.assert_allclose(fractions, 0.5)

    def test_count_too_large(self):
        """Test reading more positions than the grid has."""
        with pytest.raises(InsufficientCapacityError):
            read_fractions(np.zeros((3, 3, 3)), count=5)

    def test_bad_shape(self):
        """Test values must be (3, rows, cols)."""
        with pytest.raises(ShapeError):
            read_fractions(np.zeros((3, 4)))
        with pytest.raises(ShapeError):
            read_fractions(np.zeros((2, 4, 4)))
