"""Quantization bit policy on the dominant singular value of each block.

A bit is written by moving the block's largest singular value ``s`` into the
upper or lower half of its quantization bucket of width ``d``:

    s' = (floor(s / d) + (0.75 if bit else 0.25)) * d

and read back as the fractional position ``(s mod d) / d``, which lands near
0.75 for a 1 and near 0.25 for a 0. Turning fractions back into bits
(thresholding, clustering) is left to the caller.

Example:
    >>> engine = WatermarkEngine.prepare(img)
    >>> stego = engine.embed(bit_mutator([1, 0, 1, 1]))
    >>> values = WatermarkEngine.prepare(stego).dominant_values()
    >>> read_fractions(values, count=4)[0]
    array([0.75..., 0.25..., 0.75..., 0.75...])
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from dwtsvd_ecs.core.config import QuantSteps
from dwtsvd_ecs.core.errors import ConfigurationError, InsufficientCapacityError, ShapeError
from dwtsvd_ecs.engine import Mutator

ONE = 0.75
ZERO = 0.25

StepsLike = Union[QuantSteps, Sequence[float], None]

_CHANNEL_INDEX = {"y": 0, "u": 1, "v": 2}


def set_bit(s: np.ndarray, bit: bool | np.ndarray, step: float) -> None:
    """Write ``bit`` into the top-left entry of every S matrix in ``s``, in place.

    Args:
        s: S matrices (..., k, k)
        bit: One bit, or an array of bits broadcasting over ``s.shape[:-2]``
        step: Quantization step d
    """
    if step <= 0:
        raise ConfigurationError(f"Quantization step must be positive, got {step}")
    top = s[..., 0, 0]
    offset = np.where(np.asarray(bit, dtype=bool), ONE, ZERO)
    s[..., 0, 0] = (np.floor(top / step) + offset) * step


def read_fraction(s: np.ndarray, step: float) -> np.ndarray:
    """Fractional bucket position of the top-left entry of every S matrix."""
    return np.mod(s[..., 0, 0], step) / step


def block_positions(
    grid_shape: tuple[int, int], skip_edges: bool = True
) -> list[tuple[int, int]]:
    """Row-major block positions that carry bits.

    With ``skip_edges`` the last block row and column are left out: their
    blocks hold the zero padding and the band border and distort most.
    """
    rows, cols = grid_shape
    if skip_edges:
        rows, cols = rows - 1, cols - 1
    return [(r, c) for r in range(max(rows, 0)) for c in range(max(cols, 0))]


def capacity(grid_shape: tuple[int, int], skip_edges: bool = True) -> int:
    """Number of bits one channel of the grid can carry."""
    rows, cols = grid_shape
    if skip_edges:
        rows, cols = rows - 1, cols - 1
    return max(rows, 0) * max(cols, 0)


def _steps(steps: StepsLike) -> tuple[float, float, float]:
    if steps is None:
        return QuantSteps().as_tuple()
    if isinstance(steps, QuantSteps):
        return steps.as_tuple()
    values = tuple(float(d) for d in steps)
    if len(values) != 3:
        raise ConfigurationError(f"Expected 3 quantization steps, got {len(values)}")
    return QuantSteps(y=values[0], u=values[1], v=values[2]).as_tuple()


def _channels(channels: str) -> list[int]:
    selected = [_CHANNEL_INDEX.get(ch) for ch in channels.lower()]
    if not selected or None in selected or len(set(selected)) != len(selected):
        raise ConfigurationError(
            f"channels must be distinct letters from 'yuv', got {channels!r}"
        )
    return selected  # type: ignore[return-value]


def _index(
    grid_shape: tuple[int, int], count: int, skip_edges: bool
) -> tuple[np.ndarray, np.ndarray]:
    available = capacity(grid_shape, skip_edges)
    if count > available:
        raise InsufficientCapacityError(count, available)
    positions = np.array(block_positions(grid_shape, skip_edges)[:count], dtype=np.intp)
    if count == 0:
        return np.empty(0, np.intp), np.empty(0, np.intp)
    return positions[:, 0], positions[:, 1]


def bit_mutator(
    bits: Sequence[int] | np.ndarray,
    steps: StepsLike = None,
    channels: str = "yuv",
    skip_edges: bool = True,
) -> Mutator:
    """Build an engine mutator writing ``bits`` into the selected channels.

    Every selected channel carries the same bits at the same positions, each
    with its own quantization step.

    Args:
        bits: Bits in block order (truthy = 1)
        steps: Per-channel steps (y, u, v); defaults to 46/58/86
        channels: Channel letters to write, any of 'y', 'u', 'v'
        skip_edges: Leave the last block row and column untouched

    Returns:
        Callable ``(s_y, s_u, s_v) -> None`` for ``WatermarkEngine.embed``

    Raises:
        InsufficientCapacityError: When called on a grid with fewer usable
            blocks than bits
    """
    payload = np.asarray(bits, dtype=bool).ravel()
    step_values = _steps(steps)
    selected = _channels(channels)

    def mutate(s_y: np.ndarray, s_u: np.ndarray, s_v: np.ndarray) -> None:
        grids = (s_y, s_u, s_v)
        rows, cols = _index(s_y.shape[:2], payload.size, skip_edges)
        for c in selected:
            # fancy indexing copies, so write the blocks back
            blocks = grids[c][rows, cols]
            set_bit(blocks, payload, step_values[c])
            grids[c][rows, cols] = blocks

    return mutate


def read_fractions(
    values: np.ndarray,
    steps: StepsLike = None,
    count: int | None = None,
    channels: str = "yuv",
    skip_edges: bool = True,
) -> np.ndarray:
    """Fractional bucket positions of dominant singular values.

    Args:
        values: Dominant values (3, rows, cols), e.g. from
            ``WatermarkEngine.dominant_values()``
        steps: Per-channel steps (y, u, v); defaults to 46/58/86
        count: Number of positions to read (default: full capacity)
        channels: Channel letters to read
        skip_edges: Must match the setting used when embedding

    Returns:
        Array (len(channels), count) in [0, 1)
    """
    if values.ndim != 3 or values.shape[0] != 3:
        raise ShapeError(f"Expected dominant values (3, rows, cols), got {values.shape}")
    grid = (values.shape[1], values.shape[2])
    if count is None:
        count = capacity(grid, skip_edges)
    rows, cols = _index(grid, count, skip_edges)
    step_values = _steps(steps)
    return np.stack(
        [
            np.mod(values[c, rows, cols], step_values[c]) / step_values[c]
            for c in _channels(channels)
        ]
    )
