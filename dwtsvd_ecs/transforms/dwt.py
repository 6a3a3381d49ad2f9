"""Multi-level 2D discrete wavelet transform with symmetric extension.

Each level filters rows, then columns, and downsamples by two:

    y[i] = sum_l taps[l] * x[2i + 1 - l]

Indices outside ``[0, n)`` are mirrored without duplicating a sample beyond
the edge (``x < 0 -> -x - 1``, ``x >= n -> 2n - x - 1``), so an axis of length
``n`` yields ``ceil((n + L - 2) / 2)`` coefficients. This is the
``"symmetric"`` signal extension of PyWavelets, and ``decompose`` returns the
same coefficients as ``pywt.dwt2(..., mode="symmetric")`` level by level.

All functions operate on the trailing two axes, so a ``(3, H, W)`` stack of
color planes is transformed in one call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NamedTuple, Sequence

import numpy as np
import pywt

from dwtsvd_ecs.core.errors import LevelOutOfRangeError, ShapeError
from dwtsvd_ecs.core.parallel import map_chunks
from dwtsvd_ecs.transforms.filters import FilterBank

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Decomposition:
    """Detail bands of one decomposition level.

    Attributes:
        horizontal: Low-pass along rows, high-pass along columns (horizontal edges)
        vertical: High-pass along rows, low-pass along columns (vertical edges)
        diagonal: High-pass along both axes (diagonal edges)
    """

    horizontal: np.ndarray
    vertical: np.ndarray
    diagonal: np.ndarray

    def __post_init__(self) -> None:
        shape = self.horizontal.shape
        if self.vertical.shape != shape or self.diagonal.shape != shape:
            raise ShapeError(
                f"Detail bands must share a shape, got {self.horizontal.shape}, "
                f"{self.vertical.shape}, {self.diagonal.shape}"
            )

    @property
    def shape(self) -> tuple[int, ...]:
        return self.horizontal.shape

    @property
    def height(self) -> int:
        return self.horizontal.shape[-2]

    @property
    def width(self) -> int:
        return self.horizontal.shape[-1]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Decomposition):
            return NotImplemented
        return (
            np.array_equal(self.horizontal, other.horizontal)
            and np.array_equal(self.vertical, other.vertical)
            and np.array_equal(self.diagonal, other.diagonal)
        )

    __hash__ = None  # type: ignore[assignment]


class DWTResult(NamedTuple):
    """Output of ``decompose``: the final low band and details finest first."""

    low: np.ndarray
    decompositions: list[Decomposition]


def max_decompose_level(height: int, width: int, filter_bank: FilterBank) -> int:
    """Deepest level a ``height x width`` plane supports.

    ``floor(log2(min(height, width) / (decompose_length - 1)))``
    """
    return min(
        pywt.dwt_max_level(height, filter_bank.decompose_length),
        pywt.dwt_max_level(width, filter_bank.decompose_length),
    )


def coefficient_length(length: int, filter_length: int) -> int:
    """Number of coefficients one analysis step produces from ``length`` samples."""
    return (length + filter_length - 1) // 2


def _symmetric_indices(length: int, filter_length: int) -> np.ndarray:
    """Gather indices ``(out, L)`` of the extended signal for each output tap."""
    out = coefficient_length(length, filter_length)
    x = 2 * np.arange(out)[:, None] + 1 - np.arange(filter_length)[None, :]
    # Long filters on short signals may need more than one reflection
    while True:
        low = x < 0
        high = x >= length
        if not (low.any() or high.any()):
            return x
        x = np.where(low, -x - 1, x)
        x = np.where(high, 2 * length - x - 1, x)


def _analyze_last_axis(
    data: np.ndarray,
    filter_bank: FilterBank,
    workers: int | None,
) -> tuple[np.ndarray, np.ndarray]:
    """One analysis step along the last axis, fanned out over axis -2."""
    idx = _symmetric_indices(data.shape[-1], filter_bank.decompose_length)
    taps = np.stack(
        [np.asarray(filter_bank.decompose_low), np.asarray(filter_bank.decompose_high)],
        axis=-1,
    )

    def task(chunk: np.ndarray) -> np.ndarray:
        # (..., rows, out, L) @ (L, 2) -> (..., rows, out, 2)
        return chunk[..., idx] @ taps

    both = map_chunks(task, data, axis=-2, max_workers=workers)
    return both[..., 0], both[..., 1]


def _synthesize_last_axis(
    approx: np.ndarray,
    detail: np.ndarray,
    filter_bank: FilterBank,
    workers: int | None,
) -> np.ndarray:
    """One synthesis step along the last axis, fanned out over axis -2.

    Output sample ``m`` is
    ``sum_i rec_lo[m + L - 2 - 2i] * a[i] + rec_hi[m + L - 2 - 2i] * d[i]``
    for ``m < 2n - L + 2``.
    """
    n = approx.shape[-1]
    half = filter_bank.reconstruct_length // 2
    count = n - half + 1
    if count <= 0:
        raise ShapeError(
            f"Need at least {half} coefficients to reconstruct, got {n}"
        )
    rec_lo = filter_bank.reconstruct_low
    rec_hi = filter_bank.reconstruct_high

    def task(chunk: np.ndarray) -> np.ndarray:
        a, d = chunk[0], chunk[1]
        even = np.zeros(a.shape[:-1] + (count,))
        odd = np.zeros_like(even)
        for j in range(half):
            start = half - 1 - j
            a_j = a[..., start:start + count]
            d_j = d[..., start:start + count]
            even += rec_lo[2 * j] * a_j + rec_hi[2 * j] * d_j
            odd += rec_lo[2 * j + 1] * a_j + rec_hi[2 * j + 1] * d_j
        out = np.empty(a.shape[:-1] + (2 * count,))
        out[..., 0::2] = even
        out[..., 1::2] = odd
        return out[np.newaxis]

    stacked = np.stack([approx, detail])
    return map_chunks(task, stacked, axis=-2, max_workers=workers)[0]


def decompose(
    plane: np.ndarray,
    filter_bank: FilterBank,
    levels: int,
    workers: int | None = None,
) -> DWTResult:
    """Multi-level 2D DWT of the trailing two axes of ``plane``.

    Args:
        plane: Real array (..., H, W)
        filter_bank: Wavelet filters
        levels: Number of levels, at least 1
        workers: Thread count for the row and column passes

    Returns:
        DWTResult with the coarsest low band and one Decomposition per level,
        finest first

    Raises:
        LevelOutOfRangeError: If ``levels`` is not in ``[1, max_decompose_level]``
    """
    data = np.asarray(plane, dtype=np.float64)
    if data.ndim < 2:
        raise ShapeError(f"Expected at least 2 dimensions, got shape {data.shape}")
    height, width = data.shape[-2:]
    maximum = max_decompose_level(height, width, filter_bank)
    if not 1 <= levels <= maximum:
        raise LevelOutOfRangeError(levels, maximum, (height, width))

    decompositions: list[Decomposition] = []
    current = data
    for level in range(levels):
        # Rows: filter along W
        low_rows, high_rows = _analyze_last_axis(current, filter_bank, workers)
        # Columns: filter along H, with H moved to the last axis
        ll, lh = _analyze_last_axis(np.swapaxes(low_rows, -1, -2), filter_bank, workers)
        hl, hh = _analyze_last_axis(np.swapaxes(high_rows, -1, -2), filter_bank, workers)
        decompositions.append(
            Decomposition(
                horizontal=np.ascontiguousarray(np.swapaxes(lh, -1, -2)),
                vertical=np.ascontiguousarray(np.swapaxes(hl, -1, -2)),
                diagonal=np.ascontiguousarray(np.swapaxes(hh, -1, -2)),
            )
        )
        current = np.ascontiguousarray(np.swapaxes(ll, -1, -2))
        logger.debug("DWT level %d: %s -> %s", level + 1, data.shape, current.shape)

    return DWTResult(low=current, decompositions=decompositions)


def reconstruct(
    low: np.ndarray,
    decompositions: Sequence[Decomposition],
    filter_bank: FilterBank,
    shape: tuple[int, int] | None = None,
    workers: int | None = None,
) -> np.ndarray:
    """Inverse of ``decompose``.

    Decompositions are consumed coarsest to finest. A reconstructed band
    that is one sample larger than the next finer level (odd sizes) is
    cropped to that level's shape.

    For odd input sizes the result is one row/column larger than the
    original plane; only the original-sized prefix is meaningful. Pass
    ``shape=(H, W)`` to crop to it.

    Args:
        low: Coarsest low band (..., h, w)
        decompositions: Detail bands, finest first
        filter_bank: Wavelet filters used by ``decompose``
        shape: Optional (H, W) to crop the output to
        workers: Thread count for the column and row passes

    Returns:
        Reconstructed plane (..., H', W')

    Raises:
        ShapeError: If the low band is smaller than a detail level
    """
    current = np.asarray(low, dtype=np.float64)
    for decomposition in reversed(decompositions):
        h, w = decomposition.height, decomposition.width
        if current.shape[-2] < h or current.shape[-1] < w:
            raise ShapeError(
                f"Low band {current.shape[-2:]} smaller than detail band {(h, w)}"
            )
        current = current[..., :h, :w]
        # Columns: rebuild low-rows and high-rows bands along H
        low_rows = _synthesize_last_axis(
            np.swapaxes(current, -1, -2),
            np.swapaxes(decomposition.horizontal, -1, -2),
            filter_bank, workers,
        )
        high_rows = _synthesize_last_axis(
            np.swapaxes(decomposition.vertical, -1, -2),
            np.swapaxes(decomposition.diagonal, -1, -2),
            filter_bank, workers,
        )
        # Rows: combine along W
        current = _synthesize_last_axis(
            np.swapaxes(low_rows, -1, -2),
            np.swapaxes(high_rows, -1, -2),
            filter_bank, workers,
        )

    if shape is not None:
        height, width = shape
        if current.shape[-2] < height or current.shape[-1] < width:
            raise ShapeError(
                f"Reconstructed plane {current.shape[-2:]} smaller than requested {shape}"
            )
        current = current[..., :height, :width]
    return np.ascontiguousarray(current)
