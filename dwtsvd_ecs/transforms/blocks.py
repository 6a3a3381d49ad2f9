"""Split a band into a grid of square blocks and put it back together."""

from __future__ import annotations

import math

import numpy as np

from dwtsvd_ecs.core.errors import ConfigurationError, ShapeError


def grid_shape(height: int, width: int, block_size: int) -> tuple[int, int]:
    """Number of block rows and columns covering a ``height x width`` band."""
    if block_size < 1:
        raise ConfigurationError(f"block_size must be positive, got {block_size}")
    return math.ceil(height / block_size), math.ceil(width / block_size)


def partition(region: np.ndarray, block_size: int) -> np.ndarray:
    """Cut the trailing two axes of ``region`` into ``block_size`` blocks.

    Blocks that run past the bottom or right edge are zero padded, not
    cropped.

    Args:
        region: Array (..., H, W)
        block_size: Block edge length k

    Returns:
        Grid (..., ceil(H/k), ceil(W/k), k, k); ``grid[..., r, c]`` covers
        rows ``r*k:(r+1)*k`` and columns ``c*k:(c+1)*k``
    """
    if region.ndim < 2:
        raise ShapeError(f"Expected at least 2 dimensions, got shape {region.shape}")
    height, width = region.shape[-2:]
    rows, cols = grid_shape(height, width, block_size)
    pad = [(0, 0)] * (region.ndim - 2) + [
        (0, rows * block_size - height),
        (0, cols * block_size - width),
    ]
    padded = np.pad(region, pad, mode="constant", constant_values=0.0)
    lead = region.shape[:-2]
    grid = padded.reshape(lead + (rows, block_size, cols, block_size))
    return np.ascontiguousarray(np.swapaxes(grid, -3, -2))


def reassemble(grid: np.ndarray, width: int, height: int) -> np.ndarray:
    """Inverse of ``partition``: stitch blocks and drop the padding.

    Args:
        grid: Block grid (..., rows, cols, k, k)
        width: Band width to restore
        height: Band height to restore

    Returns:
        Band (..., height, width)

    Raises:
        ShapeError: If the grid does not cover ``height x width`` or the
            blocks are not square
    """
    if grid.ndim < 4 or grid.shape[-1] != grid.shape[-2]:
        raise ShapeError(f"Expected a grid of square blocks, got shape {grid.shape}")
    rows, cols, block_size = grid.shape[-4], grid.shape[-3], grid.shape[-1]
    if rows * block_size < height or cols * block_size < width:
        raise ShapeError(
            f"Grid of {rows}x{cols} blocks of size {block_size} cannot cover "
            f"{height}x{width}"
        )
    lead = grid.shape[:-4]
    band = np.swapaxes(grid, -3, -2).reshape(lead + (rows * block_size, cols * block_size))
    return np.ascontiguousarray(band[..., :height, :width])
