"""Batched per-block SVD built on ``numpy.linalg.svd``."""

from __future__ import annotations

import logging

import numpy as np

from dwtsvd_ecs.core.errors import DegenerateBlockError, ShapeError

logger = logging.getLogger(__name__)


def _check_square(blocks: np.ndarray) -> None:
    if blocks.ndim < 2 or blocks.shape[-1] != blocks.shape[-2]:
        raise ShapeError(f"SVD input must be square, got shape {blocks.shape}")


def _non_finite_positions(values: np.ndarray, block_ndim: int) -> list[tuple[int, ...]]:
    """Grid positions whose trailing ``block_ndim`` axes hold NaN or Inf."""
    axes = tuple(range(values.ndim - block_ndim, values.ndim))
    bad = ~np.isfinite(values).all(axis=axes)
    return [tuple(int(i) for i in pos) for pos in np.argwhere(bad)]


def diag_matrix(s: np.ndarray) -> np.ndarray:
    """Expand singular values (..., k) into diagonal matrices (..., k, k)."""
    k = s.shape[-1]
    out = np.zeros(s.shape + (k,), dtype=s.dtype)
    idx = np.arange(k)
    out[..., idx, idx] = s
    return out


def block_svd(
    blocks: np.ndarray, channel: int | None = None
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """SVD of every square block in a grid.

    Args:
        blocks: Array (..., k, k)
        channel: Channel index, reported in errors

    Returns:
        (U, S, V^T), each (..., k, k); S is diagonal, non-negative and
        descending, and ``U @ S @ V^T`` reproduces the blocks

    Raises:
        ShapeError: If the blocks are not square
        DegenerateBlockError: If LAPACK does not converge or a block holds
            NaN/Inf
    """
    _check_square(blocks)

    bad = _non_finite_positions(blocks, 2)
    if bad:
        raise DegenerateBlockError(
            f"Non-finite input in {len(bad)} block(s), first at {bad[0]}",
            channel=channel, positions=bad,
        )

    try:
        u, s, vt = np.linalg.svd(blocks)
    except np.linalg.LinAlgError as e:
        positions = _find_nonconvergent(blocks)
        raise DegenerateBlockError(
            f"SVD did not converge for block(s) {positions}",
            channel=channel, positions=positions,
        ) from e

    bad = sorted(
        set(_non_finite_positions(u, 2))
        | set(_non_finite_positions(s, 1))
        | set(_non_finite_positions(vt, 2))
    )
    if bad:
        raise DegenerateBlockError(
            f"SVD produced NaN/Inf in {len(bad)} block(s), first at {bad[0]}",
            channel=channel, positions=bad,
        )
    return u, diag_matrix(s), vt


def compose(u: np.ndarray, s: np.ndarray, vt: np.ndarray) -> np.ndarray:
    """``U @ S @ V^T`` for every block; shapes must agree."""
    if not (u.shape == s.shape == vt.shape):
        raise ShapeError(
            f"U, S and V^T must share a shape, got {u.shape}, {s.shape}, {vt.shape}"
        )
    _check_square(s)
    return u @ s @ vt


def _find_nonconvergent(blocks: np.ndarray) -> list[tuple[int, ...]]:
    positions = []
    for pos in np.ndindex(blocks.shape[:-2]):
        try:
            np.linalg.svd(blocks[pos])
        except np.linalg.LinAlgError:
            positions.append(tuple(int(i) for i in pos))
    logger.debug("SVD failed for %d block(s)", len(positions))
    return positions
