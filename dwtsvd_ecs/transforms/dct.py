"""Orthonormal 2D DCT for fixed-size square blocks.

The transform is the JPEG DCT: DCT-II forward, DCT-III inverse, with
``alpha(0) = 1/sqrt(N)`` and ``alpha(k) = sqrt(2/N)``. It is applied row then
column as ``C @ B @ C.T`` where ``C[k, n] = alpha(k) cos(pi/N (n + 0.5) k)``,
so the inverse is simply ``C.T @ B @ C``.
"""

from __future__ import annotations

import logging
import threading
from typing import ClassVar

import numpy as np

from dwtsvd_ecs.core.errors import ShapeError

logger = logging.getLogger(__name__)


class CosineTransform:
    """DCT for N x N blocks with a precomputed basis.

    Use ``CosineTransform.create(n)`` to get the shared instance for a size;
    each table is built at most once and never evicted.

    Example:
        >>> dct = CosineTransform.create(4)
        >>> coeffs = dct.forward(blocks)        # blocks: (..., 4, 4)
        >>> np.allclose(dct.inverse(coeffs), blocks)
        True
    """

    _cache: ClassVar[dict[int, CosineTransform]] = {}
    _cache_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, n: int):
        if n < 1:
            raise ShapeError(f"Block size must be positive, got {n}")
        self.n = n
        k = np.arange(n)[:, None]
        samples = np.arange(n)[None, :]
        alpha = np.full((n, 1), np.sqrt(2.0 / n))
        alpha[0, 0] = 1.0 / np.sqrt(n)
        self._basis = alpha * np.cos(np.pi / n * (samples + 0.5) * k)
        self._basis.flags.writeable = False

    @classmethod
    def create(cls, n: int) -> CosineTransform:
        """Return the cached transform for block size ``n``."""
        with cls._cache_lock:
            dct = cls._cache.get(n)
            if dct is None:
                dct = cls(n)
                cls._cache[n] = dct
                logger.debug("Built DCT table for N=%d", n)
            return dct

    @property
    def basis(self) -> np.ndarray:
        """Read-only (N, N) DCT-II matrix."""
        return self._basis

    def forward(self, blocks: np.ndarray) -> np.ndarray:
        """DCT-II of the trailing N x N axes.

        Raises:
            ShapeError: If the trailing axes are not N x N
        """
        self._check(blocks)
        return self._basis @ blocks @ self._basis.T

    def inverse(self, coeffs: np.ndarray) -> np.ndarray:
        """DCT-III (inverse DCT-II) of the trailing N x N axes.

        Raises:
            ShapeError: If the trailing axes are not N x N
        """
        self._check(coeffs)
        return self._basis.T @ coeffs @ self._basis

    def _check(self, blocks: np.ndarray) -> None:
        if blocks.ndim < 2 or blocks.shape[-2:] != (self.n, self.n):
            raise ShapeError(
                f"Block must be {self.n}x{self.n}, got shape {blocks.shape}"
            )

    def __repr__(self) -> str:
        return f"CosineTransform(n={self.n})"
