"""Tests for the block cosine transform."""

import threading

import numpy as np
import pytest

from dwtsvd_ecs.core.errors import ShapeError
from dwtsvd_ecs.transforms.dct import CosineTransform


def reference_dct2(block: np.ndarray) -> np.ndarray:
    """Direct evaluation of the orthonormal 2D DCT-II."""
    n = block.shape[0]
    alpha = [np.sqrt(1.0 / n)] + [np.sqrt(2.0 / n)] * (n - 1)
    out = np.zeros((n, n))
    for u in range(n):
        for v in range(n):
            total = 0.0
            for i in range(n):
                for j in range(n):
                    total += (
                        block[i, j]
                        * np.cos((2 * i + 1) * u * np.pi / (2 * n))
                        * np.cos((2 * j + 1) * v * np.pi / (2 * n))
                    )
            out[u, v] = alpha[u] * alpha[v] * total
    return out


class TestCosineTransform:
    """Tests for CosineTransform."""

    @pytest.mark.parametrize("n", [2, 4, 8])
    def test_matches_reference(self, n: int) -> None:
        """Test the forward transform equals the DCT-II formula."""
        block = np.random.default_rng(n).integers(-128, 128, size=(n, n)).astype(float)
        np.testing.assert_allclose(
            CosineTransform.create(n).forward(block), reference_dct2(block), atol=1e-9
        )

    @pytest.mark.parametrize("n", [4, 8, 16])
    def test_round_trip(self, n: int) -> None:
        """Test inverse(forward(B)) equals B within 1e-9 on pixel-range blocks."""
        blocks = np.random.default_rng(0).uniform(-128, 127, size=(3, 5, 6, n, n))
        dct = CosineTransform.create(n)
        np.testing.assert_allclose(dct.inverse(dct.forward(blocks)), blocks, atol=1e-9, rtol=0)

    def test_uniform_block_is_dc_only(self) -> None:
        """Test a flat block has a single DC coefficient of N * value."""
        coeffs = CosineTransform.create(4).forward(np.full((4, 4), 10.0))
        assert coeffs[0, 0] == pytest.approx(40.0)
        coeffs[0, 0] = 0.0
        np.testing.assert_allclose(coeffs, 0.0, atol=1e-12)

    def test_orthonormal_basis(self) -> None:
        """Test the basis matrix is orthonormal and read-only."""
        basis = CosineTransform.create(8).basis
        np.testing.assert_allclose(basis @ basis.T, np.eye(8), atol=1e-12)
        assert not basis.flags.writeable

    def test_cached_per_size(self) -> None:
        """Test create returns one shared instance per block size."""
        assert CosineTransform.create(4) is CosineTransform.create(4)
        assert CosineTransform.create(4) is not CosineTransform.create(8)

    def test_cache_thread_safe(self) -> None:
        """Test concurrent create calls see the same instance."""
        results: list[CosineTransform] = []

        def worker() -> None:
            results.append(CosineTransform.create(12))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(r) for r in results}) == 1

    def test_size_mismatch(self) -> None:
        """Test blocks of the wrong size are rejected."""
        dct = CosineTransform.create(4)
        with pytest.raises(ShapeError, match="Block must be 4x4"):
            dct.forward(np.zeros((8, 8)))
        with pytest.raises(ShapeError, match="Block must be 4x4"):
            dct.inverse(np.zeros((4, 3)))

    def test_invalid_size(self) -> None:
        """Test a non-positive size."""
        with pytest.raises(ShapeError):
            CosineTransform(0)

    def test_repr(self) -> None:
        assert repr(CosineTransform.create(4)) == "CosineTransform(n=4)"
