"""Tests for the fork-join helpers."""

import threading
import time

import numpy as np
import pytest

from dwtsvd_ecs.core.parallel import fork_join, map_chunks, split_axis


class TestForkJoin:
    """Tests for fork_join."""

    def test_results_in_order(self) -> None:
        """Test results come back in input order."""
        def task(x: int) -> int:
            time.sleep(0.001 * (10 - x))
            return x * x

        assert fork_join(task, range(10), max_workers=4) == [x * x for x in range(10)]

    def test_inline(self) -> None:
        """Test max_workers=1 runs in the calling thread."""
        threads = fork_join(lambda _: threading.get_ident(), range(3), max_workers=1)
        assert set(threads) == {threading.get_ident()}

    def test_empty(self) -> None:
        """Test no items gives no results."""
        assert fork_join(lambda x: x, [], max_workers=4) == []

    def test_first_error_propagates(self) -> None:
        """Test a failing task raises and no partial result is returned."""
        started = []

        def task(x: int) -> int:
            started.append(x)
            if x == 0:
                raise ArithmeticError("bad block")
            time.sleep(0.01)
            return x

        with pytest.raises(ArithmeticError, match="bad block"):
            fork_join(task, range(200), max_workers=2)
        assert len(started) < 200


class TestSplitAxis:
    """Tests for split_axis."""

    def test_covers_range(self) -> None:
        """Test chunks are contiguous and cover the axis."""
        slices = split_axis(10, 3)
        assert slices[0].start == 0
        assert slices[-1].stop == 10
        assert all(a.stop == b.start for a, b in zip(slices, slices[1:]))
        assert len(slices) == 3

    def test_inline(self) -> None:
        """Test a single worker gets one full slice."""
        assert split_axis(10, 1) == [slice(0, 10)]

    def test_more_workers_than_rows(self) -> None:
        """Test no empty chunks are produced."""
        slices = split_axis(3, 8)
        assert len(slices) == 3
        assert all(s.stop > s.start for s in slices)


class TestMapChunks:
    """Tests for map_chunks."""

    @pytest.mark.parametrize("axis", [0, 1, -1])
    def test_matches_direct_call(self, axis: int) -> None:
        """Test chunked evaluation equals evaluating the whole array."""
        data = np.random.default_rng(0).normal(size=(6, 7, 5))
        out = map_chunks(lambda a: a * 2.0 + 1.0, data, axis=axis, max_workers=3)
        np.testing.assert_array_equal(out, data * 2.0 + 1.0)
