"""Fork-join helper used by the transform engines.

Each task owns a disjoint slice of rows, columns or blocks, so no locking is
needed inside the transforms. NumPy releases the GIL inside its kernels,
which is what makes a thread pool worthwhile here.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Iterable, Sequence, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def fork_join(
    func: Callable[[T], R],
    items: Iterable[T],
    max_workers: int | None = None,
) -> list[R]:
    """Run ``func`` over ``items`` in parallel and join on all results.

    Results come back in input order. If any task raises, the tasks that
    have not started are cancelled, the first failure is re-raised and no
    partial results are returned.

    Args:
        func: Task body
        items: Task inputs
        max_workers: Thread count; 1 runs inline, None lets the executor
            choose

    Returns:
        List of results in the order of ``items``
    """
    items = list(items)
    if max_workers == 1 or len(items) <= 1:
        return [func(item) for item in items]

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(func, item) for item in items]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        failed = [f for f in futures if f in done and f.exception() is not None]
        if failed:
            for future in pending:
                future.cancel()
            logger.debug("Fork-join cancelled %d pending tasks", len(pending))
            raise failed[0].exception()  # type: ignore[misc]
        return [f.result() for f in futures]


def split_axis(length: int, max_workers: int | None) -> list[slice]:
    """Split ``range(length)`` into contiguous chunks, one per worker.

    Returns a single full slice when running inline.
    """
    if max_workers == 1 or length <= 1:
        return [slice(0, length)]
    chunks = min(length, max_workers or _default_workers())
    bounds = np.linspace(0, length, chunks + 1).astype(int)
    return [slice(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]


def map_chunks(
    func: Callable[[np.ndarray], np.ndarray],
    data: np.ndarray,
    axis: int,
    max_workers: int | None = None,
) -> np.ndarray:
    """Apply ``func`` to chunks of ``data`` along ``axis`` and concatenate.

    ``func`` must treat positions along ``axis`` independently.
    """
    axis = axis % data.ndim
    slices: Sequence[slice] = split_axis(data.shape[axis], max_workers)
    if len(slices) == 1:
        return func(data)

    def task(s: slice) -> np.ndarray:
        index = (slice(None),) * axis + (s,)
        return func(data[index])

    return np.concatenate(fork_join(task, slices, max_workers), axis=axis)


def _default_workers() -> int:
    # Same default as ThreadPoolExecutor
    return min(32, (os.cpu_count() or 1) + 4)
