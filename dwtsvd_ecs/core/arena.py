"""Arena allocator and TensorRef handles for the transform pipeline.

Every intermediate of the DWT-DCT-SVD pipeline (color planes, wavelet bands,
block grids, singular value decompositions) lives in one contiguous Arena.
Components only store TensorRefs (offset, shape, dtype, owning arena), so the
cached state of a prepared engine can be shared between embed calls without
copying.

Key Features:
- Bump allocation with dtype alignment
- Generation counter: detects stale TensorRefs after ``reset()``
- Arena identity: a TensorRef can only be viewed through the arena that
  allocated it, which lets overlay worlds tell their own refs from the
  parent's
- Freezing: a frozen arena refuses allocations and hands out read-only views

Example:
    >>> arena = Arena(size_bytes=1 << 20)
    >>> ref = arena.alloc_tensor((3, 8, 8), np.float64)
    >>> arena.view(ref)[:] = 0.0
    >>> channel = arena.view(ref.subref((1,)))  # (8, 8) view of channel 1
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Any

import numpy as np

_ARENA_IDS = itertools.count(1)


@dataclass(frozen=True)
class TensorRef:
    """Lightweight handle pointing to tensor data in an Arena.

    Attributes:
        offset: Byte offset into arena buffer
        shape: Tensor dimensions
        dtype: NumPy data type
        strides: Byte strides for each dimension (enables subrefs)
        generation: Arena generation counter (for staleness detection)
        arena_id: Identity of the arena that owns the data
    """

    offset: int
    shape: tuple[int, ...]
    dtype: np.dtype[Any]
    strides: tuple[int, ...]
    generation: int
    arena_id: int = 0

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")
        if len(self.shape) != len(self.strides):
            raise ValueError(
                f"shape and strides must have same length: "
                f"shape={self.shape}, strides={self.strides}"
            )
        if self.generation < 0:
            raise ValueError(f"generation must be non-negative, got {self.generation}")

    @property
    def ndim(self) -> int:
        """Number of dimensions."""
        return len(self.shape)

    @property
    def size(self) -> int:
        """Total number of elements."""
        return int(np.prod(self.shape))

    @property
    def nbytes(self) -> int:
        """Total number of bytes spanned (including stride gaps)."""
        if self.size == 0:
            return 0
        last_offset = sum((s - 1) * st for s, st in zip(self.shape, self.strides))
        return last_offset + self.dtype.itemsize

    def subref(self, slices: tuple[slice | int, ...]) -> TensorRef:
        """Create a view into this TensorRef.

        Used to address a single color channel of a (3, ...) tensor.

        Args:
            slices: Tuple of slices or integers for indexing

        Returns:
            New TensorRef pointing to the sliced region

        Example:
            >>> ref = arena.alloc_tensor((3, 64, 64, 4, 4), np.float64)
            >>> luma_ref = ref.subref((0,))
        """
        normalized: list[slice | int] = []
        for s in slices:
            if isinstance(s, (int, slice)):
                normalized.append(s)
            else:
                raise TypeError(f"Invalid slice type: {type(s)}")

        while len(normalized) < len(self.shape):
            normalized.append(slice(None))

        new_offset = self.offset
        new_shape: list[int] = []
        new_strides: list[int] = []

        for i, (s, size, stride) in enumerate(zip(normalized, self.shape, self.strides)):
            if isinstance(s, int):
                if s < 0:
                    s = size + s
                if not (0 <= s < size):
                    raise IndexError(f"Index {s} out of bounds for dimension {i} with size {size}")
                new_offset += s * stride
            else:
                start, stop, step = s.indices(size)
                if step != 1:
                    raise NotImplementedError("Strided slices not supported")
                new_shape.append(stop - start)
                new_strides.append(stride)
                new_offset += start * stride

        return TensorRef(
            offset=new_offset,
            shape=tuple(new_shape),
            dtype=self.dtype,
            strides=tuple(new_strides),
            generation=self.generation,
            arena_id=self.arena_id,
        )


def estimate_arena_bytes(height: int, width: int, block_size: int = 4) -> int:
    """Arena size that comfortably holds one prepared image pipeline.

    Per pixel the pipeline keeps roughly: 3 float64 planes, the same again in
    wavelet bands, and five block grids (blocks, DCT, U, S, V^T) over the
    quarter-size low band. The block grid is padded up to a multiple of
    ``block_size``.
    """
    padded_h = height + 2 * block_size + 2
    padded_w = width + 2 * block_size + 2
    return 128 * padded_h * padded_w + (1 << 20)


class Arena:
    """Contiguous memory allocator with bump allocation strategy.

    Attributes:
        size: Total arena size in bytes
        offset: Current allocation offset (bump pointer)
        generation: Incremented on reset() to invalidate old TensorRefs
        id: Process-unique arena identity
        frozen: True once freeze() was called

    Example:
        >>> arena = Arena(size_bytes=1024)
        >>> ref1 = arena.alloc_tensor((10,), np.float32)
        >>> ref2 = arena.alloc_tensor((5, 5), np.uint8)
        >>> print(f"Allocated {arena.offset} / {arena.size} bytes")
    """

    def __init__(self, size_bytes: int):
        """Create arena with specified size.

        Args:
            size_bytes: Total size in bytes (should be >> expected usage)
        """
        if size_bytes <= 0:
            raise ValueError(f"size_bytes must be positive, got {size_bytes}")

        self._buffer = bytearray(size_bytes)
        self._size = size_bytes
        self._offset = 0
        self._generation = 0
        self._id = next(_ARENA_IDS)
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        """Total arena size in bytes."""
        return self._size

    @property
    def offset(self) -> int:
        """Current allocation offset (bytes used)."""
        return self._offset

    @property
    def generation(self) -> int:
        """Current generation counter."""
        return self._generation

    @property
    def id(self) -> int:
        """Arena identity stamped into every TensorRef it allocates."""
        return self._id

    @property
    def frozen(self) -> bool:
        """Whether the arena has been frozen."""
        return self._frozen

    @property
    def available(self) -> int:
        """Remaining bytes available for allocation."""
        return self._size - self._offset

    def owns(self, ref: TensorRef) -> bool:
        """Check whether ``ref`` was allocated by this arena."""
        return ref.arena_id == self._id

    def freeze(self) -> None:
        """Make the arena read-only.

        Subsequent allocations raise RuntimeError and every view is returned
        with ``writeable=False``.
        """
        self._frozen = True

    def reset(self) -> None:
        """Reset arena for reuse. Invalidates all existing TensorRefs."""
        with self._lock:
            if self._frozen:
                raise RuntimeError("Cannot reset a frozen arena")
            self._offset = 0
            self._generation += 1

    def alloc_tensor(
        self,
        shape: tuple[int, ...],
        dtype: np.dtype[Any] | type | str,
    ) -> TensorRef:
        """Allocate a tensor in the arena.

        Args:
            shape: Tensor dimensions
            dtype: NumPy data type

        Returns:
            TensorRef handle to the allocated tensor

        Raises:
            ValueError: If allocation would exceed arena size
            RuntimeError: If the arena is frozen
        """
        dt = np.dtype(dtype)
        shape = tuple(int(s) for s in shape)
        nbytes = int(np.prod(shape)) * dt.itemsize

        with self._lock:
            if self._frozen:
                raise RuntimeError("Cannot allocate in a frozen arena")

            alignment = dt.alignment
            aligned_offset = (self._offset + alignment - 1) // alignment * alignment

            end_offset = aligned_offset + nbytes
            if end_offset > self._size:
                raise ValueError(
                    f"Arena out of memory: need {nbytes} bytes at offset {aligned_offset}, "
                    f"but arena size is {self._size} (available: {self.available})"
                )
            self._offset = end_offset

        # C-contiguous strides
        strides = []
        stride = dt.itemsize
        for dim_size in reversed(shape):
            strides.append(stride)
            stride *= dim_size
        strides.reverse()

        return TensorRef(
            offset=aligned_offset,
            shape=shape,
            dtype=dt,
            strides=tuple(strides),
            generation=self._generation,
            arena_id=self._id,
        )

    def view(self, ref: TensorRef) -> np.ndarray:
        """Get a NumPy array view of a TensorRef.

        Args:
            ref: TensorRef to view

        Returns:
            NumPy array backed by arena memory (zero-copy); read-only when
            the arena is frozen

        Raises:
            ValueError: If TensorRef is stale or belongs to another arena
        """
        if ref.arena_id != self._id:
            raise ValueError(
                f"TensorRef belongs to arena {ref.arena_id}, not arena {self._id}"
            )
        if ref.generation != self._generation:
            raise ValueError(
                f"Stale TensorRef: arena was reset (current generation {self._generation}, "
                f"ref is from generation {ref.generation})"
            )

        end_offset = ref.offset + ref.nbytes
        if end_offset > self._size:
            raise ValueError(
                f"TensorRef out of bounds: offset={ref.offset}, nbytes={ref.nbytes}, "
                f"arena size={self._size}"
            )

        arr = np.ndarray(
            shape=ref.shape,
            dtype=ref.dtype,
            buffer=self._buffer,
            offset=ref.offset,
            strides=ref.strides,
        )
        if self._frozen:
            arr.flags.writeable = False
        return arr

    def copy_tensor(self, arr: np.ndarray) -> TensorRef:
        """Allocate tensor and copy data from array.

        Args:
            arr: NumPy array to copy

        Returns:
            TensorRef pointing to the copied data
        """
        ref = self.alloc_tensor(arr.shape, arr.dtype)
        self.view(ref)[...] = arr
        return ref

    def __repr__(self) -> str:
        return (
            f"Arena(id={self._id}, size={self._size}, offset={self._offset}, "
            f"generation={self._generation}, available={self.available}, "
            f"frozen={self._frozen})"
        )
