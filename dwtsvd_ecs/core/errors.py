"""Exception hierarchy for the transform and embedding pipeline.

Configuration and shape errors also derive from ``ValueError`` so callers
that already guard against bad arguments keep working.
"""

from __future__ import annotations


class StegoError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(StegoError, ValueError):
    """Invalid filter bank, block size, decomposition level or config value."""


class LevelOutOfRangeError(ConfigurationError):
    """Requested more DWT levels than the signal supports."""

    def __init__(self, requested: int, maximum: int, shape: tuple[int, ...]):
        self.requested = requested
        self.maximum = maximum
        self.shape = shape
        super().__init__(
            f"Signal of shape {shape} can only be decomposed {maximum} times "
            f"with this wavelet, got levels={requested}"
        )


class ShapeError(StegoError, ValueError):
    """Array shape does not match what a transform requires."""


class DegenerateBlockError(StegoError, ArithmeticError):
    """SVD did not converge or produced NaN/Inf for one or more blocks."""

    def __init__(
        self,
        message: str,
        channel: int | None = None,
        positions: list[tuple[int, ...]] | None = None,
    ):
        self.channel = channel
        self.positions = positions or []
        super().__init__(message)


class InsufficientCapacityError(StegoError, ValueError):
    """More bits requested than the block grid can carry."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Need {required} blocks, have {available}")
