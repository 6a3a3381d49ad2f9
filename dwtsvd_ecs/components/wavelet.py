"""Wavelet decomposition components."""

from pydantic import Field, model_validator

from dwtsvd_ecs.components.image import Component
from dwtsvd_ecs.core.arena import TensorRef


class WaveletBands(Component):
    """Per-channel DWT of a (3, H, W) plane stack.

    Attributes:
        low: TensorRef to the coarsest low-low band (3, h, w) float64
        horizontal: Horizontal-edge detail bands, one TensorRef per level,
            finest first
        vertical: Vertical-edge detail bands, finest first
        diagonal: Diagonal-edge detail bands, finest first
        wavelet: Wavelet name (e.g. 'haar', 'db2')
        height: Height of the plane the bands were computed from
        width: Width of the plane the bands were computed from
    """

    low: TensorRef
    horizontal: list[TensorRef]
    vertical: list[TensorRef]
    diagonal: list[TensorRef]
    wavelet: str = Field(default="haar")
    height: int = Field(gt=0)
    width: int = Field(gt=0)

    @model_validator(mode="after")
    def _check_levels(self) -> "WaveletBands":
        levels = len(self.horizontal)
        if levels == 0 or len(self.vertical) != levels or len(self.diagonal) != levels:
            raise ValueError(
                f"Expected the same non-zero number of levels for every detail "
                f"orientation, got {len(self.horizontal)}, {len(self.vertical)}, "
                f"{len(self.diagonal)}"
            )
        return self

    @property
    def levels(self) -> int:
        """Number of decomposition levels."""
        return len(self.horizontal)
