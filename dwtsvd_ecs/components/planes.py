"""Color plane components."""

from pydantic import Field

from dwtsvd_ecs.components.image import Component
from dwtsvd_ecs.core.arena import TensorRef


class YUVPlanes(Component):
    """Luma/chroma planes of an image, padded to even size.

    Attributes:
        data: TensorRef to planes (3, H, W) float64 in Y, Cb, Cr order
        luma_shift: Value already subtracted from the Y plane
    """

    data: TensorRef
    luma_shift: float = Field(default=128.0)
