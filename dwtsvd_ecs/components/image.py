"""Image components: RGB, ReconRGB."""

from pydantic import BaseModel, Field

from dwtsvd_ecs.core.arena import TensorRef


class Component(BaseModel):
    """Base class for all ECS components.

    Components are data containers using Pydantic for validation and type safety.
    All tensor data is stored as TensorRef handles pointing into an arena.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}


class RGB(Component):
    """Source RGB image.

    Attributes:
        pix: TensorRef to RGB pixel data (H, W, 3) uint8 or float32
        colorspace: Colorspace identifier (default 'sRGB')
    """

    pix: TensorRef
    colorspace: str = Field(default="sRGB")


class ReconRGB(Component):
    """RGB image reconstructed from (possibly modified) transform data.

    Attributes:
        pix: TensorRef to RGB pixel data (H, W, 3) uint8
        colorspace: Colorspace identifier (default 'sRGB')
    """

    pix: TensorRef
    colorspace: str = Field(default="sRGB")
