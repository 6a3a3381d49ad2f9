"""Color conversion system: RGB <-> shifted Y/Cb/Cr planes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from dwtsvd_ecs.components.image import RGB, ReconRGB
from dwtsvd_ecs.components.planes import YUVPlanes
from dwtsvd_ecs.core.system import Mode, System
from dwtsvd_ecs.transforms.color import planes_to_rgb, rgb_to_planes

if TYPE_CHECKING:
    from dwtsvd_ecs.core.world import World


class ColorConvert(System):
    """Convert between RGB pixels and luma/chroma planes.

    Forward mode: RGB -> YUVPlanes. The planes are padded to even size and
    ``luma_shift`` is subtracted from Y so it is centered for the DCT.
    Inverse mode: YUVPlanes -> ReconRGB. The shift recorded on the planes is
    added back, the padding is cropped to ``metadata['image_shape']`` and
    values are clamped to 0-255.
    """

    def __init__(
        self,
        mode: Mode = "forward",
        luma_shift: float = 128.0,
        pad_mode: Literal["edge", "constant"] = "edge",
    ):
        """Initialize color conversion.

        Args:
            mode: 'forward' (RGB -> planes) or 'inverse' (planes -> RGB)
            luma_shift: Value subtracted from luma in forward mode
            pad_mode: Padding for odd sizes, 'edge' or 'constant'
        """
        super().__init__(mode=mode)
        if pad_mode not in ("edge", "constant"):
            raise ValueError(f"pad_mode must be 'edge' or 'constant', got {pad_mode!r}")
        self.luma_shift = luma_shift
        self.pad_mode = pad_mode

    def required_components(self) -> list[type]:
        return [RGB] if self.is_forward else [YUVPlanes]

    def produced_components(self) -> list[type]:
        return [YUVPlanes] if self.is_forward else [ReconRGB]

    def run(self, world: World, eids: list[int]) -> None:
        if self.is_forward:
            self._run_forward(world, eids)
        else:
            self._run_inverse(world, eids)

    def _run_forward(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            rgb = world.view(world.get_component(eid, RGB).pix)
            planes = rgb_to_planes(rgb, pad_mode=self.pad_mode)
            planes[0] -= self.luma_shift
            ref = world.arena.copy_tensor(planes)
            world.add_component(eid, YUVPlanes(data=ref, luma_shift=self.luma_shift))

    def _run_inverse(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            component = world.get_component(eid, YUVPlanes)
            planes = world.view(component.data).copy()
            planes[0] += component.luma_shift

            height, width = planes.shape[1:]
            image_shape = world.metadata.get(eid, {}).get("image_shape")
            if image_shape is not None:
                height, width = image_shape[0], image_shape[1]

            pix = planes_to_rgb(planes, height, width)
            world.add_component(eid, ReconRGB(pix=world.arena.copy_tensor(pix)))
