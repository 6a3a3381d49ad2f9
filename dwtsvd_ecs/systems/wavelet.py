"""Wavelet decomposition system.

Multi-level 2D DWT of the Y/Cb/Cr planes with symmetric boundary extension.
Filters come from PyWavelets by name, the transform itself runs in
``dwtsvd_ecs.transforms.dwt``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dwtsvd_ecs.components.planes import YUVPlanes
from dwtsvd_ecs.components.wavelet import WaveletBands
from dwtsvd_ecs.core.system import Mode, System
from dwtsvd_ecs.transforms.dwt import Decomposition, decompose, reconstruct
from dwtsvd_ecs.transforms.filters import FilterBank

if TYPE_CHECKING:
    from dwtsvd_ecs.core.world import World


class WaveletDWT(System):
    """Discrete wavelet transform of every color plane.

    Forward mode: YUVPlanes -> WaveletBands
    Inverse mode: WaveletBands -> YUVPlanes

    The inverse keeps the luma shift of the planes it was computed from, so
    the planes round-trip through ``ColorConvert`` unchanged.
    """

    def __init__(
        self,
        levels: int = 1,
        wavelet: str = "haar",
        mode: Mode = "forward",
        workers: int | None = None,
    ):
        """Initialize wavelet system.

        Args:
            levels: Number of decomposition levels (1-10)
            wavelet: PyWavelets wavelet name
            mode: 'forward' for decomposition, 'inverse' for reconstruction
            workers: Thread count for row/column passes (None = executor
                default)
        """
        super().__init__(mode=mode)
        if not 1 <= levels <= 10:
            raise ValueError(f"levels must be in [1, 10], got {levels}")
        self.levels = levels
        self.wavelet = wavelet
        self.filter_bank = FilterBank.from_name(wavelet)
        self.workers = workers

    def required_components(self) -> list[type]:
        return [YUVPlanes] if self.is_forward else [WaveletBands]

    def produced_components(self) -> list[type]:
        return [WaveletBands] if self.is_forward else [YUVPlanes]

    def run(self, world: World, eids: list[int]) -> None:
        if self.is_forward:
            self._run_forward(world, eids)
        else:
            self._run_inverse(world, eids)

    def _run_forward(self, world: World, eids: list[int]) -> None:
        """Forward decomposition: YUVPlanes -> WaveletBands."""
        for eid in eids:
            planes = world.get_component(eid, YUVPlanes)
            data = world.view(planes.data)  # (3, H, W)

            result = decompose(data, self.filter_bank, self.levels, self.workers)

            copy = world.arena.copy_tensor
            bands = WaveletBands(
                low=copy(result.low),
                horizontal=[copy(d.horizontal) for d in result.decompositions],
                vertical=[copy(d.vertical) for d in result.decompositions],
                diagonal=[copy(d.diagonal) for d in result.decompositions],
                wavelet=self.wavelet,
                height=data.shape[1],
                width=data.shape[2],
            )
            world.add_component(eid, bands)
            world.metadata[eid]["luma_shift"] = planes.luma_shift

    def _run_inverse(self, world: World, eids: list[int]) -> None:
        """Inverse reconstruction: WaveletBands -> YUVPlanes."""
        for eid in eids:
            bands = world.get_component(eid, WaveletBands)
            filter_bank = (
                self.filter_bank if bands.wavelet == self.wavelet
                else FilterBank.from_name(bands.wavelet)
            )
            decompositions = [
                Decomposition(
                    horizontal=world.view(h),
                    vertical=world.view(v),
                    diagonal=world.view(d),
                )
                for h, v, d in zip(bands.horizontal, bands.vertical, bands.diagonal)
            ]
            planes = reconstruct(
                world.view(bands.low),
                decompositions,
                filter_bank,
                shape=(bands.height, bands.width),
                workers=self.workers,
            )
            luma_shift = world.metadata.get(eid, {}).get("luma_shift", 128.0)
            world.add_component(
                eid,
                YUVPlanes(data=world.arena.copy_tensor(planes), luma_shift=luma_shift),
            )
