"""Quality metrics systems comparing the cover image with an embedded one.

Uses scikit-image. Metrics store results in World metadata rather than
creating components.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
from skimage.metrics import mean_squared_error, peak_signal_noise_ratio

from dwtsvd_ecs.components.image import RGB, ReconRGB
from dwtsvd_ecs.core.errors import ShapeError
from dwtsvd_ecs.core.system import System

if TYPE_CHECKING:
    from dwtsvd_ecs.core.world import World


def _as_pixels(data: np.ndarray) -> np.ndarray:
    """Bring uint8 or float (0-1) pixels onto a common float64 0-255 scale."""
    if data.dtype == np.uint8:
        return data.astype(np.float64)
    return np.asarray(data, dtype=np.float64) * 255.0


class _PairMetric(System):
    """Base for metrics over a (source, reconstruction) component pair."""

    key = ""

    def __init__(
        self,
        src_component: type = RGB,
        recon_component: type = ReconRGB,
    ):
        """Initialize metric system.

        Args:
            src_component: Source image component type (default: RGB)
            recon_component: Reconstructed image component type (default: ReconRGB)
        """
        super().__init__(mode="forward")
        self.src_component = src_component
        self.recon_component = recon_component

    def required_components(self) -> list[type]:
        return [self.src_component, self.recon_component]

    def produced_components(self) -> list[type]:
        """None: results go to ``world.metadata[eid][self.key]``."""
        return []

    def run(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            src: Any = world.get_component(eid, self.src_component)
            recon: Any = world.get_component(eid, self.recon_component)

            src_data = world.view(src.pix)
            recon_data = world.view(recon.pix)
            if src_data.shape != recon_data.shape:
                raise ShapeError(
                    f"Shape mismatch: src {src_data.shape} vs recon {recon_data.shape}"
                )

            value = self.compute(_as_pixels(src_data), _as_pixels(recon_data))
            world.metadata.setdefault(eid, {})[self.key] = float(value)

    def compute(self, src: np.ndarray, recon: np.ndarray) -> float:
        raise NotImplementedError


class MetricPSNR(_PairMetric):
    """Peak Signal-to-Noise Ratio in dB (infinite for identical images).

    Stores result in world.metadata[eid]['psnr'].
    """

    key = "psnr"

    def compute(self, src: np.ndarray, recon: np.ndarray) -> float:
        if np.array_equal(src, recon):
            return float("inf")
        return float(peak_signal_noise_ratio(src, recon, data_range=255.0))


class MetricMSE(_PairMetric):
    """Mean squared error on the 0-255 scale.

    Stores result in world.metadata[eid]['mse'].
    """

    key = "mse"

    def compute(self, src: np.ndarray, recon: np.ndarray) -> float:
        return float(mean_squared_error(src, recon))
