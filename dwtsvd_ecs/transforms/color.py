"""RGB <-> Y/Cb/Cr planes via scikit-image (ITU-R BT.601, studio range)."""

from __future__ import annotations

from typing import Literal

import numpy as np
from skimage.color import rgb2ycbcr, ycbcr2rgb

from dwtsvd_ecs.core.errors import ShapeError


def rgb_to_planes(
    rgb: np.ndarray,
    pad_mode: Literal["edge", "constant"] = "edge",
) -> np.ndarray:
    """Convert an RGB image to a (3, H', W') stack of Y, Cb, Cr planes.

    Height and width are padded up to even numbers so one DWT level splits
    them exactly. ``'edge'`` repeats the last row/column, ``'constant'``
    pads with zeros.

    Args:
        rgb: (H, W, 3) uint8 in 0-255 or float in 0-1

    Returns:
        float64 array (3, H + H % 2, W + W % 2), Y in 16-235, Cb/Cr in 16-240
    """
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ShapeError(f"Expected image with shape (H, W, 3), got {rgb.shape}")
    ycbcr = np.asarray(rgb2ycbcr(rgb), dtype=np.float64)
    planes = np.moveaxis(ycbcr, -1, 0)
    height, width = planes.shape[1:]
    pad = [(0, 0), (0, height % 2), (0, width % 2)]
    if pad_mode == "edge":
        planes = np.pad(planes, pad, mode="edge")
    else:
        planes = np.pad(planes, pad, mode="constant", constant_values=0.0)
    return np.ascontiguousarray(planes)


def planes_to_rgb(planes: np.ndarray, height: int, width: int) -> np.ndarray:
    """Convert Y, Cb, Cr planes back to an 8-bit RGB image.

    The padding added by ``rgb_to_planes`` is cropped, values are clipped to
    0-255 and rounded.

    Args:
        planes: (3, H', W') with H' >= height, W' >= width
        height: Output height
        width: Output width

    Returns:
        uint8 array (height, width, 3)
    """
    if planes.ndim != 3 or planes.shape[0] != 3:
        raise ShapeError(f"Expected planes with shape (3, H, W), got {planes.shape}")
    ycbcr = np.moveaxis(planes[:, :height, :width], 0, -1)
    rgb = ycbcr2rgb(np.ascontiguousarray(ycbcr)) * 255.0
    return np.rint(np.clip(rgb, 0.0, 255.0)).astype(np.uint8)
