"""Pure NumPy transform engines used by the pipeline systems."""

from dwtsvd_ecs.transforms.blocks import grid_shape, partition, reassemble
from dwtsvd_ecs.transforms.dct import CosineTransform
from dwtsvd_ecs.transforms.dwt import (
    Decomposition,
    DWTResult,
    decompose,
    max_decompose_level,
    reconstruct,
)
from dwtsvd_ecs.transforms.filters import FilterBank
from dwtsvd_ecs.transforms.svd import block_svd, compose

__all__ = [
    "CosineTransform",
    "Decomposition",
    "DWTResult",
    "FilterBank",
    "block_svd",
    "compose",
    "decompose",
    "grid_shape",
    "max_decompose_level",
    "partition",
    "reassemble",
    "reconstruct",
]
