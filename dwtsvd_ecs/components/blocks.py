"""Block grid components: spatial blocks, DCT coefficients, per-block SVD.

Every tensor is laid out as (3, rows, cols, k, k): channel, block row, block
column, then the k x k block.
"""

from pydantic import Field

from dwtsvd_ecs.components.image import Component
from dwtsvd_ecs.core.arena import TensorRef


class SpatialBlocks(Component):
    """Low-low band cut into square blocks (zero padded at the edges).

    Attributes:
        blocks: TensorRef to block grid (3, rows, cols, k, k) float64
        block_size: Block edge length k
        band_height: Height of the band before padding
        band_width: Width of the band before padding
    """

    blocks: TensorRef
    block_size: int = Field(ge=1)
    band_height: int = Field(gt=0)
    band_width: int = Field(gt=0)


class DCTBlocks(Component):
    """DCT coefficients of every block.

    Attributes:
        coeffs: TensorRef to coefficient grid (3, rows, cols, k, k) float64
        block_size: Block edge length k
    """

    coeffs: TensorRef
    block_size: int = Field(ge=1)


class SingularBlocks(Component):
    """SVD of every DCT block: coeffs = U @ S @ V^T.

    Attributes:
        u: TensorRef to left singular vectors (3, rows, cols, k, k)
        s: TensorRef to diagonal singular value matrices (3, rows, cols, k, k)
        vt: TensorRef to transposed right singular vectors (3, rows, cols, k, k)
        block_size: Block edge length k
    """

    u: TensorRef
    s: TensorRef
    vt: TensorRef
    block_size: int = Field(ge=1)
