"""DWT-DCT-SVD image steganography with an ECS architecture.

This package hides bits in a color image by quantizing the dominant singular
value of small blocks in a wavelet-plus-cosine transform domain:
- Discrete wavelet transform (symmetric extension) of the Y/Cb/Cr planes
- Orthonormal block DCT of the low-low band
- Per-block SVD, cached once per cover image
- Entity-Component-System (ECS) pipeline over a zero-copy memory Arena

Quick Start:
    >>> from dwtsvd_ecs import embed_bits, extract_fractions
    >>> import numpy as np
    >>>
    >>> img = np.random.randint(0, 256, (256, 256, 3), dtype=np.uint8)
    >>> stego = embed_bits(img, [1, 0, 1, 1])
    >>> extract_fractions(stego, count=4)   # ~0.75 for 1, ~0.25 for 0

For repeated embedding into the same cover, prepare the engine once:
    >>> from dwtsvd_ecs import WatermarkEngine, bit_mutator
    >>>
    >>> engine = WatermarkEngine.prepare(img)
    >>> stego_a = engine.embed(bit_mutator([1, 1, 0]))
    >>> stego_b = engine.embed(bit_mutator([0, 1, 0]))
"""

__version__ = "0.1.0"

from dwtsvd_ecs.api import embed_bits, embedding_quality, extract_fractions, get_capacity
from dwtsvd_ecs.bits import bit_mutator, read_fractions
from dwtsvd_ecs.core.config import EngineConfig, QuantSteps, load_config
from dwtsvd_ecs.core.world import World
from dwtsvd_ecs.engine import WatermarkEngine

__all__ = [
    "__version__",
    "embed_bits",
    "extract_fractions",
    "get_capacity",
    "embedding_quality",
    "bit_mutator",
    "read_fractions",
    "EngineConfig",
    "QuantSteps",
    "load_config",
    "World",
    "WatermarkEngine",
]
