"""Engine configuration loaded from ``dwtsvd_ecs.toml``.

Example file:

    [engine]
    block_size = 4
    wavelet = "haar"
    levels = 1
    pad_mode = "edge"
    workers = 4

    [steps]
    y = 46
    u = 58
    v = 86
"""

from __future__ import annotations

import logging
import os
from typing import Any, Literal, cast

from pydantic import BaseModel, Field, ValidationError

# TOML loading for Python 3.11+ and older
try:
    import tomllib  # type: ignore[import-not-found, unused-ignore]
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found, no-redef, unused-ignore]

from dwtsvd_ecs.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV = "DWTSVD_CONFIG"
CONFIG_NAME = "dwtsvd_ecs.toml"


class QuantSteps(BaseModel):
    """Quantization step per channel for the dominant singular value.

    Attributes:
        y: Step for the luma channel
        u: Step for the blue-difference chroma channel
        v: Step for the red-difference chroma channel
    """

    model_config = {"frozen": True}

    y: float = Field(default=46.0, gt=0.0)
    u: float = Field(default=58.0, gt=0.0)
    v: float = Field(default=86.0, gt=0.0)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.y, self.u, self.v)


class EngineConfig(BaseModel):
    """Watermark engine parameters.

    Attributes:
        block_size: Edge length of the square DCT/SVD blocks
        wavelet: Wavelet name ('haar' or any PyWavelets discrete wavelet)
        levels: DWT decomposition levels
        luma_shift: Value subtracted from luma before the DCT
        pad_mode: How odd image sizes are padded to even ('edge' replicates
            the last row/column, 'constant' pads zeros)
        workers: Thread count for fork-join stages (None = executor default,
            1 = sequential)
        steps: Default quantization steps for the bit policy
    """

    model_config = {"frozen": True}

    block_size: int = Field(default=4, ge=2, le=64)
    wavelet: str = Field(default="haar")
    levels: int = Field(default=1, ge=1, le=10)
    luma_shift: float = Field(default=128.0)
    pad_mode: Literal["edge", "constant"] = Field(default="edge")
    workers: int | None = Field(default=None, ge=1)
    steps: QuantSteps = Field(default_factory=QuantSteps)


def _resolve_config_path(config_path: str | None) -> str | None:
    """Resolve configuration path from env, explicit path, or defaults."""
    env_config = os.environ.get(CONFIG_ENV)
    if env_config:
        return env_config
    if config_path:
        return config_path
    candidates = [
        CONFIG_NAME,
        os.path.expanduser(f"~/{CONFIG_NAME}"),
    ]
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None


def load_config(config_path: str | None = None) -> EngineConfig:
    """Load engine configuration.

    Resolution order: ``$DWTSVD_CONFIG``, ``config_path``, ``./dwtsvd_ecs.toml``,
    ``~/dwtsvd_ecs.toml``. Without any file the defaults are returned.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist
        ConfigurationError: If the file holds invalid values
    """
    resolved_path = _resolve_config_path(config_path)
    if resolved_path is None:
        return EngineConfig()
    if not os.path.exists(resolved_path):
        raise FileNotFoundError(
            f"Config file not found at {resolved_path}. Set {CONFIG_ENV} or create {CONFIG_NAME}"
        )
    with open(resolved_path, "rb") as f:
        raw = cast(dict[str, Any], tomllib.load(f))

    values: dict[str, Any] = dict(raw.get("engine", {}))
    if "steps" in raw:
        values["steps"] = raw["steps"]
    try:
        config = EngineConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {resolved_path}: {e}") from e
    logger.debug("Loaded config from %s: %s", resolved_path, config)
    return config
