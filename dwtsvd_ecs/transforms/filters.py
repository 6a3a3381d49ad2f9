"""Wavelet filter banks."""

from __future__ import annotations

import math
from dataclasses import dataclass

import pywt

from dwtsvd_ecs.core.errors import ConfigurationError

_ISQRT2 = 1.0 / math.sqrt(2.0)


@dataclass(frozen=True)
class FilterBank:
    """Immutable two-channel wavelet filter bank.

    Attributes:
        decompose_length: Declared length of both analysis filters
        decompose_low: Analysis low-pass taps
        decompose_high: Analysis high-pass taps
        reconstruct_length: Declared length of both synthesis filters
        reconstruct_low: Synthesis low-pass taps
        reconstruct_high: Synthesis high-pass taps
        name: Wavelet name, informational only
    """

    decompose_length: int
    decompose_low: tuple[float, ...]
    decompose_high: tuple[float, ...]
    reconstruct_length: int
    reconstruct_low: tuple[float, ...]
    reconstruct_high: tuple[float, ...]
    name: str = "custom"

    def __post_init__(self) -> None:
        for field in ("decompose_low", "decompose_high", "reconstruct_low", "reconstruct_high"):
            object.__setattr__(self, field, tuple(float(t) for t in getattr(self, field)))

        if len(self.decompose_low) != self.decompose_length:
            raise ConfigurationError(
                f"Low pass decompose filter has {len(self.decompose_low)} taps, "
                f"expected {self.decompose_length}"
            )
        if len(self.decompose_high) != self.decompose_length:
            raise ConfigurationError(
                f"High pass decompose filter has {len(self.decompose_high)} taps, "
                f"expected {self.decompose_length}"
            )
        if len(self.reconstruct_low) != self.reconstruct_length:
            raise ConfigurationError(
                f"Low pass reconstruct filter has {len(self.reconstruct_low)} taps, "
                f"expected {self.reconstruct_length}"
            )
        if len(self.reconstruct_high) != self.reconstruct_length:
            raise ConfigurationError(
                f"High pass reconstruct filter has {len(self.reconstruct_high)} taps, "
                f"expected {self.reconstruct_length}"
            )
        if self.decompose_length < 2 or self.reconstruct_length < 2:
            raise ConfigurationError("Filters need at least 2 taps")
        if self.reconstruct_length % 2:
            raise ConfigurationError(
                f"Reconstruct filter length must be even, got {self.reconstruct_length}"
            )

    @classmethod
    def haar(cls) -> FilterBank:
        """The orthonormal Haar filter bank."""
        return cls(
            decompose_length=2,
            decompose_low=(_ISQRT2, _ISQRT2),
            decompose_high=(-_ISQRT2, _ISQRT2),
            reconstruct_length=2,
            reconstruct_low=(_ISQRT2, _ISQRT2),
            reconstruct_high=(_ISQRT2, -_ISQRT2),
            name="haar",
        )

    @classmethod
    def from_name(cls, name: str) -> FilterBank:
        """Build a filter bank from a PyWavelets discrete wavelet name.

        Raises:
            ConfigurationError: If PyWavelets does not know the wavelet
        """
        if name == "haar":
            return cls.haar()
        try:
            wavelet = pywt.Wavelet(name)
        except ValueError as e:
            raise ConfigurationError(f"Unknown wavelet {name!r}") from e
        dec_lo, dec_hi, rec_lo, rec_hi = wavelet.filter_bank
        return cls(
            decompose_length=len(dec_lo),
            decompose_low=tuple(dec_lo),
            decompose_high=tuple(dec_hi),
            reconstruct_length=len(rec_lo),
            reconstruct_low=tuple(rec_lo),
            reconstruct_high=tuple(rec_hi),
            name=name,
        )
