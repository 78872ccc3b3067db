"""
Value types shared by the color temperature engine.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence, Tuple

import numpy as np

from ..exceptions import ColorProfileError

# Bounds that reject degenerate corrections
DEFAULT_GAIN_BOUNDS: Tuple[float, float] = (0.2, 5.0)

# UI tint is duv scaled by this factor (engine display convention)
TINT_SCALE = 3000.0


class ChannelOrder(Enum):
    """Channel layout of a pixel buffer"""
    RGB = "rgb"
    BGR = "bgr"

    @property
    def indices(self) -> Tuple[int, int, int]:
        """Buffer positions of the red, green and blue channels"""
        if self is ChannelOrder.RGB:
            return (0, 1, 2)
        return (2, 1, 0)


class LocusFit(Enum):
    """Closed-form approximations of the white locus"""
    DAYLIGHT = "daylight"      # Kim et al. cubic spline in xy
    PLANCKIAN = "planckian"    # Krystek rational fit in uv

    @property
    def domain(self) -> Tuple[float, float]:
        """Kelvin range the fit is valid for; inputs are clamped to it"""
        if self is LocusFit.DAYLIGHT:
            return (1667.0, 25000.0)
        return (1000.0, 15000.0)


@dataclass(frozen=True)
class ChromaticityXY:
    """CIE 1931 chromaticity"""
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class TristimulusXYZ:
    """CIE XYZ tristimulus values; Y carries relative luminance"""
    X: float
    Y: float
    Z: float

    def as_array(self) -> np.ndarray:
        return np.array([self.X, self.Y, self.Z], dtype=np.float64)

    @classmethod
    def from_array(cls, values: Sequence[float]) -> 'TristimulusXYZ':
        return cls(float(values[0]), float(values[1]), float(values[2]))


@dataclass(frozen=True)
class UVCoordinate:
    """Uniform chromaticity coordinate (CIE 1960 uv or 1976 u'v')"""
    u: float
    v: float


@dataclass(frozen=True)
class ColorTemperatureResult:
    """
    Correlated color temperature and signed distance from the locus.

    duv > 0 means the chromaticity lies above the locus (green side),
    duv < 0 below it (magenta side).
    """
    cct_kelvin: float
    duv: float

    @property
    def tint(self) -> float:
        """UI-scaled tint (duv x 3000), positive toward green"""
        return self.duv * TINT_SCALE


@dataclass(frozen=True)
class WhiteBalanceGains:
    """
    Multiplicative per-channel gains.

    Instances are immutable; normalization and clamping return new gains.
    All three gains must be finite and strictly positive.
    """
    red_gain: float
    green_gain: float
    blue_gain: float

    def __post_init__(self):
        for name in ('red_gain', 'green_gain', 'blue_gain'):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be finite and positive, got {value}")
            object.__setattr__(self, name, float(value))

    @classmethod
    def unity(cls) -> 'WhiteBalanceGains':
        return cls(1.0, 1.0, 1.0)

    @classmethod
    def from_multipliers(cls, multipliers: Sequence[float]) -> 'WhiteBalanceGains':
        """
        Build green-normalized gains from RGB or RGBG multipliers

        Args:
            multipliers: [R, G, B] or [R, G1, B, G2]; the two greens are averaged

        Returns:
            Gains with green_gain == 1.0
        """
        values = [float(m) for m in multipliers]
        if len(values) not in (3, 4):
            raise ValueError(f"Expected 3 or 4 multipliers, got {len(values)}")
        green = values[1]
        if len(values) == 4 and values[3] > 0:
            green = (values[1] + values[3]) / 2.0
        return cls(values[0], green, values[2]).normalized_to_green()

    @classmethod
    def blend(cls, weighted: Iterable[Tuple[float, 'WhiteBalanceGains']]) -> 'WhiteBalanceGains':
        """Blend several gain triples with the given weights"""
        r = g = b = 0.0
        for weight, gains in weighted:
            r += weight * gains.red_gain
            g += weight * gains.green_gain
            b += weight * gains.blue_gain
        return cls(r, g, b)

    def normalized_to_green(self) -> 'WhiteBalanceGains':
        """Scale so green_gain is exactly 1.0"""
        if self.green_gain <= 1e-9:
            return self
        return WhiteBalanceGains(self.red_gain / self.green_gain, 1.0,
                                 self.blue_gain / self.green_gain)

    def normalized_to_mean(self) -> 'WhiteBalanceGains':
        """Scale so the three gains average to 1.0 (keeps exposure)"""
        mean = (self.red_gain + self.green_gain + self.blue_gain) / 3.0
        if mean <= 1e-9:
            return self
        return WhiteBalanceGains(self.red_gain / mean, self.green_gain / mean,
                                 self.blue_gain / mean)

    def clamped(self, min_gain: float = DEFAULT_GAIN_BOUNDS[0],
                max_gain: float = DEFAULT_GAIN_BOUNDS[1]) -> 'WhiteBalanceGains':
        """Limit every gain to [min_gain, max_gain]"""
        def clip(value: float) -> float:
            return max(min_gain, min(max_gain, value))
        return WhiteBalanceGains(clip(self.red_gain), clip(self.green_gain), clip(self.blue_gain))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.red_gain, self.green_gain, self.blue_gain)

    def as_array(self, channel_order: ChannelOrder) -> np.ndarray:
        """Gains laid out to match a buffer with the given channel order"""
        values = np.empty(3, dtype=np.float32)
        r_idx, g_idx, b_idx = channel_order.indices
        values[r_idx] = self.red_gain
        values[g_idx] = self.green_gain
        values[b_idx] = self.blue_gain
        return values

    def as_multipliers(self) -> Tuple[float, float, float, float]:
        """RGBG layout used by RAW decoders"""
        return (self.red_gain, self.green_gain, self.blue_gain, self.green_gain)


def _read_only(values, shape: Tuple[int, ...], name: str) -> np.ndarray:
    try:
        array = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ColorProfileError(f"{name} is not numeric: {e}") from e
    if array.shape != shape:
        raise ColorProfileError(f"{name} must have shape {shape}, got {array.shape}")
    if not np.all(np.isfinite(array)):
        raise ColorProfileError(f"{name} contains non-finite values")
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class CameraColorProfile:
    """
    Camera color metadata supplied by the RAW decoder.

    white_balance_multipliers is [R, G1, B, G2]; camera_to_xyz has one row per
    channel in the same order. Both are stored as read-only arrays.
    """
    white_balance_multipliers: np.ndarray
    camera_to_xyz: np.ndarray
    camera_model: str = field(default="Unknown")

    def __post_init__(self):
        object.__setattr__(self, 'white_balance_multipliers',
                           _read_only(self.white_balance_multipliers, (4,), 'white_balance_multipliers'))
        object.__setattr__(self, 'camera_to_xyz',
                           _read_only(self.camera_to_xyz, (4, 3), 'camera_to_xyz'))

    @property
    def rgb_to_xyz_rows(self) -> np.ndarray:
        """The R, G1 and B rows of the camera matrix"""
        return self.camera_to_xyz[:3]
