"""
Conversion between (Kelvin, Duv) targets and per-channel gains.

Three strategies are available:

* ``matrix`` solves the camera's response to the target illuminant through
  the camera-to-XYZ matrix; exact but needs a camera profile
* ``fast-empirical-v1`` power law around 6500K
* ``fast-empirical-v2`` piecewise-linear law around 6500K

The empirical laws share one tint model and normalize to a mean gain of 1.0,
so exposure is kept. The matrix strategy normalizes green to 1.0.
"""

import logging
import math
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from ..exceptions import MissingColorProfileError, SingularMatrixError
from .chromaticity import xy_to_xyz
from .constants import DUV_RANGE, EPSILON, REFERENCE_KELVIN, TINT_SCALE
from .locus import DEFAULT_LOCUS
from .models import (DEFAULT_GAIN_BOUNDS, CameraColorProfile, ColorTemperatureResult,
                     LocusFit, WhiteBalanceGains)
from .scene import white_point_from_gains
from .temperature import clamp_duv, estimate_color_temperature, kelvin_duv_to_xy

logger = logging.getLogger(__name__)

V1_DOMAIN = (1667.0, 25000.0)
V2_DOMAIN = (2000.0, 12000.0)

# Condition number above which the camera matrix is treated as singular
MAX_CONDITION_NUMBER = 1e8


class GainStrategy(Enum):
    """Named Kelvin/Duv to gain conversion laws"""
    MATRIX = "matrix"
    FAST_EMPIRICAL_V1 = "fast-empirical-v1"
    FAST_EMPIRICAL_V2 = "fast-empirical-v2"

    @property
    def is_empirical(self) -> bool:
        return self is not GainStrategy.MATRIX


def matrix_gains(kelvin: float, duv: float, profile: Optional[CameraColorProfile],
                 locus: LocusFit = DEFAULT_LOCUS,
                 bounds: Tuple[float, float] = DEFAULT_GAIN_BOUNDS) -> WhiteBalanceGains:
    """
    Gains that neutralize the target illuminant, solved through the camera matrix

    Args:
        kelvin: Target temperature (clamped to the locus domain)
        duv: Target offset from the locus (clamped)
        profile: Camera color profile
        locus: Locus fit used to build the target chromaticity
        bounds: Gain clamp bounds

    Returns:
        Green-normalized, clamped gains

    Raises:
        MissingColorProfileError: Without a profile
        SingularMatrixError: If the matrix cannot be inverted or the response is not positive
    """
    if profile is None:
        raise MissingColorProfileError("The matrix strategy requires a camera color profile")

    target_xyz = xy_to_xyz(kelvin_duv_to_xy(kelvin, duv, locus)).as_array()
    rgb_to_xyz = profile.rgb_to_xyz_rows.T

    det = np.linalg.det(rgb_to_xyz)
    if abs(det) < EPSILON:
        raise SingularMatrixError(f"Camera matrix is singular (det={det:.3g})")
    condition = np.linalg.cond(rgb_to_xyz)
    if not math.isfinite(condition) or condition > MAX_CONDITION_NUMBER:
        raise SingularMatrixError(f"Camera matrix is ill-conditioned (cond={condition:.3g})")

    camera_rgb = np.linalg.solve(rgb_to_xyz, target_xyz)
    if not np.all(np.isfinite(camera_rgb)) or np.any(camera_rgb <= EPSILON):
        raise SingularMatrixError(f"Non-positive camera response {camera_rgb.tolist()} to target illuminant")

    gains = WhiteBalanceGains(*(1.0 / camera_rgb))
    return gains.normalized_to_green().clamped(*bounds)


def _v1_base(kelvin: float) -> Tuple[float, float]:
    ratio = min(max(kelvin, V1_DOMAIN[0]), V1_DOMAIN[1]) / REFERENCE_KELVIN
    return ratio ** 0.5, ratio ** -0.5


def _v2_base(kelvin: float) -> Tuple[float, float]:
    k = min(max(kelvin, V2_DOMAIN[0]), V2_DOMAIN[1])
    if k < REFERENCE_KELVIN:
        f = (REFERENCE_KELVIN - k) / (REFERENCE_KELVIN - V2_DOMAIN[0])
        return 1.0 - 0.4 * f, 1.0 + 0.5 * f
    f = (k - REFERENCE_KELVIN) / (V2_DOMAIN[1] - REFERENCE_KELVIN)
    return 1.0 + 0.5 * f, 1.0 - 0.4 * f


def _tint_factors(duv: float) -> Tuple[float, float]:
    """Green and red/blue multipliers for a tint offset"""
    t = duv * TINT_SCALE / 100.0
    return math.exp(-0.2 * t), 1.0 + 0.05 * t


def empirical_gains(kelvin: float, duv: float = 0.0,
                    strategy: GainStrategy = GainStrategy.FAST_EMPIRICAL_V1,
                    bounds: Tuple[float, float] = DEFAULT_GAIN_BOUNDS) -> WhiteBalanceGains:
    """
    Closed-form gains for a (Kelvin, Duv) target

    Kelvin is clamped to the strategy's domain and duv to [-0.05, 0.05].
    At 6500K / duv=0 every gain is 1.0.
    """
    if strategy is GainStrategy.FAST_EMPIRICAL_V2:
        red, blue = _v2_base(kelvin)
    elif strategy is GainStrategy.FAST_EMPIRICAL_V1:
        red, blue = _v1_base(kelvin)
    else:
        raise ValueError(f"{strategy.value} is not an empirical strategy")

    green_factor, chroma_factor = _tint_factors(clamp_duv(duv))
    gains = WhiteBalanceGains(red * chroma_factor, green_factor, blue * chroma_factor)
    return gains.normalized_to_mean().clamped(*bounds)


def gains_from_kelvin_duv(kelvin: float, duv: float = 0.0,
                          strategy: GainStrategy = GainStrategy.FAST_EMPIRICAL_V1,
                          profile: Optional[CameraColorProfile] = None,
                          locus: LocusFit = DEFAULT_LOCUS,
                          bounds: Tuple[float, float] = DEFAULT_GAIN_BOUNDS,
                          allow_fallback: bool = True) -> WhiteBalanceGains:
    """
    Convert a (Kelvin, Duv) target to gains with the chosen strategy

    A matrix failure falls back to ``fast-empirical-v1`` unless
    ``allow_fallback`` is False, in which case SingularMatrixError propagates.
    """
    if strategy is not GainStrategy.MATRIX:
        return empirical_gains(kelvin, duv, strategy, bounds)

    try:
        return matrix_gains(kelvin, duv, profile, locus, bounds)
    except SingularMatrixError as e:
        if not allow_fallback:
            raise
        logger.warning(f"Matrix gains failed ({e}), falling back to {GainStrategy.FAST_EMPIRICAL_V1.value}")
        return empirical_gains(kelvin, duv, GainStrategy.FAST_EMPIRICAL_V1, bounds)


def _invert_tint(green_over_red: float, base_red: float) -> float:
    """Solve the empirical tint model for duv"""
    target = green_over_red * base_red
    t_low, t_high = (d * TINT_SCALE / 100.0 for d in DUV_RANGE)

    def residual(t: float) -> float:
        return math.exp(-0.2 * t) / (1.0 + 0.05 * t) - target

    r_low, r_high = residual(t_low), residual(t_high)
    if r_low * r_high > 0:
        # Outside the representable tint range, pin to the nearer bound
        t = t_low if abs(r_low) < abs(r_high) else t_high
    else:
        t = brentq(residual, t_low, t_high)
    return t * 100.0 / TINT_SCALE


def kelvin_duv_from_gains(gains: WhiteBalanceGains,
                          strategy: GainStrategy = GainStrategy.FAST_EMPIRICAL_V1,
                          profile: Optional[CameraColorProfile] = None,
                          locus: LocusFit = DEFAULT_LOCUS) -> ColorTemperatureResult:
    """
    Recover the (Kelvin, Duv) target a set of gains corresponds to

    The matrix strategy goes through white-point recovery; the empirical
    strategies invert their closed-form laws. Gains that were clamped cannot
    be inverted exactly.
    """
    if strategy is GainStrategy.MATRIX:
        if profile is None:
            raise MissingColorProfileError("The matrix strategy requires a camera color profile")
        return estimate_color_temperature(white_point_from_gains(gains, profile), locus)

    ratio = gains.red_gain / gains.blue_gain
    if strategy is GainStrategy.FAST_EMPIRICAL_V1:
        kelvin = min(max(REFERENCE_KELVIN * ratio, V1_DOMAIN[0]), V1_DOMAIN[1])
        base_red, _ = _v1_base(kelvin)
    else:
        if ratio < 1.0:
            f = min((1.0 - ratio) / (0.5 * ratio + 0.4), 1.0)
            kelvin = REFERENCE_KELVIN - f * (REFERENCE_KELVIN - V2_DOMAIN[0])
        else:
            f = min((ratio - 1.0) / (0.5 + 0.4 * ratio), 1.0)
            kelvin = REFERENCE_KELVIN + f * (V2_DOMAIN[1] - REFERENCE_KELVIN)
        base_red, _ = _v2_base(kelvin)

    duv = _invert_tint(gains.green_gain / gains.red_gain, base_red)
    return ColorTemperatureResult(kelvin, duv)

