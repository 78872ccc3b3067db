"""
Scene white-point recovery from camera metadata.

The as-shot multipliers neutralize the scene illuminant, so their inverse is
the camera's response to that illuminant. Projecting it through the camera
matrix gives the illuminant's chromaticity.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from ..exceptions import ColorProfileError, MissingColorProfileError
from .chromaticity import linear_rgb_to_xyz, xyz_to_xy
from .constants import D65_XY, EPSILON
from .locus import DEFAULT_LOCUS, kelvin_to_xy
from .models import (CameraColorProfile, ChromaticityXY, ColorTemperatureResult,
                     LocusFit, TristimulusXYZ, WhiteBalanceGains)
from .temperature import (MCCAMY_RANGE, estimate_color_temperature, is_plausible_white_point,
                          mccamy_cct)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SceneWhitePoint:
    """Recovered scene illuminant"""
    xy: ChromaticityXY
    temperature: ColorTemperatureResult
    scene_rgb: Tuple[float, float, float]
    fallback: Optional[str] = None  # None, "locus" or "d65"


def _require_profile(profile: Optional[CameraColorProfile]) -> CameraColorProfile:
    if profile is None:
        raise MissingColorProfileError("A camera color profile is required for metadata-based white balance")
    return profile


def white_point_from_gains(gains: WhiteBalanceGains,
                           profile: CameraColorProfile) -> ChromaticityXY:
    """
    Chromaticity of the illuminant that the given gains neutralize

    Raises:
        ColorProfileError: If the camera matrix maps the response to zero luminance
    """
    profile = _require_profile(profile)
    scene_rgb = 1.0 / np.array(gains.as_tuple(), dtype=np.float64)
    xyz = profile.rgb_to_xyz_rows.T @ scene_rgb
    if not np.all(np.isfinite(xyz)) or xyz[1] <= EPSILON:
        raise ColorProfileError(f"Camera matrix yields degenerate XYZ {xyz.tolist()}")
    xyz = xyz / xyz[1]
    return xyz_to_xy(TristimulusXYZ.from_array(xyz))


def _sanitized_multipliers(profile: CameraColorProfile) -> np.ndarray:
    multipliers = np.array(profile.white_balance_multipliers, dtype=np.float64)
    invalid = multipliers <= 0
    if invalid.any():
        logger.warning(f"Replacing non-positive camera multipliers {multipliers.tolist()} with 1.0")
        multipliers[invalid] = 1.0
    return multipliers


def recover_scene_white_point(profile: Optional[CameraColorProfile],
                              locus: LocusFit = DEFAULT_LOCUS) -> SceneWhitePoint:
    """
    Recover the scene illuminant from as-shot multipliers and the camera matrix

    Args:
        profile: Camera color profile from the RAW decoder
        locus: Locus fit used for CCT/Duv and for the locus fallback

    Returns:
        SceneWhitePoint; ``fallback`` records which substitute was used, if any

    Raises:
        MissingColorProfileError: If no profile is supplied
    """
    profile = _require_profile(profile)
    gains = WhiteBalanceGains.from_multipliers(_sanitized_multipliers(profile))
    scene_rgb = tuple(1.0 / g for g in gains.as_tuple())

    try:
        xy = white_point_from_gains(gains, profile)
    except ColorProfileError as e:
        logger.warning(f"Scene white point unrecoverable ({e}), falling back to D65")
        return SceneWhitePoint(D65_XY, estimate_color_temperature(D65_XY, locus), scene_rgb, "d65")

    if is_plausible_white_point(xy, locus):
        return SceneWhitePoint(xy, estimate_color_temperature(xy, locus), scene_rgb)

    cct = mccamy_cct(xy)
    if cct in MCCAMY_RANGE:
        logger.warning(f"Implausible white point {xy.as_tuple()} with pinned CCT {cct}K, falling back to D65")
        return SceneWhitePoint(D65_XY, estimate_color_temperature(D65_XY, locus), scene_rgb, "d65")

    locus_xy = kelvin_to_xy(cct, locus)
    logger.warning(f"Implausible white point {xy.as_tuple()}, using locus point at {cct:.0f}K")
    return SceneWhitePoint(locus_xy, estimate_color_temperature(locus_xy, locus), scene_rgb, "locus")


def estimate_from_linear_rgb(means: Sequence[float],
                             locus: LocusFit = DEFAULT_LOCUS) -> ColorTemperatureResult:
    """
    CCT and Duv of the average color of a linear sRGB image

    Args:
        means: Linear (R, G, B) channel means
        locus: Locus fit
    """
    xyz = linear_rgb_to_xyz(np.asarray(means, dtype=np.float64))
    return estimate_color_temperature(xyz_to_xy(TristimulusXYZ.from_array(xyz)), locus)
