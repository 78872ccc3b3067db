"""
Conversions between CIE XYZ, xy, uv (1960) and u'v' (1976), and linear sRGB.

Every function tolerates degenerate inputs: a zero denominator yields a
documented fallback instead of NaN/Inf.
"""

import logging
from typing import Union

import numpy as np

from .constants import D65_XY, EPSILON, SRGB_TO_XYZ, XYZ_TO_SRGB
from .models import ChromaticityXY, TristimulusXYZ, UVCoordinate

logger = logging.getLogger(__name__)

ArrayLike = Union[np.ndarray, list, tuple]


def xy_to_xyz(xy: ChromaticityXY, Y: float = 1.0) -> TristimulusXYZ:
    """
    Convert chromaticity to tristimulus values at the given luminance

    Returns (0, 0, 0) when y is zero.
    """
    if abs(xy.y) < EPSILON:
        logger.debug(f"xy_to_xyz: y={xy.y} is degenerate, returning black")
        return TristimulusXYZ(0.0, 0.0, 0.0)
    X = xy.x * Y / xy.y
    Z = (1.0 - xy.x - xy.y) * Y / xy.y
    return TristimulusXYZ(X, Y, Z)


def xyz_to_xy(xyz: TristimulusXYZ) -> ChromaticityXY:
    """
    Project tristimulus values onto the chromaticity plane

    Returns D65 when X + Y + Z is zero.
    """
    total = xyz.X + xyz.Y + xyz.Z
    if abs(total) < EPSILON:
        logger.debug("xyz_to_xy: zero tristimulus sum, returning D65")
        return D65_XY
    return ChromaticityXY(xyz.X / total, xyz.Y / total)


def linear_rgb_to_xyz(rgb: ArrayLike) -> np.ndarray:
    """Linear sRGB (D65) to XYZ; accepts shape (3,) or (..., 3)"""
    values = np.asarray(rgb, dtype=np.float64)
    return values @ SRGB_TO_XYZ.T


def xyz_to_linear_rgb(xyz: ArrayLike) -> np.ndarray:
    """XYZ to linear sRGB (D65); accepts shape (3,) or (..., 3)"""
    values = np.asarray(xyz, dtype=np.float64)
    return values @ XYZ_TO_SRGB.T


def xyz_to_uv_prime(xyz: TristimulusXYZ) -> UVCoordinate:
    """CIE 1976 u'v'; (0, 0) when the denominator vanishes"""
    denominator = xyz.X + 15.0 * xyz.Y + 3.0 * xyz.Z
    if abs(denominator) < EPSILON:
        return UVCoordinate(0.0, 0.0)
    return UVCoordinate(4.0 * xyz.X / denominator, 9.0 * xyz.Y / denominator)


def uv_prime_to_xyz(uv: UVCoordinate, Y: float = 1.0) -> TristimulusXYZ:
    """Inverse of xyz_to_uv_prime at the given luminance"""
    if abs(uv.v) < EPSILON:
        return TristimulusXYZ(0.0, 0.0, 0.0)
    X = Y * 9.0 * uv.u / (4.0 * uv.v)
    Z = Y * (12.0 - 3.0 * uv.u - 20.0 * uv.v) / (4.0 * uv.v)
    return TristimulusXYZ(X, Y, Z)


def uv_prime_to_uv(uv: UVCoordinate) -> UVCoordinate:
    """u'v' (1976) to uv (1960): u is shared, v = v' / 1.5"""
    return UVCoordinate(uv.u, uv.v / 1.5)


def xy_to_uv(xy: ChromaticityXY) -> UVCoordinate:
    """CIE 1960 uv; (0, 0) when the denominator vanishes"""
    denominator = -2.0 * xy.x + 12.0 * xy.y + 3.0
    if abs(denominator) < EPSILON:
        return UVCoordinate(0.0, 0.0)
    return UVCoordinate(4.0 * xy.x / denominator, 6.0 * xy.y / denominator)


def uv_to_xy(uv: UVCoordinate) -> ChromaticityXY:
    """CIE 1960 uv back to xy; D65 when the denominator vanishes"""
    denominator = 2.0 * uv.u - 8.0 * uv.v + 4.0
    if abs(denominator) < EPSILON:
        return D65_XY
    return ChromaticityXY(3.0 * uv.u / denominator, 2.0 * uv.v / denominator)
