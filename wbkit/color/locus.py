"""
Closed-form approximations of the white locus.

Two fits are provided:

* ``LocusFit.DAYLIGHT`` - Kim et al. cubic fit in xy, valid 1667K-25000K
* ``LocusFit.PLANCKIAN`` - Krystek rational fit in CIE 1960 uv, valid 1000K-15000K

Kelvin outside a fit's domain is clamped to the nearest bound. The two
curves differ by roughly 1e-4 in uv, so a point generated with one fit must
only be compared against the same fit.
"""

import logging

from .chromaticity import uv_to_xy, xy_to_uv
from .models import ChromaticityXY, LocusFit, UVCoordinate

logger = logging.getLogger(__name__)

DEFAULT_LOCUS = LocusFit.DAYLIGHT


def clamp_kelvin(kelvin: float, locus: LocusFit = DEFAULT_LOCUS) -> float:
    """Clamp Kelvin to the valid domain of the given fit"""
    low, high = locus.domain
    clamped = min(max(float(kelvin), low), high)
    if clamped != kelvin:
        logger.debug(f"Clamped {kelvin}K to {clamped}K for {locus.value} locus")
    return clamped


def daylight_xy(kelvin: float) -> ChromaticityXY:
    """
    Locus chromaticity from the Kim et al. cubic fit

    Args:
        kelvin: Color temperature, clamped to [1667, 25000]

    Returns:
        Chromaticity on the locus
    """
    t = clamp_kelvin(kelvin, LocusFit.DAYLIGHT)

    if t < 4000.0:
        x = -0.2661239e9 / t ** 3 - 0.2343589e6 / t ** 2 + 0.8776956e3 / t + 0.179910
    else:
        x = -3.0258469e9 / t ** 3 + 2.1070379e6 / t ** 2 + 0.2226347e3 / t + 0.240390

    if t < 2222.0:
        y = -1.1063814 * x ** 3 - 1.34811020 * x ** 2 + 2.18555832 * x - 0.20219683
    elif t < 4000.0:
        y = -0.9549476 * x ** 3 - 1.37418593 * x ** 2 + 2.09137015 * x - 0.16748867
    else:
        y = 3.0817580 * x ** 3 - 5.87338670 * x ** 2 + 3.75112997 * x - 0.37001483

    return ChromaticityXY(x, y)


def planckian_uv(kelvin: float) -> UVCoordinate:
    """
    Locus point from the Krystek rational fit

    Args:
        kelvin: Color temperature, clamped to [1000, 15000]

    Returns:
        CIE 1960 uv on the Planckian locus
    """
    t = clamp_kelvin(kelvin, LocusFit.PLANCKIAN)
    t2 = t * t
    u = (0.860117757 + 1.54118254e-4 * t + 1.28641212e-7 * t2) / \
        (1.0 + 8.42420235e-4 * t + 7.08145163e-7 * t2)
    v = (0.317398726 + 4.22806245e-5 * t + 4.20481691e-8 * t2) / \
        (1.0 - 2.89741816e-5 * t + 1.61456053e-7 * t2)
    return UVCoordinate(u, v)


def planckian_xy(kelvin: float) -> ChromaticityXY:
    return uv_to_xy(planckian_uv(kelvin))


def kelvin_to_xy(kelvin: float, locus: LocusFit = DEFAULT_LOCUS) -> ChromaticityXY:
    """Locus chromaticity at the given temperature for the chosen fit"""
    if locus is LocusFit.PLANCKIAN:
        return planckian_xy(kelvin)
    return daylight_xy(kelvin)


def kelvin_to_uv(kelvin: float, locus: LocusFit = DEFAULT_LOCUS) -> UVCoordinate:
    """Locus point in CIE 1960 uv for the chosen fit"""
    if locus is LocusFit.PLANCKIAN:
        return planckian_uv(kelvin)
    return xy_to_uv(daylight_xy(kelvin))
