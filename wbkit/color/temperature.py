"""
Correlated color temperature and Duv estimation.

Sign convention used throughout wbkit: Duv is measured in CIE 1960 uv and is
positive when the chromaticity lies above the locus (larger v, green cast)
and negative below it (magenta cast). The UI tint is ``duv * 3000`` with the
same sign.
"""

import logging
import math

from scipy.optimize import minimize_scalar

from .chromaticity import uv_to_xy, xy_to_uv
from .constants import DUV_RANGE, EPSILON, MAX_PLAUSIBLE_DUV, REFERENCE_KELVIN, TINT_SCALE, WHITE_POINT_BOX
from .locus import DEFAULT_LOCUS, clamp_kelvin, kelvin_to_uv
from .models import ChromaticityXY, ColorTemperatureResult, LocusFit, UVCoordinate

logger = logging.getLogger(__name__)

MCCAMY_RANGE = (1000.0, 40000.0)

# Half-width of the mired window searched around the McCamy seed
SEARCH_HALF_WIDTH_MIRED = 50.0

# Kelvin step for the numerical locus tangent
TANGENT_STEP_KELVIN = 1.0

_TEMPERATURE_LABELS = [
    (2500, "Candle light"),
    (3000, "Tungsten"),
    (3500, "Warm indoor light"),
    (4500, "Sunrise / sunset"),
    (5500, "Morning / evening sun"),
    (6500, "Noon daylight"),
    (7500, "Overcast sky"),
    (9000, "Haze / shade"),
    (11000, "High altitude / snow"),
]


def _is_finite_xy(xy: ChromaticityXY) -> bool:
    return math.isfinite(xy.x) and math.isfinite(xy.y)


def mccamy_cct(xy: ChromaticityXY) -> float:
    """
    McCamy's cubic approximation of CCT

    Args:
        xy: Query chromaticity

    Returns:
        CCT in Kelvin clamped to [1000, 40000]; 6500 when the formula is singular
    """
    if not _is_finite_xy(xy):
        logger.warning(f"Non-finite chromaticity {xy}, using {REFERENCE_KELVIN}K")
        return REFERENCE_KELVIN
    denominator = 0.1858 - xy.y
    if abs(denominator) < EPSILON:
        logger.debug("McCamy denominator vanished, using reference temperature")
        return REFERENCE_KELVIN
    n = (xy.x - 0.3320) / denominator
    cct = 449.0 * n ** 3 + 3525.0 * n ** 2 + 6823.3 * n + 5520.33
    return min(max(cct, MCCAMY_RANGE[0]), MCCAMY_RANGE[1])


def _squared_distance(a: UVCoordinate, b: UVCoordinate) -> float:
    return (a.u - b.u) ** 2 + (a.v - b.v) ** 2


def xy_to_kelvin(xy: ChromaticityXY, locus: LocusFit = DEFAULT_LOCUS) -> float:
    """
    Nearest-locus correlated color temperature

    McCamy's estimate seeds a bounded search in mired space for the locus
    point closest to ``xy`` in CIE 1960 uv. McCamy drifts far from the
    Planckian fit below ~1500K, so when the best point sits on an edge of
    the search window that is not a domain edge, the window steps past that
    edge and the search repeats until the minimum is bracketed.

    Args:
        xy: Query chromaticity
        locus: Locus fit to search along

    Returns:
        CCT in Kelvin within the fit's domain
    """
    seed = mccamy_cct(xy)
    if not _is_finite_xy(xy):
        return clamp_kelvin(seed, locus)

    target = xy_to_uv(xy)
    low_k, high_k = locus.domain
    mired_min, mired_max = 1e6 / high_k, 1e6 / low_k
    seed_mired = min(max(1e6 / seed, mired_min), mired_max)
    lower = max(seed_mired - SEARCH_HALF_WIDTH_MIRED, mired_min)
    upper = min(seed_mired + SEARCH_HALF_WIDTH_MIRED, mired_max)
    step = 2.0 * SEARCH_HALF_WIDTH_MIRED

    def distance(mired: float) -> float:
        return _squared_distance(kelvin_to_uv(1e6 / mired, locus), target)

    direction = 0
    while True:
        result = minimize_scalar(distance, bounds=(lower, upper), method='bounded',
                                 options={'xatol': 1e-7})
        best = min((float(result.x), lower, upper), key=distance)
        if best == lower and lower > mired_min and direction <= 0:
            direction = -1
            lower, upper = max(lower - step, mired_min), lower
        elif best == upper and upper < mired_max and direction >= 0:
            direction = 1
            lower, upper = upper, min(upper + step, mired_max)
        else:
            break
        logger.debug(f"CCT search window moved to [{lower:.1f}, {upper:.1f}] mired")
    return clamp_kelvin(1e6 / best, locus)


def _signed_distance(xy: ChromaticityXY, kelvin: float, locus: LocusFit) -> float:
    query = xy_to_uv(xy)
    reference = kelvin_to_uv(kelvin, locus)
    distance = math.hypot(query.u - reference.u, query.v - reference.v)
    return distance if query.v >= reference.v else -distance


def duv_from_xy(xy: ChromaticityXY, locus: LocusFit = DEFAULT_LOCUS) -> float:
    """
    Signed distance from ``xy`` to the locus in CIE 1960 uv

    Positive above the locus (green), negative below (magenta).
    """
    if not _is_finite_xy(xy):
        logger.warning(f"Non-finite chromaticity {xy}, using duv=0")
        return 0.0
    return _signed_distance(xy, xy_to_kelvin(xy, locus), locus)


def estimate_color_temperature(xy: ChromaticityXY,
                               locus: LocusFit = DEFAULT_LOCUS) -> ColorTemperatureResult:
    """Estimate CCT and Duv of a chromaticity against one locus fit"""
    if not _is_finite_xy(xy):
        logger.warning(f"Non-finite chromaticity {xy}, reporting {REFERENCE_KELVIN}K / duv=0")
        return ColorTemperatureResult(REFERENCE_KELVIN, 0.0)
    cct = xy_to_kelvin(xy, locus)
    return ColorTemperatureResult(cct, _signed_distance(xy, cct, locus))


def clamp_duv(duv: float) -> float:
    clamped = min(max(float(duv), DUV_RANGE[0]), DUV_RANGE[1])
    if clamped != duv:
        logger.debug(f"Clamped duv {duv} to {clamped}")
    return clamped


def kelvin_duv_to_xy(kelvin: float, duv: float = 0.0,
                     locus: LocusFit = DEFAULT_LOCUS) -> ChromaticityXY:
    """
    Chromaticity at a temperature offset perpendicular to the locus

    Args:
        kelvin: Color temperature, clamped to the fit's domain
        duv: Offset along the locus normal, clamped to [-0.05, 0.05];
             positive moves toward larger v (green)
        locus: Locus fit

    Returns:
        Target chromaticity
    """
    k = clamp_kelvin(kelvin, locus)
    d = clamp_duv(duv)
    base = kelvin_to_uv(k, locus)
    if d == 0.0:
        return uv_to_xy(base)

    low, high = locus.domain
    before = kelvin_to_uv(max(k - TANGENT_STEP_KELVIN, low), locus)
    after = kelvin_to_uv(min(k + TANGENT_STEP_KELVIN, high), locus)
    du = after.u - before.u
    dv = after.v - before.v
    norm = math.hypot(du, dv)
    if norm < EPSILON:
        logger.warning(f"Locus tangent vanished at {k}K, ignoring duv offset")
        return uv_to_xy(base)

    normal_u, normal_v = -dv / norm, du / norm
    if normal_v < 0:
        normal_u, normal_v = -normal_u, -normal_v
    return uv_to_xy(UVCoordinate(base.u + d * normal_u, base.v + d * normal_v))


def duv_to_tint(duv: float) -> float:
    return duv * TINT_SCALE


def tint_to_duv(tint: float) -> float:
    return tint / TINT_SCALE


def is_plausible_white_point(xy: ChromaticityXY, locus: LocusFit = DEFAULT_LOCUS) -> bool:
    """True if ``xy`` lies in the white-point box and within 0.1 duv of the locus"""
    if not _is_finite_xy(xy):
        return False
    low, high = WHITE_POINT_BOX
    if not (low <= xy.x <= high and low <= xy.y <= high):
        return False
    return abs(duv_from_xy(xy, locus)) <= MAX_PLAUSIBLE_DUV


def describe_temperature(kelvin: float) -> str:
    """Human-readable label for a scene color temperature"""
    for limit, label in _TEMPERATURE_LABELS:
        if kelvin < limit:
            return label
    return "Deep blue sky"
