"""
Reference constants for color temperature math

All tables are created once at import time and are read-only afterwards:
matrices have their writeable flag cleared and mappings are exposed through
MappingProxyType.
"""

from types import MappingProxyType
from typing import Mapping

import numpy as np

from .models import DEFAULT_GAIN_BOUNDS, TINT_SCALE, ChromaticityXY  # noqa: F401

# Guard for divisions that would otherwise blow up
EPSILON = 1e-12


def _frozen(rows) -> np.ndarray:
    matrix = np.array(rows, dtype=np.float64)
    matrix.setflags(write=False)
    return matrix


# Linear sRGB (D65) <-> XYZ, IEC 61966-2-1:1999
SRGB_TO_XYZ = _frozen([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])

XYZ_TO_SRGB = _frozen([
    [3.2404542, -1.5371385, -0.4985314],
    [-0.9692660, 1.8760108, 0.0415560],
    [0.0556434, -0.2040259, 1.0572252],
])

# Cone response matrices for chromatic adaptation
BRADFORD = _frozen([
    [0.8951, 0.2664, -0.1614],
    [-0.7502, 1.7135, 0.0367],
    [0.0389, -0.0685, 1.0296],
])

CAT02 = _frozen([
    [0.7328, 0.4296, -0.1624],
    [-0.7036, 1.6975, 0.0061],
    [0.0030, 0.0136, 0.9834],
])

VON_KRIES = _frozen([
    [0.40024, 0.70760, -0.08081],
    [-0.22630, 1.16532, 0.04570],
    [0.0, 0.0, 0.91822],
])

# CIE 1931 2-degree white points
STANDARD_ILLUMINANTS: Mapping[str, ChromaticityXY] = MappingProxyType({
    'A': ChromaticityXY(0.44757, 0.40745),    # 2856K tungsten
    'D50': ChromaticityXY(0.34567, 0.35851),  # 5003K
    'D55': ChromaticityXY(0.33242, 0.34743),  # 5503K
    'D65': ChromaticityXY(0.31271, 0.32902),  # 6504K
    'D75': ChromaticityXY(0.29902, 0.31485),  # 7504K
    'E': ChromaticityXY(1.0 / 3.0, 1.0 / 3.0),
})

D65_XY = STANDARD_ILLUMINANTS['D65']

# Nominal Kelvin used as the neutral reference by the empirical gain laws
REFERENCE_KELVIN = 6500.0

# Chromaticity box for a believable scene white point
WHITE_POINT_BOX = (0.2, 0.5)
MAX_PLAUSIBLE_DUV = 0.1

# Range accepted for requested tint offsets
DUV_RANGE = (-0.05, 0.05)


def standard_illuminant(name: str) -> ChromaticityXY:
    """
    Look up a standard illuminant white point

    Args:
        name: Illuminant name such as "D65" or "a" (case-insensitive)

    Returns:
        Chromaticity of the illuminant

    Raises:
        KeyError: If the illuminant is not in the table
    """
    key = name.strip().upper()
    if key not in STANDARD_ILLUMINANTS:
        known = ', '.join(STANDARD_ILLUMINANTS)
        raise KeyError(f"Unknown illuminant '{name}'. Known illuminants: {known}")
    return STANDARD_ILLUMINANTS[key]
