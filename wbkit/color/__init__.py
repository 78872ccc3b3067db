"""
Color science core for wbkit

Chromaticity conversions, locus fits, CCT/Duv estimation, scene white-point
recovery, Kelvin/Duv to gain conversion and chromatic adaptation.
"""

from .models import (
    ChannelOrder,
    ChromaticityXY,
    TristimulusXYZ,
    UVCoordinate,
    ColorTemperatureResult,
    WhiteBalanceGains,
    CameraColorProfile,
    LocusFit,
    DEFAULT_GAIN_BOUNDS,
)
from .constants import STANDARD_ILLUMINANTS, D65_XY, standard_illuminant
from .chromaticity import (
    xy_to_xyz,
    xyz_to_xy,
    linear_rgb_to_xyz,
    xyz_to_linear_rgb,
    xyz_to_uv_prime,
    uv_prime_to_xyz,
    uv_prime_to_uv,
    xy_to_uv,
    uv_to_xy,
)
from .locus import daylight_xy, planckian_uv, planckian_xy, kelvin_to_xy, kelvin_to_uv, clamp_kelvin
from .temperature import (
    mccamy_cct,
    xy_to_kelvin,
    duv_from_xy,
    estimate_color_temperature,
    kelvin_duv_to_xy,
    duv_to_tint,
    tint_to_duv,
    is_plausible_white_point,
    describe_temperature,
)
from .scene import SceneWhitePoint, recover_scene_white_point, estimate_from_linear_rgb, white_point_from_gains
from .gains import GainStrategy, matrix_gains, empirical_gains, gains_from_kelvin_duv, kelvin_duv_from_gains
from .adaptation import CATMethod, ChromaticAdaptation, build_adaptation

__all__ = [
    'ChannelOrder',
    'ChromaticityXY',
    'TristimulusXYZ',
    'UVCoordinate',
    'ColorTemperatureResult',
    'WhiteBalanceGains',
    'CameraColorProfile',
    'LocusFit',
    'DEFAULT_GAIN_BOUNDS',
    'STANDARD_ILLUMINANTS',
    'D65_XY',
    'standard_illuminant',
    'xy_to_xyz',
    'xyz_to_xy',
    'linear_rgb_to_xyz',
    'xyz_to_linear_rgb',
    'xyz_to_uv_prime',
    'uv_prime_to_xyz',
    'uv_prime_to_uv',
    'xy_to_uv',
    'uv_to_xy',
    'daylight_xy',
    'planckian_uv',
    'planckian_xy',
    'kelvin_to_xy',
    'kelvin_to_uv',
    'clamp_kelvin',
    'mccamy_cct',
    'xy_to_kelvin',
    'duv_from_xy',
    'estimate_color_temperature',
    'kelvin_duv_to_xy',
    'duv_to_tint',
    'tint_to_duv',
    'is_plausible_white_point',
    'describe_temperature',
    'SceneWhitePoint',
    'recover_scene_white_point',
    'estimate_from_linear_rgb',
    'white_point_from_gains',
    'GainStrategy',
    'matrix_gains',
    'empirical_gains',
    'gains_from_kelvin_duv',
    'kelvin_duv_from_gains',
    'CATMethod',
    'ChromaticAdaptation',
    'build_adaptation',
]
