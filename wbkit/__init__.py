"""
wbkit: White balance and color temperature engine for RAW pipelines

Estimates a scene's correlated color temperature and tint from camera
metadata or pixel statistics, and converts between (Kelvin, Duv) targets,
per-channel gains and chromatic adaptation matrices.
"""

__version__ = "0.1.0"

from .config import load_config
from .color import (
    CameraColorProfile,
    ChannelOrder,
    ChromaticityXY,
    ColorTemperatureResult,
    GainStrategy,
    LocusFit,
    WhiteBalanceGains,
    build_adaptation,
    estimate_color_temperature,
    gains_from_kelvin_duv,
    recover_scene_white_point,
)
from .processing import CorrectionRequest, WhiteBalanceCorrector, estimate_gains

__all__ = [
    "load_config",
    "CameraColorProfile",
    "ChannelOrder",
    "ChromaticityXY",
    "ColorTemperatureResult",
    "GainStrategy",
    "LocusFit",
    "WhiteBalanceGains",
    "build_adaptation",
    "estimate_color_temperature",
    "gains_from_kelvin_duv",
    "recover_scene_white_point",
    "CorrectionRequest",
    "WhiteBalanceCorrector",
    "estimate_gains",
]
