"""
Pixel-level white balance for wbkit

Includes the statistics estimators, gain application and the
WhiteBalanceCorrector that combines them with the metadata path.
"""

from .estimators import EstimatorConfig, WhiteBalanceAlgorithm, estimate_gains
from .application import apply_gains, channel_means
from .white_balance import (
    AdaptationMode,
    CorrectionRequest,
    WhiteBalanceAnalysis,
    WhiteBalanceCorrector,
    WhiteBalanceMode,
    WhitePointReport,
    parse_wb_mode,
)

__all__ = [
    "EstimatorConfig",
    "WhiteBalanceAlgorithm",
    "estimate_gains",
    "apply_gains",
    "channel_means",
    "AdaptationMode",
    "CorrectionRequest",
    "WhiteBalanceAnalysis",
    "WhiteBalanceCorrector",
    "WhiteBalanceMode",
    "WhitePointReport",
    "parse_wb_mode",
]
