"""
Pixel-statistics white balance estimators

Each estimator looks at image content only and returns gains normalized to
green = 1.0 and clamped to the configured bounds. Pixel buffers are
(H, W, 3) uint8, uint16 or float arrays with an explicit channel order.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import cv2
import numpy as np

from ..color.models import DEFAULT_GAIN_BOUNDS, ChannelOrder, WhiteBalanceGains
from ..utils.image import to_float_rgb

logger = logging.getLogger(__name__)


class WhiteBalanceAlgorithm(Enum):
    """Available pixel-statistics estimators"""
    GRAY_WORLD = "gray_world"
    WHITE_POINT = "white_point"
    PERFECT_REFLECTOR = "perfect_reflector"
    PERCENTILE = "percentile"
    COMBINED = "combined"


@dataclass(frozen=True)
class EstimatorConfig:
    """Thresholds shared by the estimators"""
    # Gray World mask
    highlight_threshold: float = 0.98
    shadow_threshold: float = 0.02
    saturation_limit: float = 0.8

    # White-point detection
    white_percentile: float = 0.95
    white_saturation_max: float = 0.05

    # Perfect reflector
    patch_size: int = 32
    patch_stride: int = 16
    reflectance_threshold: float = 0.9

    # Percentile stretch, in percent clipped at each end
    stretch_percentile: float = 0.5

    # Gray World, White-Point, Perfect Reflector
    combined_weights: Tuple[float, float, float] = (0.4, 0.3, 0.3)

    gain_bounds: Tuple[float, float] = field(default=DEFAULT_GAIN_BOUNDS)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'EstimatorConfig':
        """Build from the ``estimators`` and ``white_balance`` config sections"""
        if not config:
            return cls()
        section = dict(config.get('estimators') or {})
        known = {name for name in cls.__dataclass_fields__}
        unknown = set(section) - known
        if unknown:
            logger.warning(f"Ignoring unknown estimator settings: {sorted(unknown)}")
        kwargs = {key: value for key, value in section.items() if key in known}
        if 'combined_weights' in kwargs:
            kwargs['combined_weights'] = tuple(float(w) for w in kwargs['combined_weights'])
        bounds = (config.get('white_balance') or {}).get('gain_bounds')
        if bounds is not None:
            kwargs['gain_bounds'] = (float(bounds[0]), float(bounds[1]))
        return cls(**kwargs)


def _finish(gains: WhiteBalanceGains, config: EstimatorConfig) -> WhiteBalanceGains:
    return gains.normalized_to_green().clamped(*config.gain_bounds)


def _gains_to_average(channel_means: np.ndarray) -> Optional[WhiteBalanceGains]:
    """Gains that map each channel mean onto their common average"""
    if np.any(channel_means <= 1e-6) or not np.all(np.isfinite(channel_means)):
        return None
    target = float(np.mean(channel_means))
    return WhiteBalanceGains(*(target / channel_means))


def _gray_world(img: np.ndarray, config: EstimatorConfig) -> WhiteBalanceGains:
    max_c = img.max(axis=2)
    min_c = img.min(axis=2)
    saturation = (max_c - min_c) / np.maximum(max_c, 1e-6)
    mask = ((max_c < config.highlight_threshold) &
            (min_c > config.shadow_threshold) &
            (saturation < config.saturation_limit))

    if not mask.any():
        logger.warning("Gray World: every pixel excluded by the mask, returning unity gains")
        return WhiteBalanceGains.unity()

    mean_r, mean_g, mean_b, _ = cv2.mean(img, mask=mask.astype(np.uint8))
    return _finish(WhiteBalanceGains(mean_g / mean_r, 1.0, mean_g / mean_b), config)


def _white_point(img: np.ndarray, config: EstimatorConfig) -> WhiteBalanceGains:
    pixels = img.reshape(-1, 3)
    luminance = pixels.mean(axis=1)
    index = min(int(len(luminance) * config.white_percentile), len(luminance) - 1)
    threshold = np.partition(luminance, index)[index]

    max_c = pixels.max(axis=1)
    saturation = (max_c - pixels.min(axis=1)) / (max_c + 1e-6)
    candidates = (luminance >= threshold) & (saturation < config.white_saturation_max)

    if not candidates.any():
        logger.debug("White point: no bright neutral pixels, using Gray World")
        return _gray_world(img, config)

    gains = _gains_to_average(pixels[candidates].mean(axis=0))
    if gains is None:
        return _gray_world(img, config)
    return _finish(gains, config)


def _perfect_reflector(img: np.ndarray, config: EstimatorConfig) -> WhiteBalanceGains:
    height, width = img.shape[:2]
    patch, stride = config.patch_size, config.patch_stride
    if height < patch or width < patch:
        logger.debug(f"Perfect reflector: image smaller than {patch}px patch, using Gray World")
        return _gray_world(img, config)

    # Tile sums from the integral image
    integral = cv2.integral(img, sdepth=cv2.CV_64F)
    ys = np.arange(0, height - patch + 1, stride)
    xs = np.arange(0, width - patch + 1, stride)
    y0, x0 = np.meshgrid(ys, xs, indexing='ij')
    y1, x1 = y0 + patch, x0 + patch
    sums = integral[y1, x1] - integral[y0, x1] - integral[y1, x0] + integral[y0, x0]
    tile_means = sums.reshape(-1, 3) / float(patch * patch)

    bright = tile_means.mean(axis=1) > config.reflectance_threshold
    if not bright.any():
        logger.debug("Perfect reflector: no reflective tiles, using Gray World")
        return _gray_world(img, config)

    gains = _gains_to_average(tile_means[bright].mean(axis=0))
    if gains is None:
        return _gray_world(img, config)
    return _finish(gains, config)


def _percentile_stretch(img: np.ndarray, config: EstimatorConfig) -> WhiteBalanceGains:
    pixels = img.reshape(-1, 3)
    n = pixels.shape[0]
    p = config.stretch_percentile / 100.0
    low_index = int(n * p)
    high_index = min(int(n * (1.0 - p)), n - 1)

    scales = []
    for channel in range(3):
        values = pixels[:, channel]
        low = np.partition(values, low_index)[low_index]
        high = np.partition(values, high_index)[high_index]
        scales.append(1.0 / (float(high) - float(low) + 1e-6))
    return _finish(WhiteBalanceGains(*scales), config)


def _combined(img: np.ndarray, config: EstimatorConfig) -> WhiteBalanceGains:
    w_gray, w_white, w_reflector = config.combined_weights
    blended = WhiteBalanceGains.blend([
        (w_gray, _gray_world(img, config)),
        (w_white, _white_point(img, config)),
        (w_reflector, _perfect_reflector(img, config)),
    ])
    return _finish(blended, config)


_ESTIMATORS = {
    WhiteBalanceAlgorithm.GRAY_WORLD: _gray_world,
    WhiteBalanceAlgorithm.WHITE_POINT: _white_point,
    WhiteBalanceAlgorithm.PERFECT_REFLECTOR: _perfect_reflector,
    WhiteBalanceAlgorithm.PERCENTILE: _percentile_stretch,
    WhiteBalanceAlgorithm.COMBINED: _combined,
}


def gray_world(image: np.ndarray, channel_order: ChannelOrder,
               config: Optional[EstimatorConfig] = None) -> WhiteBalanceGains:
    """
    Gray World: the average of well-exposed, unsaturated pixels is neutral

    Pixels are used when max < highlight, min > shadow and
    (max - min) / max < saturation limit. Gains are (G/R, 1, G/B).
    """
    return _gray_world(to_float_rgb(image, channel_order), config or EstimatorConfig())


def white_point(image: np.ndarray, channel_order: ChannelOrder,
                config: Optional[EstimatorConfig] = None) -> WhiteBalanceGains:
    """White-point detection: brightest near-neutral pixels are white"""
    return _white_point(to_float_rgb(image, channel_order), config or EstimatorConfig())


def perfect_reflector(image: np.ndarray, channel_order: ChannelOrder,
                      config: Optional[EstimatorConfig] = None) -> WhiteBalanceGains:
    """Perfect reflector: overlapping bright tiles are taken as white surfaces"""
    return _perfect_reflector(to_float_rgb(image, channel_order), config or EstimatorConfig())


def percentile_stretch(image: np.ndarray, channel_order: ChannelOrder,
                       config: Optional[EstimatorConfig] = None) -> WhiteBalanceGains:
    """Percentile stretch: equalize each channel's robust dynamic range"""
    return _percentile_stretch(to_float_rgb(image, channel_order), config or EstimatorConfig())


def combined(image: np.ndarray, channel_order: ChannelOrder,
             config: Optional[EstimatorConfig] = None) -> WhiteBalanceGains:
    """Weighted blend of Gray World, White-Point and Perfect Reflector"""
    return _combined(to_float_rgb(image, channel_order), config or EstimatorConfig())


def estimate_gains(image: np.ndarray, channel_order: ChannelOrder,
                   algorithm: WhiteBalanceAlgorithm = WhiteBalanceAlgorithm.GRAY_WORLD,
                   config: Optional[EstimatorConfig] = None) -> WhiteBalanceGains:
    """
    Estimate white balance gains from pixel statistics

    Args:
        image: (H, W, 3) uint8, uint16 or float image
        channel_order: Layout of ``image``
        algorithm: Estimator to run
        config: Thresholds; defaults if None

    Returns:
        Green-normalized gains

    Raises:
        InvalidImageError: If ``image`` is not a 3-channel buffer
    """
    img = to_float_rgb(image, channel_order)
    gains = _ESTIMATORS[algorithm](img, config or EstimatorConfig())
    logger.debug(f"{algorithm.value} gains: {gains.as_tuple()}")
    return gains
