"""
Applying white balance gains to pixel buffers
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Tuple

import cv2
import numpy as np

from ..color.models import ChannelOrder, WhiteBalanceGains
from ..exceptions import InvalidImageError
from ..utils.image import to_float_rgb, validate_rgb_image

logger = logging.getLogger(__name__)


def _scale_rows(image: np.ndarray, factors: np.ndarray, start: int, stop: int):
    np.multiply(image[start:stop], factors, out=image[start:stop])


def apply_gains(image: np.ndarray, gains: WhiteBalanceGains, channel_order: ChannelOrder,
                in_place: bool = False, workers: int = 1) -> np.ndarray:
    """
    Multiply every pixel by the per-channel gains

    Values are not clipped, so highlights may exceed 1.0.

    Args:
        image: (H, W, 3) image; integer buffers are scaled to [0, 1] float32 first
        gains: Gains to apply
        channel_order: Layout of ``image``
        in_place: Modify ``image`` directly (float buffers only)
        workers: Number of threads; rows are split evenly between them

    Returns:
        The balanced float image, in the same channel order

    Raises:
        InvalidImageError: For non-3-channel buffers or in-place on integer data
    """
    validate_rgb_image(image)

    if in_place:
        if not np.issubdtype(image.dtype, np.floating):
            raise InvalidImageError(f"In-place gain application needs a float image, got {image.dtype}")
        result = image
    elif image.dtype == np.uint8:
        result = image.astype(np.float32) / 255.0
    elif image.dtype == np.uint16:
        result = image.astype(np.float32) / 65535.0
    else:
        result = image.copy()

    factors = gains.as_array(channel_order).astype(result.dtype)
    height = result.shape[0]
    workers = max(1, min(int(workers), height))

    if workers == 1:
        _scale_rows(result, factors, 0, height)
        return result

    bounds = np.linspace(0, height, workers + 1, dtype=int)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_scale_rows, result, factors, int(start), int(stop))
                   for start, stop in zip(bounds[:-1], bounds[1:])]
        for future in futures:
            future.result()
    logger.debug(f"Applied gains {gains.as_tuple()} to {height} rows with {workers} workers")
    return result


def channel_means(image: np.ndarray, channel_order: ChannelOrder) -> Tuple[float, float, float]:
    """Mean (R, G, B) of an image, on the [0, 1] scale"""
    mean_r, mean_g, mean_b, _ = cv2.mean(to_float_rgb(image, channel_order))
    return (float(mean_r), float(mean_g), float(mean_b))
