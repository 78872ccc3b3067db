"""
Pixel buffer validation and normalization helpers
"""

import numpy as np

from ..color.models import ChannelOrder
from ..exceptions import InvalidImageError


def validate_rgb_image(image: np.ndarray) -> np.ndarray:
    """
    Check that ``image`` is an (H, W, 3) buffer

    Raises:
        InvalidImageError: On wrong dimensionality, channel count or dtype
    """
    if not isinstance(image, np.ndarray):
        raise InvalidImageError(f"Expected a numpy array, got {type(image).__name__}")
    if image.ndim != 3 or image.shape[2] != 3:
        raise InvalidImageError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImageError("Image has no pixels")
    if not (image.dtype in (np.uint8, np.uint16) or np.issubdtype(image.dtype, np.floating)):
        raise InvalidImageError(f"Unsupported image dtype {image.dtype}")
    return image


def to_float_rgb(image: np.ndarray, channel_order: ChannelOrder) -> np.ndarray:
    """
    Float32 copy of ``image`` in RGB order scaled to [0, 1]

    uint8 and uint16 are divided by their full-scale value; float input is
    taken as already normalized.
    """
    validate_rgb_image(image)
    if image.dtype == np.uint8:
        img_float = image.astype(np.float32) / 255.0
    elif image.dtype == np.uint16:
        img_float = image.astype(np.float32) / 65535.0
    else:
        img_float = image.astype(np.float32)

    if channel_order is ChannelOrder.BGR:
        img_float = img_float[:, :, ::-1]
    return np.ascontiguousarray(img_float)
