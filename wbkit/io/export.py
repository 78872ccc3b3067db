"""
Output writers for wbkit: sRGB encoding, JPEG/TIFF export and notes files
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from ..color.models import ChannelOrder
from ..exceptions import ExportError
from ..utils.image import validate_rgb_image

logger = logging.getLogger(__name__)


def encode_srgb(linear: np.ndarray) -> np.ndarray:
    """
    Apply the IEC 61966-2-1 sRGB transfer function

    Input is clipped to [0, 1]; output is float32 in [0, 1].
    """
    values = np.clip(np.asarray(linear, dtype=np.float32), 0.0, 1.0)
    return np.where(values <= 0.0031308,
                    values * 12.92,
                    1.055 * np.power(values, 1.0 / 2.4) - 0.055).astype(np.float32)


def _to_bgr(image: np.ndarray, channel_order: ChannelOrder) -> np.ndarray:
    if channel_order is ChannelOrder.RGB:
        return cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    return image


def _write(path: Path, image: np.ndarray, params: list):
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        ok = cv2.imwrite(str(path), image, params)
    except cv2.error as e:
        raise ExportError(f"Failed to write {path}: {e}") from e
    if not ok:
        raise ExportError(f"Failed to write {path}")
    logger.info(f"Wrote {path}")


def write_jpeg(path: Union[str, Path], linear: np.ndarray, quality: int = 95,
               channel_order: ChannelOrder = ChannelOrder.RGB) -> Path:
    """
    Encode a linear image to sRGB and save it as 8-bit JPEG

    Args:
        path: Output path
        linear: Float (H, W, 3) linear image
        quality: JPEG quality 1-100
        channel_order: Layout of ``linear``

    Raises:
        ExportError: If OpenCV cannot write the file
    """
    validate_rgb_image(linear)
    path = Path(path)
    quality = int(min(max(quality, 1), 100))
    encoded = np.round(encode_srgb(linear) * 255.0).astype(np.uint8)
    _write(path, _to_bgr(encoded, channel_order), [cv2.IMWRITE_JPEG_QUALITY, quality])
    return path


def write_linear_tiff(path: Union[str, Path], linear: np.ndarray,
                      channel_order: ChannelOrder = ChannelOrder.RGB) -> Path:
    """Save a linear image as 16-bit TIFF (clipped to [0, 1])"""
    validate_rgb_image(linear)
    path = Path(path)
    data = np.round(np.clip(linear, 0.0, 1.0) * 65535.0).astype(np.uint16)
    _write(path, _to_bgr(data, channel_order), [])
    return path


def write_notes(path: Union[str, Path], fields: Dict[str, Any],
                title: Optional[str] = None) -> Path:
    """
    Write a human-readable notes file next to an exported image

    Args:
        path: Notes file path
        fields: Ordered key/value pairs (mode, gains, Kelvin/Duv, means...)
        title: Optional first line

    Raises:
        ExportError: If the file cannot be written
    """
    path = Path(path)
    lines = []
    if title:
        lines.append(title)
        lines.append("=" * len(title))
    lines.append(f"generated: {datetime.now().isoformat(timespec='seconds')}")
    for key, value in fields.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(f"{v:.6f}" if isinstance(v, float) else str(v) for v in value)
        elif isinstance(value, float):
            value = f"{value:.6f}"
        lines.append(f"{key}: {value}")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write notes {path}: {e}") from e
    logger.debug(f"Wrote notes {path}")
    return path
