"""
RAW decoding for wbkit
Reads camera color metadata and linear RGB through rawpy (LibRaw)
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

import numpy as np
import rawpy

from ..color.models import CameraColorProfile
from ..exceptions import MissingColorProfileError, RawDecodeError
from ..processing.white_balance import WhiteBalanceMode

logger = logging.getLogger(__name__)


@contextmanager
def open_raw(file_path: Union[str, Path]) -> Iterator[rawpy.RawPy]:
    """
    Open a RAW file, closing it on exit

    Raises:
        RawDecodeError: If the file cannot be read or is not a supported RAW
    """
    file_path = Path(file_path)
    try:
        raw = rawpy.imread(str(file_path))
    except (rawpy.LibRawError, OSError) as e:
        raise RawDecodeError(f"Failed to open RAW file {file_path}: {e}") from e
    logger.debug(f"Opened RAW file: {file_path}")
    try:
        yield raw
    finally:
        raw.close()


def load_camera_profile(raw: rawpy.RawPy, camera_model: str = "Unknown") -> CameraColorProfile:
    """
    Camera color profile from LibRaw's as-shot multipliers and color matrix

    Args:
        raw: Open RawPy object
        camera_model: Label stored on the profile

    Returns:
        CameraColorProfile

    Raises:
        MissingColorProfileError: If the file carries no usable color matrix
    """
    try:
        multipliers = np.array(raw.camera_whitebalance, dtype=np.float64)
        matrix = np.array(raw.rgb_xyz_matrix, dtype=np.float64)
    except rawpy.LibRawError as e:
        raise RawDecodeError(f"Failed to read color metadata: {e}") from e

    if matrix.shape != (4, 3) or not np.any(matrix[:3]):
        raise MissingColorProfileError(f"RAW file has no camera color matrix (shape {matrix.shape})")
    if not np.any(multipliers > 0):
        logger.warning("RAW file has no as-shot multipliers, assuming unity")
        multipliers = np.ones(4)

    return CameraColorProfile(multipliers, matrix, camera_model)


def _white_balance_params(mode: Optional[WhiteBalanceMode],
                          user_multipliers: Optional[Sequence[float]]) -> dict:
    if mode is WhiteBalanceMode.CAMERA:
        return {'use_camera_wb': True}
    if mode is WhiteBalanceMode.AUTO:
        return {'use_auto_wb': True}
    if mode is WhiteBalanceMode.NONE:
        return {'user_wb': [1.0, 1.0, 1.0, 1.0]}
    if mode is WhiteBalanceMode.USER:
        if not user_multipliers:
            raise ValueError("User white balance needs multipliers")
        values = [float(m) for m in user_multipliers]
        if len(values) == 3:
            values.append(values[1])
        return {'user_wb': values}
    # Decoder default (daylight multipliers)
    return {}


def decode_linear(raw: rawpy.RawPy,
                  mode: Optional[WhiteBalanceMode] = WhiteBalanceMode.CAMERA,
                  user_multipliers: Optional[Sequence[float]] = None,
                  output_bps: int = 16,
                  half_size: bool = False) -> np.ndarray:
    """
    Demosaic to linear sRGB

    Args:
        raw: Open RawPy object
        mode: White balance LibRaw applies while decoding; None keeps its default
        user_multipliers: RGBG multipliers for user mode
        output_bps: 8 or 16 bits from LibRaw before conversion to float
        half_size: Decode at half resolution

    Returns:
        float32 (H, W, 3) RGB image in [0, 1]

    Raises:
        RawDecodeError: If LibRaw fails to process the image
    """
    params = _white_balance_params(mode, user_multipliers)
    try:
        rgb = raw.postprocess(
            gamma=(1, 1),
            no_auto_bright=True,
            output_bps=output_bps,
            output_color=rawpy.ColorSpace.sRGB,
            half_size=half_size,
            **params
        )
    except rawpy.LibRawError as e:
        raise RawDecodeError(f"Failed to process RAW data: {e}") from e

    scale = 65535.0 if output_bps == 16 else 255.0
    return rgb.astype(np.float32) / scale
