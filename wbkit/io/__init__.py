"""
RAW decoding and image export for wbkit
"""

from .raw import open_raw, load_camera_profile, decode_linear
from .export import encode_srgb, write_jpeg, write_linear_tiff, write_notes

__all__ = [
    'open_raw',
    'load_camera_profile',
    'decode_linear',
    'encode_srgb',
    'write_jpeg',
    'write_linear_tiff',
    'write_notes',
]
