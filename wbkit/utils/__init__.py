"""
wbkit utilities: logging setup and pixel buffer helpers.
"""

from .image import validate_rgb_image, to_float_rgb
from .logging import StructuredLogger, get_logger, setup_console_logging

__all__ = [
    'validate_rgb_image',
    'to_float_rgb',
    'StructuredLogger',
    'get_logger',
    'setup_console_logging',
]
