"""
Exception types for wbkit

Numeric degeneracies are resolved with fallbacks and never raise; these
exceptions cover structural problems the caller has to fix.
"""


class WhiteBalanceError(Exception):
    """Base exception for white balance operations."""
    pass


class InvalidImageError(WhiteBalanceError):
    """Raised when a pixel buffer is not a 3-channel image."""
    pass


class ColorProfileError(WhiteBalanceError):
    """Raised when camera color metadata is malformed."""
    pass


class MissingColorProfileError(WhiteBalanceError):
    """Raised when the metadata path is requested without a camera profile."""
    pass


class SingularMatrixError(WhiteBalanceError):
    """Raised when the camera matrix cannot be inverted for the rigorous path."""
    pass


class RawDecodeError(WhiteBalanceError):
    """Raised when a RAW file cannot be opened, unpacked or processed."""
    pass


class ExportError(WhiteBalanceError):
    """Raised when an output image or notes file cannot be written."""
    pass
