"""
Chromatic adaptation transforms (von Kries-style, in cone response space).

    T = M^-1 . diag(rho_target / rho_source) . M

where M is the cone response matrix of the chosen method and rho the cone
response to each white point at Y = 1.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from ..exceptions import InvalidImageError
from .chromaticity import xy_to_xyz
from .constants import BRADFORD, CAT02, EPSILON, SRGB_TO_XYZ, VON_KRIES, XYZ_TO_SRGB
from .models import ChannelOrder, ChromaticityXY, TristimulusXYZ

logger = logging.getLogger(__name__)

WhitePoint = Union[ChromaticityXY, TristimulusXYZ]


class CATMethod(Enum):
    """Cone response spaces available for adaptation"""
    BRADFORD = "bradford"
    CAT02 = "cat02"
    VON_KRIES = "vonkries"

    @property
    def cone_matrix(self) -> np.ndarray:
        if self is CATMethod.CAT02:
            return CAT02
        if self is CATMethod.VON_KRIES:
            return VON_KRIES
        return BRADFORD


def _white_xyz(white: WhitePoint) -> Optional[np.ndarray]:
    """White point as XYZ with Y = 1, or None if degenerate"""
    if isinstance(white, ChromaticityXY):
        xyz = xy_to_xyz(white, 1.0).as_array()
    else:
        xyz = white.as_array()
    if not np.all(np.isfinite(xyz)) or abs(xyz[1]) < EPSILON:
        return None
    return xyz / xyz[1]


def _frozen(matrix: np.ndarray) -> np.ndarray:
    matrix = np.array(matrix, dtype=np.float64)
    matrix.setflags(write=False)
    return matrix


@dataclass(frozen=True, eq=False)
class ChromaticAdaptation:
    """
    A 3x3 XYZ -> XYZ adaptation between two white points.

    ``fallback`` is set when the transform degenerated to the identity.
    """
    matrix: np.ndarray
    source: WhitePoint
    target: WhitePoint
    method: CATMethod = CATMethod.BRADFORD
    fallback: Optional[str] = None

    def apply_xyz(self, xyz):
        """Adapt a TristimulusXYZ or an array of shape (3,) / (..., 3)"""
        if isinstance(xyz, TristimulusXYZ):
            return TristimulusXYZ.from_array(self.matrix @ xyz.as_array())
        return np.asarray(xyz, dtype=np.float64) @ self.matrix.T

    def rgb_matrix(self) -> np.ndarray:
        """Equivalent transform in linear sRGB: XYZ->sRGB . T . sRGB->XYZ"""
        return XYZ_TO_SRGB @ self.matrix @ SRGB_TO_XYZ

    def apply_rgb(self, image: np.ndarray, channel_order: ChannelOrder) -> np.ndarray:
        """
        Adapt a linear sRGB image

        Args:
            image: Float (H, W, 3) linear image
            channel_order: Layout of ``image``

        Returns:
            New float32 image in the same channel order, unclipped
        """
        if image.ndim != 3 or image.shape[2] != 3:
            raise InvalidImageError(f"Expected an (H, W, 3) image, got shape {image.shape}")
        order = list(channel_order.indices)
        rgb = image[:, :, order].astype(np.float32)
        adapted = rgb @ self.rgb_matrix().T.astype(np.float32)
        result = np.empty_like(adapted)
        result[:, :, order] = adapted
        return result

    def inverse(self) -> 'ChromaticAdaptation':
        return ChromaticAdaptation(_frozen(np.linalg.inv(self.matrix)), self.target,
                                   self.source, self.method, self.fallback)


def build_adaptation(source: WhitePoint, target: WhitePoint,
                     method: CATMethod = CATMethod.BRADFORD) -> ChromaticAdaptation:
    """
    Build the adaptation from ``source`` white to ``target`` white

    Args:
        source: White point the data was captured under (xy or XYZ)
        target: White point to adapt to (xy or XYZ)
        method: Cone response space

    Returns:
        ChromaticAdaptation; identity with ``fallback`` set if either white
        point is degenerate
    """
    source_xyz = _white_xyz(source)
    target_xyz = _white_xyz(target)
    if source_xyz is None or target_xyz is None:
        logger.warning("Degenerate white point for chromatic adaptation, using identity")
        return ChromaticAdaptation(_frozen(np.eye(3)), source, target, method, "degenerate white point")

    cone = method.cone_matrix
    rho_source = cone @ source_xyz
    rho_target = cone @ target_xyz
    if np.any(np.abs(rho_source) < EPSILON):
        logger.warning(f"Near-zero cone response {rho_source.tolist()}, using identity adaptation")
        return ChromaticAdaptation(_frozen(np.eye(3)), source, target, method, "zero cone response")

    scale = np.diag(rho_target / rho_source)
    matrix = np.linalg.inv(cone) @ scale @ cone
    return ChromaticAdaptation(_frozen(matrix), source, target, method)
