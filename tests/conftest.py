"""Shared fixtures for wbkit tests"""

import numpy as np
import pytest

from wbkit.color.constants import SRGB_TO_XYZ
from wbkit.color.models import CameraColorProfile


@pytest.fixture
def srgb_profile():
    """Camera whose native primaries are linear sRGB, shot under D65"""
    matrix = np.vstack([SRGB_TO_XYZ.T, SRGB_TO_XYZ.T[1]])
    return CameraColorProfile([1.0, 1.0, 1.0, 1.0], matrix, "sRGB test camera")


@pytest.fixture
def identity_profile():
    """Camera with an identity matrix and a strong as-shot correction"""
    matrix = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 0.0]]
    return CameraColorProfile([2.0, 1.0, 1.5, 1.0], matrix, "Identity test camera")


@pytest.fixture
def singular_profile():
    """Camera matrix with identical rows"""
    return CameraColorProfile([2.0, 1.0, 1.5, 1.0], np.ones((4, 3)), "Singular test camera")


@pytest.fixture
def uniform_image():
    """Flat linear image with a warm cast"""
    image = np.zeros((64, 64, 3), dtype=np.float32)
    image[:, :] = [0.6, 0.5, 0.4]
    return image


@pytest.fixture
def random_image():
    """Random linear image inside the Gray World mask"""
    rng = np.random.default_rng(42)
    return rng.uniform(0.1, 0.9, size=(48, 40, 3)).astype(np.float32)
