"""Tests for the white balance value types"""

import numpy as np
import pytest

from wbkit.color.models import CameraColorProfile, ChannelOrder, WhiteBalanceGains
from wbkit.exceptions import ColorProfileError


class TestWhiteBalanceGains:
    """Test WhiteBalanceGains construction and transforms"""

    @pytest.mark.parametrize("bad", [0.0, -1.0, float('nan'), float('inf')])
    def test_rejects_invalid_gains(self, bad):
        """Test gains must be finite and positive"""
        with pytest.raises(ValueError):
            WhiteBalanceGains(1.0, bad, 1.0)

    def test_from_multipliers_averages_greens(self):
        """Test RGBG multipliers average G1/G2 and normalize green"""
        gains = WhiteBalanceGains.from_multipliers([2.0, 1.0, 1.5, 3.0])
        assert gains.as_tuple() == pytest.approx((1.0, 1.0, 0.75))

    def test_from_multipliers_ignores_empty_g2(self):
        """Test a zero G2 falls back to G1"""
        gains = WhiteBalanceGains.from_multipliers([2.0, 1.0, 1.5, 0.0])
        assert gains.as_tuple() == pytest.approx((2.0, 1.0, 1.5))

    def test_from_multipliers_length(self):
        """Test only 3 or 4 multipliers are accepted"""
        with pytest.raises(ValueError):
            WhiteBalanceGains.from_multipliers([1.0, 1.0])

    def test_normalization(self):
        """Test green and mean normalization"""
        gains = WhiteBalanceGains(2.0, 4.0, 6.0)
        assert gains.normalized_to_green().as_tuple() == pytest.approx((0.5, 1.0, 1.5))
        assert gains.normalized_to_mean().as_tuple() == pytest.approx((0.5, 1.0, 1.5))

    def test_clamped(self):
        """Test every gain is limited to the bounds"""
        gains = WhiteBalanceGains(0.01, 1.0, 12.0).clamped(0.2, 5.0)
        assert gains.as_tuple() == (0.2, 1.0, 5.0)

    def test_blend(self):
        """Test weighted blending of gain triples"""
        blended = WhiteBalanceGains.blend([
            (0.5, WhiteBalanceGains(1.0, 1.0, 2.0)),
            (0.5, WhiteBalanceGains(3.0, 1.0, 1.0)),
        ])
        assert blended.as_tuple() == pytest.approx((2.0, 1.0, 1.5))

    def test_channel_layout(self):
        """Test array layout follows the buffer's channel order"""
        gains = WhiteBalanceGains(2.0, 1.0, 0.5)
        np.testing.assert_array_equal(gains.as_array(ChannelOrder.RGB), [2.0, 1.0, 0.5])
        np.testing.assert_array_equal(gains.as_array(ChannelOrder.BGR), [0.5, 1.0, 2.0])
        assert gains.as_array(ChannelOrder.RGB).dtype == np.float32
        assert gains.as_multipliers() == (2.0, 1.0, 0.5, 1.0)

    def test_immutable(self):
        """Test gains cannot be modified after creation"""
        gains = WhiteBalanceGains.unity()
        with pytest.raises(AttributeError):
            gains.red_gain = 2.0


class TestCameraColorProfile:
    """Test camera profile validation"""

    def test_arrays_are_read_only(self, srgb_profile):
        """Test stored metadata cannot be modified"""
        with pytest.raises(ValueError):
            srgb_profile.camera_to_xyz[0, 0] = 0.0
        with pytest.raises(ValueError):
            srgb_profile.white_balance_multipliers[0] = 0.0

    def test_rgb_rows(self, identity_profile):
        """Test the R, G1, B rows are exposed for XYZ projection"""
        np.testing.assert_array_equal(identity_profile.rgb_to_xyz_rows, np.eye(3))

    def test_rejects_bad_shapes(self):
        """Test malformed metadata raises ColorProfileError"""
        with pytest.raises(ColorProfileError):
            CameraColorProfile([1.0, 1.0, 1.0], np.eye(3).tolist() + [[0, 1, 0]])
        with pytest.raises(ColorProfileError):
            CameraColorProfile([1.0, 1.0, 1.0, 1.0], np.eye(3))

    def test_rejects_non_finite(self):
        """Test NaN in the matrix raises ColorProfileError"""
        matrix = np.eye(4, 3)
        matrix[1, 1] = np.nan
        with pytest.raises(ColorProfileError):
            CameraColorProfile([1.0, 1.0, 1.0, 1.0], matrix)
