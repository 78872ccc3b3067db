"""Tests for the white balance corrector"""

import numpy as np
import pytest

from wbkit.color.adaptation import CATMethod
from wbkit.color.chromaticity import xy_to_xyz
from wbkit.color.constants import D65_XY
from wbkit.color.gains import GainStrategy, matrix_gains
from wbkit.color.locus import kelvin_to_xy
from wbkit.color.models import ChannelOrder, LocusFit, WhiteBalanceGains
from wbkit.color.temperature import kelvin_duv_to_xy
from wbkit.config import get_default_config
from wbkit.exceptions import InvalidImageError, MissingColorProfileError, SingularMatrixError
from wbkit.processing.estimators import WhiteBalanceAlgorithm
from wbkit.processing.white_balance import (AdaptationMode, CorrectionRequest,
                                            WhiteBalanceCorrector, WhiteBalanceMode,
                                            parse_wb_mode)


class TestParseWhiteBalanceMode:
    """Test parsing of white balance options"""

    def test_named_modes(self):
        """Test plain mode names"""
        assert parse_wb_mode('camera') == (WhiteBalanceMode.CAMERA, None)
        assert parse_wb_mode(' AUTO ') == (WhiteBalanceMode.AUTO, None)
        assert parse_wb_mode('none') == (WhiteBalanceMode.NONE, None)

    def test_user_multipliers(self):
        """Test user:R,G,B[,G2] multipliers"""
        assert parse_wb_mode('user:2,1,1.5,1') == (WhiteBalanceMode.USER, (2.0, 1.0, 1.5, 1.0))
        assert parse_wb_mode('user:2,1,1.5') == (WhiteBalanceMode.USER, (2.0, 1.0, 1.5))

    @pytest.mark.parametrize("value", ['daylight', 'user', 'user:a,b,c', 'user:1,2', 'camera:1,1,1'])
    def test_invalid(self, value):
        """Test malformed options raise ValueError"""
        with pytest.raises(ValueError):
            parse_wb_mode(value)


class TestCorrectionRequest:
    """Test request validation"""

    def test_kelvin_and_xy_are_exclusive(self):
        """Test a request cannot carry both target kinds"""
        with pytest.raises(ValueError):
            CorrectionRequest(kelvin=5000, xy=D65_XY)

    def test_user_mode_needs_multipliers(self):
        """Test user mode requires 3 or 4 multipliers"""
        with pytest.raises(ValueError):
            CorrectionRequest(mode=WhiteBalanceMode.USER)
        with pytest.raises(ValueError):
            CorrectionRequest(mode=WhiteBalanceMode.USER, user_multipliers=(1.0, 2.0))

    def test_has_target(self):
        """Test target detection"""
        assert not CorrectionRequest().has_target
        assert CorrectionRequest(duv=0.01).has_target
        assert CorrectionRequest(xy=D65_XY).has_target


class TestCorrectorConfiguration:
    """Test corrector construction"""

    def test_from_default_config(self):
        """Test the packaged defaults"""
        corrector = WhiteBalanceCorrector.from_config(get_default_config())
        assert corrector.strategy is GainStrategy.FAST_EMPIRICAL_V1
        assert corrector.locus is LocusFit.DAYLIGHT
        assert corrector.cat_method is CATMethod.BRADFORD
        assert corrector.default_algorithm is WhiteBalanceAlgorithm.GRAY_WORLD
        assert corrector.gain_bounds == (0.2, 5.0)
        assert corrector.allow_fallback is True
        assert corrector.workers == 1

    def test_config_overrides(self):
        """Test values from the white_balance section"""
        config = get_default_config()
        config['white_balance'].update({'strategy': 'matrix', 'locus': 'planckian',
                                        'cat_method': 'cat02', 'allow_fallback': False})
        config['export']['workers'] = 3
        corrector = WhiteBalanceCorrector.from_config(config)
        assert corrector.strategy is GainStrategy.MATRIX
        assert corrector.locus is LocusFit.PLANCKIAN
        assert corrector.cat_method is CATMethod.CAT02
        assert corrector.allow_fallback is False
        assert corrector.workers == 3

    def test_invalid_strategy(self):
        """Test unknown strategy names are rejected"""
        config = get_default_config()
        config['white_balance']['strategy'] = 'magic'
        with pytest.raises(ValueError):
            WhiteBalanceCorrector.from_config(config)


class TestGainsForRequest:
    """Test resolving requests to gains"""

    @pytest.fixture
    def corrector(self):
        """Create a corrector with default settings"""
        return WhiteBalanceCorrector()

    def test_camera_mode(self, corrector, identity_profile):
        """Test camera mode uses the as-shot multipliers"""
        gains = corrector.gains_for_request(CorrectionRequest(), identity_profile)
        assert gains.as_tuple() == pytest.approx((2.0, 1.0, 1.5))

    def test_camera_mode_without_profile(self, corrector):
        """Test camera mode requires a profile"""
        with pytest.raises(MissingColorProfileError):
            corrector.gains_for_request(CorrectionRequest())

    def test_user_mode(self, corrector):
        """Test user multipliers are green-normalized"""
        request = CorrectionRequest(mode=WhiteBalanceMode.USER, user_multipliers=(4.0, 2.0, 3.0, 2.0))
        gains = corrector.gains_for_request(request)
        assert gains.as_tuple() == pytest.approx((2.0, 1.0, 1.5))

    def test_none_mode(self, corrector):
        """Test none mode is unity"""
        request = CorrectionRequest(mode=WhiteBalanceMode.NONE)
        assert corrector.gains_for_request(request) == WhiteBalanceGains.unity()

    def test_auto_mode(self, corrector, uniform_image):
        """Test auto mode runs the pixel estimator"""
        request = CorrectionRequest(mode=WhiteBalanceMode.AUTO)
        gains = corrector.gains_for_request(request, image=uniform_image)
        assert gains.as_tuple() == pytest.approx((0.5 / 0.6, 1.0, 0.5 / 0.4), rel=1e-5)

    def test_auto_mode_without_image(self, corrector):
        """Test auto mode requires an image"""
        with pytest.raises(InvalidImageError):
            corrector.gains_for_request(CorrectionRequest(mode=WhiteBalanceMode.AUTO))

    def test_kelvin_target_overrides_mode(self, corrector, identity_profile):
        """Test a neutral Kelvin target gives unity gains in any mode"""
        request = CorrectionRequest(kelvin=6500, duv=0.0)
        gains = corrector.gains_for_request(request, identity_profile)
        assert gains.as_tuple() == pytest.approx((1.0, 1.0, 1.0))

    def test_duv_only_target(self, corrector):
        """Test a Duv-only target keeps the reference temperature"""
        gains = corrector.gains_for_request(CorrectionRequest(duv=0.01))
        assert gains.red_gain == pytest.approx(gains.blue_gain)
        assert gains.green_gain < 1.0

    def test_xy_target(self, corrector):
        """Test an xy target is converted through CCT/Duv"""
        request = CorrectionRequest(xy=kelvin_to_xy(6500))
        gains = corrector.gains_for_request(request)
        assert gains.as_tuple() == pytest.approx((1.0, 1.0, 1.0), abs=1e-4)

    def test_request_strategy(self, corrector, srgb_profile):
        """Test a per-request strategy overrides the corrector's"""
        request = CorrectionRequest(kelvin=5000, strategy=GainStrategy.MATRIX)
        gains = corrector.gains_for_request(request, srgb_profile)
        assert gains.green_gain == 1.0
        with pytest.raises(MissingColorProfileError):
            corrector.gains_for_request(request)


class TestDecoderGains:
    """Test camera-space gains handed to the RAW decoder"""

    @pytest.fixture
    def corrector(self):
        """Create a corrector using the matrix strategy"""
        return WhiteBalanceCorrector(strategy=GainStrategy.MATRIX)

    def test_matrix_target(self, corrector, srgb_profile):
        """Test a matrix-strategy target resolves to the matrix gains"""
        gains = corrector.decoder_gains(CorrectionRequest(kelvin=5000), srgb_profile)
        expected = matrix_gains(5000, 0.0, srgb_profile)
        assert gains.as_tuple() == pytest.approx(expected.as_tuple())

    def test_matrix_gains_differ_from_empirical_at_neutral(self, identity_profile):
        """Test a neutral target is not unity in camera space"""
        request = CorrectionRequest(kelvin=6500, duv=0.0)
        empirical = WhiteBalanceCorrector().gains_for_request(request, identity_profile)
        camera = WhiteBalanceCorrector(strategy=GainStrategy.MATRIX).decoder_gains(request, identity_profile)
        assert empirical.as_tuple() == pytest.approx((1.0, 1.0, 1.0))
        assert camera.as_tuple() != pytest.approx((1.0, 1.0, 1.0), abs=1e-3)

    def test_empirical_strategy(self, srgb_profile):
        """Test empirical strategies scale the decoded image instead"""
        corrector = WhiteBalanceCorrector()
        assert corrector.decoder_gains(CorrectionRequest(kelvin=5000), srgb_profile) is None

    def test_no_target(self, corrector, srgb_profile):
        """Test a request without a target leaves the decoder alone"""
        assert corrector.decoder_gains(CorrectionRequest(), srgb_profile) is None

    def test_singular_matrix_falls_back(self, corrector, singular_profile):
        """Test a singular matrix defers to the empirical path"""
        assert corrector.decoder_gains(CorrectionRequest(kelvin=5000), singular_profile) is None

    def test_singular_matrix_without_fallback(self, singular_profile):
        """Test a singular matrix raises when fallback is disabled"""
        corrector = WhiteBalanceCorrector(strategy=GainStrategy.MATRIX, allow_fallback=False)
        with pytest.raises(SingularMatrixError):
            corrector.decoder_gains(CorrectionRequest(kelvin=5000), singular_profile)

    def test_missing_profile(self, corrector):
        """Test the matrix strategy requires a profile"""
        with pytest.raises(MissingColorProfileError):
            corrector.decoder_gains(CorrectionRequest(kelvin=5000), None)


class TestAnalyzeAndCorrect:
    """Test analysis and correction of images"""

    def test_analyze(self, uniform_image):
        """Test analysis of a warm cast"""
        analysis = WhiteBalanceCorrector().analyze(uniform_image, ChannelOrder.RGB)
        assert analysis.algorithm is WhiteBalanceAlgorithm.GRAY_WORLD
        assert analysis.channel_means == pytest.approx((0.6, 0.5, 0.4))
        assert analysis.estimated_temperature.cct_kelvin < 6500
        assert isinstance(analysis.description, str)

    def test_correct_neutralizes_cast(self, uniform_image):
        """Test Gray World gains make the flat image neutral"""
        corrector = WhiteBalanceCorrector(workers=2)
        gains = corrector.analyze(uniform_image, ChannelOrder.RGB).gains
        corrected = corrector.correct(uniform_image, gains, ChannelOrder.RGB)
        np.testing.assert_allclose(corrected[0, 0], [0.5, 0.5, 0.5], rtol=1e-5)


class TestReport:
    """Test scene/target white point reports"""

    def test_report_for_d65_scene(self, srgb_profile):
        """Test a D65 scene reported against the default D65 target"""
        report = WhiteBalanceCorrector().report(srgb_profile)
        assert report.target_xy == D65_XY
        assert report.delta_tint == pytest.approx(0.0, abs=0.1)
        assert report.scene.fallback is None

        data = report.to_dict(include_debug=True)
        assert set(data) >= {'scene', 'target', 'delta_tint', 'fallback', 'description', 'debug'}
        assert set(data['scene']) == {'xy', 'kelvin', 'duv', 'tint'}
        assert data['debug']['multipliers'] == [1.0, 1.0, 1.0, 1.0]
        assert 'debug' not in report.to_dict()

    def test_kelvin_target(self, srgb_profile):
        """Test a Kelvin/Duv target is reported with its tint"""
        report = WhiteBalanceCorrector().report(srgb_profile, target_kelvin=5000, target_duv=0.002)
        assert report.target.cct_kelvin == pytest.approx(5000, abs=10)
        assert report.target_tint == pytest.approx(6.0, abs=0.2)
        assert report.delta_tint == pytest.approx(report.target_tint - report.scene_tint, abs=0.11)

    def test_missing_profile(self):
        """Test reports require a camera profile"""
        with pytest.raises(MissingColorProfileError):
            WhiteBalanceCorrector().report(None)


class TestAdaptation:
    """Test white-point correction modes"""

    def test_camera_mode_maps_scene_to_d65(self, identity_profile):
        """Test camera mode adapts the recovered scene white to D65"""
        corrector = WhiteBalanceCorrector()
        adaptation = corrector.adaptation(AdaptationMode.CAMERA, identity_profile)
        assert adaptation.target == D65_XY
        adapted = adaptation.apply_xyz(xy_to_xyz(adaptation.source))
        np.testing.assert_allclose(adapted.as_array(), xy_to_xyz(D65_XY).as_array(), atol=1e-9)

    def test_kelvin_mode(self):
        """Test kelvin mode adapts D65 to the requested white"""
        corrector = WhiteBalanceCorrector(cat_method=CATMethod.VON_KRIES)
        adaptation = corrector.adaptation(AdaptationMode.KELVIN, kelvin=3200, duv=0.003)
        assert adaptation.source == D65_XY
        assert adaptation.target == kelvin_duv_to_xy(3200, 0.003)
        assert adaptation.method is CATMethod.VON_KRIES

    def test_xy_mode(self):
        """Test xy mode needs a target chromaticity"""
        corrector = WhiteBalanceCorrector()
        target = kelvin_to_xy(4000)
        assert corrector.adaptation(AdaptationMode.XY, xy=target).target == target
        with pytest.raises(ValueError):
            corrector.adaptation(AdaptationMode.XY)

    def test_camera_mode_without_profile(self):
        """Test camera mode requires a profile"""
        with pytest.raises(MissingColorProfileError):
            WhiteBalanceCorrector().adaptation(AdaptationMode.CAMERA)
