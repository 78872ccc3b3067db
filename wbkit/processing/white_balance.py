"""
White balance orchestration for wbkit

Ties the metadata path (scene white-point recovery, Kelvin/Duv to gains,
chromatic adaptation) and the pixel path (statistics estimators, gain
application) together behind WhiteBalanceCorrector.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..color.adaptation import CATMethod, ChromaticAdaptation, build_adaptation
from ..color.constants import D65_XY, REFERENCE_KELVIN
from ..color.gains import GainStrategy, gains_from_kelvin_duv, matrix_gains
from ..color.locus import DEFAULT_LOCUS
from ..color.models import (DEFAULT_GAIN_BOUNDS, CameraColorProfile, ChannelOrder, ChromaticityXY,
                            ColorTemperatureResult, LocusFit, WhiteBalanceGains)
from ..color.scene import SceneWhitePoint, estimate_from_linear_rgb, recover_scene_white_point
from ..color.temperature import describe_temperature, estimate_color_temperature, kelvin_duv_to_xy
from ..exceptions import InvalidImageError, MissingColorProfileError, SingularMatrixError
from .application import apply_gains, channel_means
from .estimators import EstimatorConfig, WhiteBalanceAlgorithm, estimate_gains

logger = logging.getLogger(__name__)


class WhiteBalanceMode(Enum):
    """Where the base gains of a correction come from"""
    CAMERA = "camera"  # as-shot multipliers
    AUTO = "auto"      # pixel-statistics estimator
    NONE = "none"      # unity gains
    USER = "user"      # explicit RGBG multipliers


class AdaptationMode(Enum):
    """Source/target selection for white-point (CAT) correction"""
    CAMERA = "camera"  # scene white point -> D65
    AUTO = "auto"      # same as camera; the estimate still comes from metadata
    KELVIN = "kelvin"  # D65 -> (kelvin, duv)
    XY = "xy"          # D65 -> explicit xy


def parse_wb_mode(value: str) -> Tuple[WhiteBalanceMode, Optional[Tuple[float, ...]]]:
    """
    Parse a white balance option such as ``camera`` or ``user:2.0,1.0,1.5,1.0``

    Returns:
        The mode and, for ``user``, the multipliers

    Raises:
        ValueError: For unknown modes or malformed multipliers
    """
    name, _, rest = value.strip().partition(':')
    mode = WhiteBalanceMode(name.lower())
    if mode is not WhiteBalanceMode.USER:
        if rest:
            raise ValueError(f"Mode '{name}' does not take multipliers")
        return mode, None

    try:
        multipliers = tuple(float(part) for part in rest.split(','))
    except ValueError:
        raise ValueError(f"Malformed user multipliers '{rest}'") from None
    if len(multipliers) not in (3, 4):
        raise ValueError(f"User white balance needs R,G,B[,G2] multipliers, got '{rest}'")
    return mode, multipliers


@dataclass(frozen=True)
class CorrectionRequest:
    """
    A white balance request.

    ``mode`` selects the base gains. A ``kelvin`` (with optional ``duv``) or
    ``xy`` target replaces them with the strategy's gains for that target.
    """
    mode: WhiteBalanceMode = WhiteBalanceMode.CAMERA
    kelvin: Optional[float] = None
    duv: Optional[float] = None
    xy: Optional[ChromaticityXY] = None
    user_multipliers: Optional[Tuple[float, ...]] = None
    algorithm: Optional[WhiteBalanceAlgorithm] = None
    strategy: Optional[GainStrategy] = None

    def __post_init__(self):
        if self.kelvin is not None and self.xy is not None:
            raise ValueError("Specify either a Kelvin/Duv target or an xy target, not both")
        if self.mode is WhiteBalanceMode.USER:
            if not self.user_multipliers or len(self.user_multipliers) not in (3, 4):
                raise ValueError("User mode needs 3 or 4 multipliers")

    @property
    def has_target(self) -> bool:
        return self.kelvin is not None or self.duv is not None or self.xy is not None


@dataclass
class WhiteBalanceAnalysis:
    """Results from pixel-statistics white balance analysis"""
    algorithm: WhiteBalanceAlgorithm
    gains: WhiteBalanceGains

    # Color cast of the unbalanced image
    estimated_temperature: ColorTemperatureResult
    channel_means: Tuple[float, float, float]
    description: str


@dataclass
class WhitePointReport:
    """Scene and target white points, with UI-scaled tint values"""
    scene: SceneWhitePoint
    target_xy: ChromaticityXY
    target: ColorTemperatureResult
    gains: Optional[WhiteBalanceGains] = None
    debug: Dict[str, Any] = field(default_factory=dict)

    @property
    def scene_tint(self) -> float:
        return round(self.scene.temperature.tint, 1)

    @property
    def target_tint(self) -> float:
        return round(self.target.tint, 1)

    @property
    def delta_tint(self) -> float:
        return round(self.target_tint - self.scene_tint, 1)

    @property
    def description(self) -> str:
        return describe_temperature(self.scene.temperature.cct_kelvin)

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        data = {
            'scene': {
                'xy': {'x': self.scene.xy.x, 'y': self.scene.xy.y},
                'kelvin': self.scene.temperature.cct_kelvin,
                'duv': self.scene.temperature.duv,
                'tint': self.scene_tint,
            },
            'target': {
                'xy': {'x': self.target_xy.x, 'y': self.target_xy.y},
                'kelvin': self.target.cct_kelvin,
                'duv': self.target.duv,
                'tint': self.target_tint,
            },
            'delta_tint': self.delta_tint,
            'fallback': self.scene.fallback,
            'description': self.description,
        }
        if self.gains is not None:
            data['gains'] = list(self.gains.as_tuple())
        if include_debug and self.debug:
            data['debug'] = self.debug
        return data


class WhiteBalanceCorrector:
    """
    White balance analysis and correction

    Features:
    - Scene white point from camera metadata
    - Kelvin/Duv or xy targets through a configurable gain strategy
    - Pixel-statistics auto white balance
    - Chromatic adaptation between white points
    """

    def __init__(self,
                 strategy: GainStrategy = GainStrategy.FAST_EMPIRICAL_V1,
                 locus: LocusFit = DEFAULT_LOCUS,
                 cat_method: CATMethod = CATMethod.BRADFORD,
                 default_algorithm: WhiteBalanceAlgorithm = WhiteBalanceAlgorithm.GRAY_WORLD,
                 estimator_config: Optional[EstimatorConfig] = None,
                 gain_bounds: Tuple[float, float] = DEFAULT_GAIN_BOUNDS,
                 allow_fallback: bool = True,
                 workers: int = 1):
        """
        Initialize white balance corrector

        Args:
            strategy: Kelvin/Duv to gain conversion law
            locus: Locus fit for every CCT/Duv computation
            cat_method: Cone space for chromatic adaptation
            default_algorithm: Estimator used by auto mode
            estimator_config: Estimator thresholds
            gain_bounds: Clamp bounds for computed gains
            allow_fallback: Let the matrix strategy fall back to the empirical law
            workers: Threads used when applying gains
        """
        self.strategy = strategy
        self.locus = locus
        self.cat_method = cat_method
        self.default_algorithm = default_algorithm
        self.estimator_config = estimator_config or EstimatorConfig(gain_bounds=gain_bounds)
        self.gain_bounds = gain_bounds
        self.allow_fallback = allow_fallback
        self.workers = workers

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> 'WhiteBalanceCorrector':
        """Build from the ``white_balance``, ``estimators`` and ``export`` sections"""
        config = config or {}
        section = config.get('white_balance') or {}
        bounds = section.get('gain_bounds', DEFAULT_GAIN_BOUNDS)
        return cls(
            strategy=GainStrategy(section.get('strategy', GainStrategy.FAST_EMPIRICAL_V1.value)),
            locus=LocusFit(section.get('locus', DEFAULT_LOCUS.value)),
            cat_method=CATMethod(section.get('cat_method', CATMethod.BRADFORD.value)),
            default_algorithm=WhiteBalanceAlgorithm(
                section.get('algorithm', WhiteBalanceAlgorithm.GRAY_WORLD.value)),
            estimator_config=EstimatorConfig.from_config(config),
            gain_bounds=(float(bounds[0]), float(bounds[1])),
            allow_fallback=bool(section.get('allow_fallback', True)),
            workers=int((config.get('export') or {}).get('workers', 1)),
        )

    def analyze(self, image: np.ndarray, channel_order: ChannelOrder,
                algorithm: Optional[WhiteBalanceAlgorithm] = None) -> WhiteBalanceAnalysis:
        """
        Analyze the color cast of a linear image

        Args:
            image: (H, W, 3) linear image
            channel_order: Layout of ``image``
            algorithm: Estimator to use (default from construction)

        Returns:
            WhiteBalanceAnalysis with the estimated gains
        """
        algorithm = algorithm or self.default_algorithm
        gains = estimate_gains(image, channel_order, algorithm, self.estimator_config)
        means = channel_means(image, channel_order)
        temperature = estimate_from_linear_rgb(means, self.locus)

        return WhiteBalanceAnalysis(
            algorithm=algorithm,
            gains=gains,
            estimated_temperature=temperature,
            channel_means=means,
            description=describe_temperature(temperature.cct_kelvin),
        )

    def _target_kelvin_duv(self, request: CorrectionRequest) -> Tuple[float, float]:
        if request.xy is not None:
            target = estimate_color_temperature(request.xy, self.locus)
            return target.cct_kelvin, target.duv
        kelvin = request.kelvin if request.kelvin is not None else REFERENCE_KELVIN
        return kelvin, request.duv or 0.0

    def _target_gains(self, request: CorrectionRequest,
                      profile: Optional[CameraColorProfile]) -> WhiteBalanceGains:
        strategy = request.strategy or self.strategy
        kelvin, duv = self._target_kelvin_duv(request)
        return gains_from_kelvin_duv(kelvin, duv, strategy, profile, self.locus,
                                     self.gain_bounds, self.allow_fallback)

    def decoder_gains(self, request: CorrectionRequest,
                      profile: Optional[CameraColorProfile]) -> Optional[WhiteBalanceGains]:
        """
        Camera-space multipliers for a target under the matrix strategy

        Matrix gains neutralize the target illuminant in camera RGB, so they
        belong in the decoder as its white balance, not on its sRGB output.

        Returns:
            Gains for the decoder, or None when the request has no target,
            the strategy is empirical, or a singular matrix fell back to
            ``fast-empirical-v1`` (those gains scale the decoded image)

        Raises:
            MissingColorProfileError: Without a profile
            SingularMatrixError: If the matrix is singular and fallback is disabled
        """
        strategy = request.strategy or self.strategy
        if not request.has_target or strategy is not GainStrategy.MATRIX:
            return None
        kelvin, duv = self._target_kelvin_duv(request)
        try:
            return matrix_gains(kelvin, duv, profile, self.locus, self.gain_bounds)
        except SingularMatrixError as e:
            if not self.allow_fallback:
                raise
            logger.warning(f"Matrix gains failed ({e}), scaling the decoded image with "
                           f"{GainStrategy.FAST_EMPIRICAL_V1.value} gains instead")
            return None

    def gains_for_request(self, request: CorrectionRequest,
                          profile: Optional[CameraColorProfile] = None,
                          image: Optional[np.ndarray] = None,
                          channel_order: ChannelOrder = ChannelOrder.RGB) -> WhiteBalanceGains:
        """
        Resolve a correction request to gains

        Args:
            request: What to correct toward
            profile: Camera color profile (camera mode, matrix strategy)
            image: Linear image (auto mode)
            channel_order: Layout of ``image``

        Returns:
            Gains to apply

        Raises:
            MissingColorProfileError: If camera mode or the matrix strategy lacks a profile
            InvalidImageError: If auto mode has no image
        """
        if request.has_target:
            gains = self._target_gains(request, profile)
        elif request.mode is WhiteBalanceMode.CAMERA:
            if profile is None:
                raise MissingColorProfileError("Camera white balance needs a camera color profile")
            multipliers = np.where(profile.white_balance_multipliers > 0,
                                   profile.white_balance_multipliers, 1.0)
            gains = WhiteBalanceGains.from_multipliers(multipliers)
        elif request.mode is WhiteBalanceMode.USER:
            gains = WhiteBalanceGains.from_multipliers(request.user_multipliers)
        elif request.mode is WhiteBalanceMode.AUTO:
            if image is None:
                raise InvalidImageError("Auto white balance needs an image")
            gains = estimate_gains(image, channel_order, request.algorithm or self.default_algorithm,
                                   self.estimator_config)
        else:
            gains = WhiteBalanceGains.unity()

        logger.debug(f"Resolved {request.mode.value} request to gains {gains.as_tuple()}")
        return gains

    def correct(self, image: np.ndarray, gains: WhiteBalanceGains,
                channel_order: ChannelOrder, in_place: bool = False) -> np.ndarray:
        """Apply gains to a linear image (no clipping)"""
        return apply_gains(image, gains, channel_order, in_place=in_place, workers=self.workers)

    def report(self, profile: Optional[CameraColorProfile],
               target_kelvin: Optional[float] = None,
               target_duv: float = 0.0,
               target_xy: Optional[ChromaticityXY] = None) -> WhitePointReport:
        """
        Scene white point from metadata compared against a target (D65 by default)

        Raises:
            MissingColorProfileError: Without a profile
        """
        scene = recover_scene_white_point(profile, self.locus)

        if target_xy is None:
            target_xy = D65_XY if target_kelvin is None else \
                kelvin_duv_to_xy(target_kelvin, target_duv, self.locus)
        target = estimate_color_temperature(target_xy, self.locus)

        debug = {
            'multipliers': profile.white_balance_multipliers.tolist(),
            'camera_to_xyz': profile.camera_to_xyz.tolist(),
            'scene_rgb': list(scene.scene_rgb),
        }
        return WhitePointReport(scene=scene, target_xy=target_xy, target=target, debug=debug)

    def adaptation(self, mode: AdaptationMode,
                   profile: Optional[CameraColorProfile] = None,
                   kelvin: float = REFERENCE_KELVIN,
                   duv: float = 0.0,
                   xy: Optional[ChromaticityXY] = None) -> ChromaticAdaptation:
        """
        Chromatic adaptation for white-point correction

        camera/auto adapt the recovered scene white to D65; kelvin/xy adapt
        D65 to the requested white.
        """
        if mode in (AdaptationMode.CAMERA, AdaptationMode.AUTO):
            source = recover_scene_white_point(profile, self.locus).xy
            target = D65_XY
        elif mode is AdaptationMode.KELVIN:
            source = D65_XY
            target = kelvin_duv_to_xy(kelvin, duv, self.locus)
        else:
            if xy is None:
                raise ValueError("xy adaptation needs a target chromaticity")
            source = D65_XY
            target = xy

        adaptation = build_adaptation(source, target, self.cat_method)
        logger.debug(f"Adaptation {source.as_tuple()} -> {target.as_tuple()} ({self.cat_method.value})")
        return adaptation
