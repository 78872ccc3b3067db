"""
White balance CLI commands for wbkit

Provides the inspect, balance and whitepoint commands.
"""

import copy
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
from tqdm import tqdm

from ..color.adaptation import CATMethod
from ..color.gains import GainStrategy
from ..color.models import ChannelOrder, ChromaticityXY, LocusFit, WhiteBalanceGains
from ..color.scene import estimate_from_linear_rgb
from ..color.temperature import describe_temperature, tint_to_duv
from ..config import update_config_value
from ..exceptions import MissingColorProfileError, WhiteBalanceError
from ..io.export import write_jpeg, write_linear_tiff, write_notes
from ..io.raw import decode_linear, load_camera_profile, open_raw
from ..processing.application import channel_means
from ..processing.estimators import WhiteBalanceAlgorithm
from ..processing.white_balance import (AdaptationMode, CorrectionRequest, WhiteBalanceCorrector,
                                        WhiteBalanceMode, WhitePointReport, parse_wb_mode)
from ..utils.logging import BatchStats, get_logger

logger = logging.getLogger(__name__)
file_logger = get_logger(__name__)

STRATEGY_CHOICES = [s.value for s in GainStrategy]
LOCUS_CHOICES = [fit.value for fit in LocusFit]
CAT_CHOICES = [c.value for c in CATMethod]
ALGORITHM_CHOICES = [a.value for a in WhiteBalanceAlgorithm]


def _corrector(ctx, strategy: Optional[str] = None, locus: Optional[str] = None,
               cat: Optional[str] = None, allow_fallback: Optional[bool] = None) -> WhiteBalanceCorrector:
    """Corrector from the loaded config with command-line overrides"""
    config = copy.deepcopy(ctx.obj.get('config', {}))
    overrides = {
        'white_balance.strategy': strategy,
        'white_balance.locus': locus,
        'white_balance.cat_method': cat,
        'white_balance.allow_fallback': allow_fallback,
    }
    for key_path, value in overrides.items():
        if value is not None:
            update_config_value(config, key_path, value)
    return WhiteBalanceCorrector.from_config(config)


def _fail(message: str):
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def _parse_xy(value: str) -> ChromaticityXY:
    try:
        x, y = (float(part) for part in value.split(','))
    except ValueError:
        raise click.BadParameter(f"expected 'x,y', got '{value}'")
    return ChromaticityXY(x, y)


def _format_report(path: Path, report: WhitePointReport, verbose: bool) -> str:
    scene, target = report.scene, report.target
    lines = [f"📷 {path}"]
    if verbose and report.debug:
        lines.append(f"   multipliers:   {report.debug['multipliers']}")
        lines.append(f"   scene_rgb:     {[round(v, 6) for v in report.debug['scene_rgb']]}")
    lines.extend([
        "   Scene illuminant:",
        f"     xy:     ({scene.xy.x:.4f}, {scene.xy.y:.4f})",
        f"     CCT:    {scene.temperature.cct_kelvin:.0f}K",
        f"     Duv:    {scene.temperature.duv:+.4f}",
        f"     Temp/Tint: {scene.temperature.cct_kelvin:.0f}, {report.scene_tint:+.1f}",
        "   Target:",
        f"     xy:     ({report.target_xy.x:.4f}, {report.target_xy.y:.4f})",
        f"     CCT:    {target.cct_kelvin:.0f}K",
        f"     Duv:    {target.duv:+.4f}",
        f"     Temp/Tint: {target.cct_kelvin:.0f}, {report.target_tint:+.1f}",
        f"   Tint delta: {report.delta_tint:+.1f}",
    ])
    if scene.fallback:
        lines.append(f"   ⚠️  Scene white point fell back to {scene.fallback}")
    if verbose:
        lines.append(f"   {report.description}")
    return "\n".join(lines)


def _inspect_file(path: Path, corrector: WhiteBalanceCorrector) -> WhitePointReport:
    with open_raw(path) as raw:
        profile = load_camera_profile(raw, camera_model=path.name)
    return corrector.report(profile)


@click.command()
@click.argument('raw_files', nargs=-1, required=True, type=click.Path(dir_okay=False))
@click.option('--json', 'as_json', is_flag=True, help='Output the report as JSON')
@click.option('--locus', type=click.Choice(LOCUS_CHOICES), help='Locus fit for CCT/Duv')
@click.option('--workers', '-w', type=int, default=4, show_default=True,
              help='Files inspected in parallel')
@click.pass_context
def inspect(ctx, raw_files: Tuple[str, ...], as_json: bool, locus: Optional[str], workers: int):
    """
    Report the scene white point of RAW files.

    Recovers the scene illuminant from the as-shot multipliers and camera
    matrix and compares it with D65.
    """
    verbose = ctx.obj.get('verbose', False)
    quiet = ctx.obj.get('quiet', False)
    corrector = _corrector(ctx, locus=locus)
    paths = [Path(p) for p in raw_files]

    stats = BatchStats()
    stats.set_total(len(paths))
    reports: Dict[Path, WhitePointReport] = {}

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = {executor.submit(_inspect_file, path, corrector): path for path in paths}
        for future in tqdm(as_completed(futures), total=len(futures), desc="Inspecting",
                           disable=quiet or len(paths) == 1):
            path = futures[future]
            log = file_logger.bind(file=str(path))
            try:
                report = future.result()
            except WhiteBalanceError as e:
                log.error("Failed to inspect", error=str(e))
                stats.add_error(str(path), str(e))
                continue
            if report.scene.fallback:
                log.warning("Scene white point fell back", fallback=report.scene.fallback)
            log.debug("Recovered scene white point",
                      kelvin=round(report.scene.temperature.cct_kelvin, 1),
                      duv=round(report.scene.temperature.duv, 6))
            reports[path] = report
            stats.add_result(report.scene.fallback)

    if as_json:
        entries = [{'file': str(path), **reports[path].to_dict(include_debug=verbose)}
                   for path in paths if path in reports]
        click.echo(json.dumps(entries[0] if len(paths) == 1 and entries else entries, indent=2))
    elif not quiet:
        for path in paths:
            if path in reports:
                click.echo(_format_report(path, reports[path], verbose))
        if len(paths) > 1:
            click.echo(stats.format_summary())

    if stats.errors:
        for error in stats.errors:
            click.echo(f"❌ {error['file']}: {error['error']}", err=True)
        sys.exit(1)


def _notes_fields(raw_path: Path, out: Path, mode: WhiteBalanceMode,
                  user_multipliers, gains, kelvin, duv, strategy: str,
                  quality: int, before, after) -> Dict:
    fields = {
        'input': str(raw_path),
        'wb_mode': mode.value,
    }
    if user_multipliers:
        fields['user_mul'] = list(user_multipliers)
    if gains is not None:
        fields['gains'] = list(gains.as_tuple())
        fields['strategy'] = strategy
    if kelvin is not None or duv is not None:
        fields['kelvin'] = kelvin if kelvin is not None else 'unchanged'
        fields['duv'] = duv or 0.0
    fields['output'] = f"{out} (JPEG quality {quality})"
    fields['mean_before (R,G,B)'] = list(before)
    fields['mean_after (R,G,B)'] = list(after)
    return fields


@click.command()
@click.argument('raw_file', type=click.Path(dir_okay=False))
@click.option('--out', '-o', required=True, type=click.Path(dir_okay=False), help='Output JPEG path')
@click.option('--wb', 'wb_option', default='camera', show_default=True,
              help='camera | auto | none | user:R,G,B,G2')
@click.option('--algorithm', type=click.Choice(ALGORITHM_CHOICES),
              help='Pixel estimator for --wb auto (default: white_balance.algorithm)')
@click.option('--kelvin', type=float, help='Target color temperature')
@click.option('--tint', type=float, help='Target tint (duv x 3000, positive = green)')
@click.option('--duv', type=float, help='Target Duv (positive = green)')
@click.option('--strategy', type=click.Choice(STRATEGY_CHOICES), help='Kelvin/Duv to gain conversion')
@click.option('--no-fallback', is_flag=True, help='Fail instead of falling back when the matrix is singular')
@click.option('--quality', type=click.IntRange(1, 100), help='JPEG quality')
@click.option('--notes', is_flag=True, help='Write <RAW>.wb_notes.txt')
@click.pass_context
def balance(ctx, raw_file: str, out: str, wb_option: str, algorithm: Optional[str],
            kelvin: Optional[float], tint: Optional[float], duv: Optional[float],
            strategy: Optional[str], no_fallback: bool, quality: Optional[int], notes: bool):
    """
    Decode a RAW file with gain-based white balance and save a JPEG.

    The decoder applies the --wb mode (auto runs a pixel estimator on the
    unbalanced decode). A --kelvin/--tint/--duv target is applied on top with
    an empirical strategy, or handed to the decoder as camera multipliers
    with the matrix strategy.
    """
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)
    export_config = config.get('export', {})
    quality = quality or int(export_config.get('jpeg_quality', 95))

    if tint is not None and duv is not None:
        raise click.UsageError("--tint and --duv are mutually exclusive")
    if tint is not None:
        duv = tint_to_duv(tint)
    try:
        mode, user_multipliers = parse_wb_mode(wb_option)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--wb')
    if algorithm is not None and mode is not WhiteBalanceMode.AUTO:
        raise click.UsageError("--algorithm only applies to --wb auto")

    corrector = _corrector(ctx, strategy=strategy, allow_fallback=False if no_fallback else None)
    estimate_pixels = mode is WhiteBalanceMode.AUTO
    target_request = None
    if kelvin is not None or duv is not None:
        if estimate_pixels and corrector.strategy is GainStrategy.MATRIX:
            raise click.UsageError("--wb auto cannot be combined with a matrix-strategy target")
        target_request = CorrectionRequest(mode=mode, kelvin=kelvin, duv=duv,
                                           user_multipliers=user_multipliers)
    raw_path, out_path = Path(raw_file), Path(out)
    applied_strategy = corrector.strategy

    try:
        with open_raw(raw_path) as raw:
            try:
                profile = load_camera_profile(raw, camera_model=raw_path.name)
            except MissingColorProfileError as e:
                logger.warning(f"{e}; metadata-based strategies unavailable")
                profile = None

            decoder_gains = None
            if target_request is not None:
                decoder_gains = corrector.decoder_gains(target_request, profile)
            if decoder_gains is not None:
                # Matrix gains replace the --wb multipliers in camera space
                file_logger.info("Decoding with matrix gains", file=str(raw_path),
                                 gains=decoder_gains.as_tuple(), replaces=mode.value)
                decode_mode, decode_multipliers = WhiteBalanceMode.USER, decoder_gains.as_multipliers()
            elif estimate_pixels:
                decode_mode, decode_multipliers = WhiteBalanceMode.NONE, None
            else:
                decode_mode, decode_multipliers = mode, user_multipliers
            linear = decode_linear(raw, decode_mode, decode_multipliers,
                                   output_bps=int(export_config.get('output_bps', 16)))

        before = channel_means(linear, ChannelOrder.RGB)
        gains = decoder_gains
        if estimate_pixels:
            chosen = WhiteBalanceAlgorithm(algorithm) if algorithm else corrector.default_algorithm
            logger.info(f"Estimating white balance with {chosen.value}")
            request = CorrectionRequest(mode=mode, algorithm=chosen)
            gains = corrector.gains_for_request(request, profile, linear, ChannelOrder.RGB)
            linear = corrector.correct(linear, gains, ChannelOrder.RGB, in_place=True)

        if target_request is not None and decoder_gains is None:
            if applied_strategy is GainStrategy.MATRIX:
                applied_strategy = GainStrategy.FAST_EMPIRICAL_V1
                target_request = CorrectionRequest(mode=mode, kelvin=kelvin, duv=duv,
                                                   user_multipliers=user_multipliers,
                                                   strategy=applied_strategy)
            target_gains = corrector.gains_for_request(target_request, profile)
            linear = corrector.correct(linear, target_gains, ChannelOrder.RGB, in_place=True)
            gains = target_gains if gains is None else WhiteBalanceGains(
                gains.red_gain * target_gains.red_gain,
                gains.green_gain * target_gains.green_gain,
                gains.blue_gain * target_gains.blue_gain)

        after = channel_means(linear, ChannelOrder.RGB)
        write_jpeg(out_path, linear, quality, ChannelOrder.RGB)

        if notes:
            notes_path = raw_path.with_name(raw_path.name + '.wb_notes.txt')
            write_notes(notes_path, _notes_fields(raw_path, out_path, mode, user_multipliers, gains,
                                                  kelvin, duv, applied_strategy.value, quality,
                                                  before, after),
                        title="wbkit balance")
    except (WhiteBalanceError, ValueError) as e:
        _fail(str(e))

    if not quiet:
        estimate = estimate_from_linear_rgb(after, corrector.locus)
        click.echo(f"✅ Saved {out_path}")
        if gains is not None:
            click.echo(f"   Gains (R,G,B): {gains.red_gain:.4f}, {gains.green_gain:.4f}, {gains.blue_gain:.4f}")
        click.echo(f"   Estimated CCT: {estimate.cct_kelvin:.0f}K, Duv: {estimate.duv:+.4f} "
                   f"({describe_temperature(estimate.cct_kelvin)})")


@click.command()
@click.argument('raw_file', type=click.Path(dir_okay=False))
@click.option('--out', '-o', required=True, type=click.Path(dir_okay=False), help='Output JPEG path')
@click.option('--mode', type=click.Choice([m.value for m in AdaptationMode]), default='camera',
              show_default=True, help='Source/target white point selection')
@click.option('--kelvin', type=float, default=6500.0, show_default=True, help='Target temperature (kelvin mode)')
@click.option('--duv', type=float, default=0.0, show_default=True, help='Target Duv (kelvin mode, positive = green)')
@click.option('--xy', 'xy_option', help='Target white point "x,y" (xy mode)')
@click.option('--cat', type=click.Choice(CAT_CHOICES), help='Chromatic adaptation method')
@click.option('--quality', type=click.IntRange(1, 100), help='JPEG quality')
@click.option('--save-linear', is_flag=True, help='Also save a 16-bit linear TIFF')
@click.pass_context
def whitepoint(ctx, raw_file: str, out: str, mode: str, kelvin: float, duv: float,
               xy_option: Optional[str], cat: Optional[str], quality: Optional[int], save_linear: bool):
    """
    Correct a RAW file by chromatic adaptation between white points.

    camera/auto adapt the recovered scene white point to D65; kelvin/xy
    adapt D65 to the requested white point.
    """
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)
    verbose = ctx.obj.get('verbose', False)
    export_config = config.get('export', {})
    quality = quality or int(export_config.get('jpeg_quality', 95))

    adaptation_mode = AdaptationMode(mode)
    xy = _parse_xy(xy_option) if xy_option else None
    if adaptation_mode is AdaptationMode.XY and xy is None:
        raise click.UsageError("--mode xy needs --xy x,y")

    corrector = _corrector(ctx, cat=cat)
    raw_path, out_path = Path(raw_file), Path(out)

    try:
        with open_raw(raw_path) as raw:
            try:
                profile = load_camera_profile(raw, camera_model=raw_path.name)
            except MissingColorProfileError:
                if adaptation_mode in (AdaptationMode.CAMERA, AdaptationMode.AUTO):
                    raise
                profile = None
            linear = decode_linear(raw, None, output_bps=int(export_config.get('output_bps', 16)))

        adaptation = corrector.adaptation(adaptation_mode, profile, kelvin, duv, xy)
        adapted = adaptation.apply_rgb(linear, ChannelOrder.RGB)
        write_jpeg(out_path, adapted, quality, ChannelOrder.RGB)
        if save_linear:
            write_linear_tiff(out_path.with_suffix('.tiff'), adapted, ChannelOrder.RGB)
    except (WhiteBalanceError, ValueError) as e:
        _fail(str(e))

    if not quiet:
        click.echo(f"✅ Saved {out_path}")
        click.echo(f"   Source xy: ({adaptation.source.x:.4f}, {adaptation.source.y:.4f}) -> "
                   f"target xy: ({adaptation.target.x:.4f}, {adaptation.target.y:.4f}) "
                   f"[{adaptation.method.value}]")
        if adaptation.fallback:
            click.echo(f"   ⚠️  Identity adaptation used: {adaptation.fallback}")
        if verbose:
            for row in adaptation.matrix:
                click.echo("   [" + ", ".join(f"{v:+.6f}" for v in row) + "]")


WB_COMMANDS: List[click.Command] = [inspect, balance, whitepoint]
