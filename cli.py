#!/usr/bin/env python3
"""
wbkit Command Line Interface

Main CLI entry point for the wbkit white balance engine.
Provides commands to inspect scene white points and to correct RAW files
with gains or chromatic adaptation.
"""

import click
import logging
from pathlib import Path
from typing import Optional

from wbkit import __version__
from wbkit.cli import WB_COMMANDS
from wbkit.config import get_config_value, load_config
from wbkit.utils.logging import setup_console_logging

logger = logging.getLogger(__name__)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    wbkit - White balance and color temperature tools for RAW files

    Reports the scene illuminant recorded by the camera, converts between
    Kelvin/Duv and channel gains, and corrects images with gains or a
    chromatic adaptation transform.
    """
    if ctx.obj is None:
        ctx.obj = {}

    loaded = load_config(Path(config)) if config else load_config()

    level = get_config_value(loaded, 'logging.level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    setup_console_logging(level=level,
                          color=get_config_value(loaded, 'logging.color', True),
                          fmt=get_config_value(loaded, 'logging.format',
                                               '%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

    ctx.obj['config'] = loaded
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


for command in WB_COMMANDS:
    main.add_command(command)


@main.command()
def version():
    """Show wbkit version information."""
    click.echo(f"wbkit v{__version__}")
    click.echo("White balance and color temperature engine")


if __name__ == '__main__':
    main()
