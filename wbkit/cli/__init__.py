"""
Command line commands for wbkit
"""

from .wb_commands import WB_COMMANDS, balance, inspect, whitepoint

__all__ = [
    'WB_COMMANDS',
    'balance',
    'inspect',
    'whitepoint',
]
