"""
Logging utilities for wbkit
Provides structured logging and batch statistics
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def bind(self, **kwargs) -> 'StructuredLogger':
        """New logger carrying additional default metadata"""
        return StructuredLogger(self.logger.name, {**self.metadata, **kwargs})

    def _format_message(self, message: str, **kwargs) -> str:
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str)}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


def get_logger(name: str, **metadata) -> StructuredLogger:
    return StructuredLogger(name, metadata)


class BatchStats:
    """Tracks results of a batch of inspected or corrected files"""

    def __init__(self):
        self.start_time = datetime.now()
        self.total_files = 0
        self.processed_files = 0
        self.fallbacks: Dict[str, int] = {}
        self.errors: List[Dict[str, Any]] = []

    def set_total(self, total: int):
        self.total_files = total

    def add_result(self, fallback: Optional[str] = None):
        """
        Record a successfully processed file

        Args:
            fallback: Name of the fallback the engine used, if any
        """
        self.processed_files += 1
        if fallback:
            self.fallbacks[fallback] = self.fallbacks.get(fallback, 0) + 1

    def add_error(self, file_path: str, error: str):
        self.errors.append({
            'file': file_path,
            'error': error,
            'time': datetime.now()
        })

    def get_elapsed_time(self) -> float:
        return (datetime.now() - self.start_time).total_seconds()

    def get_summary(self) -> Dict[str, Any]:
        elapsed = self.get_elapsed_time()
        return {
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'fallbacks': dict(self.fallbacks),
            'errors': len(self.errors),
            'elapsed_time': elapsed,
            'files_per_second': self.processed_files / elapsed if elapsed > 0 else 0
        }

    def format_summary(self) -> str:
        """Multi-line human-readable summary"""
        summary = self.get_summary()
        lines = [
            "=" * 60,
            "WHITE BALANCE SUMMARY",
            "=" * 60,
            f"Total files:      {summary['total_files']}",
            f"Processed:        {summary['processed_files']}",
            f"Errors:           {summary['errors']}",
            f"Elapsed time:     {summary['elapsed_time']:.1f}s",
        ]
        if summary['fallbacks']:
            lines.append("Fallbacks:")
            for name, count in sorted(summary['fallbacks'].items()):
                lines.append(f"  - {name}: {count}")
        for error in self.errors[:10]:  # Show first 10 errors
            lines.append(f"  ! {error['file']}: {error['error']}")
        if len(self.errors) > 10:
            lines.append(f"  ... and {len(self.errors) - 10} more errors")
        lines.append("=" * 60)
        return "\n".join(lines)


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level name
        color: Whether to use colored output
        fmt: Log record format
    """
    console_handler = logging.StreamHandler(sys.stderr)

    if color and sys.stderr.isatty():
        # colorlog ships in the "color" extra
        try:
            import colorlog
            formatter = colorlog.ColoredFormatter(
                '%(log_color)s' + fmt.replace('%(message)s', '%(reset)s%(message)s'),
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            )
        except ImportError:
            formatter = logging.Formatter(fmt)
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        if getattr(handler, '_wbkit_console', False):
            root_logger.removeHandler(handler)
    console_handler._wbkit_console = True
    root_logger.addHandler(console_handler)
