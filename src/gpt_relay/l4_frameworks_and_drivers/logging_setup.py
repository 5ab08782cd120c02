"""Logging setup for the relay loggers."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logging(level: str = 'INFO', log_file: Path | None = None) -> None:
    """Send ``relay.*`` logs to stderr, and to *log_file* when given. Safe to call twice."""
    root = logging.getLogger('relay')
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        root.info('Logging to %s', log_file)
