"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
import sys


def setup_logging(log_path: str, log_level: str, console: bool = True) -> None:
    """
    Configure root logging to a file and, optionally, to stderr.

    Stdout is left alone: it carries the rendered frames.
    """
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    handlers: list = [logging.FileHandler(log_path)]
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
