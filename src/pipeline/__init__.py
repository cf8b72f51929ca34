"""
Playback pipeline: paces rendered frames to the terminal.
"""

from .engine import (
    EngineConfig,
    PlaybackEngine,
    PlaybackState,
    PlaybackStats,
    create_engine_from_config,
)
from .terminal import TerminalWriter, terminal_columns

__all__ = [
    "EngineConfig",
    "PlaybackEngine",
    "PlaybackState",
    "PlaybackStats",
    "create_engine_from_config",
    "TerminalWriter",
    "terminal_columns",
]
