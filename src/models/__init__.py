"""
Typed models for the ascii player.

Use the adapter classmethods to convert from config dicts and numpy arrays.
"""

from .frame import FrameData, RGB24
from .frame_rate import FrameRate
from .config import (
    Config,
    SourceConfig,
    RenderConfig,
    PlaybackConfig,
)

__all__ = [
    # Frame
    "FrameData",
    "RGB24",
    "FrameRate",
    # Config
    "Config",
    "SourceConfig",
    "RenderConfig",
    "PlaybackConfig",
]
