"""
Observation layer for frame sources.

This layer abstracts where frames come from (a decoded video file, an
in-memory list) from the playback pipeline. Each source implements the
ObservationSource interface and returns FrameData objects.
"""

from typing import Any, Dict, Optional

from models.frame_rate import FrameRate
from .base import ObservationSource, ObservationConfig
from .errors import (
    FrameSourceError,
    DecoderInitError,
    ContainerOpenError,
    NoVideoStreamError,
    UnsupportedCodecError,
    DecodeError,
    ScalerError,
    FrameBufferError,
)
from .pyav_source import PyAVSource, PyAVSourceConfig, extract_frames, decoder_log_level


def create_source_from_config(
    source_cfg: Dict[str, Any],
    fps: FrameRate = FrameRate.FPS_30,
    source_id: Optional[str] = None,
) -> ObservationSource:
    """
    Factory: build an observation source from the `source` config section.

    Args:
        source_cfg: Source configuration dict (from config.yaml).
        fps: Playback rate selecting the sampling policy.
        source_id: Identifier for the source. Defaults to the file name.
    """
    config = PyAVSourceConfig.from_source_config(source_cfg, fps=fps, source_id=source_id)
    if not config.path:
        raise ValueError("source.path is required")
    return PyAVSource(config)


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "PyAVSource",
    "PyAVSourceConfig",
    "extract_frames",
    "decoder_log_level",
    "create_source_from_config",
    "FrameSourceError",
    "DecoderInitError",
    "ContainerOpenError",
    "NoVideoStreamError",
    "UnsupportedCodecError",
    "DecodeError",
    "ScalerError",
    "FrameBufferError",
]
