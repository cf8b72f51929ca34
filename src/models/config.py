"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .frame_rate import FrameRate


@dataclass
class SourceConfig:
    """Video source configuration."""
    path: Optional[str] = None
    keep_trailing_frames: bool = True
    quiet_decoder_logs: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            path=d.get("path"),
            keep_trailing_frames=d.get("keep_trailing_frames", True),
            quiet_decoder_logs=d.get("quiet_decoder_logs", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "keep_trailing_frames": self.keep_trailing_frames,
            "quiet_decoder_logs": self.quiet_decoder_logs,
        }


@dataclass
class RenderConfig:
    """
    Glyph conversion configuration.

    `brightness_offset` is in 0-255 pixel units; the renderer scales it to
    the [0, 1] cell brightness.
    """
    width: Optional[int] = None
    font_path: Optional[str] = None
    font_size: int = 10
    alphabet_path: Optional[str] = None
    invert: bool = False
    brightness_offset: float = 0.0
    brightness_scale: float = 0.25
    edge_brightness_scale: float = 1.0
    algorithm: str = "edge_augmented"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RenderConfig":
        return cls(
            width=d.get("width"),
            font_path=d.get("font_path"),
            font_size=d.get("font_size", 10),
            alphabet_path=d.get("alphabet_path"),
            invert=d.get("invert", False),
            brightness_offset=d.get("brightness_offset", 0.0),
            brightness_scale=d.get("brightness_scale", 0.25),
            edge_brightness_scale=d.get("edge_brightness_scale", 1.0),
            algorithm=d.get("algorithm", "edge_augmented"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "font_path": self.font_path,
            "font_size": self.font_size,
            "alphabet_path": self.alphabet_path,
            "invert": self.invert,
            "brightness_offset": self.brightness_offset,
            "brightness_scale": self.brightness_scale,
            "edge_brightness_scale": self.edge_brightness_scale,
            "algorithm": self.algorithm,
        }


@dataclass
class PlaybackConfig:
    """Playback timing configuration."""
    fps: FrameRate = FrameRate.FPS_30
    scratch_path: Optional[str] = "/tmp/1.png"
    compensate_drift: bool = False
    streaming: bool = False
    stats_log_interval: float = 10.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PlaybackConfig":
        return cls(
            fps=FrameRate.from_value(d.get("fps", 30)),
            scratch_path=d.get("scratch_path", "/tmp/1.png"),
            compensate_drift=d.get("compensate_drift", False),
            streaming=d.get("streaming", False),
            stats_log_interval=d.get("stats_log_interval", 10.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fps": self.fps.value,
            "scratch_path": self.scratch_path,
            "compensate_drift": self.compensate_drift,
            "streaming": self.streaming,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class Config:
    """
    Complete application configuration.
    
    This is a typed representation of the YAML config structure.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    log_path: str = "logs/ascii_player.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source") or {}),
            render=RenderConfig.from_dict(d.get("render") or {}),
            playback=PlaybackConfig.from_dict(d.get("playback") or {}),
            log_path=d.get("log_path", "logs/ascii_player.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "source": self.source.to_dict(),
            "render": self.render.to_dict(),
            "playback": self.playback.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
