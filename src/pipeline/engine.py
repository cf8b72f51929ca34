"""
Playback engine.

Renders a sequence of frames to the terminal, one every frame period:

    for each frame: render -> clear + write rows -> (scratch bitmap) -> sleep

By default the full period is slept after every frame, so playback runs
slower than real time by the accumulated rendering cost. With
`compensate_drift` the time spent since the previous frame is subtracted
from the sleep instead.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from models.frame import FrameData
from models.frame_rate import FrameRate
from render.renderer import AsciiRenderer
from .terminal import TerminalWriter


class PlaybackState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    DONE = "done"


@dataclass
class EngineConfig:
    """
    Configuration for the playback engine.
    
    Attributes:
        frame_rate: Target rate; its period is the sleep between frames.
        scratch_path: Where a colored bitmap of every rendered frame is
            written. None disables it.
        compensate_drift: Subtract per-frame processing time from the sleep.
        stats_log_interval: Seconds between playback status log messages.
    """
    frame_rate: FrameRate = FrameRate.FPS_30
    scratch_path: Optional[str] = None
    compensate_drift: bool = False
    stats_log_interval: float = 10.0


@dataclass
class PlaybackStats:
    """Runtime statistics for one playback run."""
    frame_count: int = 0
    sleep_count: int = 0
    slept: float = 0.0
    processing_time: float = 0.0
    start_time: float = field(default_factory=time.monotonic)
    last_stats_log_time: float = field(default_factory=time.monotonic)


class PlaybackEngine:
    """
    Plays frames in order at the configured frame rate.

    Rendering errors are not caught: a failure on one frame stops playback
    and propagates to the caller.
    
    Example:
        renderer = AsciiRenderer.from_config(RenderConfig(), width=120)
        engine = PlaybackEngine(renderer, TerminalWriter(), EngineConfig())
        engine.run(extract_frames("clip.mp4"))
    """

    def __init__(
        self,
        renderer: AsciiRenderer,
        writer: Optional[TerminalWriter] = None,
        config: Optional[EngineConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.renderer = renderer
        self.writer = writer or TerminalWriter()
        self.config = config or EngineConfig()
        self._sleep = sleep
        self._clock = clock
        self._state = PlaybackState.IDLE
        self._running = False
        self._last_tick = 0.0
        self.stats = PlaybackStats()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def period(self) -> float:
        return self.config.frame_rate.period

    def run(self, frames: Iterable[FrameData]) -> PlaybackStats:
        """
        Render every frame of `frames` in order, then return run statistics.
        """
        self._running = True
        now = self._clock()
        self.stats = PlaybackStats(start_time=now, last_stats_log_time=now)
        self._last_tick = now
        self._state = PlaybackState.PLAYING
        logging.info(
            f"Playback started: fps={self.config.frame_rate.fps}, "
            f"compensate_drift={self.config.compensate_drift}"
        )

        try:
            for frame_data in frames:
                if not self._running:
                    break
                self._play_frame(frame_data)
        finally:
            self._state = PlaybackState.DONE
            self._running = False
            logging.info(
                f"Playback stopped: frames={self.stats.frame_count}, "
                f"slept={self.stats.slept:.2f}s, processing={self.stats.processing_time:.2f}s"
            )
        return self.stats

    def stop(self) -> None:
        """Signal playback to stop after the current frame."""
        self._running = False

    def sleep_duration(self, elapsed: float) -> float:
        """Time to sleep after a frame whose processing took `elapsed` seconds."""
        if self.config.compensate_drift:
            return max(0.0, self.period - elapsed)
        return self.period

    def _play_frame(self, frame_data: FrameData) -> None:
        rows = self.renderer.render(frame_data)
        self.writer.write_grid(rows)

        if self.config.scratch_path:
            self.renderer.render_bitmap(rows, frame_data).save(self.config.scratch_path)

        self.stats.frame_count += 1
        elapsed = self._clock() - self._last_tick
        self.stats.processing_time += elapsed
        logging.debug(
            f"Frame {frame_data.frame_index} rendered: "
            f"{len(rows)}x{len(rows[0]) if rows else 0} glyphs in {elapsed * 1000:.1f}ms"
        )

        duration = self.sleep_duration(elapsed)
        if duration > 0:
            self._sleep(duration)
            self.stats.sleep_count += 1
            self.stats.slept += duration
        self._last_tick = self._clock()

        self._handle_periodic_tasks()

    def _handle_periodic_tasks(self) -> None:
        """Log playback statistics periodically."""
        now = self._clock()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            wall = now - self.stats.start_time
            actual_fps = self.stats.frame_count / wall if wall > 0 else 0.0
            logging.info(
                f"Playback stats: frames={self.stats.frame_count}, "
                f"actual_fps={actual_fps:.1f}, target_fps={self.config.frame_rate.fps}"
            )
            self.stats.last_stats_log_time = now


def create_engine_from_config(
    config: dict,
    renderer: AsciiRenderer,
    writer: Optional[TerminalWriter] = None,
) -> PlaybackEngine:
    """
    Factory function to create a PlaybackEngine from the full config dict.

    Args:
        config: Full application config dict.
        renderer: Renderer used for every frame.
        writer: Terminal writer, stdout by default.
    """
    playback_cfg = config.get("playback", {}) or {}
    engine_config = EngineConfig(
        frame_rate=FrameRate.from_value(playback_cfg.get("fps", 30)),
        scratch_path=playback_cfg.get("scratch_path"),
        compensate_drift=playback_cfg.get("compensate_drift", False),
        stats_log_interval=playback_cfg.get("stats_log_interval", 10.0),
    )
    return PlaybackEngine(renderer, writer, engine_config)
