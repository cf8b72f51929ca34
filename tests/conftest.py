"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


def write_test_video(path, frame_count, rate=60, size=(64, 48), codec="mpeg4", options=None):
    """
    Encode `frame_count` gray frames into an mp4 file with PyAV.

    Each frame is 4 levels brighter than the previous one.
    """
    import av

    width, height = size
    with av.open(str(path), mode="w") as container:
        stream = container.add_stream(codec, rate=rate, options=options or {})
        stream.width = width
        stream.height = height
        stream.pix_fmt = "yuv420p"

        for i in range(frame_count):
            image = np.full((height, width, 3), (i * 4) % 256, dtype=np.uint8)
            frame = av.VideoFrame.from_ndarray(image, format="rgb24")
            frame.pts = i
            for packet in stream.encode(frame):
                container.mux(packet)

        for packet in stream.encode():
            container.mux(packet)

    return str(path)


@pytest.fixture
def video_factory(tmp_path):
    """Return a function creating synthetic video files under tmp_path."""
    def _make(frame_count=60, rate=60, size=(64, 48), name="clip.mp4", codec="mpeg4", options=None):
        return write_test_video(
            tmp_path / name, frame_count, rate=rate, size=size, codec=codec, options=options
        )
    return _make


@pytest.fixture
def reordered_video_factory(video_factory):
    """
    Return a function creating H.264 clips with B-frames.

    Their decoder holds frames back until it is flushed at end of stream.
    """
    import av

    if "libx264" not in av.codecs_available:
        pytest.skip("libx264 encoder not available")

    def _make(frame_count=61, name="reordered.mp4"):
        return video_factory(
            frame_count=frame_count, name=name, codec="libx264", options={"bf": "3"}
        )
    return _make


@pytest.fixture(scope="session")
def glyph_font():
    """Glyph font built from the bundled alphabet and Pillow's default font."""
    from render.font import GlyphFont
    return GlyphFont.load()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    
    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
source:
  path: null
  keep_trailing_frames: true
  quiet_decoder_logs: true

render:
  width: null
  font_size: 10
  invert: false
  brightness_offset: 0.0
  brightness_scale: 0.25
  edge_brightness_scale: 1.0
  algorithm: "edge_augmented"

playback:
  fps: 30
  scratch_path: "/tmp/1.png"
  compensate_drift: false

log_path: "logs/test.log"
log_level: "INFO"
""")
    
    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "path": "clip.mp4",
            "keep_trailing_frames": True,
            "quiet_decoder_logs": True,
        },
        "render": {
            "width": 80,
            "font_size": 10,
            "invert": False,
            "brightness_offset": 0.0,
            "brightness_scale": 0.25,
            "edge_brightness_scale": 1.0,
            "algorithm": "edge_augmented",
        },
        "playback": {
            "fps": 30,
            "scratch_path": None,
            "compensate_drift": False,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
