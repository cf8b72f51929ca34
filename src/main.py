"""
ASCII video player.

Decodes a video file, converts every frame to a grid of characters and plays
the result in the terminal at 30 or 60 frames per second.

Usage:
    python src/main.py clip.mp4 --config config/config.yaml --fps 30

Arguments:
    video: Path to the video file (overrides source.path)
    --config: Path to configuration file
    --fps: Playback rate, 30 or 60
    --width: Output width in characters (default: terminal width)
    --scratch / --no-scratch: Debug bitmap path, or disable it
    --compensate-drift: Subtract rendering time from the frame sleep
    --stream: Play while decoding instead of decoding everything first
"""

import os
import sys
import argparse
import logging
import yaml
from typing import Any, Dict, List, Optional, Tuple

from models.config import Config
from models.frame_rate import FrameRate
from observation import FrameSourceError, create_source_from_config, extract_frames
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from pipeline.terminal import terminal_columns
from render.convert import ConversionAlgorithm, GlyphGridError
from render.renderer import AsciiRenderer


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def apply_cli_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Apply command-line arguments on top of the loaded configuration."""
    source = config.setdefault("source", {}) or {}
    render = config.setdefault("render", {}) or {}
    playback = config.setdefault("playback", {}) or {}
    config["source"], config["render"], config["playback"] = source, render, playback

    if args.video:
        source["path"] = args.video
    if args.fps is not None:
        playback["fps"] = args.fps
    if args.width is not None:
        render["width"] = args.width
    if args.scratch is not None:
        playback["scratch_path"] = args.scratch
    if args.no_scratch:
        playback["scratch_path"] = None
    if args.compensate_drift:
        playback["compensate_drift"] = True
    if args.stream:
        playback["streaming"] = True
    return config


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['source', 'render', 'playback', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate source settings
    source = config.get('source') or {}
    path = source.get('path')
    if not isinstance(path, str) or not path:
        return False, "source.path must be a non-empty string (or pass the video path)"
    for flag in ('keep_trailing_frames', 'quiet_decoder_logs'):
        if flag in source and not isinstance(source[flag], bool):
            return False, f"source.{flag} must be true or false"

    # Validate render settings
    render = config.get('render') or {}
    width = render.get('width')
    if width is not None and (not isinstance(width, int) or isinstance(width, bool) or width <= 0):
        return False, "render.width must be a positive integer or null"
    font_size = render.get('font_size', 10)
    if not isinstance(font_size, int) or isinstance(font_size, bool) or font_size <= 0:
        return False, "render.font_size must be a positive integer"
    for key in ('brightness_offset', 'brightness_scale', 'edge_brightness_scale'):
        if key in render and (not isinstance(render[key], (int, float)) or isinstance(render[key], bool)):
            return False, f"render.{key} must be a number"
    if 'invert' in render and not isinstance(render['invert'], bool):
        return False, "render.invert must be true or false"
    try:
        ConversionAlgorithm.from_value(render.get('algorithm', 'edge_augmented'))
    except ValueError as e:
        return False, f"render.algorithm: {e}"

    # Validate playback settings
    playback = config.get('playback') or {}
    try:
        FrameRate.from_value(playback.get('fps', 30))
    except ValueError:
        return False, "playback.fps must be 30 or 60"
    scratch = playback.get('scratch_path')
    if scratch is not None and not isinstance(scratch, str):
        return False, "playback.scratch_path must be a string or null"
    interval = playback.get('stats_log_interval', 10.0)
    if not isinstance(interval, (int, float)) or interval <= 0:
        return False, "playback.stats_log_interval must be a positive number"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"
    if not isinstance(config['log_path'], str) or not config['log_path']:
        return False, "log_path must be a non-empty string"

    return True, None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Play a video as ASCII art in the terminal')
    parser.add_argument('video', nargs='?', default=None,
                        help='Path to the video file (overrides source.path)')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--fps', type=int, choices=[30, 60], default=None,
                        help='Playback frame rate')
    parser.add_argument('--width', type=int, default=None,
                        help='Output width in characters (default: terminal width)')
    parser.add_argument('--scratch', type=str, default=None,
                        help='Write a colored bitmap of each frame to this path')
    parser.add_argument('--no-scratch', action='store_true',
                        help='Do not write the debug bitmap')
    parser.add_argument('--compensate-drift', action='store_true',
                        help='Subtract rendering time from the sleep between frames')
    parser.add_argument('--stream', action='store_true',
                        help='Play while decoding instead of decoding the whole file first')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    args = parse_args(argv)

    # Load and validate configuration
    config = apply_cli_overrides(load_config(args.config), args)
    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    app_config = Config.from_dict(config)
    frame_rate = app_config.playback.fps
    path = app_config.source.path

    logging.info(f"Starting ASCII player: video={path}, fps={frame_rate.fps}")

    try:
        width = app_config.render.width or terminal_columns()
        renderer = AsciiRenderer.from_config(app_config.render, width=width)
        engine = create_engine_from_config(config, renderer)

        if app_config.playback.streaming:
            with create_source_from_config(config['source'], fps=frame_rate) as source:
                engine.run(source)
        else:
            frames = extract_frames(
                path,
                frame_rate,
                keep_trailing_frames=app_config.source.keep_trailing_frames,
                quiet_decoder_logs=app_config.source.quiet_decoder_logs,
            )
            engine.run(frames)
    except FrameSourceError as e:
        logging.error(f"Frame extraction failed: {e}")
        return 1
    except GlyphGridError as e:
        logging.error(f"Rendering produced an invalid glyph grid: {e}")
        return 1
    except OSError as e:
        logging.error(f"I/O error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.info("Playback interrupted by user")
        return 130

    logging.info("Playback finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
