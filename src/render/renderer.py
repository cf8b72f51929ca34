"""
Frame renderer binding a glyph font to the configured conversion settings.
"""

from __future__ import annotations

from typing import List, Optional

from PIL import Image

from models.config import RenderConfig
from models.frame import FrameData
from .bitmap import char_rows_to_color_bitmap
from .convert import ConversionAlgorithm, check_rectangular, image_to_char_rows, naive_grayscale
from .font import GlyphFont


class AsciiRenderer:
    """
    Renders FrameData to glyph grids.

    Example:
        renderer = AsciiRenderer.from_config(RenderConfig(), width=120)
        rows = renderer.render(frame_data)
    """

    def __init__(self, font: GlyphFont, config: RenderConfig, width: Optional[int] = None):
        self.font = font
        self.config = config
        self.width = width if width is not None else config.width
        self.algorithm = ConversionAlgorithm.from_value(config.algorithm)

    @classmethod
    def from_config(cls, config: RenderConfig, width: Optional[int] = None) -> "AsciiRenderer":
        """Load the font described by `config` and build a renderer."""
        font = GlyphFont.load(
            font_path=config.font_path,
            font_size=config.font_size,
            alphabet_path=config.alphabet_path,
            invert=config.invert,
        )
        return cls(font, config, width=width)

    def render(self, frame_data: FrameData) -> List[List[str]]:
        """Convert a frame to a rectangular glyph grid."""
        rows = image_to_char_rows(
            self.font,
            naive_grayscale(frame_data.frame),
            width=self.width,
            brightness_offset=self.config.brightness_offset / 255.0,
            brightness_scale=self.config.brightness_scale,
            edge_brightness_scale=self.config.edge_brightness_scale,
            algorithm=self.algorithm,
        )
        check_rectangular(rows)
        return rows

    def render_bitmap(self, rows: List[List[str]], frame_data: FrameData) -> Image.Image:
        """Draw `rows` colored from the frame they were rendered from."""
        return char_rows_to_color_bitmap(rows, self.font, frame_data.frame, invert=self.config.invert)
