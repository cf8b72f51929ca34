"""
Glyph rendering: turns converted frames into character grids.
"""

from .font import GlyphFont, load_alphabet
from .convert import (
    ConversionAlgorithm,
    GlyphGridError,
    check_rectangular,
    image_to_char_rows,
    naive_grayscale,
)
from .bitmap import char_rows_to_color_bitmap
from .renderer import AsciiRenderer

__all__ = [
    "GlyphFont",
    "load_alphabet",
    "ConversionAlgorithm",
    "GlyphGridError",
    "check_rectangular",
    "image_to_char_rows",
    "naive_grayscale",
    "char_rows_to_color_bitmap",
    "AsciiRenderer",
]
