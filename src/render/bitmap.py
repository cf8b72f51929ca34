"""
Colored bitmap of a glyph grid.

Debug aid: draws each glyph with the mean color of the frame region it
stands for, so a rendering can be compared with its source frame.
"""

from __future__ import annotations

from typing import Optional, Sequence

import cv2
import numpy as np
from PIL import Image

from .font import GlyphFont


def char_rows_to_color_bitmap(
    rows: Sequence[Sequence[str]],
    font: GlyphFont,
    frame: np.ndarray,
    invert: Optional[bool] = None,
) -> Image.Image:
    """
    Draw a glyph grid as an RGB image tinted by `frame`.

    Args:
        rows: Rectangular glyph grid.
        font: Font the grid was rendered with.
        frame: (height, width, 3) uint8 RGB source frame.
        invert: Draw negated glyphs. Defaults to the font's own setting.
    """
    if not rows or not rows[0]:
        raise ValueError("Cannot draw an empty glyph grid")

    n_rows, n_cols = len(rows), len(rows[0])
    cell_w, cell_h = font.cell_size

    indices = np.array([[font.index(ch) for ch in row] for row in rows])
    ink = font.bitmaps[indices]
    if invert is not None and invert != font.invert:
        ink = 1.0 - ink
    # (rows, cols, cell_h, cell_w) -> (rows * cell_h, cols * cell_w)
    ink = ink.transpose(0, 2, 1, 3).reshape(n_rows * cell_h, n_cols * cell_w)

    colors = cv2.resize(frame, (n_cols, n_rows), interpolation=cv2.INTER_AREA)
    colors = np.repeat(np.repeat(colors, cell_h, axis=0), cell_w, axis=1)

    canvas = (ink[..., None] * colors.astype(np.float32)).round().astype(np.uint8)
    return Image.fromarray(canvas)
