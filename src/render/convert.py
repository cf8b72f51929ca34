"""
Image to glyph grid conversion.

The luminance image is resized so that every output character covers one
glyph cell. Each cell then gets either the glyph whose ink coverage best
matches its brightness, or an edge glyph (- / | \\) following the local
gradient orientation.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from .font import GlyphFont

# Edge glyphs indexed by orientation bin of the edge line.
EDGE_GLYPHS = ("-", "/", "|", "\\")

# Scaled edge strength below which a cell is never drawn as an edge.
EDGE_THRESHOLD = 0.25

# Largest 3x3 Sobel response for a unit step.
_SOBEL_MAX = 4.0


class GlyphGridError(AssertionError):
    """A rendered glyph grid is not rectangular."""


class ConversionAlgorithm(Enum):
    """
    BASE: brightness only.
    EDGE: edge glyphs only, blank elsewhere.
    EDGE_AUGMENTED: brightness glyphs, replaced by edge glyphs where the
        edge is stronger than the cell brightness.
    """
    BASE = "base"
    EDGE = "edge"
    EDGE_AUGMENTED = "edge_augmented"

    @classmethod
    def from_value(cls, value: Union[str, "ConversionAlgorithm"]) -> "ConversionAlgorithm":
        if isinstance(value, ConversionAlgorithm):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ", ".join(a.value for a in cls)
            raise ValueError(f"Unknown conversion algorithm {value!r} (expected one of: {names})") from None


def naive_grayscale(rgb: np.ndarray) -> np.ndarray:
    """Luminance as the unweighted mean of the R, G and B channels."""
    return (rgb.astype(np.uint16).sum(axis=2) // 3).astype(np.uint8)


def grid_shape(image_size: Tuple[int, int], cell_size: Tuple[int, int], width: Optional[int] = None) -> Tuple[int, int]:
    """
    Return (columns, rows) of the glyph grid for an image.

    Without `width` one column is used per cell width of source pixels. Rows
    keep the image aspect ratio given the cell aspect ratio.
    """
    img_w, img_h = image_size
    cell_w, cell_h = cell_size
    cols = width if width else max(1, img_w // cell_w)
    rows = max(1, int(round(img_h / img_w * cols * cell_w / cell_h)))
    return cols, rows


def _cells(image: np.ndarray, rows: int, cols: int, cell_w: int, cell_h: int) -> np.ndarray:
    return image.reshape(rows, cell_h, cols, cell_w)


def _edge_map(image: np.ndarray, rows: int, cols: int, cell_w: int, cell_h: int) -> Tuple[np.ndarray, np.ndarray]:
    """Per-cell edge strength in [0, 1] and orientation bin (index into EDGE_GLYPHS)."""
    gx = cv2.Sobel(image, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(image, cv2.CV_32F, 0, 1, ksize=3)

    strength = _cells(np.hypot(gx, gy), rows, cols, cell_w, cell_h).mean(axis=(1, 3)) / _SOBEL_MAX

    # Structure tensor gives the dominant gradient orientation regardless of sign.
    jxx = _cells(gx * gx, rows, cols, cell_w, cell_h).mean(axis=(1, 3))
    jyy = _cells(gy * gy, rows, cols, cell_w, cell_h).mean(axis=(1, 3))
    jxy = _cells(gx * gy, rows, cols, cell_w, cell_h).mean(axis=(1, 3))
    gradient = 0.5 * np.degrees(np.arctan2(2.0 * jxy, jxx - jyy))

    # Edge line runs perpendicular to the gradient. Image y points down, so
    # a gradient at +45 degrees is an edge drawn as '/'.
    edge = np.mod(gradient + 90.0, 180.0)
    bins = (np.floor((edge + 22.5) / 45.0).astype(int)) % 4
    orientation = np.array([0, 3, 2, 1])[bins]
    return strength, orientation


def image_to_char_rows(
    font: GlyphFont,
    luma: np.ndarray,
    width: Optional[int] = None,
    brightness_offset: float = 0.0,
    brightness_scale: float = 1.0,
    edge_brightness_scale: float = 1.0,
    algorithm: ConversionAlgorithm = ConversionAlgorithm.EDGE_AUGMENTED,
) -> List[List[str]]:
    """
    Convert a single-channel image to rows of characters.

    Args:
        font: Glyph font providing cell size and coverage.
        luma: (height, width) uint8 luminance image.
        width: Number of output columns, None for one per cell of pixels.
        brightness_offset: Added to the [0, 1] cell brightness.
        brightness_scale: Multiplies the cell brightness before the offset.
        edge_brightness_scale: Multiplies the [0, 1] edge strength.
        algorithm: Conversion variant.

    Returns:
        A rectangular list of rows, each a list of single characters.
    """
    if luma.ndim != 2 or luma.size == 0:
        raise ValueError(f"Expected a non-empty 2D luminance image, got shape {luma.shape}")
    algorithm = ConversionAlgorithm.from_value(algorithm)

    cell_w, cell_h = font.cell_size
    cols, rows = grid_shape((luma.shape[1], luma.shape[0]), font.cell_size, width)
    image = cv2.resize(luma, (cols * cell_w, rows * cell_h), interpolation=cv2.INTER_AREA)
    image = image.astype(np.float32) / 255.0

    brightness = _cells(image, rows, cols, cell_w, cell_h).mean(axis=(1, 3))
    levels = np.clip(brightness_offset + brightness_scale * brightness, 0.0, 1.0)

    if algorithm is ConversionAlgorithm.EDGE:
        chars = font.chars_for_levels(np.zeros_like(levels))
    else:
        chars = font.chars_for_levels(levels)

    if algorithm is not ConversionAlgorithm.BASE:
        strength, orientation = _edge_map(image, rows, cols, cell_w, cell_h)
        strength = np.clip(strength * edge_brightness_scale, 0.0, 1.0)
        use_edge = strength >= EDGE_THRESHOLD
        if algorithm is ConversionAlgorithm.EDGE_AUGMENTED:
            use_edge &= strength > levels
        available = np.array([g in font for g in EDGE_GLYPHS])
        use_edge &= available[orientation]
        chars = np.where(use_edge, np.array(EDGE_GLYPHS)[orientation], chars)

    return chars.tolist()


def check_rectangular(rows: Sequence[Sequence[str]]) -> None:
    """Raise GlyphGridError unless every row has the length of the first."""
    if not rows:
        return
    expected = len(rows[0])
    for i, row in enumerate(rows):
        if len(row) != expected:
            raise GlyphGridError(
                f"Glyph grid row {i} has {len(row)} characters, expected {expected}"
            )
