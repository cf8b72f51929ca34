"""
Glyph font: an ordered alphabet and one fixed-size ink bitmap per character.
"""

from __future__ import annotations

import logging
import math
import os
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

DEFAULT_ALPHABET_PATH = os.path.join(os.path.dirname(__file__), "resources", "alphabet.txt")


def load_alphabet(path: Optional[str] = None) -> str:
    """Read an alphabet file. Line breaks are ignored and duplicates dropped."""
    with open(path or DEFAULT_ALPHABET_PATH, "r", encoding="utf-8") as f:
        text = f.read().replace("\r", "").replace("\n", "")
    alphabet = "".join(dict.fromkeys(text))
    if not alphabet:
        raise ValueError(f"Alphabet file {path or DEFAULT_ALPHABET_PATH} is empty")
    return alphabet


class GlyphFont:
    """
    Rasterized glyphs of an alphabet, all in cells of the same size.

    Bitmaps are float32 arrays of shape (cell_height, cell_width) with 1.0
    where the glyph lights a pixel. With `invert` the bitmaps are negated,
    for dark text on a light background.
    """

    def __init__(self, alphabet: Sequence[str], bitmaps: Dict[str, np.ndarray], invert: bool = False):
        if not alphabet:
            raise ValueError("Alphabet must not be empty")
        shapes = {bitmaps[ch].shape for ch in alphabet}
        if len(shapes) != 1:
            raise ValueError(f"Glyph bitmaps differ in size: {sorted(shapes)}")

        self.alphabet = "".join(alphabet)
        self.invert = invert
        self._index = {ch: i for i, ch in enumerate(self.alphabet)}
        stack = np.stack([bitmaps[ch] for ch in self.alphabet]).astype(np.float32)
        self._bitmaps = 1.0 - stack if invert else stack

        coverage = self._bitmaps.mean(axis=(1, 2))
        span = coverage.max() - coverage.min()
        self._coverage = (coverage - coverage.min()) / span if span > 0 else np.zeros_like(coverage)
        self._chars = np.array(list(self.alphabet))

    @property
    def cell_size(self) -> Tuple[int, int]:
        """Return (width, height) of a glyph cell in pixels."""
        return (self._bitmaps.shape[2], self._bitmaps.shape[1])

    @property
    def bitmaps(self) -> np.ndarray:
        """All glyph bitmaps stacked in alphabet order."""
        return self._bitmaps

    @property
    def coverage(self) -> np.ndarray:
        """Ink coverage per glyph, normalized to [0, 1] across the alphabet."""
        return self._coverage

    def glyph(self, ch: str) -> np.ndarray:
        return self._bitmaps[self.index(ch)]

    def index(self, ch: str) -> int:
        try:
            return self._index[ch]
        except KeyError:
            raise KeyError(f"Character {ch!r} is not in the font alphabet") from None

    def __contains__(self, ch: str) -> bool:
        return ch in self._index

    def chars_for_levels(self, levels: np.ndarray) -> np.ndarray:
        """Map brightness levels in [0, 1] to the glyph of nearest coverage."""
        nearest = np.abs(levels[..., None] - self._coverage).argmin(axis=-1)
        return self._chars[nearest]

    @classmethod
    def from_pil_font(cls, pil_font, alphabet: str, invert: bool = False) -> "GlyphFont":
        """Rasterize every character of `alphabet` with a Pillow font."""
        cell_w = max(1, max(math.ceil(pil_font.getlength(ch)) for ch in alphabet))
        cell_h = max(1, max(pil_font.getbbox(ch)[3] for ch in alphabet))

        bitmaps = {}
        for ch in alphabet:
            image = Image.new("L", (cell_w, cell_h), 0)
            ImageDraw.Draw(image).text((0, 0), ch, fill=255, font=pil_font)
            bitmaps[ch] = np.asarray(image, dtype=np.float32) / 255.0
        return cls(alphabet, bitmaps, invert=invert)

    @classmethod
    def load(
        cls,
        font_path: Optional[str] = None,
        font_size: int = 10,
        alphabet_path: Optional[str] = None,
        invert: bool = False,
    ) -> "GlyphFont":
        """
        Load the alphabet and rasterize it.

        Args:
            font_path: A TrueType/OpenType file, a Pillow `.pil` bitmap font,
                or None for Pillow's bundled default font.
            font_size: Size in points for scalable fonts.
            alphabet_path: Alphabet file, defaults to the bundled one.
            invert: Negate glyph bitmaps.
        """
        alphabet = load_alphabet(alphabet_path)
        if font_path is None:
            pil_font = ImageFont.load_default(size=font_size)
        elif font_path.endswith(".pil"):
            pil_font = ImageFont.load(font_path)
        else:
            pil_font = ImageFont.truetype(font_path, font_size)

        font = cls.from_pil_font(pil_font, alphabet, invert=invert)
        logging.info(
            f"Glyph font loaded: font={font_path or 'default'}, glyphs={len(alphabet)}, "
            f"cell={font.cell_size[0]}x{font.cell_size[1]}, invert={invert}"
        )
        return font
