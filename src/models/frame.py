"""
FrameData model for converted video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

RGB24 = "rgb24"


@dataclass(frozen=True)
class FrameData:
    """
    A converted video frame, ready for rendering.

    Attributes:
        frame: Pixel data as a read-only (height, width, 3) uint8 array, RGB,
            rows top to bottom.
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Presentation time in seconds, None if the stream has no pts.
        frame_index: 1-based position among all decoded frames of the stream.
        source: Identifier for the video source.
        pixel_format: Pixel layout of `frame`.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: Optional[float] = None
    frame_index: int = 0
    source: Optional[str] = None
    pixel_format: str = RGB24

    def __post_init__(self) -> None:
        if self.frame.shape != (self.height, self.width, 3) or self.frame.dtype != np.uint8:
            raise ValueError(
                f"Frame buffer {self.frame.shape}/{self.frame.dtype} does not match "
                f"{self.width}x{self.height} {self.pixel_format}"
            )
        if self.frame.flags.writeable:
            self.frame.flags.writeable = False

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: Optional[float] = None,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Return (height, width, channels)."""
        return self.frame.shape

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
