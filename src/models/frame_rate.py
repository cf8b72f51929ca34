"""
Playback frame rate.
"""

from __future__ import annotations

from enum import Enum
from typing import Union


class FrameRate(Enum):
    """
    Supported playback rates.

    Sources are assumed to decode at the higher rate. The lower rate is
    reached by decimation: every second decoded frame is kept, so the
    sampling policy only holds for the 2x relationship between the two.
    """
    FPS_30 = 30
    FPS_60 = 60

    @property
    def fps(self) -> int:
        return self.value

    @property
    def period(self) -> float:
        """Seconds between two rendered frames."""
        return 1.0 / self.value

    def keeps(self, counter: int) -> bool:
        """
        Whether the decoded frame at 1-based position `counter` is retained.

        At 30 fps odd positions are dropped (1, 3, 5, ...).
        """
        if self is FrameRate.FPS_30:
            return counter % 2 == 0
        return True

    @classmethod
    def from_value(cls, value: Union[int, str, "FrameRate"]) -> "FrameRate":
        if isinstance(value, FrameRate):
            return value
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError(f"Unsupported frame rate: {value!r} (expected 30 or 60)") from None
