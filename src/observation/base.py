"""
ObservationSource interface for frame sources.

This defines the contract that frame sources implement, so the playback
pipeline can consume frames from any input:
- Video files decoded with PyAV
- In-memory frame lists (tests)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from models.frame import FrameData
from models.frame_rate import FrameRate


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.
    
    Attributes:
        source_id: Identifier for this source (e.g., the file name).
        fps: Target playback rate, which selects the sampling policy.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    fps: FrameRate = FrameRate.FPS_30
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.
    
    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames
        4. Call close() to release resources
    
    Can also be used as a context manager:
        with PyAVSource(config) as source:
            for frame_data in source:
                process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Identifier for this source."""
        return self._config.source_id

    @property
    def frame_rate(self) -> FrameRate:
        return self._config.fps

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames returned by read() since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the observation source.
        
        Must be called before read().
        
        Raises:
            FrameSourceError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the next frame from the source.
        
        Returns:
            The next converted frame, or None once the source is exhausted.

        Raises:
            FrameSourceError: If decoding or conversion fails.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close/release the observation source.
        
        Safe to call multiple times.
        """
        pass

    def __enter__(self) -> "ObservationSource":
        """Context manager entry - opens the source."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes the source."""
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """
        Iterate over frames from the source.
        
        Yields FrameData objects until the source is exhausted or closed.
        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        
        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
