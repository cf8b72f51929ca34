"""
PyAV-based observation source.

Decodes the best video stream of a media file and converts every retained
frame to packed rgb24 at the stream's native resolution:

    container -> packets -> decoder -> decoded frames -> reformatter -> FrameData

Frames are produced lazily by read(); extract_frames() drains a source into
an immutable sequence before anything is played.
"""

from __future__ import annotations

import logging
import os
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

import av
import av.logging
import numpy as np
from av.video.reformatter import Interpolation, VideoReformatter

from models.frame import FrameData, RGB24
from models.frame_rate import FrameRate
from .base import ObservationSource, ObservationConfig
from .errors import (
    ContainerOpenError,
    DecodeError,
    DecoderInitError,
    FrameBufferError,
    NoVideoStreamError,
    ScalerError,
    UnsupportedCodecError,
)


@contextmanager
def decoder_log_level(level: int = av.logging.ERROR) -> Iterator[None]:
    """
    Lower libav's log verbosity for the duration of the block.

    The previous level is restored on exit, including on error.
    """
    try:
        previous = av.logging.get_level()
        av.logging.set_level(level)
    except (ValueError, TypeError) as e:
        raise DecoderInitError(f"Failed to configure decoder logging: {e}") from e
    try:
        yield
    finally:
        av.logging.set_level(previous)


def plane_to_array(plane: Any, width: int, height: int) -> np.ndarray:
    """
    Copy a packed rgb24 plane into a (height, width, 3) uint8 array.

    Rows may be padded to `plane.line_size` bytes; padding is dropped.
    """
    stride = plane.line_size
    data = np.frombuffer(plane, np.uint8)
    if stride < width * 3 or data.size < stride * height:
        raise FrameBufferError(
            f"Plane of {data.size} bytes (stride {stride}) cannot hold "
            f"a {width}x{height} {RGB24} frame"
        )
    rows = data[: stride * height].reshape((height, stride))
    return rows[:, : width * 3].reshape((height, width, 3)).copy()


@dataclass
class PyAVSourceConfig(ObservationConfig):
    """
    Configuration for PyAV-based observation sources.

    Attributes:
        path: Path to the media file.
        keep_trailing_frames: Append frames released by the end-of-stream
            flush. When False they are decoded and discarded.
        quiet_decoder_logs: Suppress libav info/warning output while open.
    """
    path: str = ""
    keep_trailing_frames: bool = True
    quiet_decoder_logs: bool = True

    @classmethod
    def from_source_config(
        cls,
        source_cfg: Dict[str, Any],
        fps: FrameRate = FrameRate.FPS_30,
        source_id: Optional[str] = None,
    ) -> "PyAVSourceConfig":
        """
        Adapter: Create PyAVSourceConfig from the `source` config dict.

        Args:
            source_cfg: Source configuration dict (from config.yaml).
            fps: Playback rate selecting the sampling policy.
            source_id: Identifier for this source. Defaults to the file name.
        """
        path = source_cfg.get("path") or ""
        return cls(
            source_id=source_id or os.path.basename(path) or "default",
            fps=FrameRate.from_value(fps),
            path=path,
            keep_trailing_frames=source_cfg.get("keep_trailing_frames", True),
            quiet_decoder_logs=source_cfg.get("quiet_decoder_logs", True),
        )


class PyAVSource(ObservationSource):
    """
    Frame source decoding a media file with PyAV.

    open() selects the best video stream, prepares its decoder and a
    bilinear rgb24 reformatter fixed to the stream's width and height.
    read() returns the next retained frame, or None at end of stream.
    At 30 fps every decoded frame at an odd 1-based position is dropped.

    Example:
        config = PyAVSourceConfig(path="clip.mp4", fps=FrameRate.FPS_60)
        with PyAVSource(config) as source:
            for frame_data in source:
                process(frame_data.frame)
    """

    def __init__(self, config: PyAVSourceConfig):
        super().__init__(config)
        self._pyav_config = config
        self._resources: Optional[ExitStack] = None
        self._container: Optional[Any] = None
        self._stream: Optional[Any] = None
        self._decoder: Optional[Any] = None
        self._scaler: Optional[VideoReformatter] = None
        self._frames: Optional[Iterator[FrameData]] = None
        self._width = 0
        self._height = 0
        self._decoded_count = 0
        self._flushed_count = 0

    @property
    def path(self) -> str:
        return self._pyav_config.path

    @property
    def decoded_count(self) -> int:
        """Decoded frames seen so far, including dropped ones."""
        return self._decoded_count

    def open(self) -> None:
        """Open the container and prepare decoder and reformatter."""
        if self._is_open:
            return

        resources = ExitStack()
        try:
            if self._pyav_config.quiet_decoder_logs:
                resources.enter_context(decoder_log_level(av.logging.ERROR))
            self._container = resources.enter_context(self._open_container())
            self._stream = self._select_stream(self._container)
            self._decoder = self._create_decoder(self._stream)
        except BaseException:
            resources.close()
            self._container = self._stream = self._decoder = None
            raise

        self._width = self._decoder.width
        self._height = self._decoder.height
        self._scaler = VideoReformatter()
        self._resources = resources
        self._frames = self._generate()
        self._decoded_count = 0
        self._flushed_count = 0
        self._frame_index = 0
        self._is_open = True

        logging.info(
            f"PyAVSource opened: source_id={self.source_id}, path={self.path}, "
            f"codec={self._decoder.name}, size={self._width}x{self._height}, "
            f"format={self._source_format_name()}, fps={self.frame_rate.fps}"
        )

    def _open_container(self) -> Any:
        try:
            return av.open(self.path, mode="r")
        except av.error.FFmpegError as e:
            raise ContainerOpenError(f"Failed to open {self.path}: {e}") from e
        except OSError as e:
            raise ContainerOpenError(f"Failed to open {self.path}: {e}") from e

    def _select_stream(self, container: Any) -> Any:
        stream = container.streams.best("video")
        if stream is None:
            raise NoVideoStreamError(f"No video stream in {self.path}")
        return stream

    def _create_decoder(self, stream: Any) -> Any:
        decoder = stream.codec_context
        if decoder is None:
            raise UnsupportedCodecError(
                f"No decoder available for stream #{stream.index} of {self.path}"
            )
        if not decoder.width or not decoder.height:
            raise UnsupportedCodecError(
                f"Invalid codec parameters for stream #{stream.index}: "
                f"{decoder.name} {decoder.width}x{decoder.height}"
            )
        try:
            decoder.open(strict=False)
        except av.error.FFmpegError as e:
            raise DecoderInitError(f"Failed to open {decoder.name} decoder: {e}") from e
        return decoder

    def _source_format_name(self) -> Optional[str]:
        fmt = self._decoder.format if self._decoder is not None else None
        return fmt.name if fmt is not None else None

    def read(self) -> Optional[FrameData]:
        """Read the next retained frame from the source."""
        if not self._is_open or self._frames is None:
            return None

        frame_data = next(self._frames, None)
        if frame_data is not None:
            self._frame_index += 1
        return frame_data

    def _generate(self) -> Iterator[FrameData]:
        stream_index = self._stream.index
        for packet in self._packets():
            if packet.stream.index != stream_index:
                continue
            # Demuxer flush packets; the decoder is flushed once below.
            if packet.size == 0:
                continue
            yield from self._convert_all(self._decode(packet))

        trailing = self._decode(None)
        self._flushed_count = len(trailing)
        if self._pyav_config.keep_trailing_frames:
            yield from self._convert_all(trailing)
        elif trailing:
            logging.debug(f"Discarding {len(trailing)} frames released by decoder flush")

    def _packets(self) -> Iterator[Any]:
        demuxer = self._container.demux()
        while True:
            try:
                packet = next(demuxer)
            except StopIteration:
                return
            except av.error.FFmpegError as e:
                raise DecodeError(f"Failed to demux {self.path}: {e}") from e
            yield packet

    def _decode(self, packet: Optional[Any]) -> list:
        """Submit a packet (None flushes) and drain every frame it releases."""
        try:
            return list(self._decoder.decode(packet))
        except av.error.FFmpegError as e:
            where = "flush" if packet is None else f"packet pts={packet.pts}"
            raise DecodeError(f"Decoder rejected {where}: {e}") from e

    def _convert_all(self, decoded: Iterable[Any]) -> Iterator[FrameData]:
        for frame in decoded:
            self._decoded_count += 1
            if not self.frame_rate.keeps(self._decoded_count):
                continue
            yield self._convert(frame, self._decoded_count)

    def _convert(self, frame: Any, counter: int) -> FrameData:
        try:
            rgb = self._scaler.reformat(
                frame,
                width=self._width,
                height=self._height,
                format=RGB24,
                interpolation=Interpolation.BILINEAR,
            )
        except (av.error.FFmpegError, ValueError) as e:
            raise ScalerError(f"Failed to convert frame {counter} to {RGB24}: {e}") from e

        pixels = plane_to_array(rgb.planes[0], self._width, self._height)
        timestamp = float(frame.time) if frame.time is not None else None
        return FrameData(
            frame=pixels,
            width=self._width,
            height=self._height,
            timestamp=timestamp,
            frame_index=counter,
            source=self.source_id,
        )

    def close(self) -> None:
        """Close the container and release decoder state."""
        if self._frames is not None:
            self._frames.close()
            self._frames = None
        if self._resources is not None:
            self._resources.close()
            self._resources = None
        was_open = self._is_open
        self._container = self._stream = self._decoder = self._scaler = None
        self._is_open = False
        if was_open:
            logging.info(
                f"PyAVSource closed: source_id={self.source_id}, "
                f"decoded={self._decoded_count}, returned={self._frame_index}, "
                f"flushed={self._flushed_count}"
            )

    def get_video_info(self) -> Dict[str, Any]:
        """Get information about the open video stream."""
        if self._stream is None or self._decoder is None:
            return {}

        rate = self._stream.average_rate
        return {
            "codec": self._decoder.name,
            "width": self._width,
            "height": self._height,
            "pixel_format": self._source_format_name(),
            "average_rate": float(rate) if rate else None,
            "frames": self._stream.frames or None,
            "decoded": self._decoded_count,
            "returned": self._frame_index,
        }


def extract_frames(
    path: str,
    frame_rate: FrameRate = FrameRate.FPS_30,
    keep_trailing_frames: bool = True,
    quiet_decoder_logs: bool = True,
) -> Tuple[FrameData, ...]:
    """
    Decode a whole file into an immutable sequence of rgb24 frames.

    All frames share the stream's width and height. Any failure propagates
    and no partial sequence is returned.

    Args:
        path: Path to the media file.
        frame_rate: Playback rate; 30 keeps every second decoded frame.
        keep_trailing_frames: Keep frames released by the decoder flush.
        quiet_decoder_logs: Suppress libav info/warning output meanwhile.
    """
    config = PyAVSourceConfig(
        source_id=os.path.basename(path) or "default",
        fps=frame_rate,
        path=path,
        keep_trailing_frames=keep_trailing_frames,
        quiet_decoder_logs=quiet_decoder_logs,
    )
    with PyAVSource(config) as source:
        frames = tuple(source)
        decoded = source.decoded_count

    logging.info(
        f"Extracted {len(frames)} frames from {path} "
        f"({decoded} decoded, fps={frame_rate.fps})"
    )
    return frames
