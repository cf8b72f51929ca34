"""
Tests for observation layer.
"""

from types import SimpleNamespace

import av
import av.logging
import numpy as np
import pytest

from observation import create_source_from_config
from observation import pyav_source
from observation.base import ObservationSource, ObservationConfig
from observation.errors import (
    ContainerOpenError,
    DecodeError,
    FrameBufferError,
    FrameSourceError,
    NoVideoStreamError,
    UnsupportedCodecError,
)
from observation.pyav_source import (
    PyAVSource,
    PyAVSourceConfig,
    decoder_log_level,
    extract_frames,
    plane_to_array,
)
from models.frame import FrameData, RGB24
from models.frame_rate import FrameRate


class MockSource(ObservationSource):
    """Mock observation source for testing."""

    def __init__(self, config: ObservationConfig, frames: list = None):
        super().__init__(config)
        self._frames = frames or []
        self._pos = 0

    def open(self) -> None:
        self._is_open = True
        self._pos = 0
        self._frame_index = 0

    def read(self) -> FrameData | None:
        if not self._is_open or self._pos >= len(self._frames):
            return None

        frame = self._frames[self._pos]
        self._pos += 1
        self._frame_index += 1
        return FrameData.from_numpy(frame, frame_index=self._frame_index, source=self.source_id)

    def close(self) -> None:
        self._is_open = False


class FakePlane(bytes):
    """Bytes with a line_size, standing in for a PyAV video plane."""
    line_size = 0


def make_plane(data: bytes, line_size: int) -> FakePlane:
    plane = FakePlane(data)
    plane.line_size = line_size
    return plane


class FakeContainer:
    """Minimal stand-in for an av input container."""

    def __init__(self, stream=None, packets=()):
        self._stream = stream
        self._packets = list(packets)
        self.closed = False
        self.streams = SimpleNamespace(best=lambda kind: self._stream)

    def demux(self):
        return iter(self._packets)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def make_stream(decoder, index=0):
    return SimpleNamespace(index=index, codec_context=decoder, average_rate=None, frames=0)


def make_decoder(width=64, height=48, decode=None):
    return SimpleNamespace(
        name="fake",
        width=width,
        height=height,
        format=None,
        open=lambda strict=True: None,
        decode=decode or (lambda packet: []),
    )


class TestObservationConfig:
    def test_default_config(self):
        config = ObservationConfig()
        assert config.source_id == "default"
        assert config.fps is FrameRate.FPS_30

    def test_custom_config(self):
        config = ObservationConfig(
            source_id="clip",
            fps=FrameRate.FPS_60,
            metadata={"origin": "test"},
        )
        assert config.source_id == "clip"
        assert config.fps is FrameRate.FPS_60
        assert config.metadata["origin"] == "test"


class TestPyAVSourceConfig:
    def test_from_source_config(self):
        source_cfg = {
            "path": "/videos/bad-apple.mp4",
            "keep_trailing_frames": False,
            "quiet_decoder_logs": False,
        }
        config = PyAVSourceConfig.from_source_config(source_cfg, fps=60)

        assert config.source_id == "bad-apple.mp4"
        assert config.path == "/videos/bad-apple.mp4"
        assert config.fps is FrameRate.FPS_60
        assert config.keep_trailing_frames is False
        assert config.quiet_decoder_logs is False

    def test_explicit_source_id(self):
        config = PyAVSourceConfig.from_source_config({"path": "a.mp4"}, source_id="main")
        assert config.source_id == "main"

    def test_factory_requires_path(self):
        with pytest.raises(ValueError, match="source.path"):
            create_source_from_config({})

    def test_factory_builds_pyav_source(self):
        source = create_source_from_config({"path": "a.mp4"}, fps=FrameRate.FPS_60)
        assert isinstance(source, PyAVSource)
        assert source.frame_rate is FrameRate.FPS_60
        assert not source.is_open


class TestMockSource:
    def test_context_manager(self):
        config = ObservationConfig(source_id="ctx-test")
        frames = [np.zeros((50, 50, 3), dtype=np.uint8) for _ in range(2)]

        with MockSource(config, frames) as source:
            assert source.is_open
            count = sum(1 for _ in source)
            assert count == 2

        assert not source.is_open

    def test_iteration_requires_open(self):
        source = MockSource(ObservationConfig(), [])

        with pytest.raises(RuntimeError, match="must be open"):
            list(source)


class TestPlaneToArray:
    def test_packed_plane(self):
        data = bytes(range(12))
        pixels = plane_to_array(make_plane(data, 6), width=2, height=2)

        assert pixels.shape == (2, 2, 3)
        assert pixels.dtype == np.uint8
        assert pixels[1, 1].tolist() == [9, 10, 11]

    def test_padded_rows_are_trimmed(self):
        row0 = bytes([1, 2, 3, 4, 5, 6, 0, 0])
        row1 = bytes([7, 8, 9, 10, 11, 12, 0, 0])
        pixels = plane_to_array(make_plane(row0 + row1, 8), width=2, height=2)

        assert pixels.reshape(-1).tolist() == list(range(1, 13))

    def test_short_plane_fails(self):
        with pytest.raises(FrameBufferError):
            plane_to_array(make_plane(bytes(10), 6), width=2, height=2)

    def test_narrow_stride_fails(self):
        with pytest.raises(FrameBufferError):
            plane_to_array(make_plane(bytes(16), 4), width=2, height=2)


class TestDecoderLogLevel:
    def test_level_is_scoped(self):
        before = av.logging.get_level()
        with decoder_log_level(av.logging.ERROR):
            assert av.logging.get_level() == av.logging.ERROR
        assert av.logging.get_level() == before

    def test_level_restored_on_error(self):
        before = av.logging.get_level()
        with pytest.raises(KeyError):
            with decoder_log_level(av.logging.ERROR):
                raise KeyError("boom")
        assert av.logging.get_level() == before


class TestExtractFrames:
    def test_high_rate_keeps_every_decoded_frame(self, video_factory):
        path = video_factory(frame_count=60)
        frames = extract_frames(path, FrameRate.FPS_60)

        assert len(frames) == 60
        assert [f.frame_index for f in frames] == list(range(1, 61))

    def test_low_rate_halves_a_two_second_clip(self, video_factory):
        path = video_factory(frame_count=60)
        frames = extract_frames(path, FrameRate.FPS_30)

        assert len(frames) == 30
        assert [f.frame_index for f in frames] == list(range(2, 61, 2))

    def test_low_rate_with_odd_count(self, video_factory):
        path = video_factory(frame_count=7)
        assert len(extract_frames(path, FrameRate.FPS_60)) == 7
        assert len(extract_frames(path, FrameRate.FPS_30)) == 3

    def test_frames_share_dimensions_and_layout(self, video_factory):
        path = video_factory(frame_count=10, size=(96, 64))
        frames = extract_frames(path, FrameRate.FPS_60)

        assert frames
        for fd in frames:
            assert fd.shape == (64, 96, 3)
            assert fd.size == (96, 64)
            assert fd.frame.dtype == np.uint8
            assert fd.pixel_format == RGB24
            assert not fd.frame.flags.writeable

    def test_frames_in_decode_order(self, video_factory):
        path = video_factory(frame_count=10)
        frames = extract_frames(path, FrameRate.FPS_60)

        timestamps = [f.timestamp for f in frames]
        assert None not in timestamps
        assert timestamps == sorted(timestamps)
        # Encoded frames brighten by 4 levels per frame.
        means = [float(f.frame.mean()) for f in frames]
        assert means[-1] > means[0]

    def test_result_is_immutable_sequence(self, video_factory):
        frames = extract_frames(video_factory(frame_count=4), FrameRate.FPS_60)
        assert isinstance(frames, tuple)

    def test_trailing_frames_kept_by_default(self, reordered_video_factory):
        path = reordered_video_factory(frame_count=61)
        full = extract_frames(path, FrameRate.FPS_60)

        assert len(full) == 61
        assert [f.frame_index for f in full] == list(range(1, 62))
        assert len(extract_frames(path, FrameRate.FPS_30)) == 61 // 2

    def test_dropping_trailing_frames(self, reordered_video_factory):
        path = reordered_video_factory(frame_count=61)
        full = extract_frames(path, FrameRate.FPS_60)
        trimmed = extract_frames(path, FrameRate.FPS_60, keep_trailing_frames=False)

        assert 0 < len(trimmed) < len(full)
        assert [f.frame_index for f in trimmed] == list(range(1, len(trimmed) + 1))
        assert [f.timestamp for f in trimmed] == [f.timestamp for f in full[: len(trimmed)]]

    def test_corrupt_file_fails(self, tmp_path):
        path = tmp_path / "garbage.mp4"
        path.write_bytes(b"this is not a video container" * 10)

        with pytest.raises(ContainerOpenError):
            extract_frames(str(path))

    def test_missing_file_fails(self, tmp_path):
        with pytest.raises(ContainerOpenError):
            extract_frames(str(tmp_path / "missing.mp4"))

    def test_errors_share_base_class(self, tmp_path):
        with pytest.raises(FrameSourceError):
            extract_frames(str(tmp_path / "missing.mp4"))


class TestPyAVSource:
    def test_lazy_reading(self, video_factory):
        config = PyAVSourceConfig(path=video_factory(frame_count=6), fps=FrameRate.FPS_30)
        source = PyAVSource(config)

        assert source.read() is None
        source.open()
        try:
            first = source.read()
            assert first is not None
            assert first.frame_index == 2
            assert source.frame_index == 1
            info = source.get_video_info()
            assert info["width"] == 64
            assert info["height"] == 48
            assert info["codec"] == "mpeg4"
        finally:
            source.close()

        assert not source.is_open
        assert source.get_video_info() == {}

    def test_close_is_idempotent(self, video_factory):
        source = PyAVSource(PyAVSourceConfig(path=video_factory(frame_count=2)))
        source.open()
        source.close()
        source.close()
        assert not source.is_open

    def test_no_video_stream(self, monkeypatch):
        container = FakeContainer(stream=None)
        monkeypatch.setattr(pyav_source.av, "open", lambda path, mode="r": container)

        with pytest.raises(NoVideoStreamError, match="No video stream"):
            extract_frames("audio_only.wav")
        assert container.closed

    def test_missing_decoder(self, monkeypatch):
        container = FakeContainer(stream=make_stream(decoder=None))
        monkeypatch.setattr(pyav_source.av, "open", lambda path, mode="r": container)

        with pytest.raises(UnsupportedCodecError):
            extract_frames("odd.mkv")
        assert container.closed

    def test_invalid_codec_parameters(self, monkeypatch):
        container = FakeContainer(stream=make_stream(make_decoder(width=0, height=0)))
        monkeypatch.setattr(pyav_source.av, "open", lambda path, mode="r": container)

        with pytest.raises(UnsupportedCodecError, match="Invalid codec parameters"):
            extract_frames("odd.mkv")

    def test_decoder_failure_aborts_extraction(self, monkeypatch):
        def decode(packet):
            raise av.error.FFmpegError(1, "corrupt packet")

        stream = make_stream(make_decoder(decode=decode))
        packet = SimpleNamespace(stream=stream, size=10, pts=0)
        container = FakeContainer(stream=stream, packets=[packet])
        monkeypatch.setattr(pyav_source.av, "open", lambda path, mode="r": container)

        with pytest.raises(DecodeError, match="corrupt packet"):
            extract_frames("broken.mp4")
        assert container.closed

    def test_packets_of_other_streams_are_ignored(self, monkeypatch):
        submitted = []

        def decode(packet):
            submitted.append(packet)
            return []

        video = make_stream(make_decoder(decode=decode), index=0)
        audio = SimpleNamespace(index=1)
        packets = [
            SimpleNamespace(stream=audio, size=10, pts=0),
            SimpleNamespace(stream=video, size=10, pts=0),
            SimpleNamespace(stream=video, size=0, pts=None),
        ]
        container = FakeContainer(stream=video, packets=packets)
        monkeypatch.setattr(pyav_source.av, "open", lambda path, mode="r": container)

        assert extract_frames("mixed.mp4") == ()
        # One real video packet, then the end-of-stream flush.
        assert submitted == [packets[1], None]

    @pytest.mark.parametrize("frame_rate,keep,expected", [
        (FrameRate.FPS_60, True, (1, 2, 3, 4, 5)),
        (FrameRate.FPS_60, False, (1, 2, 3)),
        (FrameRate.FPS_30, True, (2, 4)),
        (FrameRate.FPS_30, False, (2,)),
    ])
    def test_flushed_frames_are_sampled_and_appended(self, monkeypatch, frame_rate, keep, expected):
        def decode(packet):
            # One frame per packet; the flush releases two held-back frames.
            return ["held", "held"] if packet is None else ["frame"]

        stream = make_stream(make_decoder(decode=decode))
        packets = [SimpleNamespace(stream=stream, size=10, pts=i) for i in range(3)]
        container = FakeContainer(stream=stream, packets=packets)
        monkeypatch.setattr(pyav_source.av, "open", lambda path, mode="r": container)
        monkeypatch.setattr(PyAVSource, "_convert", lambda self, frame, counter: counter)

        frames = extract_frames("buffered.mp4", frame_rate, keep_trailing_frames=keep)

        assert frames == expected
