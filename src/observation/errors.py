"""
Frame source errors.

Every failure while extracting frames is terminal: it aborts the run and no
partial frame sequence is returned.
"""

from __future__ import annotations


class FrameSourceError(RuntimeError):
    """Base class for frame extraction failures."""


class DecoderInitError(FrameSourceError):
    """The decoding library or the stream's decoder could not be initialized."""


class ContainerOpenError(FrameSourceError):
    """The input file is missing, unreadable or not a recognized container."""


class NoVideoStreamError(FrameSourceError):
    """The container holds no video stream."""


class UnsupportedCodecError(FrameSourceError):
    """The video stream's codec parameters are invalid or unsupported."""


class DecodeError(FrameSourceError):
    """Demuxing a packet or submitting it to the decoder failed."""


class ScalerError(FrameSourceError):
    """Converting a decoded frame to the target pixel format failed."""


class FrameBufferError(FrameSourceError):
    """A converted frame's pixel data does not match its dimensions."""
