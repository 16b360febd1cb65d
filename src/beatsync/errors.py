"""Exception types raised by the WAV codec."""

from __future__ import annotations


class WavError(ValueError):
    """Base class for every container failure."""


class NotWavError(WavError):
    """Bytes are not a RIFF/WAVE stream with a supported bit depth."""


class ChunkNotFoundError(WavError):
    """A required ``fmt `` or ``data`` chunk tag could not be located."""

    def __init__(self, tag: str) -> None:
        super().__init__(f"chunk {tag!r} not found")
        self.tag = tag


class UnsupportedBitDepthError(WavError):
    def __init__(self, bit_depth: int) -> None:
        super().__init__(f"unsupported bit depth: {bit_depth}")
        self.bit_depth = bit_depth


class CorruptChunkError(WavError):
    """A chunk is truncated, misaligned or carries impossible field values."""


class NotLoadedError(WavError):
    """Operation needs a loaded container."""


class InvalidDestinationError(WavError, OSError):
    """Destination could not be opened for writing."""
