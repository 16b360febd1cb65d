"""RIFF/WAVE container codec.

Layout (little-endian, no padding)::

    "RIFF" u32(file_length - 8) "WAVE"
    ... "fmt " u32 chunk_size, u16 format_tag, u16 channels, u32 sample_rate,
               u32 avg_bytes_per_sec, u16 block_align, u16 bit_depth
    ... "data" u32 chunk_size, PCM samples (int16 or float32, interleaved)

The ``fmt `` and ``data`` tags are located by scanning forward, so unrelated
chunks may precede them.
"""

from __future__ import annotations

import copy
import logging
import struct
from dataclasses import dataclass, replace
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np

from .config import DEFAULT_CONFIG, TempoConfig
from .errors import (
    ChunkNotFoundError,
    CorruptChunkError,
    InvalidDestinationError,
    NotLoadedError,
    NotWavError,
    UnsupportedBitDepthError,
)
from .reader import ByteReader
from .samples import SUPPORTED_BIT_DEPTHS, SampleBuffer, samples_for_bit_depth
from .tempo import TempoResult, estimate_tempo

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MIN_FILE_LENGTH = 36
BIT_DEPTH_OFFSET = 34
PCM_FORMAT_SIZE = 16
NO_PATH = "N/A"

_HEADER = struct.Struct("<4sI4s")
_FORMAT = struct.Struct("<4sIHHIIHH")
_DATA = struct.Struct("<4sI")


@dataclass
class Header:
    group_id: str = "RIFF"
    file_length: int = 0  # total file size - 8
    riff_type: str = "WAVE"


@dataclass
class FormatChunk:
    group_id: str = "fmt "
    chunk_size: int = PCM_FORMAT_SIZE
    format_tag: int = 1
    channels: int = 1
    sample_rate: int = 44100
    avg_bytes_per_sec: int = 88200
    block_align: int = 2
    bit_depth: int = 16
    extra: bytes = b""  # format bytes beyond the 16 PCM fields, kept verbatim


@dataclass
class DataChunk:
    samples: SampleBuffer
    group_id: str = "data"
    chunk_size: int = 0


def is_wav(data: bytes | bytearray | memoryview) -> bool:
    """True for a RIFF/WAVE prefix whose bit-depth field is supported."""
    if len(data) <= MIN_FILE_LENGTH:
        return False
    head = bytes(data[: MIN_FILE_LENGTH + 1])
    bit_depth = struct.unpack_from("<H", head, BIT_DEPTH_OFFSET)[0]
    return head[0:4] == b"RIFF" and head[8:12] == b"WAVE" and bit_depth in SUPPORTED_BIT_DEPTHS


def is_wav_file(path: PathLike) -> bool:
    """Check only the first bytes of ``path``; unreadable files are not WAV."""
    try:
        with open(path, "rb") as fh:
            head = fh.read(MIN_FILE_LENGTH + 1)
    except OSError:
        return False
    return is_wav(head)


class WaveContainer:
    """A WAV file held in memory: header, format and data chunks.

    The container is either fully loaded or empty. Accessors return ``None``
    while empty. Tempo is computed on first access and cached until the next
    load or unload.
    """

    def __init__(self, path: PathLike | None = None, config: TempoConfig = DEFAULT_CONFIG) -> None:
        self.config = config
        self.unload()
        if path is not None:
            self.load(path)

    # -- lifecycle -----------------------------------------------------------

    def unload(self) -> None:
        self._path: str | None = None
        self._header: Header | None = None
        self._format: FormatChunk | None = None
        self._data: DataChunk | None = None
        self._size: int | None = None
        self._duration: float | None = None
        self._tempo: TempoResult | None = None

    @property
    def loaded(self) -> bool:
        return self._path is not None

    def load(self, path: PathLike) -> "WaveContainer":
        data = Path(path).read_bytes()
        return self.load_bytes(data, path=str(path))

    def load_bytes(self, data: bytes | bytearray | memoryview, path: str = NO_PATH) -> "WaveContainer":
        """Decode ``data``; on any failure the container is left empty."""
        self.unload()
        if not is_wav(data):
            raise NotWavError("missing RIFF/WAVE tags or unsupported bit depth")
        reader = ByteReader(data)

        header = Header(reader.read_tag(), reader.read_u32(), reader.read_tag())

        fmt_at = reader.find(b"fmt ")
        if fmt_at < 0:
            raise ChunkNotFoundError("fmt ")
        reader.seek(fmt_at)
        fmt = FormatChunk(
            group_id=reader.read_tag(),
            chunk_size=reader.read_u32(),
            format_tag=reader.read_u16(),
            channels=reader.read_u16(),
            sample_rate=reader.read_u32(),
            avg_bytes_per_sec=reader.read_u32(),
            block_align=reader.read_u16(),
            bit_depth=reader.read_u16(),
        )
        if fmt.chunk_size < PCM_FORMAT_SIZE:
            raise CorruptChunkError(f"format chunk size {fmt.chunk_size} < {PCM_FORMAT_SIZE}")
        fmt.extra = reader.read_bytes(fmt.chunk_size - PCM_FORMAT_SIZE)
        if fmt.bit_depth not in SUPPORTED_BIT_DEPTHS:
            raise UnsupportedBitDepthError(fmt.bit_depth)
        if fmt.avg_bytes_per_sec == 0:
            raise CorruptChunkError("average byte rate is zero")

        data_at = reader.find(b"data")
        if data_at < 0:
            raise ChunkNotFoundError("data")
        reader.seek(data_at)
        group_id = reader.read_tag()
        chunk_size = reader.read_u32()
        variant = samples_for_bit_depth(fmt.bit_depth)
        width = fmt.bit_depth // 8
        if chunk_size % width:
            raise CorruptChunkError(f"data size {chunk_size} is not a multiple of {width}")
        if chunk_size > reader.remaining:
            raise CorruptChunkError(
                f"data chunk declares {chunk_size} bytes, {reader.remaining} present"
            )
        samples = variant.from_bytes(reader.data, reader.offset, chunk_size // width)

        self._commit(header, fmt, DataChunk(samples, group_id, chunk_size), path)
        return self

    @classmethod
    def from_samples(
        cls,
        data: bytes | np.ndarray | SampleBuffer,
        sample_rate: int,
        channels: int = 1,
        bit_depth: int = 16,
        config: TempoConfig = DEFAULT_CONFIG,
    ) -> "WaveContainer":
        """Build a PCM container from raw little-endian bytes or sample values."""
        if bit_depth not in SUPPORTED_BIT_DEPTHS:
            raise UnsupportedBitDepthError(bit_depth)
        variant = samples_for_bit_depth(bit_depth)
        if isinstance(data, SampleBuffer):
            samples = variant(data.data.copy())
        elif isinstance(data, (bytes, bytearray, memoryview)):
            samples = variant.from_bytes(data)
        else:
            samples = variant(np.array(data))
        block_align = channels * bit_depth // 8
        fmt = FormatChunk(
            channels=channels,
            sample_rate=sample_rate,
            avg_bytes_per_sec=sample_rate * block_align,
            block_align=block_align,
            bit_depth=bit_depth,
        )
        if fmt.avg_bytes_per_sec == 0:
            raise CorruptChunkError("average byte rate is zero")
        container = cls(config=config)
        container._commit(Header(), fmt, DataChunk(samples, chunk_size=samples.nbytes), NO_PATH)
        return container

    def _commit(self, header: Header, fmt: FormatChunk, data: DataChunk, path: str) -> None:
        self._header = header
        self._format = fmt
        self._data = data
        self._size = _HEADER.size + _FORMAT.size + len(fmt.extra) + _DATA.size + data.chunk_size
        self._duration = data.chunk_size / fmt.avg_bytes_per_sec
        self._tempo = None
        self._path = path

    def copy(self) -> "WaveContainer":
        """Independent copy of a loaded container (path reads ``N/A``)."""
        other = WaveContainer(config=self.config)
        if self.loaded:
            assert self._header and self._format and self._data
            data = replace(self._data, samples=self._data.samples.copy())
            other._commit(replace(self._header), copy.copy(self._format), data, NO_PATH)
        return other

    # -- accessors -----------------------------------------------------------

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def header(self) -> Header | None:
        return self._header

    @property
    def format(self) -> FormatChunk | None:
        return self._format

    @property
    def data(self) -> DataChunk | None:
        return self._data

    @property
    def samples(self) -> SampleBuffer | None:
        return self._data.samples if self._data else None

    @property
    def duration(self) -> float | None:
        """Seconds, rounded to milliseconds."""
        return round(self._duration, 3) if self._duration is not None else None

    @property
    def size(self) -> int | None:
        """File size in bytes as it would be written."""
        return self._size

    @property
    def sample_rate(self) -> int | None:
        return self._format.sample_rate if self._format else None

    @property
    def bit_depth(self) -> int | None:
        return self._format.bit_depth if self._format else None

    @property
    def channels(self) -> int | None:
        return self._format.channels if self._format else None

    @property
    def tempo(self) -> TempoResult | None:
        if not self.loaded:
            return None
        if self._tempo is None:
            assert self._data and self._format
            self._tempo = estimate_tempo(
                self._data.samples,
                self._format.sample_rate,
                channels=self._format.channels,
                duration=self._duration,
                config=self.config,
            )
            logger.debug("tempo for %s: %s", self._path, self._tempo)
        return self._tempo

    @property
    def bpm(self) -> int | None:
        result = self.tempo
        return result.bpm if result is not None else None

    # -- editing -------------------------------------------------------------

    def normalize(self) -> None:
        if self._data:
            self._data.samples.normalize()

    def reverse(self) -> None:
        if self._data:
            self._data.samples.reverse()

    def reverse_polarity(self) -> None:
        if self._data:
            self._data.samples.reverse_polarity()

    # -- encoding ------------------------------------------------------------

    def to_bytes(self) -> bytes:
        if not self.loaded:
            raise NotLoadedError("no file loaded")
        assert self._header and self._format and self._data and self._size is not None
        h, f, d = self._header, self._format, self._data
        out = bytearray(self._size)
        _HEADER.pack_into(out, 0, _tag(h.group_id), self._size - 8, _tag(h.riff_type))
        offset = _HEADER.size
        _FORMAT.pack_into(
            out,
            offset,
            _tag(f.group_id),
            f.chunk_size,
            f.format_tag,
            f.channels,
            f.sample_rate,
            f.avg_bytes_per_sec,
            f.block_align,
            f.bit_depth,
        )
        offset += _FORMAT.size
        out[offset : offset + len(f.extra)] = f.extra
        offset += len(f.extra)
        _DATA.pack_into(out, offset, _tag(d.group_id), d.chunk_size)
        d.samples.write_into(out, offset + _DATA.size)
        return bytes(out)

    def write(self, destination: PathLike | BinaryIO) -> None:
        """Serialize to a path or a writable binary stream."""
        payload = self.to_bytes()
        try:
            if hasattr(destination, "write"):
                destination.write(payload)  # type: ignore[union-attr]
            else:
                Path(destination).write_bytes(payload)  # type: ignore[arg-type]
        except OSError as exc:
            raise InvalidDestinationError(f"cannot write {destination!r}: {exc}") from exc

    def describe(self) -> str:
        if not self.loaded:
            return "No file loaded."
        bpm = self.bpm
        return (
            f"Path: {self._path}\n"
            f"Duration: {self.duration} (s)\n"
            f"Size: {self._size / 1000} (kb)\n"
            f"BPM: {bpm if bpm is not None else 'N/A'}\n"
            f"Sample Rate: {self.sample_rate} (Hz)\n"
            f"Bit Depth: {self.bit_depth} (bits per sample)\n"
            f"Channels: {self.channels}"
        )

    def __repr__(self) -> str:
        if not self.loaded:
            return "WaveContainer(<empty>)"
        return (
            f"WaveContainer(path={self._path!r}, sample_rate={self.sample_rate}, "
            f"channels={self.channels}, bit_depth={self.bit_depth}, duration={self.duration})"
        )


def _tag(value: str) -> bytes:
    return value.encode("ascii", errors="replace")[:4].ljust(4, b" ")
