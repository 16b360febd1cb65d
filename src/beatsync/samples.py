"""PCM sample buffers for the two supported representations.

``SampleBuffer`` is a small sum type: ``Int16Samples`` for 16-bit signed PCM and
``Float32Samples`` for 32-bit IEEE float PCM. The variant is picked once, from
the bit depth, and carries its own decode/encode and editing operations.
"""

from __future__ import annotations

import abc
from typing import ClassVar

import numpy as np


class SampleBuffer(abc.ABC):
    """Homogeneous, little-endian PCM samples held in a numpy array.

    Abstract: instantiate ``Int16Samples`` or ``Float32Samples``.
    """

    dtype: ClassVar[np.dtype]
    bit_depth: ClassVar[int]
    full_scale: ClassVar[float]

    def __init__(self, data: np.ndarray | None = None) -> None:
        if data is None:
            data = np.zeros(0, dtype=self.dtype)
        self.data = np.asarray(data).astype(self.dtype, copy=False).reshape(-1)

    @property
    def sample_width(self) -> int:
        return self.bit_depth // 8

    @property
    def nbytes(self) -> int:
        return self.data.size * self.sample_width

    def __len__(self) -> int:
        return int(self.data.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SampleBuffer):
            return NotImplemented
        return type(self) is type(other) and np.array_equal(self.data, other.data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(n={len(self)})"

    @classmethod
    def from_bytes(
        cls,
        source: bytes | bytearray | memoryview,
        offset: int = 0,
        count: int | None = None,
    ) -> "SampleBuffer":
        """Decode ``count`` samples (default: all that fit) starting at ``offset``."""
        le = np.dtype(cls.dtype).newbyteorder("<")
        available = max(0, (len(source) - offset) // (cls.bit_depth // 8))
        if count is None:
            count = available
        if count < 0 or count > available:
            raise ValueError(f"cannot read {count} samples, only {available} available")
        if count == 0:
            return cls()
        arr = np.frombuffer(source, dtype=le, count=count, offset=offset)
        return cls(arr.astype(cls.dtype))

    def to_bytes(self) -> bytes:
        return self.data.astype(np.dtype(self.dtype).newbyteorder("<")).tobytes()

    def write_into(self, buffer: bytearray, offset: int) -> None:
        """Encode every sample into ``buffer`` starting at ``offset``."""
        payload = self.to_bytes()
        end = offset + len(payload)
        if end > len(buffer):
            raise ValueError("buffer too small for sample data")
        buffer[offset:end] = payload

    def copy(self) -> "SampleBuffer":
        return type(self)(self.data.copy())

    def reverse(self) -> None:
        """Reverse the time axis in place."""
        self.data[:] = self.data[::-1].copy()

    def reverse_polarity(self) -> None:
        np.negative(self.data, out=self.data)

    @abc.abstractmethod
    def normalize(self) -> None:
        """Rescale in place towards the variant's full scale."""

    def mixdown(self, channels: int) -> "SampleBuffer":
        """Average interleaved frames into a single channel of the same type."""
        if channels <= 1:
            return self.copy()
        frames = self.data.size // channels
        x = self.data[: frames * channels].reshape(frames, channels)
        return type(self)(self._from_float(x.astype(np.float64).mean(axis=1)))

    def _from_float(self, x: np.ndarray) -> np.ndarray:
        return x.astype(self.dtype)


class Int16Samples(SampleBuffer):
    dtype = np.dtype(np.int16)
    bit_depth = 16
    full_scale = 32767

    def normalize(self) -> None:
        """Scale up so the loudest sample reaches 32767; never attenuates."""
        if self.data.size == 0:
            return
        wide = self.data.astype(np.int64)
        peak = max(int(np.abs(wide).max()), 1)
        if peak >= self.full_scale:
            return
        # Integer scaling truncates toward zero and lands the peak on full scale exactly.
        scaled = np.sign(wide) * (np.abs(wide) * self.full_scale // peak)
        self.data[:] = scaled.astype(np.int16)

    def _from_float(self, x: np.ndarray) -> np.ndarray:
        return np.trunc(x).astype(self.dtype)


class Float32Samples(SampleBuffer):
    dtype = np.dtype(np.float32)
    bit_depth = 32
    full_scale = 1.0

    def normalize(self) -> None:
        """Rescale so the loudest sample is exactly 1.0, attenuating if needed."""
        if self.data.size == 0:
            return
        peak = np.float32(np.abs(self.data).max())
        if peak == 0 or peak == self.full_scale:
            return
        self.data /= peak


_VARIANTS: dict[int, type[SampleBuffer]] = {
    Int16Samples.bit_depth: Int16Samples,
    Float32Samples.bit_depth: Float32Samples,
}

SUPPORTED_BIT_DEPTHS = tuple(_VARIANTS)


def samples_for_bit_depth(bit_depth: int) -> type[SampleBuffer]:
    """Return the buffer variant for ``bit_depth``; raises ``KeyError`` if unsupported."""
    return _VARIANTS[bit_depth]
