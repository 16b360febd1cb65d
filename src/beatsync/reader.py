"""Bounds-checked little-endian cursor over a byte slice."""

from __future__ import annotations

import struct

from .errors import CorruptChunkError

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


class ByteReader:
    """Sequential reader; every read past the end raises ``CorruptChunkError``."""

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0) -> None:
        self.data = bytes(data)
        self.offset = 0
        self.seek(offset)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def seek(self, offset: int) -> None:
        if not 0 <= offset <= len(self.data):
            raise CorruptChunkError(f"offset {offset} outside 0..{len(self.data)}")
        self.offset = offset

    def _take(self, size: int) -> bytes:
        if size < 0 or size > self.remaining:
            raise CorruptChunkError(
                f"need {size} bytes at offset {self.offset}, {self.remaining} left"
            )
        chunk = self.data[self.offset : self.offset + size]
        self.offset += size
        return chunk

    def read_bytes(self, size: int) -> bytes:
        return self._take(size)

    def read_tag(self, size: int = 4) -> str:
        return self._take(size).decode("ascii", errors="replace")

    def read_u16(self) -> int:
        return _U16.unpack(self._take(_U16.size))[0]

    def read_u32(self) -> int:
        return _U32.unpack(self._take(_U32.size))[0]

    def find(self, tag: bytes, start: int | None = None) -> int:
        """Index of the first ``tag`` at or after ``start`` (default: cursor), or -1."""
        begin = self.offset if start is None else start
        return self.data.find(tag, begin)
