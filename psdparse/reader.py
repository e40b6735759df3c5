"""Sequential, big-endian reading and writing on top of seekable binary files."""

from __future__ import annotations

import io
import struct
from typing import BinaryIO, Union

_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_I16 = struct.Struct(">h")
_I32 = struct.Struct(">i")
_F64 = struct.Struct(">d")

BytesLike = Union[bytes, bytearray, memoryview]


def key(code: Union[str, BytesLike]) -> int:
    """Return the 32-bit big-endian value of a four-character code such as ``"8BPS"``."""
    raw = code.encode("latin-1") if isinstance(code, str) else bytes(code)
    if len(raw) != 4:
        raise ValueError(f"a key needs exactly 4 characters, got {len(raw)}")
    return int.from_bytes(raw, "big")


def _as_file(file: Union[BinaryIO, BytesLike]) -> BinaryIO:
    if isinstance(file, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(file))
    return file


class SyncFileReader:
    """Reads a binary file sequentially from an internal position.

    The position is a plain attribute and may be assigned freely; every read
    seeks to it first, so several readers can share one file object.
    """

    def __init__(self, file: Union[BinaryIO, BytesLike]) -> None:
        self._file = _as_file(file)
        self.position = 0

    @property
    def size(self) -> int:
        """Total size of the underlying file in bytes."""
        current = self._file.tell()
        end = self._file.seek(0, io.SEEK_END)
        self._file.seek(current)
        return end

    def read(self, count: int) -> bytes:
        """Read exactly ``count`` bytes and advance the position."""
        if count < 0:
            raise ValueError(f"cannot read a negative number of bytes ({count})")
        self._file.seek(self.position)
        chunks = []
        remaining = count
        while remaining > 0:
            chunk = self._file.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        if len(data) < count:
            raise EOFError(
                f"expected {count} bytes at offset {self.position}, got {len(data)}"
            )
        self.position += count
        return data

    def skip(self, count: int) -> None:
        """Advance the position by ``count`` bytes without reading."""
        self.position += count

    def _unpack(self, fmt: struct.Struct):
        return fmt.unpack(self.read(fmt.size))[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i16(self) -> int:
        return self._unpack(_I16)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_f64(self) -> float:
        return self._unpack(_F64)


class SyncFileWriter:
    """Writes to a binary file sequentially from an internal position."""

    def __init__(self, file: BinaryIO) -> None:
        self._file = file
        self.position = 0

    def write(self, data: BytesLike) -> None:
        """Write ``data`` at the current position and advance past it."""
        view = memoryview(data).cast("B")
        self._file.seek(self.position)
        self._file.write(view)
        self.position += view.nbytes