"""Writing of uncompressed TGA images from 8-bit image data."""

from __future__ import annotations

import enum
import os
import struct
from typing import Union

import numpy as np

_HEADER = struct.Struct("<BBBHHBHHHHBB")
_TOP_LEFT_ORIGIN = 0x20


class _TgaType(enum.IntEnum):
    BGR_UNCOMPRESSED = 2
    MONO_UNCOMPRESSED = 3


PathLike = Union[str, "os.PathLike[str]"]


def _header(width: int, height: int, kind: _TgaType, bits_per_pixel: int) -> bytes:
    return _HEADER.pack(
        0, 0, int(kind), 0, 0, 0, 0, 0,
        width & 0xFFFF, height & 0xFFFF,
        bits_per_pixel, _TOP_LEFT_ORIGIN,
    )


def _pixels(data, count: int) -> np.ndarray:
    if isinstance(data, (bytes, bytearray, memoryview)):
        array = np.frombuffer(data, dtype=np.uint8)
    else:
        array = np.asarray(data, dtype=np.uint8).reshape(-1)
    if array.size < count:
        raise ValueError(f"image data holds {array.size} bytes, {count} are needed")
    return array[:count]


def _save(path: PathLike, header: bytes, body: bytes) -> None:
    with open(path, "wb") as handle:
        handle.write(header)
        handle.write(body)


def save_monochrome(path: PathLike, width: int, height: int, data) -> None:
    """Save 8-bit single-channel data as a grayscale TGA."""
    pixels = _pixels(data, width * height)
    _save(path, _header(width, height, _TgaType.MONO_UNCOMPRESSED, 8), pixels.tobytes())


def save_rgb(path: PathLike, width: int, height: int, data) -> None:
    """Save 8-bit interleaved RGBA data as a 24-bit TGA, dropping alpha."""
    rgba = _pixels(data, width * height * 4).reshape(-1, 4)
    bgr = rgba[:, [2, 1, 0]]
    _save(path, _header(width, height, _TgaType.BGR_UNCOMPRESSED, 24), bgr.tobytes())


def save_rgba(path: PathLike, width: int, height: int, data) -> None:
    """Save 8-bit interleaved RGBA data as a 32-bit TGA."""
    rgba = _pixels(data, width * height * 4).reshape(-1, 4)
    bgra = rgba[:, [2, 1, 0, 3]]
    _save(path, _header(width, height, _TgaType.BGR_UNCOMPRESSED, 32), bgra.tobytes())