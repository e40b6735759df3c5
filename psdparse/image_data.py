"""Parsing of the image data section, which holds the merged image."""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from .document import Document, FileLike, PsdFormatError
from .model import ImageDataSection
from .reader import BytesLike, SyncFileReader

_RAW = 0
_RLE = 1

_DTYPES = {
    8: np.dtype(np.uint8),
    16: np.dtype(">u2"),
    32: np.dtype(">f4"),
}


def decompress_rle(data: BytesLike, size: int) -> bytes:
    """Expand PackBits-compressed ``data`` into exactly ``size`` bytes.

    Output that falls short of ``size`` is padded with zero bytes; output that
    would exceed it, or input that ends in the middle of a packet, raises
    ``ValueError``.
    """
    src = bytes(data)
    out = bytearray()
    pos = 0
    end = len(src)
    while pos < end:
        header = src[pos]
        pos += 1
        if header == 0x80:
            continue
        if header > 0x80:
            if pos >= end:
                raise ValueError("RLE run is missing its value byte")
            out += src[pos:pos + 1] * (0x101 - header)
            pos += 1
        else:
            count = header + 1
            literal = src[pos:pos + count]
            if len(literal) < count:
                raise ValueError("RLE literal packet is truncated")
            out += literal
            pos += count
        if len(out) > size:
            raise ValueError(f"RLE data expands past {size} bytes")
    out.extend(bytes(size - len(out)))
    return bytes(out)


def _plane(raw: bytes, dtype: np.dtype, width: int, height: int) -> np.ndarray:
    big_endian = np.frombuffer(raw, dtype=dtype)
    return big_endian.astype(dtype.newbyteorder("="), copy=True).reshape(height, width)


def _read_raw(reader: SyncFileReader, channel_count: int, plane_bytes: int) -> List[bytes]:
    return [reader.read(plane_bytes) for _ in range(channel_count)]


def _read_rle(
    reader: SyncFileReader, channel_count: int, height: int, plane_bytes: int
) -> Optional[List[bytes]]:
    # Every scan line of every channel is preceded by a 2-byte compressed size.
    channel_sizes = [
        sum(reader.read_u16() for _ in range(height)) for _ in range(channel_count)
    ]
    if sum(channel_sizes) == 0:
        return None
    return [decompress_rle(reader.read(size), plane_bytes) for size in channel_sizes]


def parse_image_data_section(
    document: Document, file: FileLike
) -> Optional[ImageDataSection]:
    """Parse the merged image into one planar array per channel.

    Returns None when the image is empty. Arrays have shape (height, width)
    and native byte order.
    """
    section = document.image_data_section
    if section.length == 0:
        raise PsdFormatError("document does not contain an image data section")

    reader = SyncFileReader(file)
    reader.position = section.offset
    width = document.width
    height = document.height
    channel_count = document.channel_count

    try:
        compression = reader.read_u16()
        if compression not in (_RAW, _RLE):
            raise PsdFormatError(f"unhandled compression type {compression}")
        dtype = _DTYPES.get(document.bits_per_channel)
        if dtype is None:
            raise PsdFormatError(
                f"unhandled bits per channel: {document.bits_per_channel}"
            )

        plane_bytes = width * height * dtype.itemsize
        if compression == _RAW:
            if width * height == 0:
                return None
            planes = _read_raw(reader, channel_count, plane_bytes)
        else:
            planes = _read_rle(reader, channel_count, height, plane_bytes)
            if planes is None:
                return None
    except EOFError as exc:
        raise PsdFormatError(f"image data section is truncated: {exc}") from exc
    except PsdFormatError:
        raise
    except ValueError as exc:
        raise PsdFormatError(f"image data section is corrupt: {exc}") from exc

    return ImageDataSection(images=[_plane(raw, dtype, width, height) for raw in planes])