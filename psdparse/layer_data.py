"""Extraction of the planar pixel data of individual layers."""

from __future__ import annotations

import zlib
from typing import Optional, Tuple

import numpy as np

from .document import Document, FileLike, PsdFormatError
from .image_data import decompress_rle
from .model import Channel, ChannelType, Layer, LayerMask
from .reader import BytesLike, SyncFileReader

_RAW = 0
_RLE = 1
_ZIP = 2
_ZIP_WITH_PREDICTION = 3

_DTYPES = {
    8: np.dtype(np.uint8),
    16: np.dtype(">u2"),
    32: np.dtype(">f4"),
}


def _dtype_for(bits_per_channel: int) -> np.dtype:
    dtype = _DTYPES.get(bits_per_channel)
    if dtype is None:
        raise PsdFormatError(f"unhandled bits per channel: {bits_per_channel}")
    return dtype


def _fit(raw: bytes, size: int) -> bytes:
    if len(raw) < size:
        return raw + bytes(size - len(raw))
    return raw[:size]


def _to_native(raw: bytes, dtype: np.dtype, width: int, height: int) -> np.ndarray:
    big_endian = np.frombuffer(raw, dtype=dtype)
    return big_endian.astype(dtype.newbyteorder("="), copy=True).reshape(height, width)


def apply_prediction(
    data: BytesLike, width: int, height: int, bits_per_channel: int
) -> np.ndarray:
    """Undo the row-wise delta encoding of ZIP-with-prediction channel data.

    ``data`` holds the inflated, big-endian bytes. The result has shape
    (height, width) and native byte order.
    """
    dtype = _dtype_for(bits_per_channel)
    raw = _fit(bytes(data), width * height * dtype.itemsize)

    if bits_per_channel == 8:
        deltas = np.frombuffer(raw, dtype=np.uint8).reshape(height, width)
        return np.cumsum(deltas, axis=1, dtype=np.uint8)

    if bits_per_channel == 16:
        deltas = np.frombuffer(raw, dtype=">u2").astype(np.uint16).reshape(height, width)
        return np.cumsum(deltas, axis=1, dtype=np.uint16)

    # 32-bit floats: bytes are delta-encoded per row, then stored as four byte
    # planes (most significant first) that need interleaving.
    deltas = np.frombuffer(raw, dtype=np.uint8).reshape(height, width * 4)
    decoded = np.cumsum(deltas, axis=1, dtype=np.uint8)
    interleaved = np.ascontiguousarray(
        decoded.reshape(height, 4, width).transpose(0, 2, 1)
    )
    floats = interleaved.view(">f4").reshape(height, width)
    return floats.astype(np.float32)


def _inflate(raw: bytes, size: int) -> bytes:
    try:
        out = zlib.decompressobj().decompress(raw, size)
    except zlib.error as exc:
        raise PsdFormatError(f"error while unzipping channel data: {exc}") from exc
    return _fit(out, size)


def _require_layer_mask(layer: Layer) -> LayerMask:
    if layer.layer_mask is None:
        raise PsdFormatError("channel refers to a layer mask the layer does not have")
    return layer.layer_mask


def _mask_for(layer: Layer, channel: Channel) -> Optional[LayerMask]:
    if channel.type == ChannelType.LAYER_OR_VECTOR_MASK:
        # With a vector mask present, this type always denotes the vector mask.
        if layer.vector_mask is not None:
            return layer.vector_mask
        if layer.layer_mask is not None:
            return layer.layer_mask
        raise PsdFormatError("channel refers to a mask the layer does not have")
    if channel.type == ChannelType.LAYER_MASK:
        return _require_layer_mask(layer)
    return None


def _channel_extents(layer: Layer, channel: Channel) -> Tuple[int, int]:
    mask = _mask_for(layer, channel)
    holder = mask if mask is not None else layer
    return holder.width, holder.height


def _channel_default_color(layer: Layer, channel: Channel) -> int:
    mask = _mask_for(layer, channel)
    return mask.default_color if mask is not None else 0


def _read_channel(
    reader: SyncFileReader,
    channel: Channel,
    bits_per_channel: int,
    width: int,
    height: int,
) -> Optional[np.ndarray]:
    dtype = _dtype_for(bits_per_channel)
    plane_bytes = width * height * dtype.itemsize
    compression = reader.read_u16()

    if compression == _RAW:
        if width * height == 0:
            return None
        return _to_native(reader.read(plane_bytes), dtype, width, height)

    if compression == _RLE:
        # Every scan line is preceded by a 2-byte compressed size.
        rle_size = sum(reader.read_u16() for _ in range(height))
        if rle_size == 0:
            return None
        try:
            raw = decompress_rle(reader.read(rle_size), plane_bytes)
        except ValueError as exc:
            raise PsdFormatError(f"channel RLE data is corrupt: {exc}") from exc
        return _to_native(raw, dtype, width, height)

    if compression in (_ZIP, _ZIP_WITH_PREDICTION):
        if channel.size < 2:
            raise PsdFormatError(f"invalid channel data size {channel.size}")
        # The compression type field is counted in the channel size.
        zip_size = channel.size - 2
        if zip_size == 0:
            return None
        raw = _inflate(reader.read(zip_size), plane_bytes)
        # 32-bit documents always use prediction, whatever the stored type says.
        if compression == _ZIP and bits_per_channel != 32:
            return _to_native(raw, dtype, width, height)
        return apply_prediction(raw, width, height, bits_per_channel)

    raise PsdFormatError(f"unsupported compression type {compression}")


def _filled(color: int, bits_per_channel: int, width: int, height: int) -> np.ndarray:
    dtype = _dtype_for(bits_per_channel)
    raw = np.full(width * height * dtype.itemsize, color, dtype=np.uint8).tobytes()
    return _to_native(raw, dtype, width, height)


def _move_to_mask(channel: Channel, mask: LayerMask) -> None:
    if mask.data is not None:
        raise ValueError("mask data has already been assigned")
    mask.data = channel.data
    mask.file_offset = channel.file_offset
    channel.data = None
    channel.type = ChannelType.INVALID
    channel.file_offset = 0


def extract_layer(document: Document, file: FileLike, layer: Layer) -> None:
    """Read the pixel data of every channel of ``layer``.

    Color and transparency channels keep their data in ``channel.data``; mask
    channels hand theirs over to the layer's layer mask or vector mask.
    """
    bits = document.bits_per_channel
    _dtype_for(bits)
    reader = SyncFileReader(file)

    for channel in layer.channels:
        width, height = _channel_extents(layer, channel)
        if channel.data is not None:
            raise ValueError("channel data has already been loaded")
        reader.position = channel.file_offset
        try:
            channel.data = _read_channel(reader, channel, bits, width, height)
        except EOFError as exc:
            raise PsdFormatError(f"channel data is truncated: {exc}") from exc

        # Masks without stored pixels (e.g. pure black or white) only have a default color.
        if channel.data is None and channel.type < 0:
            channel.data = _filled(
                _channel_default_color(layer, channel), bits, width, height
            )

    for channel in layer.channels:
        mask = _mask_for(layer, channel)
        if mask is not None:
            _move_to_mask(channel, mask)