"""Parsing of the image resources section."""

from __future__ import annotations

import enum
from typing import List, Optional

from .document import Document, FileLike, PsdFormatError
from .model import AlphaChannel, ImageResourcesSection, Thumbnail
from .reader import SyncFileReader, key

_SIGNATURES = (key("8BIM"), key("psdM"))


class _Resource(enum.IntEnum):
    ALPHA_CHANNEL_ASCII_NAMES = 1006
    DISPLAY_INFO = 1007
    THUMBNAIL_RESOURCE = 1036
    ICC_PROFILE = 1039
    VERSION_INFO = 1057
    EXIF_DATA = 1058
    XMP_METADATA = 1060


def _round_up_even(value: int) -> int:
    return value + (value & 1)


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("latin-1")


def _new_alpha_channels(document: Document) -> List[AlphaChannel]:
    # Extra channels are whatever lies beyond the three RGB channels.
    return [AlphaChannel() for _ in range(max(0, document.channel_count - 3))]


def _read_display_info(reader: SyncFileReader, channels: List[AlphaChannel]) -> None:
    reader.read_u32()  # version
    for channel in channels:
        channel.color_space = reader.read_u16()
        channel.color = tuple(reader.read_u16() for _ in range(4))
        channel.opacity = reader.read_u16()
        channel.mode = reader.read_u8()


def _read_ascii_names(
    reader: SyncFileReader, channels: List[AlphaChannel], resource_size: int
) -> None:
    names = iter(channels)
    remaining = resource_size
    while remaining > 0:
        length = reader.read_u8()
        name = reader.read(length) if length else b""
        remaining -= 1 + length
        channel = next(names, None)
        if channel is not None:
            channel.ascii_name = _decode_name(name)


def _read_thumbnail(reader: SyncFileReader) -> Thumbnail:
    reader.read_u32()  # format
    width = reader.read_u32()
    height = reader.read_u32()
    reader.read_u32()  # width in bytes
    reader.read_u32()  # total size
    jpeg_size = reader.read_u32()
    reader.read_u16()  # bits per pixel
    reader.read_u16()  # number of planes
    return Thumbnail(width=width, height=height, binary_jpeg=reader.read(jpeg_size))


def parse_image_resources_section(
    document: Document, file: FileLike
) -> ImageResourcesSection:
    """Parse alpha channel info, ICC profile, EXIF, XMP, version info and thumbnail."""
    section = document.image_resources_section
    result = ImageResourcesSection()
    alpha_channels: Optional[List[AlphaChannel]] = None

    reader = SyncFileReader(file)
    reader.position = section.offset
    end = section.offset + section.length

    try:
        while end - reader.position > 0:
            if reader.read_u32() not in _SIGNATURES:
                raise PsdFormatError(
                    'image resources section is corrupt, signature does not match "8BIM"'
                )
            resource_id = reader.read_u16()

            # Pascal-string name, padded so that length byte plus name is even.
            name_length = reader.read_u8()
            reader.skip(_round_up_even(name_length + 1) - 1)

            resource_size = _round_up_even(reader.read_u32())
            next_position = reader.position + resource_size

            if resource_id == _Resource.DISPLAY_INFO:
                if alpha_channels is None:
                    alpha_channels = _new_alpha_channels(document)
                _read_display_info(reader, alpha_channels)
            elif resource_id == _Resource.ALPHA_CHANNEL_ASCII_NAMES:
                if alpha_channels is None:
                    alpha_channels = _new_alpha_channels(document)
                _read_ascii_names(reader, alpha_channels, resource_size)
            elif resource_id == _Resource.VERSION_INFO:
                reader.read_u32()  # version
                result.contains_real_merged_data = reader.read_u8() != 0
            elif resource_id == _Resource.THUMBNAIL_RESOURCE:
                result.thumbnail = _read_thumbnail(reader)
            elif resource_id == _Resource.XMP_METADATA:
                if result.xmp_metadata is not None:
                    raise PsdFormatError("file contains more than one XMP metadata resource")
                result.xmp_metadata = reader.read(resource_size)
            elif resource_id == _Resource.ICC_PROFILE:
                if result.icc_profile is not None:
                    raise PsdFormatError("file contains more than one ICC profile")
                result.icc_profile = reader.read(resource_size)
            elif resource_id == _Resource.EXIF_DATA:
                if result.exif_data is not None:
                    raise PsdFormatError("file contains more than one EXIF data block")
                result.exif_data = reader.read(resource_size)

            reader.position = next_position
    except EOFError as exc:
        raise PsdFormatError(f"image resources section is truncated: {exc}") from exc

    if alpha_channels is not None:
        result.alpha_channels = alpha_channels
    return result