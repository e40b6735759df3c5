"""Parsing of the PSD file header and the color mode data section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Union

from .model import ColorModeDataSection, Section
from .reader import BytesLike, SyncFileReader, key

_SIGNATURE = key("8BPS")
_RESERVED_SIZE = 6

FileLike = Union[BinaryIO, BytesLike]


class PsdFormatError(ValueError):
    """Raised when a file does not have the structure of a PSD document."""


@dataclass
class Document:
    """Header information and section locations of a PSD document."""

    channel_count: int = 0
    height: int = 0
    width: int = 0
    bits_per_channel: int = 0
    color_mode: int = 0
    color_mode_data_section: Section = field(default_factory=Section)
    image_resources_section: Section = field(default_factory=Section)
    layer_mask_info_section: Section = field(default_factory=Section)
    image_data_section: Section = field(default_factory=Section)


def _length_prefixed_section(reader: SyncFileReader) -> Section:
    length = reader.read_u32()
    section = Section(offset=reader.position, length=length)
    reader.skip(length)
    return section


def parse_document(file: FileLike) -> Document:
    """Parse the header and the section offsets of a PSD file."""
    reader = SyncFileReader(file)
    try:
        if reader.read_u32() != _SIGNATURE:
            raise PsdFormatError('signature does not match "8BPS"')
        if reader.read_u16() != 1:
            raise PsdFormatError("version does not match 1")
        if any(reader.read(_RESERVED_SIZE)):
            raise PsdFormatError("reserved bytes are not zero")

        document = Document(
            channel_count=reader.read_u16(),
            height=reader.read_u32(),
            width=reader.read_u32(),
            bits_per_channel=reader.read_u16(),
            color_mode=reader.read_u16(),
        )
        document.color_mode_data_section = _length_prefixed_section(reader)
        document.image_resources_section = _length_prefixed_section(reader)
        document.layer_mask_info_section = _length_prefixed_section(reader)
    except EOFError as exc:
        raise PsdFormatError(f"file is truncated: {exc}") from exc

    # The image data section has no length field; it runs to the end of the file.
    document.image_data_section = Section(
        offset=reader.position,
        length=max(0, reader.size - reader.position),
    )
    return document


def parse_color_mode_data_section(
    document: Document, file: FileLike
) -> Optional[ColorModeDataSection]:
    """Return the raw color mode data, or None if the section is empty."""
    section = document.color_mode_data_section
    if section.length == 0:
        return None
    reader = SyncFileReader(file)
    reader.position = section.offset
    return ColorModeDataSection(color_data=reader.read(section.length))