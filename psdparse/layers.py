"""Parsing of the layer and mask information section."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .document import Document, FileLike, PsdFormatError
from .model import Channel, Layer, LayerMask, LayerMaskSection, LayerType, VectorMask
from .reader import SyncFileReader, key

_SIGNATURE = key("8BIM")
_SECTION_DIVIDER_SETTING = key("lsct")
_UNICODE_LAYER_NAME = key("luni")
_LAYERS_16 = key("Lr16")
_LAYERS_32 = key("Lr32")

_MAX_GROUP_DEPTH = 256
_MASK_RECT_SIZE = 16
_SECOND_MASK_MIN_SIZE = 18
_SINGLE_MASK_MAX_SIZE = 28
_GLOBAL_MASK_FIXED_SIZE = 13
_BLOCK_HEADER_SIZE = 12

_FLAG_HIDDEN = 1 << 1
_MASK_FLAG_VECTOR = 1 << 3
_MASK_FLAG_HAS_PARAMETERS = 1 << 4


@dataclass
class _MaskData:
    top: int = 0
    left: int = 0
    bottom: int = 0
    right: int = 0
    default_color: int = 0
    is_vector_mask: bool = False


@dataclass
class _MaskParameters:
    layer_density: int = 0
    layer_feather: float = 0.0
    vector_density: int = 0
    vector_feather: float = 0.0


def _round_up(value: int, multiple: int) -> int:
    return (value + multiple - 1) // multiple * multiple


def _decode_c_string(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("latin-1")


def _read_mask_rectangle(reader: SyncFileReader, mask: _MaskData) -> int:
    mask.top = reader.read_i32()
    mask.left = reader.read_i32()
    mask.bottom = reader.read_i32()
    mask.right = reader.read_i32()
    return _MASK_RECT_SIZE


def _read_mask_parameters(reader: SyncFileReader, params: _MaskParameters) -> int:
    flags = reader.read_u8()
    consumed = 1
    if flags & 0x01:
        params.layer_density = reader.read_u8()
        consumed += 1
    if flags & 0x02:
        params.layer_feather = reader.read_f64()
        consumed += 8
    if flags & 0x04:
        params.vector_density = reader.read_u8()
        consumed += 1
    if flags & 0x08:
        params.vector_feather = reader.read_f64()
        consumed += 8
    return consumed


def _read_masks(reader: SyncFileReader, layer: Layer, length: int) -> None:
    """Read the layer mask data block, which describes up to two masks."""
    params = _MaskParameters()
    first = _MaskData()
    masks = [first]

    to_read = length
    to_read -= _read_mask_rectangle(reader, first)
    first.default_color = reader.read_u8()
    flags = reader.read_u8()
    to_read -= 2

    first.is_vector_mask = bool(flags & _MASK_FLAG_VECTOR)
    has_parameters = bool(flags & _MASK_FLAG_HAS_PARAMETERS)
    if has_parameters and length <= _SINGLE_MASK_MAX_SIZE:
        to_read -= _read_mask_parameters(reader, params)

    if to_read >= _SECOND_MASK_MIN_SIZE:
        # What was read so far described the vector mask; the real layer mask follows.
        second = _MaskData()
        masks.append(second)
        real_flags = reader.read_u8()
        second.default_color = reader.read_u8()
        to_read -= 2
        to_read -= _read_mask_rectangle(reader, second)
        second.is_vector_mask = bool(real_flags & _MASK_FLAG_VECTOR)
        # Parameters follow if either of the two masks announced them.
        has_parameters |= bool(real_flags & _MASK_FLAG_HAS_PARAMETERS)
        if has_parameters:
            to_read -= _read_mask_parameters(reader, params)

    if to_read < 0:
        raise PsdFormatError(f"layer mask data overran its length by {-to_read} bytes")
    reader.skip(to_read)

    for mask in masks:
        bounds = dict(top=mask.top, left=mask.left, bottom=mask.bottom, right=mask.right)
        if mask.is_vector_mask:
            if layer.vector_mask is not None:
                raise PsdFormatError("a vector mask already exists")
            layer.vector_mask = VectorMask(
                **bounds,
                feather=params.vector_feather,
                density=params.vector_density,
                default_color=mask.default_color,
            )
        else:
            if layer.layer_mask is not None:
                raise PsdFormatError("a layer mask already exists")
            layer.layer_mask = LayerMask(
                **bounds,
                feather=params.layer_feather,
                density=params.layer_density,
                default_color=mask.default_color,
            )


def _read_additional_layer_info(reader: SyncFileReader, layer: Layer, size: int) -> None:
    to_read = size
    while to_read > 0:
        if reader.read_u32() != _SIGNATURE:
            raise PsdFormatError(
                'additional layer information is corrupt, signature does not match "8BIM"'
            )
        block_key = reader.read_u32()
        length = _round_up(reader.read_u32(), 2)
        start = reader.position

        if block_key == _SECTION_DIVIDER_SETTING:
            layer.type = reader.read_u32()
        elif block_key == _UNICODE_LAYER_NAME:
            # Character count, not byte count, followed by UTF-16 data without a terminator.
            character_count = reader.read_u32()
            raw = reader.read(character_count * 2)
            layer.unicode_name = raw.decode("utf-16-be", errors="surrogatepass")

        reader.position = start + length
        to_read -= _BLOCK_HEADER_SIZE + length


def _read_layer_record(reader: SyncFileReader) -> Layer:
    layer = Layer()
    layer.top = reader.read_i32()
    layer.left = reader.read_i32()
    layer.bottom = reader.read_i32()
    layer.right = reader.read_i32()

    channels: List[Channel] = []
    for _ in range(reader.read_u16()):
        channel_type = reader.read_i16()
        channel_size = reader.read_u32()
        channels.append(Channel(size=channel_size, type=channel_type))
    layer.channels = channels

    if reader.read_u32() != _SIGNATURE:
        raise PsdFormatError(
            'layer mask info section is corrupt, signature does not match "8BIM"'
        )
    layer.blend_mode_key = reader.read_u32()
    layer.opacity = reader.read_u8()
    layer.clipping = reader.read_u8()
    layer.is_visible = not (reader.read_u8() & _FLAG_HIDDEN)
    reader.skip(1)  # filler

    extra_data_length = reader.read_u32()
    mask_data_length = reader.read_u32()
    if mask_data_length:
        _read_masks(reader, layer, mask_data_length)

    blending_ranges_length = reader.read_u32()
    reader.skip(blending_ranges_length)

    # Pascal string padded to a multiple of four bytes, length byte included.
    name_length = reader.read_u8()
    padded_name_length = _round_up(name_length + 1, 4)
    layer.name = _decode_c_string(reader.read(padded_name_length - 1)[:name_length])

    additional_size = (
        extra_data_length
        - mask_data_length
        - blending_ranges_length
        - padded_name_length
        - 8
    )
    _read_additional_layer_info(reader, layer, additional_size)
    return layer


def _parse_layers(
    reader: SyncFileReader, section_offset: int, section_length: int, layer_length: int
) -> LayerMaskSection:
    result = LayerMaskSection()

    if layer_length != 0:
        # A negative count means the first alpha channel holds the merged transparency.
        layer_count = reader.read_i16()
        result.has_transparency_mask = layer_count < 0
        result.layers = [_read_layer_record(reader) for _ in range(abs(layer_count))]

        # Channel data follows all records; remember where each channel starts.
        for layer in result.layers:
            for channel in layer.channels:
                channel.file_offset = reader.position
                reader.skip(channel.size)

    if section_length > 0:
        global_offset = section_offset + layer_length + 4
        reader.position = global_offset
        to_read = section_offset + section_length - global_offset
        if to_read > 0:
            global_mask_length = reader.read_u32()
            to_read -= 4
            if global_mask_length != 0:
                result.overlay_color_space = reader.read_u16()
                reader.skip(8)  # four 16-bit color components
                result.opacity = reader.read_u16()
                result.kind = reader.read_u8()
                filler = global_mask_length - _GLOBAL_MASK_FIXED_SIZE
                if filler < 0:
                    raise PsdFormatError("global layer mask info is too short")
                reader.skip(filler)
                to_read -= global_mask_length

            while to_read > 0:
                if reader.read_u32() != _SIGNATURE:
                    raise PsdFormatError(
                        'additional layer information is corrupt, signature does not match "8BIM"'
                    )
                block_key = reader.read_u32()
                length = _round_up(reader.read_u32(), 4)
                start = reader.position
                if block_key in (_LAYERS_16, _LAYERS_32):
                    # 16- and 32-bit documents keep their layers here instead.
                    result = _parse_layers(reader, 0, 0, length)
                reader.position = start + length
                to_read -= _BLOCK_HEADER_SIZE + length

    return result


def _link_parents(layers: List[Layer]) -> None:
    """Assign each layer its enclosing group, walking the layers from top to bottom."""
    stack: List[Layer | None] = [None]
    for layer in reversed(layers):
        if not stack or len(stack) > _MAX_GROUP_DEPTH:
            raise PsdFormatError("layer groups are not properly nested")
        layer.parent = stack[-1]
        if layer.type == LayerType.SECTION_DIVIDER:
            stack.pop()
        elif layer.type in (LayerType.OPEN_FOLDER, LayerType.CLOSED_FOLDER):
            stack.append(layer)


def parse_layer_mask_section(document: Document, file: FileLike) -> LayerMaskSection:
    """Parse layer records, masks and channel locations, and build the group hierarchy.

    Channel pixel data is not read; only each channel's file offset is recorded.
    """
    section = document.layer_mask_info_section
    if section.length == 0:
        raise PsdFormatError("document does not contain a layer mask section")

    reader = SyncFileReader(file)
    reader.position = section.offset
    try:
        layer_length = reader.read_u32()
        result = _parse_layers(reader, section.offset, section.length, layer_length)
    except EOFError as exc:
        raise PsdFormatError(f"layer mask section is truncated: {exc}") from exc

    _link_parents(result.layers)
    return result