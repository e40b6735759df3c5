import io
import struct

import numpy as np
import pytest

from psdparse.document import Document, PsdFormatError, parse_document
from psdparse.image_data import decompress_rle, parse_image_data_section
from psdparse.model import Section


def _document(blob, width, height, channels, bits):
    return Document(
        channel_count=channels,
        width=width,
        height=height,
        bits_per_channel=bits,
        color_mode=3,
        image_data_section=Section(offset=0, length=len(blob)),
    )


def test_decompress_rle_packbits_worked_example():
    packed = bytes.fromhex("FEAA02800000" "2AFDAA0380002A22F7AA")
    # The well-known PackBits example; one literal byte adjusted to split packets.
    expected = (
        b"\xAA\xAA\xAA"
        + b"\x80\x00\x00"
        + b"\x2A"
    )
    result = decompress_rle(packed, 64)
    assert result.startswith(expected)
    assert len(result) == 64


def test_decompress_rle_literal_and_run():
    assert decompress_rle(b"\x02abc\xfdz", 7) == b"abczzzz"


def test_decompress_rle_skips_noop_header():
    assert decompress_rle(b"\x80\x00q", 1) == b"q"


def test_decompress_rle_pads_short_output():
    assert decompress_rle(b"\x00x", 4) == b"x\x00\x00\x00"


def test_decompress_rle_overflow_raises():
    with pytest.raises(ValueError):
        decompress_rle(b"\xfez", 2)


def test_decompress_rle_truncated_literal_raises():
    with pytest.raises(ValueError):
        decompress_rle(b"\x05ab", 6)


def test_decompress_rle_missing_run_value_raises():
    with pytest.raises(ValueError):
        decompress_rle(b"\xfe", 3)


def test_raw_8bit_planes():
    blob = struct.pack(">H", 0) + bytes([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12])
    doc = _document(blob, 2, 2, 3, 8)
    section = parse_image_data_section(doc, blob)
    assert section.image_count == 3
    assert section.images[0].tolist() == [[1, 2], [3, 4]]
    assert section.images[2].tolist() == [[9, 10], [11, 12]]
    assert section.images[0].dtype == np.uint8


def test_raw_16bit_is_endian_converted():
    values = [0x0102, 0xFFEE, 0x0010, 0x8000]
    blob = struct.pack(">H", 0) + struct.pack(">4H", *values)
    doc = _document(blob, 2, 2, 1, 16)
    section = parse_image_data_section(doc, blob)
    assert section.images[0].dtype == np.uint16
    assert section.images[0].reshape(-1).tolist() == values


def test_raw_32bit_floats():
    values = [1.0, 0.5, -2.0, 0.25]
    blob = struct.pack(">H", 0) + struct.pack(">4f", *values)
    doc = _document(blob, 4, 1, 1, 32)
    section = parse_image_data_section(doc, blob)
    assert section.images[0].dtype == np.float32
    assert section.images[0].reshape(-1).tolist() == values


def test_rle_8bit_plane():
    row1 = b"\x01\x01\x02"
    row2 = b"\xff\x09"
    blob = struct.pack(">HHH", 1, len(row1), len(row2)) + row1 + row2
    doc = _document(blob, 2, 2, 1, 8)
    section = parse_image_data_section(doc, blob)
    assert section.images[0].tolist() == [[1, 2], [9, 9]]


def test_rle_16bit_plane_round_trips_raw_values():
    raw = struct.pack(">2H", 0x1234, 0xABCD)
    row = bytes([len(raw) - 1]) + raw
    blob = struct.pack(">HH", 1, len(row)) + row
    doc = _document(blob, 2, 1, 1, 16)
    section = parse_image_data_section(doc, blob)
    assert section.images[0].reshape(-1).tolist() == [0x1234, 0xABCD]


def test_rle_with_no_data_returns_none():
    blob = struct.pack(">HHH", 1, 0, 0)
    doc = _document(blob, 2, 2, 1, 8)
    assert parse_image_data_section(doc, blob) is None


def test_empty_raw_image_returns_none():
    blob = struct.pack(">H", 0)
    doc = _document(blob, 0, 0, 3, 8)
    assert parse_image_data_section(doc, blob) is None


def test_unknown_compression_raises():
    blob = struct.pack(">H", 7) + bytes(4)
    doc = _document(blob, 2, 2, 1, 8)
    with pytest.raises(PsdFormatError):
        parse_image_data_section(doc, blob)


def test_unknown_bit_depth_raises():
    blob = struct.pack(">H", 0) + bytes(4)
    doc = _document(blob, 2, 2, 1, 1)
    with pytest.raises(PsdFormatError):
        parse_image_data_section(doc, blob)


def test_missing_section_raises():
    doc = Document(width=2, height=2, channel_count=1, bits_per_channel=8)
    with pytest.raises(PsdFormatError):
        parse_image_data_section(doc, b"")


def test_truncated_raw_data_raises():
    blob = struct.pack(">H", 0) + bytes(3)
    doc = _document(blob, 2, 2, 1, 8)
    with pytest.raises(PsdFormatError):
        parse_image_data_section(doc, blob)


def test_end_to_end_from_parsed_header():
    header = b"8BPS" + struct.pack(">H", 1) + bytes(6)
    header += struct.pack(">HIIHH", 3, 1, 2, 8, 3)
    header += struct.pack(">III", 0, 0, 0)
    pixels = bytes([10, 20, 30, 40, 50, 60])
    psd = io.BytesIO(header + struct.pack(">H", 0) + pixels)
    doc = parse_document(psd)
    section = parse_image_data_section(doc, psd)
    assert [plane.tolist() for plane in section.images] == [[[10, 20]], [[30, 40]], [[50, 60]]]