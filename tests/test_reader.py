import io
import struct

import pytest

from psdparse.reader import SyncFileReader, SyncFileWriter, key


def test_key_signature_value():
    assert key("8BPS") == 0x38425053


def test_key_accepts_bytes_and_str_equally():
    assert key(b"8BIM") == key("8BIM")
    assert key("lsct") == int.from_bytes(b"lsct", "big")


@pytest.mark.parametrize("code", ["", "8BP", "8BPSX"])
def test_key_rejects_wrong_length(code):
    with pytest.raises(ValueError):
        key(code)


def test_read_integers_big_endian():
    payload = (
        struct.pack(">B", 200)
        + struct.pack(">H", 40000)
        + struct.pack(">I", 3000000000)
        + struct.pack(">h", -2)
        + struct.pack(">i", -123456)
        + struct.pack(">d", 1.5)
    )
    reader = SyncFileReader(io.BytesIO(payload))
    assert reader.read_u8() == 200
    assert reader.read_u16() == 40000
    assert reader.read_u32() == 3000000000
    assert reader.read_i16() == -2
    assert reader.read_i32() == -123456
    assert reader.read_f64() == 1.5
    assert reader.position == len(payload)


def test_read_accepts_raw_bytes():
    reader = SyncFileReader(b"8BPS\x00\x01")
    assert reader.read_u32() == key("8BPS")
    assert reader.read_u16() == 1


def test_skip_and_position():
    reader = SyncFileReader(io.BytesIO(b"abcdefgh"))
    reader.skip(3)
    assert reader.read(2) == b"de"
    reader.position = 0
    assert reader.read(1) == b"a"
    assert reader.position == 1


def test_size_does_not_move_position():
    stream = io.BytesIO(b"0123456789")
    reader = SyncFileReader(stream)
    reader.read(4)
    assert reader.size == 10
    assert reader.read(1) == b"4"


def test_read_past_end_raises():
    reader = SyncFileReader(io.BytesIO(b"\x00\x01"))
    with pytest.raises(EOFError):
        reader.read_u32()


def test_negative_read_raises():
    reader = SyncFileReader(io.BytesIO(b"abc"))
    with pytest.raises(ValueError):
        reader.read(-1)


def test_writer_sequential_output():
    stream = io.BytesIO()
    writer = SyncFileWriter(stream)
    writer.write(b"8BPS")
    writer.write(bytearray(b"\x00\x01"))
    assert stream.getvalue() == b"8BPS\x00\x01"
    assert writer.position == 6


def test_writer_reader_round_trip():
    stream = io.BytesIO()
    writer = SyncFileWriter(stream)
    values = [struct.pack(">H", 7), struct.pack(">i", -99), struct.pack(">d", -0.25)]
    for value in values:
        writer.write(value)
    reader = SyncFileReader(stream)
    assert reader.read_u16() == 7
    assert reader.read_i32() == -99
    assert reader.read_f64() == -0.25


def test_writer_writes_at_its_own_position():
    stream = io.BytesIO(b"xxxxxx")
    writer = SyncFileWriter(stream)
    writer.position = 2
    writer.write(b"ab")
    assert stream.getvalue() == b"xxabxx"