import struct

import numpy as np
import pytest

from psdparse.tga import save_monochrome, save_rgb, save_rgba

HEADER = struct.Struct("<BBBHHBHHHHBB")


def _load(path):
    raw = path.read_bytes()
    return HEADER.unpack(raw[: HEADER.size]), raw[HEADER.size :]


def test_monochrome_header_and_body(tmp_path):
    path = tmp_path / "mono.tga"
    data = bytes(range(6))
    save_monochrome(path, 3, 2, data)
    header, body = _load(path)
    assert len(path.read_bytes()[:HEADER.size]) == 18
    assert header[2] == 3
    assert header[8:10] == (3, 2)
    assert header[10] == 8
    assert header[11] == 0x20
    assert body == data


def test_rgb_swaps_to_bgr_and_drops_alpha(tmp_path):
    path = tmp_path / "rgb.tga"
    rgba = bytes([10, 20, 30, 40, 50, 60, 70, 80])
    save_rgb(path, 2, 1, rgba)
    header, body = _load(path)
    assert header[2] == 2
    assert header[10] == 24
    assert body == bytes([30, 20, 10, 70, 60, 50])


def test_rgba_swaps_to_bgra(tmp_path):
    path = tmp_path / "rgba.tga"
    rgba = bytes([1, 2, 3, 4, 5, 6, 7, 8])
    save_rgba(path, 1, 2, rgba)
    header, body = _load(path)
    assert header[2] == 2
    assert header[10] == 32
    assert header[8:10] == (1, 2)
    assert body == bytes([3, 2, 1, 4, 7, 6, 5, 8])


def test_rgba_round_trip_with_numpy_input(tmp_path):
    path = tmp_path / "big.tga"
    rng = np.random.default_rng(1)
    image = rng.integers(0, 256, size=(4, 5, 4), dtype=np.uint8)
    save_rgba(path, 5, 4, image)
    _, body = _load(path)
    restored = np.frombuffer(body, dtype=np.uint8).reshape(4, 5, 4)[..., [2, 1, 0, 3]]
    assert np.array_equal(restored, image)


def test_body_size_matches_dimensions(tmp_path):
    path = tmp_path / "sized.tga"
    save_rgb(path, 4, 3, bytes(4 * 3 * 4))
    _, body = _load(path)
    assert len(body) == 4 * 3 * 3


def test_too_little_data_raises(tmp_path):
    with pytest.raises(ValueError):
        save_monochrome(tmp_path / "short.tga", 4, 4, bytes(3))


def test_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        save_monochrome(tmp_path / "missing" / "x.tga", 1, 1, b"\x00")