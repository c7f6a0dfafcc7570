"""Tests for calibration cache storage and decoding."""

from pathlib import Path

import pytest

from int8_calib.errors import ScaleFileError
from int8_calib.quantization.cache import (
    CalibrationCacheStore,
    decode_calibration_cache,
    read_calibration_cache,
    write_calibration_cache,
)


def test_write_then_read_returns_same_bytes(tmp_path: Path) -> None:
    cache_path = tmp_path / "model.cache"
    payload = b"TRT-8601-EntropyCalibration2\n\x00\xff binary tail"

    write_calibration_cache(cache_path, payload)

    assert read_calibration_cache(cache_path) == payload


def test_missing_cache_is_absent(tmp_path: Path) -> None:
    store = CalibrationCacheStore(tmp_path / "missing.cache")

    assert store.read() is None
    assert not store.exists()


def test_directory_path_is_absent(tmp_path: Path) -> None:
    assert read_calibration_cache(tmp_path) is None


def test_write_truncates_and_creates_parents(tmp_path: Path) -> None:
    cache_path = tmp_path / "nested" / "dir" / "model.cache"
    store = CalibrationCacheStore(cache_path)

    store.write(b"a much longer first cache")
    store.write(memoryview(b"short"))

    assert cache_path.read_bytes() == b"short"


def test_decode_text_cache() -> None:
    data = b"TRT-8601-EntropyCalibration2\ninput: 3c010204\nconv1\n"

    scales = decode_calibration_cache(data)

    assert scales["TRT-8601-EntropyCalibration2"] is None
    assert scales["conv1"] is None
    assert scales["input"] == pytest.approx(0.0078740157 * 127.0, rel=1e-4)


def test_decode_rejects_bad_hex() -> None:
    with pytest.raises(ScaleFileError) as excinfo:
        decode_calibration_cache(b"conv1: nothex\n")
    assert excinfo.value.line_number == 1


def test_decode_rejects_binary_cache() -> None:
    with pytest.raises(ScaleFileError):
        decode_calibration_cache(b"\xff\xfe\x00")
