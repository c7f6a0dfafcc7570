"""End-to-end tests for live and replay calibration sessions."""

from pathlib import Path

import numpy as np
import pytest

from int8_calib.data.sources import ArrayBatchSource
from int8_calib.errors import ConfigurationError, PreconditionViolation
from int8_calib.quantization.algorithms import CalibrationAlgorithm
from int8_calib.quantization.session import (
    CalibrationSession,
    LiveCalibrationSession,
    ReplayCalibrationSession,
)


def _two_input_source(num_batches: int = 3, batch_size: int = 8) -> ArrayBatchSource:
    samples = num_batches * batch_size
    images = np.arange(samples, dtype=np.float32)
    masks = np.arange(samples, dtype=np.int32) * -1
    return ArrayBatchSource([images, masks], batch_size=batch_size)


def test_three_batches_then_exhaustion(tmp_path: Path) -> None:
    session = LiveCalibrationSession(
        _two_input_source(), tmp_path / "model.cache", "entropy_2", device="cpu"
    )

    assert session.get_batch_size() == 8
    assert session.input_byte_sizes == [4, 4]
    assert session.pool.capacities == [32, 32]

    for _ in range(3):
        bindings = session.get_batch(["images", "masks"])
        assert bindings is not None
        assert len(bindings) == 2
        assert all(isinstance(pointer, int) and pointer != 0 for pointer in bindings)

    staged = [buffer.clone() for buffer in session.pool.buffers]
    assert session.get_batch(["images", "masks"]) is None
    assert session.batches_served == 3
    for before, after in zip(staged, session.pool.buffers):
        assert before.equal(after)

    expected_last = np.arange(16, 24, dtype=np.float32).tobytes()
    assert session.pool.buffers[0].numpy().tobytes() == expected_last


def test_binding_count_must_match_inputs(tmp_path: Path) -> None:
    session = LiveCalibrationSession(_two_input_source(), tmp_path / "c", device="cpu")

    with pytest.raises(PreconditionViolation):
        session.get_batch(["images"])


def test_live_session_requires_source(tmp_path: Path) -> None:
    with pytest.raises(PreconditionViolation):
        LiveCalibrationSession(None, tmp_path / "c", device="cpu")  # type: ignore[arg-type]


def test_unknown_algorithm_aborts_construction(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        LiveCalibrationSession(_two_input_source(), tmp_path / "c", "kl_divergence", device="cpu")
    with pytest.raises(ConfigurationError):
        ReplayCalibrationSession(tmp_path / "c", "kl_divergence")


def test_close_releases_buffers(tmp_path: Path) -> None:
    with LiveCalibrationSession(_two_input_source(), tmp_path / "c", device="cpu") as session:
        assert len(session.pool) == 2
    assert len(session.pool) == 0


def test_replay_session_has_no_buffers(tmp_path: Path) -> None:
    session = ReplayCalibrationSession(tmp_path / "model.cache", "legacy", batch_size=16, quantile=0.999)

    assert session.input_byte_sizes == []
    assert session.get_batch_size() == 16
    assert session.get_algorithm() is CalibrationAlgorithm.LEGACY
    assert session.get_quantile() == 0.999
    with pytest.raises(PreconditionViolation):
        session.get_batch()


def test_base_session_cannot_be_instantiated(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        CalibrationSession(tmp_path / "c")  # type: ignore[abstract]


def test_replay_session_rejects_non_positive_batch(tmp_path: Path) -> None:
    with pytest.raises(PreconditionViolation):
        ReplayCalibrationSession(tmp_path / "c", batch_size=0)


def test_legacy_accessors_and_defaults(tmp_path: Path) -> None:
    session = ReplayCalibrationSession(tmp_path / "model.cache")

    assert session.get_algorithm() is CalibrationAlgorithm.ENTROPY
    assert session.get_quantile() == 0.9999
    assert session.get_regression_cutoff() == 1.0
    assert session.read_histogram_cache() is None
    assert session.write_histogram_cache(b"ignored") is None


def test_cache_round_trip_through_session(tmp_path: Path) -> None:
    cache_path = tmp_path / "model.cache"
    session = ReplayCalibrationSession(cache_path)

    assert session.read_calibration_cache() is None
    session.write_calibration_cache(b"\x01\x02scale-table")
    assert session.read_calibration_cache() == b"\x01\x02scale-table"


def test_set_scale_file_targets_session_cache(tmp_path: Path) -> None:
    scale_file = tmp_path / "scales.txt"
    scale_file.write_text("conv1:\n", encoding="utf-8")
    session = ReplayCalibrationSession(tmp_path / "model.cache")

    assert session.set_scale_file(scale_file) is True
    assert session.read_calibration_cache() == b"conv1\n"
    assert session.set_scale_file(tmp_path / "missing.txt") is False
    assert session.read_calibration_cache() == b"conv1\n"
