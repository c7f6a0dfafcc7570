"""Tests for calibration algorithm lookup."""

import pytest

from int8_calib.errors import ConfigurationError
from int8_calib.quantization.algorithms import (
    ALGORITHM_REGISTRY,
    CalibrationAlgorithm,
    resolve_algorithm,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("legacy", CalibrationAlgorithm.LEGACY),
        ("entropy", CalibrationAlgorithm.ENTROPY),
        ("entropy_2", CalibrationAlgorithm.ENTROPY_2),
        ("minmax", CalibrationAlgorithm.MINMAX),
    ],
)
def test_known_names_resolve(name: str, expected: CalibrationAlgorithm) -> None:
    assert resolve_algorithm(name) is expected


@pytest.mark.parametrize("name", ["", "Entropy", "entropy2", "percentile", "min_max"])
def test_unknown_name_raises(name: str) -> None:
    with pytest.raises(ConfigurationError, match="Unknown calibration algorithm"):
        resolve_algorithm(name)


def test_omitted_selection_defaults_to_entropy() -> None:
    assert resolve_algorithm() is CalibrationAlgorithm.ENTROPY
    assert resolve_algorithm(None) is CalibrationAlgorithm.ENTROPY


def test_enum_member_passes_through() -> None:
    assert resolve_algorithm(CalibrationAlgorithm.MINMAX) is CalibrationAlgorithm.MINMAX


def test_registry_values_follow_engine_enum() -> None:
    assert sorted(int(value) for value in ALGORITHM_REGISTRY.values()) == [0, 1, 2, 3]
