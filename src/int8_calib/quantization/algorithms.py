"""Registry mapping configuration strings to INT8 calibration algorithms."""

from __future__ import annotations

import enum
from typing import Dict, Optional, Union

from ..errors import ConfigurationError


class CalibrationAlgorithm(enum.IntEnum):
    """Calibration algorithms understood by the engine (values follow its enum)."""

    LEGACY = 0
    ENTROPY = 1
    ENTROPY_2 = 2
    MINMAX = 3


DEFAULT_ALGORITHM = CalibrationAlgorithm.ENTROPY

ALGORITHM_REGISTRY: Dict[str, CalibrationAlgorithm] = {}


def register_algorithm(name: str, algorithm: CalibrationAlgorithm) -> CalibrationAlgorithm:
    """Make ``algorithm`` resolvable under ``name``."""
    ALGORITHM_REGISTRY[name] = algorithm
    return algorithm


register_algorithm("legacy", CalibrationAlgorithm.LEGACY)
register_algorithm("entropy", CalibrationAlgorithm.ENTROPY)
register_algorithm("entropy_2", CalibrationAlgorithm.ENTROPY_2)
register_algorithm("minmax", CalibrationAlgorithm.MINMAX)


def resolve_algorithm(
    name: Optional[Union[str, CalibrationAlgorithm]] = None,
) -> CalibrationAlgorithm:
    """
    Look up a calibration algorithm by its configuration name.

    ``None`` selects the entropy default; any string missing from the registry
    raises :class:`ConfigurationError` instead of falling back silently.
    """
    if name is None:
        return DEFAULT_ALGORITHM
    if isinstance(name, CalibrationAlgorithm):
        return name
    try:
        return ALGORITHM_REGISTRY[name]
    except (KeyError, TypeError) as exc:
        choices = ", ".join(sorted(ALGORITHM_REGISTRY))
        raise ConfigurationError(
            f"Unknown calibration algorithm '{name}'. Expected one of: {choices}."
        ) from exc
