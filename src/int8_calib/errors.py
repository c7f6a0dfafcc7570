"""Exception taxonomy for calibration sessions and cache tooling."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class CalibrationError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(CalibrationError, ValueError):
    """Invalid calibration settings, e.g. an unknown algorithm name."""


class PreconditionViolation(CalibrationError):
    """An operation was invoked outside its contract."""


class ResourceExhaustionError(CalibrationError, MemoryError):
    """Staging buffers could not be allocated on the device."""


class TransferFailure(CalibrationError, RuntimeError):
    """Host-to-device copy of a calibration batch failed."""


class ScaleFileError(CalibrationError, ValueError):
    """A scale override or cache line could not be parsed."""

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        line_number: Optional[int] = None,
    ) -> None:
        self.path = path
        self.line_number = line_number
        location = ""
        if path is not None:
            location = f"{path}"
            if line_number is not None:
                location += f":{line_number}"
            location += ": "
        super().__init__(f"{location}{message}")
