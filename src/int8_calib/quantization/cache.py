"""On-disk calibration cache storage and text-cache decoding."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from ..errors import ScaleFileError
from ..utils import ensure_dir

logger = logging.getLogger(__name__)

# Scales are stored divided by the INT8 range; multiply to get back to the user domain.
INT8_SCALE_RANGE = 127.0

BytesLike = Union[bytes, bytearray, memoryview]


class CalibrationCacheStore:
    """
    Read and write the calibration cache as an opaque blob.

    A missing or unreadable file is reported as ``None`` rather than raised;
    the engine treats that as "no cached result" and calibrates from scratch.
    Writes truncate the previous cache unconditionally.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Optional[bytes]:
        try:
            with self.path.open("rb") as handle:
                data = handle.read()
        except OSError as exc:
            logger.debug("No calibration cache at %s (%s)", self.path, exc)
            return None
        logger.info("Loaded calibration cache %s (%d bytes)", self.path, len(data))
        return data

    def write(self, data: BytesLike) -> None:
        payload = bytes(data)
        ensure_dir(self.path.parent)
        with self.path.open("wb") as handle:
            handle.write(payload)
        logger.info("Saved calibration cache (%d bytes) to %s", len(payload), self.path)


def read_calibration_cache(path: Union[str, Path]) -> Optional[bytes]:
    """Return the cache bytes at ``path`` or ``None`` when there is no cache."""
    return CalibrationCacheStore(path).read()


def write_calibration_cache(path: Union[str, Path], data: BytesLike) -> None:
    """Create or truncate the cache at ``path`` and write ``data`` in full."""
    CalibrationCacheStore(path).write(data)


def hex_to_scale(text: str) -> float:
    """Convert a cached float32 bit pattern (hex) back to a user-domain scale."""
    bits = int(text, 16)
    if not 0 <= bits <= 0xFFFFFFFF:
        raise ValueError(f"'{text}' does not fit in 32 bits")
    stored = np.array([bits], dtype=np.uint32).view(np.float32)[0]
    return float(stored * np.float32(INT8_SCALE_RANGE))


def decode_calibration_cache(data: BytesLike) -> Dict[str, Optional[float]]:
    """
    Decode a text calibration cache into ``{tensor_name: scale}``.

    Entries are ``name: <hex>`` lines holding the IEEE-754 float32 bit pattern
    of ``scale / 127``. Lines without a value (the engine header or
    pass-through names) map to ``None``.
    """
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ScaleFileError("calibration cache is not a text cache") from exc

    scales: Dict[str, Optional[float]] = {}
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        name, _, value = line.partition(":")
        name, value = name.strip(), value.strip()
        if not value:
            scales[name] = None
            continue
        try:
            scales[name] = hex_to_scale(value)
        except ValueError as exc:
            raise ScaleFileError(
                f"invalid hex scale '{value}' for tensor '{name}'", line_number=line_number
            ) from exc
    return scales
