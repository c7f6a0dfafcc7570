"""User-authored scale overrides and their calibration-cache encoding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from ..errors import ScaleFileError
from ..utils import ensure_dir
from .cache import INT8_SCALE_RANGE, CalibrationCacheStore, decode_calibration_cache

logger = logging.getLogger(__name__)

DELIMITER = ":"


def scale_to_hex(scale: float) -> str:
    """Float32 bit pattern of ``scale / 127`` as 8 lowercase hex digits."""
    stored = np.array([scale], dtype=np.float32) / np.float32(INT8_SCALE_RANGE)
    return f"{int(stored.view(np.uint32)[0]):08x}"


@dataclass(frozen=True)
class ScaleOverrideEntry:
    """One ``tensor_name[:scale]`` record from a scale override file."""

    tensor_name: str
    scale: Optional[float] = None

    def encode(self) -> str:
        """Render the entry as a calibration-cache line (without newline)."""
        if self.scale is None:
            return self.tensor_name
        return f"{self.tensor_name}: {scale_to_hex(self.scale)}"


def parse_scale_line(
    line: str,
    line_number: Optional[int] = None,
    path: Optional[Path] = None,
) -> ScaleOverrideEntry:
    """
    Split ``name:scale`` into an entry.

    Only the text between the first and second delimiter is used as the
    scale; an empty scale yields a pass-through entry.
    """
    fields = line.rstrip("\r\n").split(DELIMITER)
    name = fields[0].strip()
    scale_text = fields[1].strip() if len(fields) > 1 else ""
    if not scale_text:
        return ScaleOverrideEntry(name)
    try:
        scale = float(scale_text)
    except ValueError as exc:
        raise ScaleFileError(
            f"invalid scale '{scale_text}' for tensor '{name}'",
            path=path,
            line_number=line_number,
        ) from exc
    return ScaleOverrideEntry(name, scale)


def parse_scale_file(path: Union[str, Path]) -> List[ScaleOverrideEntry]:
    """Read every non-blank line of a scale override file."""
    path = Path(path)
    entries: List[ScaleOverrideEntry] = []
    with path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            entries.append(parse_scale_line(line, line_number=line_number, path=path))
    return entries


def encode_scale_entries(entries: List[ScaleOverrideEntry]) -> str:
    return "".join(f"{entry.encode()}\n" for entry in entries)


def apply_scale_file(scale_path: Union[str, Path], cache_path: Union[str, Path]) -> bool:
    """
    Replace the calibration cache with user-provided scales.

    The override file is read and parsed completely before the cache is
    truncated, so an unreadable path leaves the previous cache intact.
    Returns ``False`` (after logging) when the override file cannot be read.
    """
    scale_path = Path(scale_path)
    try:
        entries = parse_scale_file(scale_path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Could not load user calibration scale file %s: %s", scale_path, exc)
        return False

    logger.info("Reset calibration cache with scale file user provided: %s", scale_path)
    CalibrationCacheStore(cache_path).write(encode_scale_entries(entries).encode("utf-8"))
    return True


def export_scale_file(cache_path: Union[str, Path], scale_path: Union[str, Path]) -> bool:
    """Write the scales stored in a text cache as an editable ``name:scale`` file."""
    data = CalibrationCacheStore(cache_path).read()
    if data is None:
        logger.error("No calibration cache to export at %s", cache_path)
        return False

    scales = decode_calibration_cache(data)
    scale_path = Path(scale_path)
    ensure_dir(scale_path.parent)
    with scale_path.open("w", encoding="utf-8") as handle:
        for name, scale in scales.items():
            handle.write(name if scale is None else f"{name}:{scale!r}")
            handle.write("\n")
    logger.info("Exported %d scale entries from %s to %s", len(scales), cache_path, scale_path)
    return True
