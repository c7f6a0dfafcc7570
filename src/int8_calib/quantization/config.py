"""Calibration settings loaded from YAML and session construction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..data.sources import BatchSource, LoaderBatchSource
from ..errors import ConfigurationError
from ..utils import load_yaml, select_device
from .algorithms import resolve_algorithm
from .session import (
    DEFAULT_QUANTILE,
    CalibrationSession,
    LiveCalibrationSession,
    ReplayCalibrationSession,
)

logger = logging.getLogger(__name__)


@dataclass
class CalibrationConfig:
    """Settings for one calibration (or replay) run."""

    cache_path: Path
    algorithm: str = "entropy"
    batch_size: int = 1
    quantile: float = DEFAULT_QUANTILE
    scale_file: Optional[Path] = None
    device: str = "auto"
    max_batches: Optional[int] = None


def calibration_config_from_dict(cfg: Dict[str, Any]) -> CalibrationConfig:
    """Validate a configuration mapping and build a :class:`CalibrationConfig`."""
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Calibration config must be a mapping, got {type(cfg).__name__}.")
    if not cfg.get("cache_path"):
        raise ConfigurationError("Calibration config requires 'cache_path'.")

    algorithm = cfg.get("algorithm", "entropy")
    resolve_algorithm(algorithm)

    try:
        batch_size = int(cfg.get("batch_size", 1))
        quantile = float(cfg.get("quantile", DEFAULT_QUANTILE))
        max_batches = int(cfg["max_batches"]) if cfg.get("max_batches") is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid numeric calibration setting: {exc}") from exc
    if batch_size <= 0:
        raise ConfigurationError(f"batch_size must be positive, got {batch_size}.")

    return CalibrationConfig(
        cache_path=Path(cfg["cache_path"]),
        algorithm=algorithm,
        batch_size=batch_size,
        quantile=quantile,
        scale_file=Path(cfg["scale_file"]) if cfg.get("scale_file") else None,
        device=str(cfg.get("device", "auto")),
        max_batches=max_batches,
    )


def load_calibration_config(path: Path) -> CalibrationConfig:
    """Read the ``calibration`` section (or the whole document) of a YAML file."""
    document = load_yaml(Path(path))
    if not isinstance(document, dict):
        raise ConfigurationError(f"{path} does not contain a mapping.")
    section = document.get("calibration", document)
    if not isinstance(section, dict):
        raise ConfigurationError(f"{path}: the calibration section must be a mapping.")
    return calibration_config_from_dict(section)


def build_session(
    cfg: CalibrationConfig,
    source: Optional[BatchSource] = None,
) -> CalibrationSession:
    """
    Create a live session when ``source`` is given, otherwise a replay session.

    A configured ``scale_file`` is installed as the cache before returning.
    """
    session: CalibrationSession
    if source is not None:
        session = LiveCalibrationSession(
            source,
            cfg.cache_path,
            cfg.algorithm,
            quantile=cfg.quantile,
            device=select_device(cfg.device),
        )
    else:
        session = ReplayCalibrationSession(
            cfg.cache_path,
            cfg.algorithm,
            cfg.batch_size,
            quantile=cfg.quantile,
        )

    if cfg.scale_file is not None and not session.set_scale_file(cfg.scale_file):
        logger.warning("Continuing with the existing calibration cache at %s", cfg.cache_path)
    return session


def build_loader_source(
    cfg: CalibrationConfig,
    loader: Iterable[Any],
    num_inputs: int = 1,
) -> LoaderBatchSource:
    """Wrap a data loader so it yields at most ``cfg.max_batches`` batches of ``cfg.batch_size``."""
    return LoaderBatchSource(
        loader,
        cfg.batch_size,
        num_inputs=num_inputs,
        max_batches=cfg.max_batches,
    )
