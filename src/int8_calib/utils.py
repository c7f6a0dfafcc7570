"""Utility helpers for configuration, logging, and device selection."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import torch

from .errors import ConfigurationError

try:
    import yaml
except ImportError:  # pragma: no cover - dependency resolved later
    yaml = None


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary."""
    if yaml is None:
        raise ImportError("PyYAML is required to load configuration files.")
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def ensure_dir(path: Path) -> Path:
    """Create a directory (including parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def create_logger(name: str, log_file: Optional[Path] = None) -> logging.Logger:
    """Return a configured logger writing to stdout and optional file."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        ensure_dir(log_file.parent)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def select_device(requested: str) -> torch.device:
    """Resolve ``auto|cpu|cuda`` (or an indexed ``cuda:N``) to a torch device."""
    if requested == "cpu":
        return torch.device("cpu")
    if requested.startswith("cuda") and not torch.cuda.is_available():
        raise ConfigurationError(f"CUDA device '{requested}' requested but CUDA is not available.")
    if requested.startswith("cuda"):
        return torch.device(requested)
    if requested == "auto" and torch.cuda.is_available():
        return torch.device("cuda")
    return torch.device("cpu")
