"""INT8 calibration sessions, cache storage, and scale overrides."""

from .algorithms import ALGORITHM_REGISTRY, CalibrationAlgorithm, register_algorithm, resolve_algorithm
from .buffers import DeviceBufferPool
from .cache import CalibrationCacheStore, decode_calibration_cache, read_calibration_cache, write_calibration_cache
from .config import (
    CalibrationConfig,
    build_loader_source,
    build_session,
    calibration_config_from_dict,
    load_calibration_config,
)
from .scales import ScaleOverrideEntry, apply_scale_file, export_scale_file, parse_scale_file
from .session import CalibrationSession, LiveCalibrationSession, ReplayCalibrationSession
from .trt_calibrator import build_trt_calibrator

__all__ = [
    "ALGORITHM_REGISTRY",
    "CalibrationAlgorithm",
    "register_algorithm",
    "resolve_algorithm",
    "DeviceBufferPool",
    "CalibrationCacheStore",
    "read_calibration_cache",
    "write_calibration_cache",
    "decode_calibration_cache",
    "ScaleOverrideEntry",
    "parse_scale_file",
    "apply_scale_file",
    "export_scale_file",
    "CalibrationSession",
    "LiveCalibrationSession",
    "ReplayCalibrationSession",
    "CalibrationConfig",
    "calibration_config_from_dict",
    "load_calibration_config",
    "build_session",
    "build_loader_source",
    "build_trt_calibrator",
]
