"""
int8_calib calibration package.

Feeds representative batches to a TensorRT INT8 calibrator, manages the
calibration cache on disk, and installs user-authored scale overrides.
"""

__version__ = "0.1.0"

__all__ = ["data", "quantization", "errors", "utils", "cli"]
