"""TensorRT calibrator objects that delegate to a calibration session."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .algorithms import CalibrationAlgorithm
from .session import CalibrationSession

try:
    import tensorrt as trt
except ImportError:  # pragma: no cover - optional dependency
    trt = None

logger = logging.getLogger(__name__)


class _SessionCalibratorMixin:
    """Forward the engine's calibrator callbacks to a :class:`CalibrationSession`."""

    session: CalibrationSession

    def get_batch_size(self) -> int:
        return self.session.get_batch_size()

    def get_batch(self, names: List[str], *args: Any) -> Optional[List[int]]:
        return self.session.get_batch(names)

    def get_algorithm(self) -> Any:
        return trt.CalibrationAlgoType(int(self.session.get_algorithm()))

    def read_calibration_cache(self, *args: Any) -> Optional[bytes]:
        return self.session.read_calibration_cache()

    def write_calibration_cache(self, cache: Any, *args: Any) -> None:
        self.session.write_calibration_cache(cache)


if trt is not None:

    class LegacyCalibrator(_SessionCalibratorMixin, trt.IInt8LegacyCalibrator):
        """Legacy calibrator; additionally exposes quantile and regression cutoff."""

        def __init__(self, session: CalibrationSession) -> None:
            trt.IInt8LegacyCalibrator.__init__(self)
            self.session = session

        def get_quantile(self) -> float:
            return self.session.get_quantile()

        def get_regression_cutoff(self) -> float:
            return self.session.get_regression_cutoff()

        def read_histogram_cache(self, *args: Any) -> None:
            return self.session.read_histogram_cache()

        def write_histogram_cache(self, cache: Any, *args: Any) -> None:
            self.session.write_histogram_cache(cache)

    class EntropyCalibrator(_SessionCalibratorMixin, trt.IInt8EntropyCalibrator):
        def __init__(self, session: CalibrationSession) -> None:
            trt.IInt8EntropyCalibrator.__init__(self)
            self.session = session

    class Entropy2Calibrator(_SessionCalibratorMixin, trt.IInt8EntropyCalibrator2):
        def __init__(self, session: CalibrationSession) -> None:
            trt.IInt8EntropyCalibrator2.__init__(self)
            self.session = session

    class MinMaxCalibrator(_SessionCalibratorMixin, trt.IInt8MinMaxCalibrator):
        def __init__(self, session: CalibrationSession) -> None:
            trt.IInt8MinMaxCalibrator.__init__(self)
            self.session = session

    CALIBRATOR_CLASSES: Dict[CalibrationAlgorithm, type] = {
        CalibrationAlgorithm.LEGACY: LegacyCalibrator,
        CalibrationAlgorithm.ENTROPY: EntropyCalibrator,
        CalibrationAlgorithm.ENTROPY_2: Entropy2Calibrator,
        CalibrationAlgorithm.MINMAX: MinMaxCalibrator,
    }


def build_trt_calibrator(session: CalibrationSession) -> Any:
    """Wrap ``session`` in the TensorRT calibrator class matching its algorithm."""
    if trt is None:
        raise ImportError(
            "TensorRT is required to build an engine calibrator (pip install 'int8-calib[tensorrt]')."
        )
    calibrator_cls = CALIBRATOR_CLASSES[session.get_algorithm()]
    logger.info("Using %s for %s calibration", calibrator_cls.__name__, session.get_algorithm().name)
    return calibrator_cls(session)
