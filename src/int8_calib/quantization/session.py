"""Calibration sessions driven by the INT8 calibration engine."""

from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import torch

from ..data.sources import BatchSource
from ..errors import PreconditionViolation
from .algorithms import CalibrationAlgorithm, resolve_algorithm
from .buffers import DeviceBufferPool
from .cache import BytesLike, CalibrationCacheStore
from .scales import apply_scale_file

logger = logging.getLogger(__name__)

DEFAULT_QUANTILE = 0.9999
REGRESSION_CUTOFF = 1.0


class CalibrationSession(abc.ABC):
    """
    State shared by live and replay sessions: cache location and algorithm settings.

    The engine reads the cache before calibrating (a hit skips the batch
    loop) and writes it back afterwards. ``quantile`` and the regression
    cutoff are only consulted by the legacy algorithm.
    """

    def __init__(
        self,
        cache_path: Union[str, Path],
        algorithm: Optional[Union[str, CalibrationAlgorithm]] = None,
        batch_size: int = 1,
        quantile: float = DEFAULT_QUANTILE,
    ) -> None:
        if batch_size <= 0:
            raise PreconditionViolation(f"batch_size must be positive, got {batch_size}.")
        self.cache_path = Path(cache_path)
        self.algorithm = resolve_algorithm(algorithm)
        self.batch_size = batch_size
        self.quantile = quantile
        self._cache = CalibrationCacheStore(self.cache_path)

    @property
    def input_byte_sizes(self) -> List[int]:
        return []

    def get_batch_size(self) -> int:
        return self.batch_size

    @abc.abstractmethod
    def get_batch(self, names: Optional[Sequence[str]] = None) -> Optional[List[int]]:
        """Stage the next batch; the variant decides whether batches exist at all."""

    def get_algorithm(self) -> CalibrationAlgorithm:
        return self.algorithm

    def get_quantile(self) -> float:
        return self.quantile

    def get_regression_cutoff(self) -> float:
        return REGRESSION_CUTOFF

    def read_histogram_cache(self) -> None:
        return None

    def write_histogram_cache(self, data: BytesLike) -> None:
        return None

    def read_calibration_cache(self) -> Optional[bytes]:
        data = self._cache.read()
        if data is None:
            logger.info("No calibration cache at %s; scales will be computed.", self.cache_path)
        return data

    def write_calibration_cache(self, data: BytesLike) -> None:
        self._cache.write(data)

    def set_scale_file(self, path: Union[str, Path]) -> bool:
        """Install user-provided scales as this session's calibration cache."""
        return apply_scale_file(path, self.cache_path)

    def close(self) -> None:
        """Release resources held by the session."""

    def __enter__(self) -> "CalibrationSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class LiveCalibrationSession(CalibrationSession):
    """Session that stages batches from a :class:`BatchSource` on the device."""

    def __init__(
        self,
        source: BatchSource,
        cache_path: Union[str, Path],
        algorithm: Optional[Union[str, CalibrationAlgorithm]] = None,
        *,
        quantile: float = DEFAULT_QUANTILE,
        device: Union[str, torch.device] = "cuda",
    ) -> None:
        if source is None:
            raise PreconditionViolation("A live calibration session requires a batch source.")
        super().__init__(cache_path, algorithm, source.batch_size(), quantile)
        self.source = source
        self._input_byte_sizes = [int(nbytes) for nbytes in source.bytes_per_input()]
        self.pool = DeviceBufferPool(self.batch_size, self._input_byte_sizes, device)
        self.batches_served = 0

    @property
    def input_byte_sizes(self) -> List[int]:
        return list(self._input_byte_sizes)

    def get_batch(self, names: Optional[Sequence[str]] = None) -> Optional[List[int]]:
        """
        Stage the next batch and return one device pointer per input.

        Returns ``None`` once the source is exhausted, leaving the staging
        buffers untouched. Pointers stay valid until the next call.
        """
        if names is not None and len(names) != len(self.pool):
            raise PreconditionViolation(
                f"Engine requested {len(names)} bindings but the source provides {len(self.pool)} inputs."
            )
        if not self.source.next_batch():
            logger.info("Calibration source exhausted after %d batches.", self.batches_served)
            return None

        pointers = self.pool.copy_batch(self.source.current_batch())
        self.batches_served += 1
        logger.debug("Staged calibration batch %d", self.batches_served)
        return pointers

    def close(self) -> None:
        self.pool.release()


class ReplayCalibrationSession(CalibrationSession):
    """
    Cache-only session without a batch source or staging buffers.

    Used to replay an existing cache or install scale overrides; the engine
    must find a cache, since no batches can be served.
    """

    def get_batch(self, names: Optional[Sequence[str]] = None) -> Optional[List[int]]:
        raise PreconditionViolation(
            "get_batch() is not available on a replay session; it has no batch source."
        )
