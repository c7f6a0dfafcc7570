"""Batch sources feeding host-side calibration batches to a session."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
import torch

from ..errors import PreconditionViolation

logger = logging.getLogger(__name__)


@runtime_checkable
class BatchSource(Protocol):
    """Pull-based producer of calibration batches, one host array per model input."""

    def next_batch(self) -> bool:
        """Advance to the next batch; ``False`` once the source is exhausted."""

    def current_batch(self) -> Sequence[np.ndarray]:
        """Host arrays of the batch selected by the last successful ``next_batch``."""

    def bytes_per_input(self) -> List[int]:
        """Bytes one sample occupies for each input."""

    def batch_size(self) -> int:
        """Number of samples in every batch."""


def sample_nbytes(array: np.ndarray) -> int:
    """Bytes of one sample (everything but the leading batch axis)."""
    return int(array.dtype.itemsize * int(np.prod(array.shape[1:], dtype=np.int64)))


class ArrayBatchSource:
    """Slice in-memory arrays (one per input) into full calibration batches."""

    def __init__(
        self,
        arrays: Sequence[np.ndarray],
        batch_size: int,
        max_batches: Optional[int] = None,
    ) -> None:
        if not arrays:
            raise PreconditionViolation("ArrayBatchSource needs at least one input array.")
        if batch_size <= 0:
            raise PreconditionViolation(f"batch_size must be positive, got {batch_size}.")
        lengths = {len(array) for array in arrays}
        if len(lengths) != 1:
            raise PreconditionViolation(f"Input arrays differ in sample count: {sorted(lengths)}.")

        self._arrays = [np.ascontiguousarray(array) for array in arrays]
        self._batch_size = batch_size
        num_batches = lengths.pop() // batch_size
        if max_batches is not None:
            num_batches = min(num_batches, max_batches)
        self.num_batches = num_batches
        self._index = -1

    def next_batch(self) -> bool:
        if self._index + 1 >= self.num_batches:
            return False
        self._index += 1
        return True

    def current_batch(self) -> List[np.ndarray]:
        if self._index < 0:
            raise PreconditionViolation("current_batch() called before next_batch().")
        start = self._index * self._batch_size
        return [array[start : start + self._batch_size] for array in self._arrays]

    def bytes_per_input(self) -> List[int]:
        return [sample_nbytes(array) for array in self._arrays]

    def batch_size(self) -> int:
        return self._batch_size


class LoaderBatchSource:
    """
    Adapt an iterable of batches (e.g. a ``DataLoader``) to the batch protocol.

    Each item is either a single tensor/array or a tuple whose first
    ``num_inputs`` entries are model inputs; any remaining entries (targets)
    are ignored. The first item is read eagerly to size the staging buffers.
    """

    def __init__(
        self,
        loader: Iterable[Any],
        batch_size: int,
        num_inputs: int = 1,
        max_batches: Optional[int] = None,
    ) -> None:
        if batch_size <= 0:
            raise PreconditionViolation(f"batch_size must be positive, got {batch_size}.")
        self._batch_size = batch_size
        self._num_inputs = num_inputs
        self._max_batches = max_batches
        self._iterator: Iterator[Any] = iter(loader)
        self._served = 0
        self._current: Optional[List[np.ndarray]] = None
        self._pending = self._fetch()
        if self._pending is None:
            raise PreconditionViolation("Calibration loader yielded no batches.")
        self._bytes = [sample_nbytes(array) for array in self._pending]

    def _fetch(self) -> Optional[List[np.ndarray]]:
        try:
            item = next(self._iterator)
        except StopIteration:
            return None
        inputs = list(item[: self._num_inputs]) if isinstance(item, (tuple, list)) else [item]
        if len(inputs) != self._num_inputs:
            raise PreconditionViolation(
                f"Loader item carries {len(inputs)} inputs, expected {self._num_inputs}."
            )
        return [_to_host(value) for value in inputs]

    def next_batch(self) -> bool:
        if self._max_batches is not None and self._served >= self._max_batches:
            return False
        batch = self._pending if self._pending is not None else self._fetch()
        self._pending = None
        if batch is None:
            return False
        if any(len(array) != self._batch_size for array in batch):
            logger.warning(
                "Stopping calibration stream at a short batch (expected %d samples per input).",
                self._batch_size,
            )
            return False
        self._current = batch
        self._served += 1
        return True

    def current_batch(self) -> List[np.ndarray]:
        if self._current is None:
            raise PreconditionViolation("current_batch() called before next_batch().")
        return self._current

    def bytes_per_input(self) -> List[int]:
        return list(self._bytes)

    def batch_size(self) -> int:
        return self._batch_size


def _to_host(value: Any) -> np.ndarray:
    if isinstance(value, torch.Tensor):
        return np.ascontiguousarray(value.detach().cpu().numpy())
    return np.ascontiguousarray(value)
