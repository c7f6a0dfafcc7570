"""Device-resident staging buffers that hold one calibration batch per input."""

from __future__ import annotations

import logging
from typing import List, Sequence, Union

import numpy as np
import torch

from ..errors import PreconditionViolation, ResourceExhaustionError, TransferFailure

logger = logging.getLogger(__name__)


class DeviceBufferPool:
    """
    Own one fixed-size byte buffer per model input.

    Buffer ``i`` holds ``batch_size * bytes_per_input[i]`` bytes and is
    overwritten in place by every :meth:`copy_batch` call, so pointers handed
    out are only valid until the next copy or until :meth:`release`.
    """

    def __init__(
        self,
        batch_size: int,
        bytes_per_input: Sequence[int],
        device: Union[str, torch.device] = "cuda",
    ) -> None:
        if batch_size <= 0:
            raise PreconditionViolation(f"batch_size must be positive, got {batch_size}.")
        for index, nbytes in enumerate(bytes_per_input):
            if nbytes <= 0:
                raise PreconditionViolation(
                    f"Input {index} reports {nbytes} bytes per sample; expected a positive count."
                )

        self.batch_size = batch_size
        self.device = torch.device(device)
        self._buffers: List[torch.Tensor] = []

        try:
            for nbytes in bytes_per_input:
                capacity = batch_size * int(nbytes)
                self._buffers.append(torch.empty(capacity, dtype=torch.uint8, device=self.device))
        except RuntimeError as exc:
            # torch.cuda.OutOfMemoryError is a RuntimeError subclass.
            allocated = len(self._buffers)
            self.release()
            raise ResourceExhaustionError(
                f"Failed to allocate staging buffer {allocated} on {self.device}: {exc}"
            ) from exc

        logger.debug(
            "Allocated %d staging buffers on %s (%s bytes)",
            len(self._buffers),
            self.device,
            self.capacities,
        )

    def __len__(self) -> int:
        return len(self._buffers)

    @property
    def buffers(self) -> List[torch.Tensor]:
        return list(self._buffers)

    @property
    def capacities(self) -> List[int]:
        return [int(buffer.numel()) for buffer in self._buffers]

    def copy_batch(self, host_batch: Sequence[np.ndarray]) -> List[int]:
        """Copy one host array per input into the staging buffers and return device pointers."""
        if len(host_batch) != len(self._buffers):
            raise PreconditionViolation(
                f"Expected {len(self._buffers)} host arrays, got {len(host_batch)}."
            )

        pointers: List[int] = []
        for index, (array, buffer) in enumerate(zip(host_batch, self._buffers, strict=True)):
            host_bytes = _as_byte_view(array)
            if host_bytes.size != buffer.numel():
                raise PreconditionViolation(
                    f"Input {index} holds {host_bytes.size} bytes but its staging buffer "
                    f"expects {buffer.numel()}."
                )
            try:
                buffer.copy_(torch.from_numpy(host_bytes))
            except RuntimeError as exc:
                raise TransferFailure(f"Host-to-device copy failed for input {index}: {exc}") from exc
            pointers.append(int(buffer.data_ptr()))
        return pointers

    def release(self) -> None:
        """Drop every buffer; safe to call repeatedly and on an empty pool."""
        if not self._buffers:
            return
        self._buffers.clear()
        if self.device.type == "cuda":
            torch.cuda.empty_cache()

    def __enter__(self) -> "DeviceBufferPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


def _as_byte_view(array: np.ndarray) -> np.ndarray:
    """Flatten a host array into a contiguous, writable ``uint8`` view."""
    contiguous = np.ascontiguousarray(array)
    if not contiguous.flags.writeable:
        contiguous = contiguous.copy()
    return contiguous.reshape(-1).view(np.uint8)

