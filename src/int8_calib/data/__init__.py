"""Host-side batch sources for INT8 calibration."""

from .sources import ArrayBatchSource, BatchSource, LoaderBatchSource

__all__ = ["BatchSource", "ArrayBatchSource", "LoaderBatchSource"]
