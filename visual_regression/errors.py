"""Exception taxonomy for the visual regression pipeline."""

from __future__ import annotations


class VisualRegressionError(Exception):
    """Base class for every error raised by the pipeline."""


class DimensionMismatch(VisualRegressionError):
    """Two captures cannot be compared because their sizes differ."""

    def __init__(self, size_a: tuple[int, int], size_b: tuple[int, int]):
        self.size_a = size_a
        self.size_b = size_b
        super().__init__(
            f"Image sizes do not match: {size_a[0]}x{size_a[1]} vs {size_b[0]}x{size_b[1]}"
        )


class CodecError(VisualRegressionError):
    """Image bytes could not be decoded or encoded."""


class CaptureError(VisualRegressionError):
    """A screenshot could not be captured."""


class NavigationError(CaptureError):
    """The browser failed to load the requested URL."""


class CaptureTimeout(CaptureError):
    """A capture exceeded its time budget."""


class StorageError(VisualRegressionError):
    """Artifacts could not be written to disk. Aborts the whole run."""


class CaptureSurfaceError(VisualRegressionError):
    """No browser could be launched. Aborts the whole run."""
