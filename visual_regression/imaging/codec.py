"""PNG codec: converts between screenshot bytes and RGBA pixel buffers."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from visual_regression.errors import CodecError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capture:
    """A decoded raster image: ``pixels`` is a row-major (height, width, 4) uint8 array."""

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        expected = (self.height, self.width, 4)
        if self.pixels.shape != expected or self.pixels.dtype != np.uint8:
            raise CodecError(
                f"Pixel buffer has shape {self.pixels.shape} ({self.pixels.dtype}), "
                f"expected {expected} (uint8)"
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @classmethod
    def blank(cls, width: int, height: int, color: tuple[int, int, int, int] = (255, 255, 255, 255)) -> "Capture":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = color
        return cls(width=width, height=height, pixels=pixels)


def decode(data: bytes) -> Capture:
    """Decode image bytes (any format Pillow reads) into an RGBA capture."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA")
            pixels = np.array(rgba, dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise CodecError(f"Could not decode image ({len(data)} bytes): {e}") from e
    height, width = pixels.shape[:2]
    return Capture(width=width, height=height, pixels=pixels)


def encode(capture: Capture) -> bytes:
    """Encode a capture as PNG bytes."""
    buffer = io.BytesIO()
    try:
        Image.fromarray(capture.pixels).save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise CodecError(f"Could not encode {capture.width}x{capture.height} image: {e}") from e
    return buffer.getvalue()


def load(path: str | Path) -> Capture:
    """Read and decode a PNG from disk."""
    path = Path(path)
    if not path.exists():
        raise CodecError(f"File not found: {path}")
    logger.debug("Decoding %s", path)
    return decode(path.read_bytes())
