"""Pixel comparator: perceptual per-pixel diff with anti-aliasing detection.

Colour distance is measured in YIQ space (Kotsarenko & Ramos, "Measuring
perceived color difference using YIQ NTSC transmission color space"), and
anti-aliased edge pixels are detected by looking at each candidate's 3x3
neighbourhood in both images (Vysniauskas, "Anti-aliased Pixel and Intensity
Slope Detector"). This is the same scheme pixelmatch uses, vectorised over numpy
arrays: the colour distance is computed for the whole image at once, and the
neighbourhood checks only for pixels that are over the limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from pydantic import BaseModel, Field

from visual_regression.errors import DimensionMismatch

from .codec import Capture

logger = logging.getLogger(__name__)

# Largest possible squared YIQ distance (black vs white).
MAX_YIQ_DELTA = 35215.0

# Neighbour offsets as (dx, dy), x outer / y inner. Order decides which of two
# equal extremes is picked as the darkest/brightest neighbour.
_NEIGHBOURS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]


class CompareOptions(BaseModel):
    per_pixel_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    include_anti_aliasing: bool = False
    alpha_weight: float = Field(default=0.1, ge=0.0, le=1.0)
    diff_color: tuple[int, int, int] = (255, 0, 0)
    aa_color: tuple[int, int, int] = (255, 255, 0)


@dataclass(frozen=True)
class ComparisonOutcome:
    diff_image: Capture
    num_diff_pixels: int
    num_anti_aliased_pixels: int = 0

    @property
    def total_pixels(self) -> int:
        return self.diff_image.total_pixels


def _blend(channel: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """Blend a channel against a white background with opacity ``alpha`` (0..1)."""
    return 255.0 + (channel - 255.0) * alpha


def _rgb2y(r, g, b):
    return r * 0.29889531 + g * 0.58662247 + b * 0.11448223


def _rgb2i(r, g, b):
    return r * 0.59597799 - g * 0.27417610 - b * 0.32180189


def _rgb2q(r, g, b):
    return r * 0.21147017 - g * 0.52261711 + b * 0.31114694


def _yiq(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    rgba = pixels.astype(np.float32)
    alpha = rgba[..., 3] / 255.0
    r = _blend(rgba[..., 0], alpha)
    g = _blend(rgba[..., 1], alpha)
    b = _blend(rgba[..., 2], alpha)
    return _rgb2y(r, g, b), _rgb2i(r, g, b), _rgb2q(r, g, b)


def color_delta(pixels_a: np.ndarray, pixels_b: np.ndarray) -> np.ndarray:
    """Squared YIQ distance between two RGBA buffers of equal shape."""
    y1, i1, q1 = _yiq(pixels_a)
    y2, i2, q2 = _yiq(pixels_b)
    dy = y1 - y2
    di = i1 - i2
    dq = q1 - q2
    return 0.5053 * dy * dy + 0.299 * di * di + 0.1957 * dq * dq


def _on_edge(ys: np.ndarray, xs: np.ndarray, height: int, width: int) -> np.ndarray:
    return (xs == 0) | (xs == width - 1) | (ys == 0) | (ys == height - 1)


def _neighbour(ys, xs, dx, dy, height, width):
    ny = ys + dy
    nx = xs + dx
    valid = (ny >= 0) & (ny < height) & (nx >= 0) & (nx < width)
    return np.clip(ny, 0, height - 1), np.clip(nx, 0, width - 1), valid


def _has_many_siblings(pixels: np.ndarray, ys: np.ndarray, xs: np.ndarray) -> np.ndarray:
    """True where more than two neighbours share the exact RGBA value of the pixel."""
    height, width = pixels.shape[:2]
    count = _on_edge(ys, xs, height, width).astype(np.int32)
    center = pixels[ys, xs]
    for dx, dy in _NEIGHBOURS:
        ny, nx, valid = _neighbour(ys, xs, dx, dy, height, width)
        same = np.all(pixels[ny, nx] == center, axis=-1)
        count += valid & same
    return count > 2


def _antialiased(
    brightness: np.ndarray,
    pixels: np.ndarray,
    other_pixels: np.ndarray,
    ys: np.ndarray,
    xs: np.ndarray,
) -> np.ndarray:
    """Flag pixels of ``pixels`` that look like anti-aliasing.

    A pixel is anti-aliased when at most two neighbours have its brightness,
    it has both darker and brighter neighbours, and either the darkest or the
    brightest neighbour sits in a flat region in both images.
    """
    height, width = brightness.shape
    zeroes = _on_edge(ys, xs, height, width).astype(np.int32)
    center = brightness[ys, xs]

    min_delta = np.zeros(len(ys), dtype=brightness.dtype)
    max_delta = np.zeros(len(ys), dtype=brightness.dtype)
    min_y, min_x = ys.copy(), xs.copy()
    max_y, max_x = ys.copy(), xs.copy()

    for dx, dy in _NEIGHBOURS:
        ny, nx, valid = _neighbour(ys, xs, dx, dy, height, width)
        delta = center - brightness[ny, nx]
        zeroes += valid & (delta == 0)

        darker = valid & (delta < min_delta)
        min_delta = np.where(darker, delta, min_delta)
        min_y = np.where(darker, ny, min_y)
        min_x = np.where(darker, nx, min_x)

        brighter = valid & (delta > max_delta)
        max_delta = np.where(brighter, delta, max_delta)
        max_y = np.where(brighter, ny, max_y)
        max_x = np.where(brighter, nx, max_x)

    candidate = (zeroes <= 2) & (min_delta != 0) & (max_delta != 0)
    flat_min = _has_many_siblings(pixels, min_y, min_x) & _has_many_siblings(other_pixels, min_y, min_x)
    flat_max = _has_many_siblings(pixels, max_y, max_x) & _has_many_siblings(other_pixels, max_y, max_x)
    return candidate & (flat_min | flat_max)


def _gray_background(capture: Capture, alpha_weight: float) -> np.ndarray:
    rgba = capture.pixels.astype(np.float32)
    luma = _rgb2y(rgba[..., 0], rgba[..., 1], rgba[..., 2])
    value = _blend(luma, alpha_weight * rgba[..., 3] / 255.0)
    gray = np.clip(np.rint(value), 0, 255).astype(np.uint8)
    out = np.empty(capture.pixels.shape, dtype=np.uint8)
    out[..., 0] = gray
    out[..., 1] = gray
    out[..., 2] = gray
    out[..., 3] = 255
    return out


def compare(image_a: Capture, image_b: Capture, options: CompareOptions | None = None) -> ComparisonOutcome:
    """Diff two equal-size captures.

    Returns the diff image (faded grayscale of ``image_a`` with differences in
    ``diff_color`` and excluded anti-aliasing in ``aa_color``) and the number of
    differing pixels. Raises DimensionMismatch before building anything when
    the sizes differ.
    """
    opts = options or CompareOptions()
    if image_a.size != image_b.size:
        raise DimensionMismatch(image_a.size, image_b.size)

    output = _gray_background(image_a, opts.alpha_weight)

    if np.array_equal(image_a.pixels, image_b.pixels):
        logger.debug("Images are byte-identical (%dx%d)", image_a.width, image_a.height)
        return ComparisonOutcome(
            diff_image=Capture(width=image_a.width, height=image_a.height, pixels=output),
            num_diff_pixels=0,
        )

    max_delta = MAX_YIQ_DELTA * opts.per_pixel_threshold * opts.per_pixel_threshold
    over_limit = color_delta(image_a.pixels, image_b.pixels) > max_delta
    ys, xs = np.nonzero(over_limit)

    if opts.include_anti_aliasing or len(ys) == 0:
        aa = np.zeros(len(ys), dtype=bool)
    else:
        y_a = _yiq(image_a.pixels)[0]
        y_b = _yiq(image_b.pixels)[0]
        aa = (
            _antialiased(y_a, image_a.pixels, image_b.pixels, ys, xs)
            | _antialiased(y_b, image_b.pixels, image_a.pixels, ys, xs)
        )

    output[ys[aa], xs[aa], :3] = opts.aa_color
    output[ys[~aa], xs[~aa], :3] = opts.diff_color

    num_aa = int(aa.sum())
    num_diff = len(ys) - num_aa
    logger.debug(
        "Compared %dx%d: %d different, %d anti-aliased",
        image_a.width, image_a.height, num_diff, num_aa,
    )
    return ComparisonOutcome(
        diff_image=Capture(width=image_a.width, height=image_a.height, pixels=output),
        num_diff_pixels=num_diff,
        num_anti_aliased_pixels=num_aa,
    )
