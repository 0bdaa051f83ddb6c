"""Tests for the pixel comparator."""

import numpy as np
import pytest
from pydantic import ValidationError

from visual_regression.errors import DimensionMismatch
from visual_regression.imaging.codec import Capture
from visual_regression.imaging.comparator import (
    MAX_YIQ_DELTA,
    CompareOptions,
    color_delta,
    compare,
)

from conftest import solid, with_block

RED = (255, 0, 0)
YELLOW = (255, 255, 0)


def _edge_images() -> tuple[Capture, Capture]:
    """Black | gray | white columns, with the gray edge slightly darker in the second image."""
    a = np.zeros((5, 5, 4), dtype=np.uint8)
    a[..., 3] = 255
    a[:, 3:, :3] = 255
    b = a.copy()
    a[:, 2, :3] = 128
    b[:, 2, :3] = 100
    return Capture(5, 5, a), Capture(5, 5, b)


class TestCompareOptions:
    """Tests for option defaults and validation."""

    def test_defaults(self):
        opts = CompareOptions()
        assert opts.per_pixel_threshold == 0.1
        assert opts.include_anti_aliasing is False
        assert opts.alpha_weight == 0.1

    def test_threshold_out_of_range(self):
        with pytest.raises(ValidationError):
            CompareOptions(per_pixel_threshold=1.5)
        with pytest.raises(ValidationError):
            CompareOptions(per_pixel_threshold=-0.1)


class TestColorDelta:
    """Tests for the YIQ distance."""

    def test_identical_is_zero(self):
        img = solid(3, 3, (10, 20, 30, 255))
        assert np.all(color_delta(img.pixels, img.pixels) == 0)

    def test_black_white_is_pure_luma(self):
        black = solid(1, 1, (0, 0, 0, 255))
        white = solid(1, 1)
        delta = color_delta(black.pixels, white.pixels)[0, 0]
        assert delta == pytest.approx(0.5053 * 255 ** 2, rel=1e-3)
        assert delta < MAX_YIQ_DELTA

    def test_transparent_blends_to_white(self):
        transparent_black = solid(1, 1, (0, 0, 0, 0))
        white = solid(1, 1)
        assert color_delta(transparent_black.pixels, white.pixels)[0, 0] == pytest.approx(0, abs=1e-3)


class TestCompare:
    """Tests for compare()."""

    def test_identical_images_have_no_diff(self):
        img = with_block(solid(50, 40), 10, 10, 5)
        outcome = compare(img, img)
        assert outcome.num_diff_pixels == 0
        assert outcome.num_anti_aliased_pixels == 0

    def test_equal_copies_have_no_diff(self):
        img = solid(20, 20, (12, 34, 56, 255))
        copy = Capture(20, 20, img.pixels.copy())
        assert compare(img, copy).num_diff_pixels == 0

    def test_fully_different_images(self):
        black = solid(30, 20, (0, 0, 0, 255))
        white = solid(30, 20)
        outcome = compare(black, white, CompareOptions(include_anti_aliasing=True))
        assert outcome.num_diff_pixels == 30 * 20

    def test_fully_different_flat_images_not_antialiased(self):
        """Flat regions never look like anti-aliasing, so the default counts them all."""
        outcome = compare(solid(10, 10, (0, 0, 0, 255)), solid(10, 10))
        assert outcome.num_diff_pixels == 100

    def test_block_difference_counted(self):
        base = solid(100, 100)
        changed = with_block(base, 20, 30, 10)
        outcome = compare(base, changed)
        assert outcome.num_diff_pixels == 100
        assert outcome.total_pixels == 10000

    def test_small_change_below_per_pixel_threshold(self):
        base = solid(10, 10, (200, 200, 200, 255))
        nudged = solid(10, 10, (201, 200, 200, 255))
        assert compare(base, nudged).num_diff_pixels == 0

    def test_per_pixel_threshold_zero_counts_any_change(self):
        base = solid(10, 10, (200, 200, 200, 255))
        nudged = solid(10, 10, (201, 200, 200, 255))
        outcome = compare(base, nudged, CompareOptions(per_pixel_threshold=0.0, include_anti_aliasing=True))
        assert outcome.num_diff_pixels == 100

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch) as exc_info:
            compare(solid(10, 10), solid(10, 11))
        assert exc_info.value.size_a == (10, 10)
        assert exc_info.value.size_b == (10, 11)
        assert "10x10 vs 10x11" in str(exc_info.value)

    def test_is_pure(self):
        a = solid(10, 10)
        b = with_block(a, 0, 0, 3)
        a_before, b_before = a.pixels.copy(), b.pixels.copy()
        compare(a, b)
        assert np.array_equal(a.pixels, a_before)
        assert np.array_equal(b.pixels, b_before)


class TestAntiAliasing:
    """Tests for anti-aliased edge detection."""

    def test_edge_pixels_excluded_by_default(self):
        a, b = _edge_images()
        outcome = compare(a, b)
        assert outcome.num_diff_pixels == 0
        assert outcome.num_anti_aliased_pixels == 5

    def test_edge_pixels_counted_when_included(self):
        a, b = _edge_images()
        outcome = compare(a, b, CompareOptions(include_anti_aliasing=True))
        assert outcome.num_diff_pixels == 5
        assert outcome.num_anti_aliased_pixels == 0

    def test_excluded_pixels_marked_yellow(self):
        a, b = _edge_images()
        diff = compare(a, b).diff_image.pixels
        for y in range(5):
            assert tuple(diff[y, 2, :3]) == YELLOW


class TestDiffImage:
    """Tests for the rendered diff image."""

    def test_same_dimensions(self):
        a = solid(17, 9)
        outcome = compare(a, with_block(a, 2, 2, 3))
        assert outcome.diff_image.size == (17, 9)

    def test_differences_marked_red(self):
        base = solid(20, 20)
        outcome = compare(base, with_block(base, 5, 5, 4, color=(0, 0, 255, 255)))
        pixels = outcome.diff_image.pixels
        assert tuple(pixels[6, 6, :3]) == RED
        assert tuple(pixels[0, 0, :3]) != RED

    def test_matching_pixels_are_faded_gray(self):
        base = solid(4, 4, (0, 0, 0, 255))
        pixels = compare(base, base, CompareOptions(alpha_weight=0.2)).diff_image.pixels
        r, g, b, a = pixels[0, 0]
        assert r == g == b
        # Black faded to 20% opacity over white
        assert r == 204
        assert a == 255

    def test_custom_diff_color(self):
        base = solid(5, 5)
        changed = solid(5, 5, (0, 0, 0, 255))
        opts = CompareOptions(diff_color=(0, 255, 0))
        pixels = compare(base, changed, opts).diff_image.pixels
        assert tuple(pixels[2, 2, :3]) == (0, 255, 0)
