"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path

import numpy as np
import pytest

from visual_regression.errors import CaptureTimeout
from visual_regression.imaging.codec import Capture, encode
from visual_regression.models.comparison import ComparisonResult, ComparisonStatus, Report
from visual_regression.models.config import RegressionConfig, ViewportConfig
from visual_regression.storage.artifacts import ArtifactStore


# ============================================================================
# Image helpers
# ============================================================================


def solid(width: int, height: int, color=(255, 255, 255, 255)) -> Capture:
    """A single-colour capture."""
    return Capture.blank(width, height, color)


def with_block(base: Capture, x: int, y: int, size: int, color=(255, 0, 0, 255)) -> Capture:
    """Copy of ``base`` with a ``size`` x ``size`` square painted at (x, y)."""
    pixels = base.pixels.copy()
    pixels[y:y + size, x:x + size] = color
    return Capture(width=base.width, height=base.height, pixels=pixels)


def png(capture: Capture) -> bytes:
    return encode(capture)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def mobile_viewport() -> ViewportConfig:
    return ViewportConfig(name="mobile", width=390, height=844)


@pytest.fixture
def desktop_viewport() -> ViewportConfig:
    return ViewportConfig(name="desktop", width=1440, height=900)


@pytest.fixture
def regression_config(tmp_path: Path, mobile_viewport, desktop_viewport) -> RegressionConfig:
    """Config writing artifacts under tmp_path, with no waits between retries."""
    return RegressionConfig(
        production_origin="https://www.example.com",
        local_origin="http://localhost:4321",
        routes=["/", "/contact"],
        viewports=[mobile_viewport, desktop_viewport],
        browsers=["chromium"],
        threshold=0.05,
        concurrency=2,
        settle_delay_ms=0,
        retry_delay_ms=0,
        production_retries=0,
        output_dir=str(tmp_path / "artifacts"),
    )


@pytest.fixture
def temp_config_file(regression_config: RegressionConfig, tmp_path: Path) -> Path:
    config_file = tmp_path / "vrt-config.json"
    regression_config.save(config_file)
    return config_file


@pytest.fixture
def artifact_store(regression_config: RegressionConfig) -> ArtifactStore:
    store = ArtifactStore(regression_config.output_dir)
    store.prepare()
    return store


# ============================================================================
# Capture Fixtures
# ============================================================================


class FakeCapture:
    """Capture adapter serving canned PNG bytes per URL.

    ``images`` maps a URL, or a (URL, viewport name) pair, to bytes or an
    exception instance to raise. A list value is consumed one item per call.
    ``delays`` maps URL -> seconds to sleep first, to shuffle completion order.
    """

    def __init__(self, images: dict, default: bytes | None = None, delays: dict | None = None):
        self.images = images
        self.default = default
        self.delays = delays or {}
        self.calls: list[tuple[str, str, str]] = []

    async def capture(self, url, viewport, browser_name):
        self.calls.append((url, viewport.name, browser_name))
        delay = self.delays.get(url, 0)
        if delay:
            await asyncio.sleep(delay)
        outcome = self.images.get((url, viewport.name), self.images.get(url, self.default))
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            raise CaptureTimeout(f"no canned image for {url}")
        return outcome

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


@pytest.fixture
def white_png() -> bytes:
    return png(solid(100, 100))


# ============================================================================
# Result Fixtures
# ============================================================================


def make_result(**kwargs) -> ComparisonResult:
    defaults = {
        "route": "/",
        "viewport": "desktop",
        "viewport_width": 1440,
        "viewport_height": 900,
        "browser": "chromium",
        "threshold": 0.05,
        "status": ComparisonStatus.PASSED,
        "num_diff_pixels": 0,
        "total_pixels": 10000,
        "diff_percentage": 0.0,
    }
    defaults.update(kwargs)
    return ComparisonResult(**defaults)


def make_report(results=None, run_id="run_abc123") -> Report:
    return Report(
        run_id=run_id,
        started_at="2025-01-01T00:00:00Z",
        completed_at="2025-01-01T00:01:00Z",
        local_origin="http://localhost:4321",
        production_origin="https://www.example.com",
        duration_seconds=60.0,
        results=results if results is not None else [make_result()],
    )


@pytest.fixture
def sample_report() -> Report:
    return make_report([
        make_result(route="/", viewport="mobile", diff_percentage=0.01, num_diff_pixels=100),
        make_result(
            route="/", viewport="desktop", status=ComparisonStatus.FAILED,
            diff_percentage=0.2, num_diff_pixels=2000, is_different=True,
            local_path="/tmp/a/__screenshots__/home_desktop_chromium.png",
            production_path="/tmp/a/__production__/home_desktop_chromium.png",
            diff_path="/tmp/a/__diff__/home_desktop_chromium_diff.png",
        ),
        make_result(
            route="/contact", viewport="mobile", status=ComparisonStatus.DEGRADED,
            diff_percentage=None, total_pixels=0, error="Production unreachable: timeout",
        ),
        make_result(
            route="/contact", viewport="desktop", status=ComparisonStatus.ERRORED,
            diff_percentage=None, total_pixels=0, error="DimensionMismatch: sizes differ",
        ),
    ])
