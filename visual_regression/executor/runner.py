"""Comparison runner: captures, diffs and classifies every combination."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from visual_regression.capture.capturer import CaptureAdapter
from visual_regression.errors import CaptureError, StorageError
from visual_regression.imaging.codec import decode, encode
from visual_regression.imaging.comparator import CompareOptions, ComparisonOutcome, compare
from visual_regression.models.comparison import (
    ComparisonResult,
    ComparisonStatus,
    Report,
    exceeds_threshold,
)
from visual_regression.models.config import RegressionConfig, ViewportConfig
from visual_regression.storage.artifacts import ArtifactStore
from visual_regression.url_utils import route_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Combination:
    index: int
    route: str
    viewport: ViewportConfig
    browser: str

    @property
    def label(self) -> str:
        return f"{self.route} - {self.viewport.name} - {self.browser}"


def enumerate_combinations(
    routes: list[str], viewports: list[ViewportConfig], browsers: list[str],
) -> list[Combination]:
    """Routes outer, then viewports, then browsers. Report order follows this."""
    return [
        Combination(index=i, route=route, viewport=viewport, browser=browser)
        for i, (route, viewport, browser) in enumerate(itertools.product(routes, viewports, browsers))
    ]


class ComparisonRunner:
    """Runs local-vs-production comparisons with bounded parallelism."""

    def __init__(self, config: RegressionConfig, capture: CaptureAdapter, store: ArtifactStore):
        self.config = config
        self.capture = capture
        self.store = store
        self.compare_options = CompareOptions(
            per_pixel_threshold=config.per_pixel_threshold,
            include_anti_aliasing=config.include_anti_aliasing,
            alpha_weight=config.alpha_weight,
        )

    async def run_all(
        self,
        routes: list[str] | None = None,
        viewports: list[ViewportConfig] | None = None,
        browsers: list[str] | None = None,
    ) -> Report:
        """Compare every combination and return them in enumeration order.

        Per-combination failures become DEGRADED or ERRORED results. Only a
        StorageError aborts the run; the remaining tasks are cancelled first.
        """
        combos = enumerate_combinations(
            routes if routes is not None else self.config.routes,
            viewports if viewports is not None else self.config.viewports,
            browsers if browsers is not None else self.config.browsers,
        )
        run_id = f"run_{uuid.uuid4().hex[:8]}"
        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        start_time = time.time()
        logger.info("Starting %s: %d combinations, concurrency %d",
                    run_id, len(combos), self.config.concurrency)

        semaphore = asyncio.Semaphore(self.config.concurrency)
        results: list[ComparisonResult | None] = [None] * len(combos)

        async def _run_one(combo: Combination) -> None:
            async with semaphore:
                logger.info("Comparing [%d/%d]: %s", combo.index + 1, len(combos), combo.label)
                result = await self._run_combination(combo)
                results[combo.index] = result
                logger.info("[%s] %s (%.1fs)", result.status.value, combo.label, result.duration_seconds)

        tasks = [asyncio.create_task(_run_one(c)) for c in combos]
        try:
            await asyncio.gather(*tasks)
        except StorageError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        duration = time.time() - start_time
        return Report(
            run_id=run_id,
            started_at=started_at,
            completed_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            local_origin=self.config.local_origin,
            production_origin=self.config.production_origin,
            duration_seconds=round(duration, 2),
            results=[r for r in results if r is not None],
        )

    async def _run_combination(self, combo: Combination) -> ComparisonResult:
        start = time.time()
        identity = {
            "route": combo.route,
            "viewport": combo.viewport.name,
            "viewport_width": combo.viewport.width,
            "viewport_height": combo.viewport.height,
            "browser": combo.browser,
            "threshold": self.config.threshold,
        }
        local_path = self.store.local_path(combo.route, combo.viewport.name, combo.browser)
        production_path = self.store.production_path(combo.route, combo.viewport.name, combo.browser)
        local_written = False

        try:
            try:
                local_bytes = await self.capture.capture(
                    route_url(self.config.local_origin, combo.route), combo.viewport, combo.browser,
                )
            except CaptureError as e:
                return self._errored(identity, start, f"Local capture failed: {e}")
            self.store.write(local_path, local_bytes)
            local_written = True

            try:
                production_bytes = await self._capture_production(combo)
            except CaptureError as e:
                logger.warning("Could not fetch production screenshot for %s: %s", combo.label, e)
                return ComparisonResult(
                    status=ComparisonStatus.DEGRADED,
                    local_path=str(local_path),
                    error=f"Production unreachable: {e}",
                    duration_seconds=round(time.time() - start, 2),
                    **identity,
                )
            self.store.write(production_path, production_bytes)

            outcome = await asyncio.to_thread(self._diff, local_bytes, production_bytes)
            diff_path: Path | None = None
            if exceeds_threshold(outcome.num_diff_pixels, outcome.total_pixels, self.config.threshold):
                diff_path = self.store.diff_path(combo.route, combo.viewport.name, combo.browser)
                self.store.write(diff_path, encode(outcome.diff_image))
                logger.info("Visual difference detected for %s: %d pixels, diff saved to %s",
                            combo.label, outcome.num_diff_pixels, diff_path)

            return ComparisonResult.from_diff(
                num_diff_pixels=outcome.num_diff_pixels,
                total_pixels=outcome.total_pixels,
                diff_path=str(diff_path) if diff_path else None,
                num_anti_aliased_pixels=outcome.num_anti_aliased_pixels,
                local_path=str(local_path),
                production_path=str(production_path),
                duration_seconds=round(time.time() - start, 2),
                **identity,
            )
        except StorageError:
            raise
        except Exception as e:
            logger.debug("Comparison of %s raised", combo.label, exc_info=True)
            return self._errored(
                identity, start, f"{type(e).__name__}: {e}",
                local_path=str(local_path) if local_written else None,
            )

    def _diff(self, local_bytes: bytes, production_bytes: bytes) -> ComparisonOutcome:
        return compare(decode(local_bytes), decode(production_bytes), self.compare_options)

    async def _capture_production(self, combo: Combination) -> bytes:
        url = route_url(self.config.production_origin, combo.route)
        attempts = self.config.production_retries + 1
        attempt = 1
        while True:
            try:
                return await self.capture.capture(url, combo.viewport, combo.browser)
            except CaptureError as e:
                if attempt >= attempts:
                    raise
                logger.info("Production capture of %s failed (attempt %d/%d): %s",
                            url, attempt, attempts, e)
                await asyncio.sleep(self.config.retry_delay_ms / 1000)
                attempt += 1

    @staticmethod
    def _errored(identity: dict, start: float, message: str, local_path: str | None = None) -> ComparisonResult:
        logger.error("Comparison errored for %s %s %s: %s",
                     identity["route"], identity["viewport"], identity["browser"], message)
        return ComparisonResult(
            status=ComparisonStatus.ERRORED,
            error=message,
            local_path=local_path,
            duration_seconds=round(time.time() - start, 2),
            **identity,
        )
