"""Pipeline orchestrator: coordinates prepare, compare and report stages."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from visual_regression.capture.capturer import PlaywrightCapture
from visual_regression.executor.runner import ComparisonRunner
from visual_regression.models.comparison import Report
from visual_regression.models.config import RegressionConfig
from visual_regression.reporter.reporter import Reporter
from visual_regression.reporter.summary import ReportSummary, exit_code, summarize
from visual_regression.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


class Orchestrator:
    """Coordinates a full visual regression run."""

    def __init__(
        self,
        config: RegressionConfig,
        capture_factory: Callable[[RegressionConfig], PlaywrightCapture] = PlaywrightCapture,
    ):
        self.config = config
        self.capture_factory = capture_factory
        self.store = ArtifactStore(config.output_dir)

    def run_full_pipeline(
        self,
        routes: list[str] | None = None,
        browsers: list[str] | None = None,
    ) -> dict:
        """Execute prepare → compare → report and return a summary dict."""
        return asyncio.run(self._run_pipeline(routes, browsers))

    async def _run_pipeline(self, routes: list[str] | None, browsers: list[str] | None) -> dict:
        start = time.time()
        logger.info("=== Visual regression: %s vs %s ===",
                    self.config.local_origin, self.config.production_origin)

        logger.info("--- Stage 1: Prepare artifacts ---")
        self.store.prepare()
        self.store.cleanup_old_diffs()

        logger.info("--- Stage 2: Capture and compare ---")
        stage_start = time.time()
        report = await self._compare(routes, browsers)
        summary = summarize(report)
        logger.info("--- Stage 2 complete: %d passed, %d failed, %d degraded, %d errored in %.1fs ---",
                    summary.passed, summary.failed, summary.degraded, summary.errored,
                    time.time() - stage_start)

        logger.info("--- Stage 3: Report ---")
        reports = Reporter(self.config).generate_reports(report, output_dir=self.store.diff_dir)

        duration = time.time() - start
        logger.info("=== Run complete in %.1fs ===", duration)
        return {
            "run_id": report.run_id,
            "duration": round(duration, 2),
            "report": report,
            "summary": summary,
            "reports": reports,
            "exit_code": self.exit_code(summary),
        }

    async def _compare(self, routes: list[str] | None, browsers: list[str] | None) -> Report:
        async with self.capture_factory(self.config) as capture:
            runner = ComparisonRunner(self.config, capture, self.store)
            return await runner.run_all(routes=routes, browsers=browsers)

    def exit_code(self, summary: ReportSummary) -> int:
        return exit_code(summary, fail_on_degraded=self.config.fail_on_degraded)

    def clean(self) -> int:
        """Delete diff images from previous runs."""
        return self.store.cleanup_old_diffs()
