"""Aggregate statistics over a comparison report."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from visual_regression.models.comparison import ComparisonStatus, Report


class ReportSummary(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    degraded: int = 0
    errored: int = 0
    # Mean over results that produced a diff; degraded/errored are left out
    mean_diff_percentage: Optional[float] = None

    @property
    def successful(self) -> bool:
        return self.failed == 0 and self.errored == 0


def summarize(report: Report) -> ReportSummary:
    counts = {status: 0 for status in ComparisonStatus}
    for r in report.results:
        counts[r.status] += 1

    percentages = [r.diff_percentage for r in report.results if r.diff_percentage is not None]
    mean = sum(percentages) / len(percentages) if percentages else None

    return ReportSummary(
        total=len(report.results),
        passed=counts[ComparisonStatus.PASSED],
        failed=counts[ComparisonStatus.FAILED],
        degraded=counts[ComparisonStatus.DEGRADED],
        errored=counts[ComparisonStatus.ERRORED],
        mean_diff_percentage=mean,
    )


def exit_code(summary: ReportSummary, fail_on_degraded: bool = False) -> int:
    """0 when the run is green. DEGRADED only counts when ``fail_on_degraded``."""
    if not summary.successful:
        return 1
    if fail_on_degraded and summary.degraded:
        return 1
    return 0
