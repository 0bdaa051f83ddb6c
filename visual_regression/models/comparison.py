"""Comparison result data structures produced by the orchestrator."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ComparisonStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    DEGRADED = "DEGRADED"  # production capture unavailable
    ERRORED = "ERRORED"


def diff_ratio(num_diff_pixels: int, total_pixels: int) -> float:
    return num_diff_pixels / total_pixels if total_pixels else 0.0


def exceeds_threshold(num_diff_pixels: int, total_pixels: int, threshold: float) -> bool:
    """Strictly greater: a ratio equal to the threshold still passes."""
    return diff_ratio(num_diff_pixels, total_pixels) > threshold


class ComparisonResult(BaseModel):
    """Outcome of one (route, viewport, browser) combination. Immutable."""

    model_config = ConfigDict(frozen=True)

    route: str
    viewport: str
    viewport_width: int
    viewport_height: int
    browser: str
    threshold: float
    status: ComparisonStatus
    num_diff_pixels: int = Field(default=0, ge=0)
    num_anti_aliased_pixels: int = Field(default=0, ge=0)
    total_pixels: int = Field(default=0, ge=0)
    diff_percentage: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    is_different: bool = False
    local_path: Optional[str] = None
    production_path: Optional[str] = None
    diff_path: Optional[str] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @classmethod
    def from_diff(
        cls,
        *,
        num_diff_pixels: int,
        total_pixels: int,
        threshold: float,
        diff_path: str | None = None,
        **identity,
    ) -> "ComparisonResult":
        """Classify a completed diff. Equality with the threshold passes."""
        is_different = exceeds_threshold(num_diff_pixels, total_pixels, threshold)
        return cls(
            num_diff_pixels=num_diff_pixels,
            total_pixels=total_pixels,
            threshold=threshold,
            diff_percentage=diff_ratio(num_diff_pixels, total_pixels),
            is_different=is_different,
            status=ComparisonStatus.FAILED if is_different else ComparisonStatus.PASSED,
            diff_path=diff_path if is_different else None,
            **identity,
        )

    @property
    def key(self) -> tuple[str, str, str]:
        return self.route, self.viewport, self.browser


class Report(BaseModel):
    run_id: str
    started_at: str
    completed_at: str = ""
    local_origin: str
    production_origin: str
    duration_seconds: float = 0.0
    results: list[ComparisonResult] = Field(default_factory=list)
