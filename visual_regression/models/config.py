"""Configuration models for the visual regression runner."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from visual_regression.url_utils import artifact_stem

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class ViewportConfig(BaseModel):
    name: str = "desktop"
    width: int = Field(default=1440, gt=0)
    height: int = Field(default=900, gt=0)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.width}x{self.height})"


class RegressionConfig(BaseModel):
    # Targets
    production_origin: str
    local_origin: str = "http://localhost:4321"

    # What to compare
    routes: list[str] = Field(default_factory=lambda: ["/", "/contact"])
    viewports: list[ViewportConfig] = Field(
        default_factory=lambda: [
            ViewportConfig(name="mobile", width=390, height=844),
            ViewportConfig(name="desktop", width=1440, height=900),
        ]
    )
    browsers: list[str] = Field(default_factory=lambda: ["chromium"])

    # Diff tolerances
    threshold: float = Field(default=0.05, ge=0.0, le=1.0)
    per_pixel_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    include_anti_aliasing: bool = False
    alpha_weight: float = Field(default=0.1, ge=0.0, le=1.0)

    # Capture timing
    settle_delay_ms: int = Field(default=2000, ge=0)
    network_idle_timeout_ms: int = Field(default=10000, ge=0)
    capture_timeout_ms: int = Field(default=30000, gt=0)
    full_page: bool = True
    user_agent: Optional[str] = None

    # Execution
    concurrency: int = Field(default=3, gt=0)
    production_retries: int = Field(default=1, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)

    # Output
    output_dir: str = "./tests"
    report_formats: list[str] = Field(default_factory=lambda: ["html", "json"])
    fail_on_degraded: bool = False

    @field_validator("production_origin", "local_origin")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Origin must be an http(s) URL, got '{v}'")
        return v.rstrip("/")

    @field_validator("routes")
    @classmethod
    def routes_are_paths(cls, v: list[str]) -> list[str]:
        for route in v:
            if not route.startswith("/"):
                raise ValueError(f"Route must start with '/': '{route}'")
        return v

    @field_validator("browsers")
    @classmethod
    def browsers_supported(cls, v: list[str]) -> list[str]:
        unknown = [b for b in v if b not in SUPPORTED_BROWSERS]
        if unknown:
            raise ValueError(
                f"Unsupported browser(s) {unknown}; choose from {list(SUPPORTED_BROWSERS)}"
            )
        return v

    @field_validator("report_formats")
    @classmethod
    def formats_supported(cls, v: list[str]) -> list[str]:
        unknown = [f for f in v if f not in ("html", "json")]
        if unknown:
            raise ValueError(f"Unsupported report format(s) {unknown}")
        return v

    @model_validator(mode="after")
    def combinations_have_distinct_artifacts(self) -> "RegressionConfig":
        """Every (route, viewport, browser) must map to its own artifact files."""
        for label, values in (
            ("route", self.routes),
            ("viewport name", [v.name for v in self.viewports]),
            ("browser", self.browsers),
        ):
            duplicates = sorted({x for x in values if values.count(x) > 1})
            if duplicates:
                raise ValueError(f"Duplicate {label}(s): {duplicates}")

        seen: dict[str, tuple[str, str, str]] = {}
        for route in self.routes:
            for viewport in self.viewports:
                for browser in self.browsers:
                    stem = artifact_stem(route, viewport.name, browser)
                    other = seen.setdefault(stem, (route, viewport.name, browser))
                    if other != (route, viewport.name, browser):
                        raise ValueError(
                            f"{(route, viewport.name, browser)} and {other} would share "
                            f"artifact name '{stem}'; rename the route or viewport"
                        )
        return self

    @classmethod
    def load(cls, path: str | Path) -> "RegressionConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
