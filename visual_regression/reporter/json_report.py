"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from visual_regression.models.comparison import Report

from .summary import summarize


def render_json(report: Report) -> dict:
    data = report.model_dump(mode="json")
    data["summary"] = summarize(report).model_dump()
    return data


def generate_json_report(report: Report, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    with open(output_path, "w") as f:
        json.dump(render_json(report), f, indent=2, default=str)


def load_json_report(path: str | Path) -> Report:
    """Read a report written by generate_json_report. The summary is recomputed."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Report not found: {path}")
    with open(path) as f:
        data = json.load(f)
    data.pop("summary", None)
    return Report.model_validate(data)
