"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from visual_regression.errors import StorageError
from visual_regression.models.comparison import Report
from visual_regression.models.config import RegressionConfig

from .html_report import generate_html_report
from .json_report import generate_json_report

logger = logging.getLogger(__name__)

REPORT_BASENAME = "report"


class Reporter:
    """Writes the configured report formats for a finished run."""

    def __init__(self, config: RegressionConfig):
        self.config = config

    def generate_reports(self, report: Report, output_dir: Path) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            generated = {}
            logger.debug("Report output directory: %s", output_dir)

            if "html" in self.config.report_formats:
                path = output_dir / f"{REPORT_BASENAME}.html"
                generate_html_report(report, path)
                generated["html"] = str(path)
                logger.info("HTML report: %s", path)

            if "json" in self.config.report_formats:
                path = output_dir / f"{REPORT_BASENAME}.json"
                generate_json_report(report, path)
                generated["json"] = str(path)
                logger.info("JSON report: %s", path)
        except OSError as e:
            raise StorageError(f"Cannot write reports to {output_dir}: {e}") from e

        return generated
