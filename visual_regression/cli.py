"""CLI entry point for the visual regression runner."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from visual_regression.errors import CaptureSurfaceError, StorageError
from visual_regression.models.comparison import ComparisonStatus, Report
from visual_regression.models.config import SUPPORTED_BROWSERS, RegressionConfig
from visual_regression.orchestrator import Orchestrator
from visual_regression.reporter.html_report import generate_html_report
from visual_regression.reporter.json_report import load_json_report
from visual_regression.reporter.summary import ReportSummary, summarize

console = Console()

DEFAULT_CONFIG = "vrt-config.json"

_STATUS_STYLES = {
    ComparisonStatus.PASSED: "green",
    ComparisonStatus.FAILED: "red",
    ComparisonStatus.DEGRADED: "yellow",
    ComparisonStatus.ERRORED: "red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> RegressionConfig:
    try:
        return RegressionConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'visual-regression init' to create a default config.")
        sys.exit(2)
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid config {path}:[/red]\n{escape(str(e))}")
        sys.exit(2)


def _print_results(report: Report, summary: ReportSummary) -> None:
    table = Table(title="Visual Regression Results")
    table.add_column("Route", style="bold")
    table.add_column("Viewport")
    table.add_column("Browser")
    table.add_column("Diff", justify="right")
    table.add_column("Status")
    for r in report.results:
        diff = "n/a" if r.diff_percentage is None else f"{r.diff_percentage:.2%}"
        style = _STATUS_STYLES[r.status]
        table.add_row(r.route, r.viewport, r.browser, diff, f"[{style}]{r.status.value}[/{style}]")
    console.print(table)

    mean = "n/a" if summary.mean_diff_percentage is None else f"{summary.mean_diff_percentage:.2%}"
    console.print(
        f"Total: {summary.total}  [green]Passed: {summary.passed}[/green]  "
        f"[red]Failed: {summary.failed}[/red]  [yellow]Degraded: {summary.degraded}[/yellow]  "
        f"[red]Errored: {summary.errored}[/red]  Avg difference: {mean}"
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Screenshot a local site and its production twin, and diff them."""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--route", "routes", multiple=True, help="Only compare these routes")
@click.option("--browser", "browsers", multiple=True,
              type=click.Choice(SUPPORTED_BROWSERS), help="Only use these browsers")
@click.option("--threshold", type=click.FloatRange(0.0, 1.0), help="Override the failure threshold")
@click.option("--fail-on-degraded", is_flag=True,
              help="Exit non-zero when production could not be captured")
def run(config: str, routes: tuple[str, ...], browsers: tuple[str, ...],
        threshold: float | None, fail_on_degraded: bool) -> None:
    """Run the comparison pipeline: capture → diff → report."""
    cfg = _load_config(config)
    overrides = {}
    if threshold is not None:
        overrides["threshold"] = threshold
    if fail_on_degraded:
        overrides["fail_on_degraded"] = True
    if browsers:
        overrides["browsers"] = list(browsers)
    if routes:
        overrides["routes"] = list(routes)
    if overrides:
        try:
            cfg = RegressionConfig.model_validate({**cfg.model_dump(), **overrides})
        except ValidationError as e:
            console.print(f"[red]Invalid options:[/red]\n{escape(str(e))}")
            sys.exit(2)

    orchestrator = Orchestrator(cfg)
    try:
        results = orchestrator.run_full_pipeline()
    except (StorageError, CaptureSurfaceError) as e:
        console.print(f"[red]Run aborted:[/red] {escape(str(e))}")
        sys.exit(2)

    console.print("\n[bold green]Run Complete[/bold green]")
    _print_results(results["report"], results["summary"])
    for fmt, path in results["reports"].items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")
    sys.exit(results["exit_code"])


@cli.command()
@click.option("--production", "-p", prompt="Production origin", help="Production site URL")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(production: str, config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    try:
        cfg = RegressionConfig(production_origin=production)
    except ValidationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nStart the local site, then run:")
    console.print("  [blue]visual-regression run[/blue]")


@cli.command()
@click.option("--results", "-r", required=True, help="Path to a JSON report")
@click.option("--output", "-o", default=None, help="HTML output path (default: next to the JSON)")
def report(results: str, output: str | None) -> None:
    """Re-render the HTML report from a saved JSON report."""
    try:
        saved = load_json_report(results)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid report {escape(results)}:[/red]\n{escape(str(e))}")
        sys.exit(2)
    out_path = Path(output) if output else Path(results).with_suffix(".html")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    generate_html_report(saved, out_path)
    summary = summarize(saved)
    console.print(
        f"[green]Report written:[/green] {out_path} "
        f"({summary.passed} passed, {summary.failed} failed, "
        f"{summary.degraded} degraded, {summary.errored} errored)"
    )


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def clean(config: str) -> None:
    """Delete diff images from previous runs."""
    cfg = _load_config(config)
    try:
        removed = Orchestrator(cfg).clean()
    except StorageError as e:
        console.print(f"[red]Clean failed:[/red] {escape(str(e))}")
        sys.exit(2)
    console.print(f"[green]Removed {removed} diff image(s)[/green]")


if __name__ == "__main__":
    cli()
