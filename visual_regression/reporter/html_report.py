"""HTML report generator: one card per combination with side-by-side images."""

from __future__ import annotations

import html
import logging
import os
from pathlib import Path

from visual_regression.models.comparison import ComparisonResult, ComparisonStatus, Report

from .summary import ReportSummary, summarize

logger = logging.getLogger(__name__)

_STATUS_COLORS = {
    ComparisonStatus.PASSED: "#22c55e",
    ComparisonStatus.FAILED: "#ef4444",
    ComparisonStatus.DEGRADED: "#eab308",
    ComparisonStatus.ERRORED: "#f97316",
}


def _pct(value: float | None) -> str:
    return "n/a" if value is None else f"{value * 100:.2f}%"


def _image_src(path: str, report_dir: Path | None) -> str:
    """Image reference relative to the report so the artifact tree can be moved."""
    if report_dir is None:
        return Path(path).as_posix()
    return Path(os.path.relpath(path, report_dir)).as_posix()


def _build_comparison_images(r: ComparisonResult, report_dir: Path | None) -> str:
    images = [("Local", r.local_path), ("Production", r.production_path), ("Difference", r.diff_path)]
    cells = ""
    for label, path in images:
        if not path:
            continue
        src = html.escape(_image_src(path, report_dir))
        cells += f'''
          <div class="comparison-item">
            <img src="{src}" alt="{label}" loading="lazy" onclick="this.classList.toggle('zoomed')"/>
            <div class="comparison-label">{label}</div>
          </div>'''
    return f'<div class="comparison">{cells}</div>'


def _build_result_card(r: ComparisonResult, report_dir: Path | None = None) -> str:
    """Build the HTML card for a single comparison result."""
    status = r.status.value
    border_color = _STATUS_COLORS.get(r.status, "#94a3b8")
    title = f"{html.escape(r.route)} - {html.escape(r.viewport)}"

    card = f'''
    <div class="result-card" data-status="{status.lower()}">
      <div class="result-header" style="border-left: 4px solid {border_color};">
        <div>
          <h3 class="result-title">{title}</h3>
          <div class="result-meta">Browser: {html.escape(r.browser)} &middot; {r.viewport_width}x{r.viewport_height} &middot; Diff: {_pct(r.diff_percentage)} &middot; Pixels: {r.num_diff_pixels}</div>
        </div>
        <span class="badge {status.lower()}">{status}</span>
      </div>
    '''

    if r.error:
        card += f'<div class="error-banner">{html.escape(r.error)}</div>'

    if r.is_different:
        card += _build_comparison_images(r, report_dir)

    card += f'''
      <div class="metrics">
        <div class="metric"><div class="metric-value">{_pct(r.diff_percentage)}</div><div class="metric-label">Difference</div></div>
        <div class="metric"><div class="metric-value">{r.num_diff_pixels}</div><div class="metric-label">Diff Pixels</div></div>
        <div class="metric"><div class="metric-value">{r.total_pixels}</div><div class="metric-label">Total Pixels</div></div>
        <div class="metric"><div class="metric-value">{_pct(r.threshold)}</div><div class="metric-label">Threshold</div></div>
      </div>
    </div>'''
    return card


def _build_summary(summary: ReportSummary) -> str:
    return f'''
  <div class="summary">
    <div class="stat"><div class="value">{summary.total}</div><div class="label">Total Tests</div></div>
    <div class="stat passed"><div class="value">{summary.passed}</div><div class="label">Passed</div></div>
    <div class="stat failed"><div class="value">{summary.failed}</div><div class="label">Failed</div></div>
    <div class="stat degraded"><div class="value">{summary.degraded}</div><div class="label">Degraded</div></div>
    <div class="stat errored"><div class="value">{summary.errored}</div><div class="label">Errored</div></div>
    <div class="stat"><div class="value">{_pct(summary.mean_diff_percentage)}</div><div class="label">Avg Difference</div></div>
  </div>'''


def render_html(report: Report, report_dir: Path | None = None) -> str:
    """Render the report. Deterministic for a given report and directory."""
    summary = summarize(report)
    cards = "".join(_build_result_card(r, report_dir) for r in report.results)

    return f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Visual Regression Report &mdash; {html.escape(report.run_id)}</title>
<style>
  :root {{ --passed: #22c55e; --failed: #ef4444; --degraded: #eab308; --errored: #f97316; --bg: #f8fafc; --card: white; --border: #e2e8f0; --text: #1e293b; --muted: #64748b; --accent: #6366f1; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; padding: 1.5rem; }}
  .container {{ max-width: 1400px; margin: 0 auto; }}
  h1 {{ font-size: 1.8rem; margin-bottom: 0.3rem; }}
  .meta {{ color: var(--muted); margin-bottom: 1.5rem; font-size: 0.9rem; }}
  .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(130px, 1fr)); gap: 0.8rem; margin-bottom: 1.5rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); text-align: center; }}
  .stat .value {{ font-size: 1.8rem; font-weight: 700; }}
  .stat .label {{ font-size: 0.8rem; color: var(--muted); }}
  .stat.passed .value {{ color: var(--passed); }}
  .stat.failed .value {{ color: var(--failed); }}
  .stat.degraded .value {{ color: var(--degraded); }}
  .stat.errored .value {{ color: var(--errored); }}
  .badge {{ display: inline-block; padding: 0.15rem 0.55rem; border-radius: 9999px; font-size: 0.7rem; font-weight: 600; text-transform: uppercase; white-space: nowrap; }}
  .badge.passed {{ background: #dcfce7; color: #166534; }}
  .badge.failed {{ background: #fecaca; color: #991b1b; }}
  .badge.degraded {{ background: #fef9c3; color: #854d0e; }}
  .badge.errored {{ background: #fed7aa; color: #9a3412; }}
  .result-card {{ background: var(--card); border-radius: 8px; margin-bottom: 0.8rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); overflow: hidden; }}
  .result-header {{ display: flex; justify-content: space-between; align-items: center; padding: 0.7rem 1rem; }}
  .result-title {{ font-size: 1.05rem; }}
  .result-meta {{ font-size: 0.8rem; color: var(--muted); }}
  .error-banner {{ background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; border-radius: 6px; padding: 0.6rem 0.8rem; margin: 0 1rem 0.8rem 1rem; font-size: 0.88rem; }}
  .comparison {{ display: grid; grid-template-columns: 1fr 1fr 1fr; gap: 0.6rem; padding: 0 1rem 1rem 1rem; }}
  .comparison-item {{ text-align: center; }}
  .comparison-item img {{ width: 100%; border-radius: 6px; border: 1px solid var(--border); cursor: pointer; }}
  .comparison-item img.zoomed {{ position: fixed; top: 5%; left: 5%; width: 90%; height: 90%; object-fit: contain; z-index: 1000; background: rgba(0,0,0,0.85); border: none; border-radius: 8px; padding: 1rem; }}
  .comparison-label {{ font-size: 0.75rem; color: var(--muted); margin-top: 0.2rem; }}
  .metrics {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 0.6rem; padding: 0.8rem 1rem; background: #f1f5f9; border-top: 1px solid var(--border); }}
  .metric {{ text-align: center; }}
  .metric-value {{ font-weight: 700; }}
  .metric-label {{ font-size: 0.75rem; color: var(--muted); }}
  .filter-bar {{ display: flex; gap: 0.5rem; margin-bottom: 1rem; flex-wrap: wrap; }}
  .filter-btn {{ padding: 0.3rem 0.8rem; border-radius: 6px; border: 1px solid var(--border); background: var(--card); cursor: pointer; font-size: 0.82rem; }}
  .filter-btn.active {{ background: var(--accent); color: white; border-color: var(--accent); }}
</style>
</head>
<body>
<div class="container">
  <h1>Visual Regression Report</h1>
  <p class="meta">Run: {html.escape(report.run_id)} &middot; Local: {html.escape(report.local_origin)} &middot; Production: {html.escape(report.production_origin)} &middot; Generated {html.escape(report.completed_at or report.started_at)} &middot; Duration: {report.duration_seconds}s</p>
  {_build_summary(summary)}

  <div class="filter-bar">
    <button class="filter-btn active" onclick="filterResults('all')">All</button>
    <button class="filter-btn" onclick="filterResults('failed')">Failed</button>
    <button class="filter-btn" onclick="filterResults('errored')">Errored</button>
    <button class="filter-btn" onclick="filterResults('degraded')">Degraded</button>
    <button class="filter-btn" onclick="filterResults('passed')">Passed</button>
  </div>

  <div id="result-list">
    {cards}
  </div>
</div>

<script>
function filterResults(status) {{
  document.querySelectorAll('.filter-btn').forEach(b => b.classList.remove('active'));
  event.target.classList.add('active');
  document.querySelectorAll('.result-card').forEach(card => {{
    card.style.display = (status === 'all' || card.dataset.status === status) ? '' : 'none';
  }});
}}
</script>
</body>
</html>'''


def generate_html_report(report: Report, output_path: Path) -> None:
    """Write the HTML report; image links are relative to its directory."""
    report_html = render_html(report, report_dir=output_path.parent)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report_html)
    logger.debug("HTML report written (%d results)", len(report.results))
