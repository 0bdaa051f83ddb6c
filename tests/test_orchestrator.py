"""Integration tests for the pipeline orchestrator with a fake capture surface."""

from pathlib import Path

import pytest

from visual_regression.errors import CaptureSurfaceError, CaptureTimeout, StorageError
from visual_regression.models.comparison import ComparisonStatus
from visual_regression.orchestrator import Orchestrator
from visual_regression.reporter.json_report import load_json_report

from conftest import FakeCapture, png, solid, with_block

PROD = "https://www.example.com"


def _factory(capture: FakeCapture):
    return lambda config: capture


@pytest.mark.integration
class TestRunFullPipeline:
    """Tests for Orchestrator.run_full_pipeline()."""

    def test_green_run(self, regression_config, white_png):
        orchestrator = Orchestrator(regression_config, capture_factory=_factory(FakeCapture({}, default=white_png)))
        results = orchestrator.run_full_pipeline()

        assert results["exit_code"] == 0
        assert results["summary"].total == 4
        assert results["summary"].passed == 4
        assert results["run_id"] == results["report"].run_id
        assert Path(results["reports"]["html"]).exists()
        assert Path(results["reports"]["json"]).parent == orchestrator.store.diff_dir

    def test_failing_run_writes_diff_and_exits_one(self, regression_config):
        base = solid(100, 100)
        capture = FakeCapture(
            {f"{PROD}/": png(with_block(base, 0, 0, 40))},
            default=png(base),
        )
        orchestrator = Orchestrator(regression_config, capture_factory=_factory(capture))
        results = orchestrator.run_full_pipeline()

        assert results["exit_code"] == 1
        assert results["summary"].failed == 2
        assert (orchestrator.store.diff_dir / "home_mobile_chromium_diff.png").exists()
        saved = load_json_report(results["reports"]["json"])
        assert [r.status for r in saved.results] == [
            ComparisonStatus.FAILED,
            ComparisonStatus.FAILED,
            ComparisonStatus.PASSED,
            ComparisonStatus.PASSED,
        ]

    def test_degraded_run_exit_code(self, regression_config, white_png):
        capture = FakeCapture({f"{PROD}/contact": CaptureTimeout("down")}, default=white_png)

        results = Orchestrator(regression_config, capture_factory=_factory(capture)).run_full_pipeline()
        assert results["summary"].degraded == 2
        assert results["exit_code"] == 0

        strict = regression_config.model_copy(update={"fail_on_degraded": True})
        results = Orchestrator(strict, capture_factory=_factory(capture)).run_full_pipeline()
        assert results["exit_code"] == 1

    def test_previous_diffs_cleaned(self, regression_config, white_png):
        orchestrator = Orchestrator(regression_config, capture_factory=_factory(FakeCapture({}, default=white_png)))
        orchestrator.store.prepare()
        stale = orchestrator.store.diff_dir / "homeold_mobile_chromium_diff.png"
        stale.write_bytes(b"old")

        orchestrator.run_full_pipeline()
        assert not stale.exists()

    def test_route_filter(self, regression_config, white_png):
        capture = FakeCapture({}, default=white_png)
        results = Orchestrator(regression_config, capture_factory=_factory(capture)).run_full_pipeline(routes=["/"])
        assert results["summary"].total == 2
        assert {r.route for r in results["report"].results} == {"/"}

    def test_capture_surface_error_propagates(self, regression_config):
        def broken_factory(config):
            raise CaptureSurfaceError("no browsers")

        with pytest.raises(CaptureSurfaceError):
            Orchestrator(regression_config, capture_factory=broken_factory).run_full_pipeline()

    def test_unwritable_output_aborts(self, regression_config, tmp_path, white_png):
        blocker = tmp_path / "blocker"
        blocker.write_text("file in the way")
        config = regression_config.model_copy(update={"output_dir": str(blocker)})
        with pytest.raises(StorageError):
            Orchestrator(config, capture_factory=_factory(FakeCapture({}, default=white_png))).run_full_pipeline()


class TestClean:
    """Tests for Orchestrator.clean()."""

    def test_clean(self, regression_config):
        orchestrator = Orchestrator(regression_config)
        orchestrator.store.prepare()
        (orchestrator.store.diff_dir / "home_mobile_chromium_diff.png").write_bytes(b"x")
        assert orchestrator.clean() == 1
        assert orchestrator.clean() == 0
