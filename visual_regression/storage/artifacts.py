"""Artifact store: owns the screenshot / production / diff directory layout."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from visual_regression.errors import StorageError
from visual_regression.url_utils import artifact_stem

logger = logging.getLogger(__name__)

SCREENSHOTS_DIR = "__screenshots__"
PRODUCTION_DIR = "__production__"
DIFF_DIR = "__diff__"
DIFF_SUFFIX = "_diff.png"


class ArtifactStore:
    """Writes captures and diffs under ``root`` with deterministic names."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.screenshots_dir = self.root / SCREENSHOTS_DIR
        self.production_dir = self.root / PRODUCTION_DIR
        self.diff_dir = self.root / DIFF_DIR

    def prepare(self) -> None:
        """Create the artifact directories. Failure aborts the run."""
        for directory in (self.screenshots_dir, self.production_dir, self.diff_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot create artifact directory {directory}: {e}") from e
        logger.debug("Artifact directories ready under %s", self.root)

    def local_path(self, route: str, viewport: str, browser: str) -> Path:
        return self.screenshots_dir / f"{artifact_stem(route, viewport, browser)}.png"

    def production_path(self, route: str, viewport: str, browser: str) -> Path:
        return self.production_dir / f"{artifact_stem(route, viewport, browser)}.png"

    def diff_path(self, route: str, viewport: str, browser: str) -> Path:
        return self.diff_dir / f"{artifact_stem(route, viewport, browser)}{DIFF_SUFFIX}"

    def write(self, path: Path, data: bytes) -> Path:
        """Atomically write ``data`` to ``path`` (temp file + rename)."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write artifact {path}: {e}") from e
        logger.debug("Wrote %s (%s)", path, format_file_size(len(data)))
        return path

    def cleanup_old_diffs(self) -> int:
        """Delete diff images left by a previous run. Returns the number removed."""
        return cleanup_old_diffs(self.diff_dir)


def cleanup_old_diffs(diff_dir: str | Path) -> int:
    diff_dir = Path(diff_dir)
    if not diff_dir.exists():
        return 0
    removed = 0
    for path in diff_dir.glob(f"*{DIFF_SUFFIX}"):
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Cannot remove old diff {path}: {e}") from e
        removed += 1
    if removed:
        logger.info("Removed %d old diff image(s) from %s", removed, diff_dir)
    return removed


def format_file_size(num_bytes: int) -> str:
    """Human readable size, e.g. 1536 -> '1.50 KB'."""
    units = ["B", "KB", "MB", "GB"]
    size = float(num_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.2f} {units[unit_index]}"
