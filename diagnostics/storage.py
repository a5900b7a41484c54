from __future__ import annotations

import logging
from pathlib import Path

from .naming import is_screenshot_artifact

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def list_artifacts(dir_path: Path) -> list[Path]:
    if not dir_path.exists():
        return []
    return sorted(p for p in dir_path.iterdir() if p.is_file() and is_screenshot_artifact(p.name))


def cleanup_stale_screenshots(dir_path: Path) -> int:
    """Delete screenshots left over from a previous run.

    Returns:
        Number of files removed. Problems are logged, never raised.
    """
    removed = 0
    try:
        for artifact in list_artifacts(dir_path):
            artifact.unlink()
            removed += 1
    except OSError as e:
        logger.warning(f"Error while cleaning up old screenshots in {dir_path}: {e}")
    if removed:
        logger.info(f"Removed {removed} screenshot(s) from a previous run.")
    return removed
