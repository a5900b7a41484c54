from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from .naming import build_screenshot_name
from .storage import ensure_dir

logger = logging.getLogger(__name__)


def _is_usable(surface: Any) -> bool:
    if surface is None:
        return False
    try:
        return not surface.is_closed()
    except Exception:
        return False


async def capture_failure_screenshot(
    surfaces: Sequence[Optional[Any]],
    kind: str,
    output_dir: Path,
) -> Optional[Path]:
    """Best-effort full-page screenshot of the first open surface.

    ``surfaces`` is ordered by preference (e.g. the resume popup before the main
    page). Capture problems are logged and swallowed so they never mask the
    error that triggered the capture.

    Returns:
        Path of the written screenshot, or None if nothing was captured.
    """
    surface = next((s for s in surfaces if _is_usable(s)), None)
    if surface is None:
        logger.warning(f"No open page available for a '{kind}' failure screenshot.")
        return None

    screenshot_path = output_dir / build_screenshot_name(kind)
    try:
        ensure_dir(output_dir)
        await surface.screenshot(path=str(screenshot_path), full_page=True)
    except Exception as e:
        logger.error(f"Failed to save '{kind}' failure screenshot: {e}")
        return None

    logger.error(f"Saved '{kind}' failure screenshot: {screenshot_path}")
    return screenshot_path
