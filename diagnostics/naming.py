from __future__ import annotations

import time
from typing import Optional

SCREENSHOT_PREFIX = "error-"
SCREENSHOT_SUFFIX = ".png"


def build_screenshot_name(kind: str, timestamp_ms: Optional[int] = None) -> str:
    """Return ``error-<kind>-<epoch ms>.png``, e.g. ``error-update-1718000000000.png``."""
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{SCREENSHOT_PREFIX}{kind}-{ts}{SCREENSHOT_SUFFIX}"


def is_screenshot_artifact(name: str) -> bool:
    return name.startswith(SCREENSHOT_PREFIX) and name.endswith(SCREENSHOT_SUFFIX)
