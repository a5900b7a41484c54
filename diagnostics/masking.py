from __future__ import annotations

import re
from typing import Iterable, Pattern

# (pattern, replacement) pairs applied in order
DEFAULT_PATTERNS: list[tuple[Pattern[str], str]] = [
    (re.compile(r"(telegram_?bot_?token|telegram_?chat_?id)(\s*[:=]\s*)[\"']?([^\"'\s,}]+)", re.IGNORECASE), r"\1\2***"),
    (re.compile(r"(jobkorea_?(?:id|pwd)|user_?id|login_?id)(\s*[:=]\s*)[\"']?([^\"'\s,}]+)", re.IGNORECASE), r"\1\2***"),
    (re.compile(r"(password|pwd|pass|secret)(\s*[:=]\s*)[\"']?([^\"'\s,}]+)", re.IGNORECASE), r"\1\2***"),
    (re.compile(r"(token|key|auth|bearer)(\s*[:=]\s*)[\"']?([^\"'\s,}]+)", re.IGNORECASE), r"\1\2***"),
    # Telegram bot path segment: /bot123456:ABC-def/
    (re.compile(r"bot\d+:[A-Za-z0-9_-]+"), "bot***"),
    (re.compile(r"\b\d{10,}\b"), "***"),
]


def mask_sensitive(text: str, extra_patterns: Iterable[str] = ()) -> str:
    """Redact credentials, tokens and long identifiers from ``text``."""
    masked = text
    for pattern, replacement in DEFAULT_PATTERNS:
        masked = pattern.sub(replacement, masked)
    for pat in extra_patterns:
        try:
            masked = re.sub(pat, "***", masked, flags=re.IGNORECASE)
        except re.error:
            # Ignore invalid regex to avoid breaking logging
            continue
    return masked


def mask_literals(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of the given secret values with ``***``."""
    masked = text
    for secret in secrets:
        if secret:
            masked = masked.replace(secret, "***")
    return masked
