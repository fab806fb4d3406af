"""Message sanitization to prevent credential leakage."""

from __future__ import annotations

import os
import re
from typing import Iterable, Optional

_KEY_PATTERNS = (
    (re.compile(r"sk-ant-[a-zA-Z0-9_-]+"), "[REDACTED_KEY]"),
    (re.compile(r"sk-[a-zA-Z0-9_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"Bearer\s+\S+"), "Bearer [REDACTED]"),
    (re.compile(r"x-api-key:\s*\S+", re.IGNORECASE), "x-api-key: [REDACTED]"),
    (re.compile(r"Authorization:\s*\S+", re.IGNORECASE), "Authorization: [REDACTED]"),
)


def sanitize_error(message: str, secrets: Optional[Iterable[str]] = None) -> str:
    """Redact API keys, known secrets and the user's home path from a message."""
    if not message:
        return message

    sanitized = message
    for secret in secrets or ():
        if secret:
            sanitized = sanitized.replace(secret, "[REDACTED]")

    for pattern, replacement in _KEY_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    home = os.environ.get("HOME") or os.environ.get("USERPROFILE") or ""
    if home and home != "/":
        sanitized = sanitized.replace(home, "~")

    return sanitized
