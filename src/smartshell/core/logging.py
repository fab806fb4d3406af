"""Optional audit log.

stdout belongs to the frontend and stderr lands on the user's terminal, so
loguru's default stderr sink is always removed. When SMSH_LOG names a file,
every invocation appends one entry there.
"""

from __future__ import annotations

import os
from typing import Optional

from loguru import logger
from rich.console import Console

from ..models.request import Mode
from ..models.result import Result, Status
from ..utils.sanitize import sanitize_error
from .config import LogSettings

AUDIT_FORMAT = "[{time:YYYY-MM-DD HH:mm:ss}] {level: <5} {message}"

err_console = Console(stderr=True)

_MARKERS = {
    Status.GENERATED: "",
    Status.REFUSED: "REFUSED: ",
    Status.FAILED: "ERROR: ",
    Status.CANCELLED: "CANCELLED: ",
}


def configure_logging(log: LogSettings) -> Optional[int]:
    """Install the file sink. Returns the loguru handler id, or None."""
    logger.remove()
    if not log.path:
        return None

    level = log.level.upper()
    try:
        logger.level(level)
    except ValueError:
        err_console.print(f"[yellow]WARN[/yellow] Unknown log level {log.level!r}, using INFO")
        level = "INFO"

    path = os.path.expanduser(log.path)
    try:
        return logger.add(
            path,
            format=AUDIT_FORMAT,
            level=level,
            mode="a",
            encoding="utf-8",
        )
    except OSError as e:
        err_console.print(f"[yellow]WARN[/yellow] Cannot open log file: {sanitize_error(str(e))}")
        return None


def log_entry(mode: Mode, subject: str, result: Result) -> None:
    """Append one audit line for a completed invocation."""
    logger.info(
        "{} | query: {} | result: {}{}",
        mode.value,
        subject,
        _MARKERS[result.status],
        result.text,
    )
