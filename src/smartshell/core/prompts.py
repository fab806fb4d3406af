"""System framing and user prompts for each request mode."""

from __future__ import annotations

import sys
from typing import Optional

from ..models.request import Mode, Request

RESPONSE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "result": {
            "type": "string",
            "description": "The command or explanation",
        },
        "error": {
            "type": "boolean",
            "description": "Set to true if the request is unclear, impossible, or not a valid shell task",
        },
    },
    "required": ["result", "error"],
    "additionalProperties": False,
}


def os_context(platform: Optional[str] = None) -> str:
    platform = platform or sys.platform
    if platform == "darwin":
        return "The target system is macOS."
    if platform.startswith("linux"):
        return "The target system is Linux."
    return ""


def system_prompt(request: Request, shell: str = "zsh", platform: Optional[str] = None) -> str:
    if request.mode is Mode.EXPLAIN:
        intro = (
            f"Explain {shell} commands. "
            "Return a short, single-line explanation in the result field."
        )
    else:
        intro = (
            f"Generate a {shell} command. "
            "Use only ASCII characters (straight quotes, no curly quotes). "
            "If the request is unclear or not a valid shell task, set error=true "
            "and put an explanation in result."
        )
    context = os_context(platform)
    return f"{intro} {context}" if context else intro


def user_prompt(request: Request, shell: str = "zsh") -> str:
    if request.mode is Mode.EXPLAIN:
        return request.buffer or ""
    query = (request.query or "").strip()
    if request.has_buffer:
        return f"Alter {shell} command `{request.buffer}` to comply with query `{query}`"
    return query
