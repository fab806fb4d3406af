"""Request data models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Provider(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"

    def toggled(self) -> "Provider":
        return Provider.CLAUDE if self is Provider.OPENAI else Provider.OPENAI

    @property
    def display_name(self) -> str:
        return "OpenAI" if self is Provider.OPENAI else "Claude"


class Mode(str, Enum):
    COMPLETE = "complete"
    EXPLAIN = "explain"


class Request(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Mode
    query: Optional[str] = None
    buffer: Optional[str] = None

    @property
    def has_buffer(self) -> bool:
        return bool(self.buffer and self.buffer.strip())

    def missing_input(self) -> Optional[str]:
        """Return the abort message when the mode's required input is empty."""
        if self.mode is Mode.EXPLAIN:
            return None if self.has_buffer else "Nothing to explain."
        if not (self.query and self.query.strip()):
            return "Completion aborted (empty input)."
        return None
