"""Result data models.

A Result is the tagged outcome of one invocation. The classification rules
live here so that every producer gets them: a generated payload that starts
with the sentinel is a refusal, and an empty generated payload is a failure.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator

SENTINEL = "#"

DEFAULT_REFUSAL = "The model declined this request."
EMPTY_RESPONSE = "Empty response from provider"


class Status(str, Enum):
    GENERATED = "generated"
    REFUSED = "refused"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Result(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Status
    text: str = ""
    error_kind: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _classify(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        status = data.get("status")
        text = (data.get("text") or "").strip()

        if status == Status.GENERATED:
            if not text:
                return {
                    "status": Status.FAILED,
                    "text": EMPTY_RESPONSE,
                    "error_kind": "MalformedResponse",
                }
            if text.startswith(SENTINEL):
                return {"status": Status.REFUSED, "text": text}
        elif status == Status.REFUSED:
            text = text or DEFAULT_REFUSAL
            if not text.startswith(SENTINEL):
                text = f"{SENTINEL} {text}"
        elif status == Status.FAILED:
            text = text or "Unknown error"
        elif status == Status.CANCELLED:
            text = text or "Cancelled."

        return {**data, "text": text}

    @classmethod
    def generated(cls, text: Optional[str]) -> "Result":
        return cls(status=Status.GENERATED, text=text or "")

    @classmethod
    def refused(cls, message: Optional[str] = None) -> "Result":
        return cls(status=Status.REFUSED, text=message or "")

    @classmethod
    def failed(cls, message: str, error_kind: Optional[str] = None) -> "Result":
        return cls(status=Status.FAILED, text=message, error_kind=error_kind)

    @classmethod
    def cancelled(cls) -> "Result":
        return cls(status=Status.CANCELLED)

    @property
    def ok(self) -> bool:
        return self.status is Status.GENERATED


class StructuredReply(BaseModel):
    """The {result, error} object every provider is asked to return."""

    result: str = ""
    error: bool = False
