"""Encoding of Results into the stdout/exit-code contract.

complete:  generated -> 0, refused -> 2, failed -> 1, cancelled -> 130
explain:   generated -> 0 (output prefixed with the sentinel),
           refused and failed -> 1, cancelled -> 130

Explain has no distinct refusal code; a refusal there is reported like any
other failure.
"""

from __future__ import annotations

from typing import NamedTuple

from ..models.request import Mode
from ..models.result import SENTINEL, Result, Status

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_REFUSED = 2
EXIT_CANCELLED = 130


class Encoded(NamedTuple):
    output: str
    exit_code: int


def encode(result: Result, mode: Mode) -> Encoded:
    if result.status is Status.GENERATED:
        if mode is Mode.EXPLAIN:
            return Encoded(f"{SENTINEL} {result.text}", EXIT_OK)
        return Encoded(result.text, EXIT_OK)
    if result.status is Status.REFUSED:
        code = EXIT_REFUSED if mode is Mode.COMPLETE else EXIT_FAILURE
        return Encoded(result.text, code)
    if result.status is Status.CANCELLED:
        return Encoded(result.text, EXIT_CANCELLED)
    return Encoded(result.text, EXIT_FAILURE)


def encode_aborted(message: str) -> Encoded:
    """Short-circuit message for empty input: informational, never insertable."""
    return Encoded(f"{SENTINEL} {message}", EXIT_OK)
