"""Error taxonomy.

These are raised inside the provider layer and converted to failed Results
at the dispatch boundary. Refusal and cancellation are Result statuses, not
exceptions.
"""

from __future__ import annotations


class SmartshellError(Exception):
    """Base class for all smartshell errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class CredentialMissing(SmartshellError):
    """No credential source yielded a usable secret."""


class TransportError(SmartshellError):
    """Network failure or non-success HTTP status."""


class MalformedResponse(SmartshellError):
    """The backend returned an unparseable or unexpected body."""


class InputMissing(SmartshellError):
    """The request lacks the input its mode requires."""
