"""Request orchestrator.

Validates the request, resolves the credential for the selected provider,
runs the provider call through the execution controller and records the
outcome in the audit log.
"""

from __future__ import annotations

import asyncio
import os
from typing import Callable, Mapping, Optional

import httpx

from ..models.request import Mode, Provider, Request
from ..models.result import Result
from ..providers.base import dispatch
from .config import Settings
from .credentials import describe_sources, resolve_credential
from .errors import CredentialMissing, InputMissing
from .executor import ExecutionController
from .logging import log_entry

# Set by a frontend for a single invocation; takes precedence over every other source.
EPHEMERAL_KEY_ENV = "SMSH_API_KEY"

Resolver = Callable[..., Optional[str]]


def missing_credential_message(provider: Provider) -> str:
    return f"{provider.display_name} API key not set (checked {describe_sources(provider)})"


async def run_request(
    request: Request,
    settings: Settings,
    *,
    environ: Optional[Mapping[str, str]] = None,
    controller: Optional[ExecutionController] = None,
    cancel_event: Optional[asyncio.Event] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    resolver: Resolver = resolve_credential,
) -> Result:
    """Run one request end to end.

    Raises InputMissing before touching credentials or the network when the
    mode's required input is empty. Every other outcome is returned as a
    Result.
    """
    missing = request.missing_input()
    if missing:
        raise InputMissing(missing)

    environ = os.environ if environ is None else environ
    provider = settings.provider

    credential = environ.get(EPHEMERAL_KEY_ENV, "").strip() or resolver(provider, environ)
    if not credential:
        result = Result.failed(missing_credential_message(provider), CredentialMissing.__name__)
    else:
        controller = controller or ExecutionController()
        result = await controller.run(
            lambda: dispatch(provider, credential, request, settings, transport),
            cancel_event,
        )

    subject = request.buffer if request.mode is Mode.EXPLAIN else request.query
    log_entry(request.mode, subject or "", result)
    return result
