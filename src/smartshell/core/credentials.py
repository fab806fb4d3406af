"""API credential resolution.

Each provider has a fixed fallback chain; the first non-empty value wins:

1. Tool-namespaced override variable (SMSH_OPENAI_API_KEY, ...)
2. Ecosystem-standard variable (OPENAI_API_KEY, ...)
3. macOS Keychain via the `security` utility

Nothing is cached; every call re-reads its sources so rotated keys are picked
up on the next invocation.
"""

from __future__ import annotations

import getpass
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from loguru import logger

from ..models.request import Provider

SECURITY_TOOL = "security"

SecretLookup = Callable[[str, str], Optional[str]]


@dataclass(frozen=True)
class CredentialSources:
    override_env: str
    generic_env: str
    service_env: str
    account_env: str
    default_service: str


CREDENTIAL_SOURCES: dict[Provider, CredentialSources] = {
    Provider.OPENAI: CredentialSources(
        override_env="SMSH_OPENAI_API_KEY",
        generic_env="OPENAI_API_KEY",
        service_env="SMSH_OPENAI_KEYCHAIN_SERVICE",
        account_env="SMSH_OPENAI_KEYCHAIN_ACCOUNT",
        default_service="smartshell.openai",
    ),
    Provider.CLAUDE: CredentialSources(
        override_env="SMSH_ANTHROPIC_API_KEY",
        generic_env="ANTHROPIC_API_KEY",
        service_env="SMSH_ANTHROPIC_KEYCHAIN_SERVICE",
        account_env="SMSH_ANTHROPIC_KEYCHAIN_ACCOUNT",
        default_service="smartshell.anthropic",
    ),
}


def keychain_lookup(service: str, account: str) -> Optional[str]:
    """Read a generic password from the macOS Keychain. None when absent."""
    try:
        result = subprocess.run(
            [SECURITY_TOOL, "find-generic-password", "-s", service, "-a", account, "-w"],
            capture_output=True, text=True, timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Keychain lookup failed: {}", e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def _current_user(environ: Mapping[str, str]) -> str:
    user = environ.get("USER", "")
    if user:
        return user
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def keychain_identity(
    provider: Provider, environ: Optional[Mapping[str, str]] = None
) -> tuple[str, str]:
    """Return the (service, account) pair used for the Keychain lookup."""
    environ = os.environ if environ is None else environ
    sources = CREDENTIAL_SOURCES[provider]
    service = environ.get(sources.service_env, "").strip() or sources.default_service
    account = environ.get(sources.account_env, "").strip() or _current_user(environ)
    return service, account


def secret_store_available(
    platform: Optional[str] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> bool:
    return (platform or sys.platform) == "darwin" and which(SECURITY_TOOL) is not None


def resolve_credential(
    provider: Provider,
    environ: Optional[Mapping[str, str]] = None,
    secret_lookup: SecretLookup = keychain_lookup,
    platform: Optional[str] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> Optional[str]:
    """Resolve the API key for a provider, or None when no source has one."""
    environ = os.environ if environ is None else environ
    sources = CREDENTIAL_SOURCES[provider]

    for var in (sources.override_env, sources.generic_env):
        value = environ.get(var, "").strip()
        if value:
            logger.debug("Credential for {} resolved from {}", provider.value, var)
            return value

    if not secret_store_available(platform, which):
        return None

    service, account = keychain_identity(provider, environ)
    value = (secret_lookup(service, account) or "").strip()
    if value:
        logger.debug("Credential for {} resolved from keychain service {}", provider.value, service)
        return value
    return None


def describe_sources(provider: Provider) -> str:
    sources = CREDENTIAL_SOURCES[provider]
    return (
        f"{sources.override_env}, {sources.generic_env}, "
        f"or keychain service {sources.default_service}"
    )
