"""Layered configuration for smartshell.

Loads and merges configuration from:
1. Default settings (built-in)
2. Environment variables (SMSH_*)
3. CLI parameters (override)

The merged dict is validated into an immutable Settings snapshot that is
passed explicitly to every component; nothing reads the provider choice from
global state after that point.
"""

from __future__ import annotations

import copy
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from ..models.request import Provider

DEFAULT_CONFIG: dict = {
    "provider": "openai",
    "shell": "zsh",
    "timeout_seconds": 60,
    "log": {
        "path": "",
        "level": "INFO",
    },
    "openai": {
        "model": "gpt-4o",
        "max_tokens": 256,
        "temperature": 0,
        "api_url": "https://api.openai.com/v1/chat/completions",
    },
    "claude": {
        "model": "claude-sonnet-4-5-20250929",
        "max_tokens": 512,
        "temperature": 0,
        "api_url": "https://api.anthropic.com/v1/messages",
        "api_version": "2023-06-01",
    },
}

# Environment variable -> config path
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "SMSH_LLM_PROVIDER": ("provider",),
    "SMSH_SHELL": ("shell",),
    "SMSH_TIMEOUT": ("timeout_seconds",),
    "SMSH_LOG": ("log", "path"),
    "SMSH_LOG_LEVEL": ("log", "level"),
    "SMSH_OPENAI_MODEL": ("openai", "model"),
    "SMSH_ANTHROPIC_MODEL": ("claude", "model"),
}


class ProviderSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    max_tokens: int
    temperature: float = 0
    api_url: str
    api_version: Optional[str] = None


class LogSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = ""
    level: str = "INFO"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: Provider
    shell: str = "zsh"
    timeout_seconds: float = 60
    log: LogSettings = LogSettings()
    openai: ProviderSettings
    claude: ProviderSettings

    def for_provider(self, provider: Optional[Provider] = None) -> ProviderSettings:
        provider = provider or self.provider
        return self.openai if provider is Provider.OPENAI else self.claude

    def toggle_provider(self) -> "Settings":
        """Return a new snapshot with the other provider selected."""
        return self.model_copy(update={"provider": self.provider.toggled()})


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> dict:
    """Build a config overlay from SMSH_* variables. Empty values are ignored."""
    environ = os.environ if environ is None else environ
    overlay: dict = {}
    for var, path in ENV_OVERRIDES.items():
        value = environ.get(var, "").strip()
        if not value:
            continue
        node = overlay
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
    return overlay


def parse_provider(name: str) -> Provider:
    try:
        return Provider(name.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown provider: {name}") from None


def get_effective_config(
    environ: Optional[Mapping[str, str]] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully merged configuration dict."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    env_config = load_env_config(environ)
    if env_config:
        config = deep_merge(config, env_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    return config


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
    shell_override: Optional[str] = None,
) -> Settings:
    """Resolve the Settings snapshot for one invocation.

    Raises ValueError for an unknown provider or an invalid value.
    """
    cli_overrides: dict = {}
    if provider_override:
        cli_overrides["provider"] = provider_override
    if shell_override:
        cli_overrides["shell"] = shell_override

    config = get_effective_config(environ, cli_overrides or None)
    provider = parse_provider(str(config["provider"]))
    config["provider"] = provider.value

    if model_override:
        config[provider.value] = deep_merge(config[provider.value], {"model": model_override})

    return Settings.model_validate(config)
