"""LLM provider abstraction and dispatch.

The provider set is closed: OpenAI-class and Claude-class. Each variant
builds its own request, parses its own response and recognises its own
refusal signal; classification and error mapping are shared here.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

import httpx
from loguru import logger

from ..core.config import Settings, parse_provider
from ..core.errors import MalformedResponse, SmartshellError, TransportError
from ..core.prompts import system_prompt, user_prompt
from ..models.request import Provider, Request
from ..models.result import Result, StructuredReply
from ..utils.sanitize import sanitize_error


@runtime_checkable
class ProviderStrategy(Protocol):
    """Capability interface every provider variant implements."""

    name: str

    def build_headers(self, credential: str) -> dict: ...

    def build_body(self, system_prompt: str, user_prompt: str) -> dict: ...

    def parse_response(self, data: dict) -> StructuredReply: ...

    def detect_refusal(self, data: dict) -> Optional[str]: ...


def _api_error_message(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message") or error.get("type")
    if isinstance(error, str) and error:
        return error
    return None


def decode_response(response: httpx.Response) -> dict:
    """Turn an HTTP response into a JSON object or raise a taxonomy error."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if response.is_error:
        message = _api_error_message(data) or response.text.strip() or response.reason_phrase
        raise TransportError(f"API error ({response.status_code}): {message}")

    if data is None:
        if not response.content.strip():
            raise MalformedResponse("Empty response from provider")
        raise MalformedResponse("Invalid response: body is not JSON")
    if not isinstance(data, dict):
        raise MalformedResponse("Invalid response: expected a JSON object")

    message = _api_error_message(data)
    if message:
        raise TransportError(f"API error: {message}")
    return data


class BaseProvider:
    """Shared request/classification flow. Subclasses supply the wire shapes."""

    name: str = "base"

    def __init__(
        self,
        provider_config: Any,
        timeout: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = provider_config
        self.timeout = timeout
        self.transport = transport

    def build_headers(self, credential: str) -> dict:
        raise NotImplementedError

    def build_body(self, system_prompt: str, user_prompt: str) -> dict:
        raise NotImplementedError

    def parse_response(self, data: dict) -> StructuredReply:
        raise NotImplementedError

    def detect_refusal(self, data: dict) -> Optional[str]:
        return None

    async def complete(self, credential: str, system_prompt: str, user_prompt: str) -> Result:
        """Issue exactly one request and classify the reply."""
        body = self.build_body(system_prompt, user_prompt)
        headers = self.build_headers(credential)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.config.api_url, json=body, headers=headers)
            data = decode_response(response)

            refusal = self.detect_refusal(data)
            if refusal is not None:
                logger.debug("{} signalled a refusal", self.name)
                return Result.refused(refusal)

            reply = self.parse_response(data)
        except httpx.HTTPError as e:
            message = f"Request failed: {str(e) or type(e).__name__}"
            return Result.failed(sanitize_error(message, [credential]), TransportError.__name__)
        except SmartshellError as e:
            return Result.failed(sanitize_error(str(e), [credential]), e.kind)

        if reply.error:
            return Result.refused(reply.result)
        return Result.generated(reply.result)


def get_provider(
    provider: Provider | str,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseProvider:
    """Factory for the provider variant."""
    if not isinstance(provider, Provider):
        provider = parse_provider(provider)

    provider_config = settings.for_provider(provider)
    if provider is Provider.OPENAI:
        from .openai_provider import OpenAIProvider
        return OpenAIProvider(provider_config, settings.timeout_seconds, transport)
    elif provider is Provider.CLAUDE:
        from .anthropic import AnthropicProvider
        return AnthropicProvider(provider_config, settings.timeout_seconds, transport)
    raise ValueError(f"Unknown provider: {provider}")


async def dispatch(
    provider: Provider,
    credential: str,
    request: Request,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Result:
    """Build prompts for the request and run one provider call."""
    strategy = get_provider(provider, settings, transport)
    return await strategy.complete(
        credential,
        system_prompt(request, settings.shell),
        user_prompt(request, settings.shell),
    )
