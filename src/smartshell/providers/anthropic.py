"""Anthropic Claude messages provider.

Structured output is obtained by forcing a single tool call whose input
schema is the {result, error} reply.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from ..core.errors import MalformedResponse
from ..core.prompts import RESPONSE_SCHEMA
from ..models.result import DEFAULT_REFUSAL, StructuredReply
from .base import BaseProvider

TOOL_NAME = "structured_response"


class AnthropicProvider(BaseProvider):
    name = "claude"

    def build_headers(self, credential: str) -> dict:
        return {
            "x-api-key": credential,
            "anthropic-version": self.config.api_version or "2023-06-01",
            "content-type": "application/json",
        }

    def build_body(self, system_prompt: str, user_prompt: str) -> dict:
        return {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "tools": [
                {
                    "name": TOOL_NAME,
                    "description": "Return the structured response",
                    "input_schema": RESPONSE_SCHEMA,
                }
            ],
            "tool_choice": {"type": "tool", "name": TOOL_NAME},
        }

    def detect_refusal(self, data: dict) -> Optional[str]:
        if data.get("stop_reason") != "refusal":
            return None
        for block in data.get("content") or []:
            if isinstance(block, dict) and block.get("type") == "text" and block.get("text"):
                return block["text"]
        return DEFAULT_REFUSAL

    def parse_response(self, data: dict) -> StructuredReply:
        content = data.get("content")
        if not isinstance(content, list) or not content:
            raise MalformedResponse("Empty response from provider")

        tool_input = None
        for block in content:
            if isinstance(block, dict) and block.get("type") == "tool_use":
                tool_input = block.get("input")
                break
        if tool_input is None:
            raise MalformedResponse("Missing structured response in reply")

        try:
            return StructuredReply.model_validate(tool_input)
        except ValidationError as e:
            raise MalformedResponse(
                f"Unexpected response shape: {e.error_count()} validation error(s)"
            ) from e
