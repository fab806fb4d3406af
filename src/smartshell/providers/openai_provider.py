"""OpenAI chat completions provider with a strict JSON schema reply."""

from __future__ import annotations

import json
from typing import Optional

from pydantic import ValidationError

from ..core.errors import MalformedResponse
from ..core.prompts import RESPONSE_SCHEMA
from ..models.result import StructuredReply
from .base import BaseProvider


def _first_message(data: dict) -> Optional[dict]:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    return message if isinstance(message, dict) else None


class OpenAIProvider(BaseProvider):
    name = "openai"

    def build_headers(self, credential: str) -> dict:
        return {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
        }

    def build_body(self, system_prompt: str, user_prompt: str) -> dict:
        return {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "response",
                    "strict": True,
                    "schema": RESPONSE_SCHEMA,
                },
            },
        }

    def detect_refusal(self, data: dict) -> Optional[str]:
        message = _first_message(data)
        if message and message.get("refusal"):
            return str(message["refusal"])
        choices = data.get("choices")
        if (
            isinstance(choices, list)
            and choices
            and isinstance(choices[0], dict)
            and choices[0].get("finish_reason") == "content_filter"
        ):
            return "Response blocked by the provider's content filter."
        return None

    def parse_response(self, data: dict) -> StructuredReply:
        message = _first_message(data)
        content = message.get("content") if message else None
        if not isinstance(content, str):
            raise MalformedResponse("Missing content in response")
        if not content.strip():
            raise MalformedResponse("Empty response from provider")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedResponse(f"Failed to parse response JSON: {e}") from e

        try:
            return StructuredReply.model_validate(parsed)
        except ValidationError as e:
            raise MalformedResponse(
                f"Unexpected response shape: {e.error_count()} validation error(s)"
            ) from e
