"""Shared fixtures for smartshell tests."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest
from loguru import logger

from smartshell.core.config import Settings, load_settings


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the caller's environment."""
    return load_settings(environ={})


@pytest.fixture
def claude_settings() -> Settings:
    return load_settings(environ={"SMSH_LLM_PROVIDER": "claude"})


@pytest.fixture(autouse=True)
def reset_logger():
    """Keep loguru sinks from leaking between tests."""
    logger.remove()
    yield
    logger.remove()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Build a transport that answers every call with the same response."""

    def _make(status_code: int = 200, json_body=None, content: bytes | None = None) -> RecordingTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(status_code, json=json_body)
            return httpx.Response(status_code, content=content or b"")

        return RecordingTransport(handler)

    return _make


def openai_reply(result: str, error: bool = False) -> dict:
    """A chat completions body carrying a structured {result, error} reply."""
    return {
        "id": "chatcmpl-test",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {
                    "role": "assistant",
                    "content": json.dumps({"result": result, "error": error}),
                    "refusal": None,
                },
            }
        ],
        "usage": {"prompt_tokens": 40, "completion_tokens": 8},
    }


def claude_reply(result: str, error: bool = False) -> dict:
    """A messages body carrying the forced structured_response tool call."""
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "stop_reason": "tool_use",
        "content": [
            {
                "type": "tool_use",
                "id": "toolu_test",
                "name": "structured_response",
                "input": {"result": result, "error": error},
            }
        ],
        "usage": {"input_tokens": 40, "output_tokens": 8},
    }


@pytest.fixture
def openai_body() -> Callable[..., dict]:
    return openai_reply


@pytest.fixture
def claude_body() -> Callable[..., dict]:
    return claude_reply
