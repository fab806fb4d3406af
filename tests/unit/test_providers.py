"""Tests for providers/."""

from __future__ import annotations

import httpx
import pytest

from smartshell.models.request import Mode, Provider, Request
from smartshell.models.result import Status
from smartshell.providers.anthropic import AnthropicProvider
from smartshell.providers.base import BaseProvider, ProviderStrategy, dispatch, get_provider
from smartshell.providers.openai_provider import OpenAIProvider

LIST_BIG_FILES = Request(mode=Mode.COMPLETE, query="list files over 1GB")


class TestGetProvider:
    def test_openai_provider(self, settings):
        provider = get_provider(Provider.OPENAI, settings)
        assert isinstance(provider, OpenAIProvider)
        assert provider.config.model == "gpt-4o"

    def test_claude_provider(self, settings):
        provider = get_provider(Provider.CLAUDE, settings)
        assert isinstance(provider, AnthropicProvider)
        assert provider.config.max_tokens == 512

    def test_accepts_provider_name(self, settings):
        assert get_provider("claude", settings).name == "claude"

    def test_invalid_provider_raises(self, settings):
        with pytest.raises(ValueError, match="Unknown"):
            get_provider("gemini", settings)

    def test_variants_implement_strategy(self, settings):
        for provider in Provider:
            assert isinstance(get_provider(provider, settings), ProviderStrategy)

    def test_base_requires_subclass(self):
        with pytest.raises(NotImplementedError):
            BaseProvider(provider_config=None).build_body("system", "user")


class TestOpenAIDispatch:
    @pytest.mark.asyncio
    async def test_generated_command(self, settings, make_transport, openai_body):
        transport = make_transport(json_body=openai_body("find . -size +1G"))
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.GENERATED
        assert result.text == "find . -size +1G"

    @pytest.mark.asyncio
    async def test_request_shape(self, settings, make_transport, openai_body):
        transport = make_transport(json_body=openai_body("ls"))
        await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)

        request = transport.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        body = transport.last_json()
        assert body["model"] == "gpt-4o"
        assert body["temperature"] == 0
        assert body["response_format"]["json_schema"]["strict"] is True
        assert "zsh" in body["messages"][0]["content"]
        assert body["messages"][1] == {"role": "user", "content": "list files over 1GB"}

    @pytest.mark.asyncio
    async def test_buffer_context_in_prompt(self, settings, make_transport, openai_body):
        transport = make_transport(json_body=openai_body("ls -la"))
        request = Request(mode=Mode.COMPLETE, query="show hidden files", buffer="ls")
        await dispatch(Provider.OPENAI, "sk-test", request, settings, transport)
        user = transport.last_json()["messages"][1]["content"]
        assert "`ls`" in user
        assert "show hidden files" in user

    @pytest.mark.asyncio
    async def test_explain_framing(self, settings, make_transport, openai_body):
        transport = make_transport(json_body=openai_body("Lists files."))
        request = Request(mode=Mode.EXPLAIN, buffer="ls -la")
        result = await dispatch(Provider.OPENAI, "sk-test", request, settings, transport)
        body = transport.last_json()
        assert body["messages"][0]["content"].startswith("Explain zsh commands.")
        assert body["messages"][1]["content"] == "ls -la"
        assert result.text == "Lists files."

    @pytest.mark.asyncio
    async def test_empty_body_fails(self, settings, make_transport):
        transport = make_transport(content=b"")
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.FAILED
        assert result.error_kind == "MalformedResponse"
        assert result.text

    @pytest.mark.asyncio
    async def test_empty_result_fails(self, settings, make_transport, openai_body):
        transport = make_transport(json_body=openai_body(""))
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.FAILED

    @pytest.mark.asyncio
    async def test_sentinel_result_is_refusal(self, settings, make_transport, openai_body):
        text = "# cannot safely generate a destructive command"
        transport = make_transport(json_body=openai_body(text))
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.REFUSED
        assert result.text == text

    @pytest.mark.asyncio
    async def test_error_flag_is_refusal(self, settings, make_transport, openai_body):
        transport = make_transport(json_body=openai_body("That is not a shell task.", error=True))
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.REFUSED
        assert result.text == "# That is not a shell task."

    @pytest.mark.asyncio
    async def test_refusal_field_is_refusal(self, settings, make_transport):
        body = {"choices": [{"message": {"content": None, "refusal": "I can't help with that."}}]}
        transport = make_transport(json_body=body)
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.REFUSED
        assert result.text == "# I can't help with that."

    @pytest.mark.asyncio
    async def test_content_filter_is_refusal(self, settings, make_transport):
        body = {"choices": [{"finish_reason": "content_filter", "message": {"content": None}}]}
        result = await dispatch(
            Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, make_transport(json_body=body)
        )
        assert result.status is Status.REFUSED

    @pytest.mark.asyncio
    async def test_http_error_fails_with_api_message(self, settings, make_transport):
        body = {"error": {"message": "Incorrect API key provided: sk-test", "type": "invalid_request_error"}}
        transport = make_transport(status_code=401, json_body=body)
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.FAILED
        assert result.error_kind == "TransportError"
        assert "401" in result.text
        assert "Incorrect API key" in result.text
        assert "sk-test" not in result.text

    @pytest.mark.asyncio
    async def test_http_error_without_json(self, settings, make_transport):
        transport = make_transport(status_code=502, content=b"Bad Gateway")
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.FAILED
        assert "502" in result.text

    @pytest.mark.asyncio
    async def test_error_object_on_success_status(self, settings, make_transport):
        transport = make_transport(json_body={"error": {"message": "quota exceeded"}})
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.FAILED
        assert result.text == "API error: quota exceeded"

    @pytest.mark.asyncio
    async def test_non_json_body_fails(self, settings, make_transport):
        transport = make_transport(content=b"<html>oops</html>")
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.FAILED
        assert result.error_kind == "MalformedResponse"

    @pytest.mark.asyncio
    async def test_unparseable_content_fails(self, settings, make_transport):
        body = {"choices": [{"message": {"content": "ls -la"}}]}
        result = await dispatch(
            Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, make_transport(json_body=body)
        )
        assert result.status is Status.FAILED
        assert "parse" in result.text

    @pytest.mark.asyncio
    async def test_missing_choices_fails(self, settings, make_transport):
        result = await dispatch(
            Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, make_transport(json_body={"id": "x"})
        )
        assert result.status is Status.FAILED
        assert result.error_kind == "MalformedResponse"

    @pytest.mark.asyncio
    async def test_transport_error_fails(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = httpx.MockTransport(handler)
        result = await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert result.status is Status.FAILED
        assert result.error_kind == "TransportError"
        assert result.text.startswith("Request failed: connection refused")

    @pytest.mark.asyncio
    async def test_single_attempt_on_server_error(self, settings, make_transport):
        transport = make_transport(status_code=500, json_body={"error": {"message": "overloaded"}})
        await dispatch(Provider.OPENAI, "sk-test", LIST_BIG_FILES, settings, transport)
        assert len(transport.requests) == 1


class TestClaudeDispatch:
    @pytest.mark.asyncio
    async def test_generated_command(self, claude_settings, make_transport, claude_body):
        transport = make_transport(json_body=claude_body("find . -size +1G"))
        result = await dispatch(Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, transport)
        assert result.status is Status.GENERATED
        assert result.text == "find . -size +1G"

    @pytest.mark.asyncio
    async def test_request_shape(self, claude_settings, make_transport, claude_body):
        transport = make_transport(json_body=claude_body("ls"))
        await dispatch(Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, transport)

        request = transport.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = transport.last_json()
        assert body["tool_choice"] == {"type": "tool", "name": "structured_response"}
        assert body["tools"][0]["input_schema"]["required"] == ["result", "error"]
        assert "zsh" in body["system"]
        assert body["max_tokens"] == 512

    @pytest.mark.asyncio
    async def test_error_flag_is_refusal(self, claude_settings, make_transport, claude_body):
        transport = make_transport(json_body=claude_body("Unclear request", error=True))
        result = await dispatch(Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, transport)
        assert result.status is Status.REFUSED
        assert result.text == "# Unclear request"

    @pytest.mark.asyncio
    async def test_stop_reason_refusal(self, claude_settings, make_transport):
        body = {"stop_reason": "refusal", "content": [{"type": "text", "text": "I won't do that."}]}
        result = await dispatch(
            Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, make_transport(json_body=body)
        )
        assert result.status is Status.REFUSED
        assert result.text == "# I won't do that."

    @pytest.mark.asyncio
    async def test_missing_tool_use_fails(self, claude_settings, make_transport):
        body = {"stop_reason": "end_turn", "content": [{"type": "text", "text": "ls"}]}
        result = await dispatch(
            Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, make_transport(json_body=body)
        )
        assert result.status is Status.FAILED
        assert result.error_kind == "MalformedResponse"

    @pytest.mark.asyncio
    async def test_empty_content_fails(self, claude_settings, make_transport):
        body = {"stop_reason": "end_turn", "content": []}
        result = await dispatch(
            Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, make_transport(json_body=body)
        )
        assert result.status is Status.FAILED

    @pytest.mark.asyncio
    async def test_api_error_body(self, claude_settings, make_transport):
        body = {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
        transport = make_transport(status_code=529, json_body=body)
        result = await dispatch(Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, transport)
        assert result.status is Status.FAILED
        assert result.text == "API error (529): Overloaded"

    @pytest.mark.asyncio
    async def test_malformed_tool_input_fails(self, claude_settings, make_transport):
        body = {"content": [{"type": "tool_use", "input": {"result": ["ls"], "error": "maybe"}}]}
        result = await dispatch(
            Provider.CLAUDE, "sk-ant-test", LIST_BIG_FILES, claude_settings, make_transport(json_body=body)
        )
        assert result.status is Status.FAILED
        assert "Unexpected response shape" in result.text
