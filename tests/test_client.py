"""Tests for the model clients and provider error translation."""

import asyncio

import pytest
from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage
from openai import AsyncOpenAI

from agent_pipeline._exceptions import (
    ConfigError,
    ModelCallError,
    ModelCallTimeout,
    classify_error,
)
from agent_pipeline.client import AnthropicLLM, GeminiLLM, OpenAILLM, create_llm
from agent_pipeline.types import Message, Role, StopReason, ToolDescriptor
from agent_pipeline.vendors import Vendor, get_api_key

HELLO = [Message.text_message(Role.USER, "hello")]
TOOL = ToolDescriptor("svc__echo", "svc", "echo", "Echo input", {"type": "object"})


def canned_message():
    return AnthropicMessage.model_validate(
        {
            "id": "msg_1",
            "type": "message",
            "role": "assistant",
            "model": "claude-test",
            "content": [{"type": "text", "text": "hi there"}],
            "stop_reason": "end_turn",
            "stop_sequence": None,
            "usage": {"input_tokens": 1, "output_tokens": 1},
        }
    )


@pytest.fixture
def anthropic_llm():
    return AnthropicLLM.from_client(
        "claude-test", AsyncAnthropic(api_key="test-key"), params={"temperature": 0}
    )


def test_complete_builds_request_and_parses_response(anthropic_llm):
    sent = {}

    async def fake_chat(request):
        sent.update(request)
        return canned_message()

    anthropic_llm._chat_impl = fake_chat

    response = asyncio.run(anthropic_llm.complete("be brief", HELLO, tools=[TOOL]))

    assert not response.is_error
    assert response.content == "hi there"
    assert response.stop_reason is StopReason.END_TURN
    assert sent["system"] == "be brief"
    assert sent["temperature"] == 0
    assert sent["max_tokens"] == 4096
    assert [t["name"] for t in sent["tools"]] == ["svc__echo"]


def test_failures_come_back_as_error_responses(anthropic_llm):
    async def broken(request):
        raise ConnectionError("network down")

    anthropic_llm._chat_impl = broken

    response = asyncio.run(anthropic_llm.complete("sys", HELLO))

    assert response.is_error
    with pytest.raises(ModelCallError, match="network down") as info:
        response.raise_for_error()
    assert isinstance(info.value.original_exc, ConnectionError)
    assert info.value.retryable is False


def test_timeout_is_retryable():
    llm = AnthropicLLM.from_client("claude-test", AsyncAnthropic(api_key="k"), timeout=0.01)

    async def slow(request):
        await asyncio.sleep(1)

    llm._chat_impl = slow

    response = asyncio.run(llm.complete("sys", HELLO))

    with pytest.raises(ModelCallTimeout) as info:
        response.raise_for_error()
    assert info.value.retryable is True


class TestClassifyError:
    def test_unknown_exception_named(self):
        err = classify_error(ValueError("bad"))

        assert isinstance(err, ModelCallError)
        assert str(err) == "ValueError: bad"
        assert err.__cause__ is not None

    def test_timeout(self):
        assert isinstance(classify_error(TimeoutError()), ModelCallTimeout)

    def test_already_classified_passes_through(self):
        original = ModelCallError("x")
        assert classify_error(original) is original


class TestCreateLLM:
    def test_wraps_supplied_client(self):
        llm = create_llm(Vendor.OPENAI, "gpt-test", client=AsyncOpenAI(api_key="k"))

        assert isinstance(llm, OpenAILLM)
        assert llm.model == "gpt-test"

    def test_gemini_uses_openai_compatible_client(self):
        llm = create_llm(Vendor.GEMINI, "gemini-test", api_key="k")

        assert isinstance(llm, GeminiLLM)
        assert "generativelanguage.googleapis.com" in str(llm._client.base_url)

    def test_from_client_type_checked(self):
        with pytest.raises(TypeError):
            AnthropicLLM.from_client("m", AsyncOpenAI(api_key="k"))

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr("agent_pipeline.vendors.load_dotenv", lambda: None)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
            get_api_key(Vendor.ANTHROPIC)
