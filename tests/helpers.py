"""Fakes shared by the test modules: a scripted model and in-memory tool providers."""

from __future__ import annotations

import inspect
from typing import Any, Callable, Sequence

from agent_pipeline._exceptions import ConnectError, ModelCallError, ToolCallError
from agent_pipeline.config import ProviderConfig
from agent_pipeline.response import ChatResponse
from agent_pipeline.types import (
    Message,
    StopReason,
    TextBlock,
    ToolCallRequest,
    ToolDescriptor,
    ToolOutcome,
    ToolSpec,
)


def text_response(text: str) -> ChatResponse:
    return ChatResponse.from_blocks([TextBlock(text)], stop_reason=StopReason.END_TURN)


def tool_response(*calls: ToolCallRequest, text: str | None = None) -> ChatResponse:
    blocks: list = [TextBlock(text)] if text else []
    blocks.extend(calls)
    return ChatResponse.from_blocks(blocks, stop_reason=StopReason.TOOL_USE)


def error_response(message: str = "API error (500): boom") -> ChatResponse:
    return ChatResponse.from_failure(ModelCallError(message))


class ScriptedLLM:
    """Returns responses in order (or from a callable) and records every call."""

    def __init__(
        self,
        script: Sequence[ChatResponse] | Callable[..., ChatResponse] = (),
    ) -> None:
        self._script = script if callable(script) else list(script)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        *,
        tools: Sequence[ToolDescriptor] | None = None,
        params: dict[str, Any] | None = None,
    ) -> ChatResponse:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "messages": list(messages),
                "tools": list(tools or []),
                "params": params,
            }
        )
        if callable(self._script):
            return self._script(system_prompt, list(messages), list(tools or []))
        if not self._script:
            raise AssertionError("model called more times than scripted")
        return self._script.pop(0)


class FakeConnection:
    """In-memory provider. `handlers` maps local tool name to a value, exception or coroutine function."""

    def __init__(
        self,
        name: str,
        tools: Sequence[ToolSpec] = (),
        handlers: dict[str, Any] | None = None,
        *,
        fail_connect: bool = False,
        fail_listing: bool = False,
    ) -> None:
        self.name = name
        self.tools = list(tools)
        self.handlers = handlers or {}
        self.fail_connect = fail_connect
        self.fail_listing = fail_listing
        self.connected = False
        self.closed = False
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        if self.fail_connect:
            raise ConnectError(self.name, "spawn failed")
        self.connected = True

    async def list_tools(self) -> list[ToolSpec]:
        if self.fail_listing:
            raise RuntimeError("listing broke")
        return list(self.tools)

    async def call(self, local_name: str, arguments: dict[str, Any]) -> ToolOutcome:
        self.calls.append((local_name, arguments))
        handler = self.handlers.get(local_name)
        if isinstance(handler, BaseException):
            raise handler
        if inspect.iscoroutinefunction(handler):
            return await handler(arguments)
        if handler is None:
            raise ToolCallError(f"{self.name}: no handler for {local_name}")
        return ToolOutcome(text_content=str(handler), raw=handler)

    async def aclose(self) -> None:
        self.connected = False
        self.closed = True


def connector_for(*fakes: FakeConnection) -> Callable[..., FakeConnection]:
    """A registry connector that hands out the given fakes by provider name."""
    by_name = {fake.name: fake for fake in fakes}

    def connector(config: ProviderConfig, **kwargs: Any) -> FakeConnection:
        return by_name[config.name]

    return connector


def configs_for(*names: str) -> dict[str, ProviderConfig]:
    return {name: ProviderConfig(name=name, command="fake-provider") for name in names}
