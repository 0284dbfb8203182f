"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Sequence

from anthropic.types import Message as AnthropicMessage

from agent_pipeline.response import ChatResponse
from agent_pipeline.types import (
    ContentBlock,
    Message,
    StopReason,
    TextBlock,
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
)


class AnthropicRequestAdapter:
    """Adapter for converting between generic format and Anthropic format."""

    def to_provider(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert generic messages, tools and normalized params to Anthropic request kwargs."""
        anthropic_messages = [
            {
                "role": msg.role.value,
                "content": [self._block_to_provider(b) for b in msg.content],
            }
            for msg in messages
        ]

        base_params = dict(params)
        extras = base_params.pop("extra", {})

        if "stop" in base_params:
            stop = base_params.pop("stop")
            base_params["stop_sequences"] = stop if isinstance(stop, list) else [stop]

        # Anthropic rejects null values for optional fields
        base_params = {k: v for k, v in base_params.items() if v is not None}

        if tools:
            base_params["tools"] = [self.tool_to_provider(t) for t in tools]

        for k, v in extras.items():
            base_params.setdefault(k, v)

        return {"system": system_prompt, "messages": anthropic_messages, **base_params}

    @staticmethod
    def tool_to_provider(tool: ToolDescriptor) -> dict[str, Any]:
        return {
            "name": tool.qualified_name,
            "description": tool.description,
            "input_schema": dict(tool.input_schema or {"type": "object", "properties": {}}),
        }

    @staticmethod
    def _block_to_provider(block: ContentBlock) -> dict[str, Any]:
        if isinstance(block, TextBlock):
            return {"type": "text", "text": block.text}
        if isinstance(block, ToolCallRequest):
            return {
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.arguments,
            }
        if isinstance(block, ToolCallResult):
            payload: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": block.id,
                "content": block.content,
            }
            if block.is_error:
                payload["is_error"] = True
            return payload
        raise TypeError(f"Unsupported content block: {type(block).__name__}")

    def from_provider(self, raw: AnthropicMessage) -> ChatResponse:
        """Convert Anthropic response to unified ChatResponse, keeping block order."""
        blocks: list[ContentBlock] = []
        for block in raw.content or []:
            if block.type == "text":
                blocks.append(TextBlock(block.text))
            elif block.type == "tool_use":
                blocks.append(
                    ToolCallRequest(
                        id=block.id,
                        name=block.name,
                        arguments=dict(block.input) if hasattr(block.input, "items") else {},
                    )
                )

        stop_reason = (
            StopReason.TOOL_USE if raw.stop_reason == "tool_use" else StopReason.END_TURN
        )
        return ChatResponse.from_blocks(blocks, stop_reason=stop_reason, raw=raw)
