"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from openai.types.chat import ChatCompletion

from agent_pipeline.response import ChatResponse
from agent_pipeline.types import (
    ContentBlock,
    Message,
    Role,
    StopReason,
    TextBlock,
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
)

_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())


class OpenAIRequestAdapter:
    """Adapter for converting between generic format and OpenAI chat completions."""

    def to_provider(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert generic messages, tools and normalized params to OpenAI request kwargs."""
        openai_messages: list[dict[str, Any]] = []
        if system_prompt:
            openai_messages.append({"role": "system", "content": system_prompt})

        for msg in messages:
            if msg.role is Role.ASSISTANT:
                openai_messages.append(self._assistant_to_provider(msg))
            else:
                openai_messages.extend(self._user_to_provider(msg))

        base_params = dict(params)
        extras = base_params.pop("extra", {})
        base_params = {k: v for k, v in base_params.items() if v is not None}

        if tools:
            base_params["tools"] = [self.tool_to_provider(t) for t in tools]

        for k, v in extras.items():
            base_params.setdefault(k, v)

        return {"messages": openai_messages, **base_params}

    @staticmethod
    def tool_to_provider(tool: ToolDescriptor) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.qualified_name,
                "description": tool.description,
                "parameters": dict(tool.input_schema or {"type": "object", "properties": {}}),
            },
        }

    @staticmethod
    def _assistant_to_provider(msg: Message) -> dict[str, Any]:
        chat_message: dict[str, Any] = {"role": "assistant"}
        text = msg.text
        calls = msg.tool_calls
        if calls:
            chat_message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments),
                    },
                }
                for call in calls
            ]
            # content must be null alongside tool_calls
            chat_message["content"] = text or None
        else:
            chat_message["content"] = text
        return chat_message

    @staticmethod
    def _user_to_provider(msg: Message) -> list[dict[str, Any]]:
        # Tool answers must directly follow the assistant turn that asked for them.
        converted: list[dict[str, Any]] = [
            {"role": "tool", "tool_call_id": result.id, "content": result.content}
            for result in msg.tool_results
        ]
        text_blocks = [b for b in msg.content if isinstance(b, TextBlock)]
        if text_blocks or not converted:
            converted.append({"role": "user", "content": msg.text})
        return converted

    def from_provider(self, raw: ChatCompletion) -> ChatResponse:
        """Convert OpenAI response to unified ChatResponse."""
        blocks: list[ContentBlock] = []
        stop_reason = StopReason.END_TURN

        if raw.choices and raw.choices[0].message:
            choice = raw.choices[0]
            message = choice.message
            if message.content:
                blocks.append(TextBlock(message.content))

            for tc in message.tool_calls or []:
                blocks.append(
                    ToolCallRequest(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=self._parse_arguments(tc.function.arguments),
                    )
                )

            if choice.finish_reason == "tool_calls" or message.tool_calls:
                stop_reason = StopReason.TOOL_USE

        return ChatResponse.from_blocks(blocks, stop_reason=stop_reason, raw=raw)

    @staticmethod
    def _parse_arguments(raw_args: Any) -> dict[str, Any]:
        if isinstance(raw_args, dict):
            return raw_args
        if isinstance(raw_args, str) and raw_args.strip():
            try:
                parsed = json.loads(raw_args)
            except json.JSONDecodeError as exc:
                _logger.warning(f"Bad JSON in tool call: {raw_args}", exc_info=exc)
                return {}
            return parsed if isinstance(parsed, dict) else {}
        return {}
