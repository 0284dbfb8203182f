"""
Core types for agent-pipeline.

Provider-neutral content blocks, messages and tool records. Everything
vendor-specific lives in adapters.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Union

__all__ = [
    "Role",
    "StopReason",
    "TextBlock",
    "ToolCallRequest",
    "ToolCallResult",
    "ContentBlock",
    "Message",
    "ToolSpec",
    "ToolDescriptor",
    "ToolOutcome",
    "TOOL_NAME_SEPARATOR",
]

TOOL_NAME_SEPARATOR = "__"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class StopReason(str, Enum):
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"


@dataclass(slots=True)
class TextBlock:
    text: str


@dataclass(slots=True)
class ToolCallRequest:
    """A model-agnostic request emitted by the LLM to call a tool."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(slots=True)
class ToolCallResult:
    """Payload to send back to the LLM after the tool finished running."""

    id: str  # must match the request id
    content: str
    is_error: bool = False


ContentBlock = Union[TextBlock, ToolCallRequest, ToolCallResult]


@dataclass(slots=True)
class Message:
    role: Role
    content: list[ContentBlock] = field(default_factory=list)

    @classmethod
    def text_message(cls, role: Role, text: str) -> "Message":
        return cls(role=role, content=[TextBlock(text)])

    @property
    def text(self) -> str:
        """Newline-joined text of every text block, in order."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_calls(self) -> list[ToolCallRequest]:
        return [b for b in self.content if isinstance(b, ToolCallRequest)]

    @property
    def tool_results(self) -> list[ToolCallResult]:
        return [b for b in self.content if isinstance(b, ToolCallResult)]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """A tool as a provider lists it, before namespacing."""

    local_name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """One invocable tool, namespaced by the provider that exposes it."""

    qualified_name: str
    provider_name: str
    local_name: str
    description: str
    input_schema: dict[str, Any] = field(compare=False, repr=False)

    @staticmethod
    def qualify(provider_name: str, local_name: str) -> str:
        return f"{provider_name}{TOOL_NAME_SEPARATOR}{local_name}"

    @classmethod
    def from_spec(cls, provider_name: str, spec: ToolSpec) -> "ToolDescriptor":
        return cls(
            qualified_name=cls.qualify(provider_name, spec.local_name),
            provider_name=provider_name,
            local_name=spec.local_name,
            description=spec.description,
            input_schema=dict(spec.input_schema),
        )


@dataclass(frozen=True, slots=True)
class ToolOutcome:
    """What a provider returned for one call.

    `text_content` is the concatenation of every text segment; it is None
    when the response had none, in which case `render` serializes `raw`.
    """

    text_content: str | None
    raw: Any = None

    @classmethod
    def from_segments(cls, segments: Iterable[Any], raw: Any = None) -> "ToolOutcome":
        texts = []
        for seg in segments:
            seg_type = seg.get("type") if isinstance(seg, dict) else getattr(seg, "type", None)
            if seg_type != "text":
                continue
            texts.append(seg.get("text", "") if isinstance(seg, dict) else seg.text)
        return cls(text_content="".join(texts) if texts else None, raw=raw)

    def render(self) -> str:
        if self.text_content:
            return self.text_content
        raw = self.raw
        if hasattr(raw, "model_dump"):
            raw = raw.model_dump(mode="json")
        return json.dumps(raw, default=str)
