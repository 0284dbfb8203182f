from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from agent_pipeline._exceptions import ModelCallError
from agent_pipeline.types import (
    ContentBlock,
    Message,
    Role,
    StopReason,
    TextBlock,
    ToolCallRequest,
)


@dataclass
class ChatResponse:
    """Unified response object for all LLM providers."""

    content: str
    blocks: list[ContentBlock] = field(default_factory=list)
    stop_reason: StopReason = StopReason.END_TURN
    raw: Any = None
    error: Optional[str] = None
    failure: Optional[ModelCallError] = None

    @classmethod
    def from_blocks(
        cls,
        blocks: list[ContentBlock],
        stop_reason: StopReason = StopReason.END_TURN,
        raw: Any = None,
    ) -> "ChatResponse":
        text = "\n".join(b.text for b in blocks if isinstance(b, TextBlock))
        return cls(content=text, blocks=list(blocks), stop_reason=stop_reason, raw=raw)

    @classmethod
    def from_failure(cls, failure: ModelCallError) -> "ChatResponse":
        return cls(content="", error=str(failure), failure=failure)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def tool_calls(self) -> list[ToolCallRequest] | None:
        calls = [b for b in self.blocks if isinstance(b, ToolCallRequest)]
        return calls or None

    @property
    def requests_tools(self) -> bool:
        return self.stop_reason is StopReason.TOOL_USE

    def as_message(self) -> Message:
        """The assistant turn to append to the conversation, blocks unchanged."""
        return Message(role=Role.ASSISTANT, content=list(self.blocks))

    def raise_for_error(self) -> None:
        if self.is_error:
            raise self.failure or ModelCallError(self.error or "model call failed")
