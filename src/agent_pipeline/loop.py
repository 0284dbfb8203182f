"""
The multi-turn tool-use loop that drives one agent to a final answer.

    INIT -> AWAITING_MODEL -> (DISPATCHING_TOOLS -> AWAITING_MODEL)* -> DONE

Every tool-use block of a model turn is answered by exactly one tool result,
all in a single user turn, before the model is called again. Tool failures
become error results the model can react to; model failures end the run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

from agent_pipeline._exceptions import ToolNotFound, TurnLimitExceeded
from agent_pipeline.agents import AgentType
from agent_pipeline.client import ModelClient
from agent_pipeline.response import ChatResponse
from agent_pipeline.tools.registry import ToolRegistry
from agent_pipeline.types import (
    Message,
    Role,
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
)

ACKNOWLEDGEMENT = "I understand the context. Please provide your request."
DEFAULT_MAX_TURNS = 10


class LoopPhase(str, Enum):
    INIT = "init"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"


@dataclass
class ConversationState:
    """Message log of one agent run. Only ever appended to."""

    system_prompt: str
    available_tools: tuple[ToolDescriptor, ...] = ()
    messages: list[Message] = field(default_factory=list)

    def append(self, message: Message) -> None:
        self.messages.append(message)

    @property
    def tool_names(self) -> frozenset[str]:
        return frozenset(t.qualified_name for t in self.available_tools)


class AgentLoop:
    """
    Runs one agent conversation to completion.

    A loop instance is single-use: `run` may be called once. `state`, `phase`
    and `turns` stay readable afterwards for inspection.
    """

    def __init__(
        self,
        llm: ModelClient,
        registry: Optional[ToolRegistry],
        agent: AgentType,
        *,
        max_turns: int = DEFAULT_MAX_TURNS,
        params: dict[str, Any] | None = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.llm = llm
        self.registry = registry
        self.agent = agent
        self.max_turns = max_turns
        self.params = params
        self.logger = logger or logging.getLogger(__name__)
        self.phase = LoopPhase.INIT
        self.turns = 0
        self.state: Optional[ConversationState] = None

    async def run(self, message: str, context: Optional[str] = None) -> str:
        """
        Drive the conversation until the model stops asking for tools.

        Returns:
            The newline-joined text blocks of the final model response.

        Raises:
            ModelCallError: the model call failed (fatal).
            TurnLimitExceeded: the model still wanted tools after `max_turns` calls.
        """
        if self.phase is not LoopPhase.INIT:
            raise RuntimeError("AgentLoop.run may only be called once")

        state = self.state = self._seed(message, context)
        self.phase = LoopPhase.AWAITING_MODEL

        while True:
            response = await self._call_model(state)
            calls = response.tool_calls
            if not response.requests_tools or not calls:
                state.append(response.as_message())
                self.phase = LoopPhase.DONE
                self._log(f"Done after {self.turns} turn(s)")
                return response.content

            if self.turns >= self.max_turns:
                self._log(f"Turn limit {self.max_turns} reached", logging.WARNING)
                raise TurnLimitExceeded(self.max_turns)

            self.phase = LoopPhase.DISPATCHING_TOOLS
            results = await self._dispatch(state, calls)
            state.append(response.as_message())
            state.append(Message(role=Role.USER, content=list(results)))
            self.phase = LoopPhase.AWAITING_MODEL

    def _seed(self, message: str, context: Optional[str]) -> ConversationState:
        profile = self.agent.profile
        tools: tuple[ToolDescriptor, ...] = ()
        if profile.tools_enabled and self.registry is not None:
            tools = tuple(self.registry.list_all())

        state = ConversationState(system_prompt=profile.system_prompt, available_tools=tools)
        if context:
            state.append(Message.text_message(Role.USER, context))
            state.append(Message.text_message(Role.ASSISTANT, ACKNOWLEDGEMENT))
        state.append(Message.text_message(Role.USER, message))
        return state

    async def _call_model(self, state: ConversationState) -> ChatResponse:
        self.turns += 1
        response = await self.llm.complete(
            state.system_prompt,
            list(state.messages),
            tools=state.available_tools or None,
            params=self.params,
        )
        response.raise_for_error()
        return response

    async def _dispatch(
        self, state: ConversationState, calls: Sequence[ToolCallRequest]
    ) -> list[ToolCallResult]:
        """Run every requested tool concurrently; results keep request order."""
        allowed = state.tool_names
        return list(
            await asyncio.gather(*(self._run_tool(call, allowed) for call in calls))
        )

    async def _run_tool(self, call: ToolCallRequest, allowed: frozenset[str]) -> ToolCallResult:
        self._log(f"Calling tool: {call.name}")
        try:
            if call.name not in allowed or self.registry is None:
                raise ToolNotFound(call.name)
            outcome = await self.registry.invoke(call.name, call.arguments)
        except Exception as exc:
            self._log(f"Tool error: {call.name}: {exc}", logging.WARNING)
            return ToolCallResult(id=call.id, content=f"Error: {exc}", is_error=True)
        return ToolCallResult(id=call.id, content=outcome.render())

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.agent.value}] {message}")
