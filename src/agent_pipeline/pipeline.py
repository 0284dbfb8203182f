"""Researcher -> analyzer -> writer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from agent_pipeline._exceptions import InvalidRequest
from agent_pipeline.agents import AgentType
from agent_pipeline.client import ModelClient
from agent_pipeline.loop import DEFAULT_MAX_TURNS, AgentLoop
from agent_pipeline.tools.registry import ToolRegistry

STAGES: tuple[AgentType, ...] = (
    AgentType.RESEARCHER,
    AgentType.ANALYZER,
    AgentType.WRITER,
)


@dataclass(frozen=True)
class PipelineContext:
    """Output of the previous stage, handed to the next one."""

    prior_output: Optional[str] = None


class Pipeline:
    """
    Runs agents against one model client and one shared tool registry.

    Each call builds fresh agent loops, so concurrent calls share nothing
    mutable except the registry.
    """

    def __init__(
        self,
        llm: ModelClient,
        registry: Optional[ToolRegistry],
        *,
        max_turns: int = DEFAULT_MAX_TURNS,
        params: dict[str, Any] | None = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.max_turns = max_turns
        self.params = params
        self.logger = logger or logging.getLogger(__name__)

    def create_loop(self, agent: AgentType) -> AgentLoop:
        return AgentLoop(
            self.llm,
            self.registry,
            agent,
            max_turns=self.max_turns,
            params=self.params,
            logger=self.logger,
        )

    async def run_agent(
        self,
        agent: AgentType | str | None,
        message: Optional[str],
        context: Optional[str] = None,
    ) -> str:
        """Run a single agent. Raises InvalidRequest before any model call on bad input."""
        agent_type = AgentType.parse(agent)
        if not message or not isinstance(message, str):
            raise InvalidRequest("Missing agent or message")
        if context is not None and not isinstance(context, str):
            raise InvalidRequest("context must be a string")
        return await self.create_loop(agent_type).run(message, context)

    async def run(self, topic: str) -> str:
        """
        Produce a report on `topic`.

        Each stage after the researcher receives the previous stage's output
        both as context and as its message. The first failing stage aborts the
        run; its exception propagates with a ``stage: <name>`` note.
        """
        if not topic or not topic.strip():
            raise InvalidRequest("Missing topic")

        context = PipelineContext()
        message = topic
        for stage in STAGES:
            self.logger.info(f"[pipeline] Running {stage.value}")
            try:
                output = await self.create_loop(stage).run(message, context.prior_output)
            except Exception as exc:
                self.logger.error(f"[pipeline] {stage.value} failed: {exc}")
                exc.add_note(f"stage: {stage.value}")
                raise
            context = PipelineContext(prior_output=output)
            message = output
        return message
