"""The three agent roles and what each one is allowed to do."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional

from agent_pipeline._exceptions import InvalidRequest

RESEARCHER_PROMPT = """You are a Research Agent with access to tools. Your job is to search for and gather information about topics.
When given a topic, USE YOUR TOOLS to search for current information.
After gathering information, provide 3-4 key findings with specific details.
Always use the available search tools - do not make up information."""

ANALYZER_PROMPT = """You are an Analysis Agent. Your job is to analyze research findings and extract key insights.
When given research findings, identify the 3 most important insights.
For each insight, explain why it matters and what implications it has.
Format your response with bold insight headers and clear explanations."""

WRITER_PROMPT = """You are a Writer Agent. Your job is to synthesize analysis into professional reports.
When given an analysis, write a concise 3-4 paragraph report that:
- Opens with a strong summary statement
- Presents the key findings in a logical flow
- Discusses implications and challenges
- Concludes with forward-looking perspective
Write in a professional, clear style suitable for business readers."""


@dataclass(frozen=True)
class AgentProfile:
    system_prompt: str
    tools_enabled: bool


class AgentType(str, Enum):
    RESEARCHER = "researcher"
    ANALYZER = "analyzer"
    WRITER = "writer"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AgentType":
        """Map a request's agent name to a type; InvalidRequest when missing or unknown."""
        if isinstance(value, cls):
            return value
        if not value or not isinstance(value, str):
            raise InvalidRequest("Missing agent or message")
        try:
            return cls(value)
        except ValueError:
            raise InvalidRequest("Invalid agent type") from None

    @property
    def profile(self) -> AgentProfile:
        return AGENT_PROFILES[self]


AGENT_PROFILES: Final[dict[AgentType, AgentProfile]] = {
    AgentType.RESEARCHER: AgentProfile(RESEARCHER_PROMPT, tools_enabled=True),
    AgentType.ANALYZER: AgentProfile(ANALYZER_PROMPT, tools_enabled=False),
    AgentType.WRITER: AgentProfile(WRITER_PROMPT, tools_enabled=False),
}

if set(AGENT_PROFILES) != set(AgentType):
    raise RuntimeError("every AgentType needs an AgentProfile")
