"""
agent-pipeline - researcher, analyzer and writer agents over a shared tool registry.
"""

from ._exceptions import (
    AgentPipelineError,
    CallTimeout,
    ConfigError,
    ConnectError,
    InvalidRequest,
    ModelCallError,
    ModelCallTimeout,
    ProviderUnavailable,
    ToolCallError,
    ToolCallTimeout,
    ToolError,
    ToolNotFound,
    TurnLimitExceeded,
)
from .agents import AgentProfile, AgentType
from .client import (
    AnthropicLLM,
    BaseAsyncLLM,
    GeminiLLM,
    ModelClient,
    OpenAILLM,
    create_llm,
)
from .config import ProviderConfig, Settings, load_provider_configs
from .loop import ACKNOWLEDGEMENT, AgentLoop, ConversationState, LoopPhase
from .pipeline import Pipeline, PipelineContext
from .response import ChatResponse
from .tools import ConnectionStatus, ProviderConnection, ToolRegistry
from .types import (
    Message,
    Role,
    StopReason,
    TextBlock,
    ToolCallRequest,
    ToolCallResult,
    ToolDescriptor,
    ToolOutcome,
    ToolSpec,
)
from .vendors import Vendor, get_api_key

__version__ = "0.1.0"

__all__ = [
    "ACKNOWLEDGEMENT",
    "AgentLoop",
    "AgentPipelineError",
    "AgentProfile",
    "AgentType",
    "AnthropicLLM",
    "BaseAsyncLLM",
    "CallTimeout",
    "ChatResponse",
    "ConfigError",
    "ConnectError",
    "ConnectionStatus",
    "ConversationState",
    "GeminiLLM",
    "InvalidRequest",
    "LoopPhase",
    "Message",
    "ModelCallError",
    "ModelCallTimeout",
    "ModelClient",
    "OpenAILLM",
    "Pipeline",
    "PipelineContext",
    "ProviderConfig",
    "ProviderConnection",
    "ProviderUnavailable",
    "Role",
    "Settings",
    "StopReason",
    "TextBlock",
    "ToolCallError",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolCallTimeout",
    "ToolDescriptor",
    "ToolError",
    "ToolNotFound",
    "ToolOutcome",
    "ToolRegistry",
    "ToolSpec",
    "TurnLimitExceeded",
    "Vendor",
    "create_llm",
    "get_api_key",
    "load_provider_configs",
]
