"""
Exception hierarchy for agent-pipeline.

Provider SDK tracebacks are translated into `ModelCallError` (see `classify_error`)
while the original exception is preserved for full tracebacks.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Final, Optional, Type

__all__: tuple[str, ...] = (
    "AgentPipelineError",
    "CallTimeout",
    "ConfigError",
    "ConnectError",
    "ToolError",
    "ToolNotFound",
    "ProviderUnavailable",
    "ToolCallError",
    "ToolCallTimeout",
    "ModelCallError",
    "ModelCallTimeout",
    "InvalidRequest",
    "TurnLimitExceeded",
    "classify_error",
)


class AgentPipelineError(RuntimeError):
    """Base class for every error raised by agent-pipeline."""


class CallTimeout(AgentPipelineError):
    """An external call did not answer in time. Safe to retry."""

    retryable: bool = True


class ConfigError(AgentPipelineError):
    """Settings or provider configuration could not be read."""


class ConnectError(AgentPipelineError):
    """A tool provider could not be launched, initialized or enumerated.

    Attributes:
        provider: Name of the provider that failed.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ToolError(AgentPipelineError):
    """A tool invocation failed. Reported back to the model, never fatal to a loop."""


class ToolNotFound(ToolError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Tool not found: {name}")
        self.name = name


class ProviderUnavailable(ToolError):
    def __init__(self, provider: str) -> None:
        super().__init__(f"Provider not connected: {provider}")
        self.provider = provider


class ToolCallError(ToolError):
    """The provider rejected or failed the call."""


class ToolCallTimeout(ToolCallError, CallTimeout):
    pass


class ModelCallError(AgentPipelineError):
    """The model channel failed; fatal to the running agent loop.

    Attributes:
        original_exc: The underlying provider exception, if any.
    """

    retryable: bool = False
    original_exc: Optional[BaseException]

    def __init__(
        self, message: str, original_exc: Optional[BaseException] = None
    ) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


class ModelCallTimeout(ModelCallError, CallTimeout):
    retryable: bool = True


class InvalidRequest(AgentPipelineError):
    """Missing or unknown agent type, or an empty message."""


class TurnLimitExceeded(AgentPipelineError):
    """The model kept requesting tools past the configured number of turns."""

    def __init__(self, max_turns: int) -> None:
        super().__init__(f"Model still requesting tools after {max_turns} turns")
        self.max_turns = max_turns


def _import_exception(path: str) -> Type[BaseException]:
    """Dynamically import an exception type, falling back to a type nothing raises."""
    module_name, _, attr = path.rpartition(".")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError):
        return _Unmatched


class _Unmatched(Exception):
    pass


OpenAI_APIError: Final = _import_exception("openai.APIError")
OpenAI_APIConnectionError: Final = _import_exception("openai.APIConnectionError")
OpenAI_APITimeoutError: Final = _import_exception("openai.APITimeoutError")
OpenAI_RateLimitError: Final = _import_exception("openai.RateLimitError")

Anthropic_APIError: Final = _import_exception("anthropic.APIError")
Anthropic_APIConnectionError: Final = _import_exception("anthropic.APIConnectionError")
Anthropic_APITimeoutError: Final = _import_exception("anthropic.APITimeoutError")
Anthropic_RateLimitError: Final = _import_exception("anthropic.RateLimitError")

API_ERRORS: Final[tuple[Type[BaseException], ...]] = (
    OpenAI_APIError,
    Anthropic_APIError,
)

# APITimeoutError subclasses APIConnectionError in both SDKs, so check it first.
TIMEOUT_ERRORS: Final[tuple[Type[BaseException], ...]] = (
    OpenAI_APITimeoutError,
    Anthropic_APITimeoutError,
    asyncio.TimeoutError,
    TimeoutError,
)

CONN_ERRORS: Final[tuple[Type[BaseException], ...]] = (
    OpenAI_APIConnectionError,
    Anthropic_APIConnectionError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[BaseException], ...]] = (
    OpenAI_RateLimitError,
    Anthropic_RateLimitError,
)


def classify_error(
    exc: BaseException,
    logger: Optional[logging.Logger] = None,
) -> ModelCallError:
    """Wrap an SDK exception in ModelCallError with a friendly, concise message."""
    log = logger or logging.getLogger("agent_pipeline.exceptions")

    if isinstance(exc, ModelCallError):
        return exc
    if isinstance(exc, TIMEOUT_ERRORS):
        log.warning("Model call timed out: %s", exc)
        return ModelCallTimeout(f"Timed out waiting for the model: {exc}", exc)

    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded, please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the LLM provider"
    elif isinstance(exc, API_ERRORS):
        status_info = getattr(exc, "status_code", "unknown")
        msg = f"API error ({status_info})"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception", extra={"exc": exc})
    return ModelCallError(f"{msg}: {exc}", exc)
