"""
LLM clients with a unified complete() method.

`complete` is the model collaborator the agent loop drives: it takes the
system prompt, the conversation so far and the tool catalog, and returns a
ChatResponse. Provider failures never raise out of `complete`; they come
back as an error response the caller can `raise_for_error()` on.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, Self, Sequence

from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from agent_pipeline._exceptions import classify_error
from agent_pipeline.adapters import (
    AnthropicRequestAdapter,
    GeminiRequestAdapter,
    OpenAIRequestAdapter,
)
from agent_pipeline.params import merge_params
from agent_pipeline.response import ChatResponse
from agent_pipeline.types import Message, ToolDescriptor
from agent_pipeline.vendors import Vendor, get_api_key

DEFAULT_TIMEOUT = 60.0


class RequestAdapter(Protocol):
    """Protocol for adapting between the generic conversation and a vendor's wire format."""

    def to_provider(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Build vendor request kwargs."""
        ...

    def from_provider(self, raw: Any) -> ChatResponse:
        """Convert a vendor response to a unified ChatResponse."""
        ...


class ModelClient(Protocol):
    """Anything the agent loop can ask for a completion."""

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        *,
        tools: Sequence[ToolDescriptor] | None = None,
        params: dict[str, Any] | None = None,
    ) -> ChatResponse: ...


class BaseAsyncLLM(ABC):
    """
    Abstract base class for async-first LLM wrappers.
    """

    def __init__(
        self,
        model: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        params: dict[str, Any] | None = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.default_params = dict(params or {})
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @abstractmethod
    async def _chat_impl(self, request: dict[str, Any]) -> Any:
        """
        Send one vendor request built by the adapter and return the raw response.

        Args:
            request: Vendor-specific kwargs from `adapter.to_provider`.
        """
        ...

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this vendor."""
        ...

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        *,
        tools: Sequence[ToolDescriptor] | None = None,
        params: dict[str, Any] | None = None,
    ) -> ChatResponse:
        """
        Send the conversation and return a single response.

        Tools are only advertised when the sequence is non-empty. The call is
        bounded by `self.timeout`; expiry comes back as a ModelCallTimeout error.
        """
        normalized = merge_params(self.default_params, params)
        request = self.adapter.to_provider(system_prompt, messages, tools or (), normalized)
        self._log(
            f"Sending request to {self.model} ({len(messages)} messages, {len(tools or ())} tools)",
            logging.DEBUG,
        )

        try:
            raw = await asyncio.wait_for(self._chat_impl(request), timeout=self.timeout)
            return self.adapter.from_provider(raw)
        except Exception as exc:
            return self._wrap_error(exc)

    def _wrap_error(self, exc: Exception) -> ChatResponse:
        """Wrap exception into an error response."""
        return ChatResponse.from_failure(classify_error(exc, self.logger))

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close the underlying async HTTP client. Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class AnthropicLLM(BaseAsyncLLM):
    """
    Anthropic LLM implementation (async-only).

    Use ``AnthropicLLM.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        params: dict[str, Any] | None = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model, timeout=timeout, params=params, logger=logger, name=name)
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncAnthropic,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        params: dict[str, Any] | None = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicLLM.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(
            self, model, timeout=timeout, params=params, logger=logger, name=name
        )
        self._client = client
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(self, request: dict[str, Any]) -> AnthropicMessage:
        response: AnthropicMessage = await self._client.messages.create(
            model=self.model, **request
        )
        return response


class OpenAILLM(BaseAsyncLLM):
    """
    OpenAI LLM implementation (async-only).

    Use ``OpenAILLM.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    _adapter_cls: type[OpenAIRequestAdapter] = OpenAIRequestAdapter
    _default_base_url: Optional[str] = None

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        params: dict[str, Any] | None = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model, timeout=timeout, params=params, logger=logger, name=name)
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url or self._default_base_url,
        )
        self._adapter = self._adapter_cls()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncOpenAI,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        params: dict[str, Any] | None = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"{cls.__name__}.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(
            self, model, timeout=timeout, params=params, logger=logger, name=name
        )
        self._client = client
        self._adapter = cls._adapter_cls()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    async def _chat_impl(self, request: dict[str, Any]) -> ChatCompletion:
        response: ChatCompletion = await self._client.chat.completions.create(
            model=self.model, **request
        )
        return response


class GeminiLLM(OpenAILLM):
    """
    Gemini LLM implementation via the OpenAI-compatible endpoint.
    """

    _adapter_cls = GeminiRequestAdapter
    _default_base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"


# Factory for creating LLM instances

_LLM_REGISTRY: dict[Vendor, type[BaseAsyncLLM]] = {
    Vendor.ANTHROPIC: AnthropicLLM,
    Vendor.OPENAI: OpenAILLM,
    Vendor.GEMINI: GeminiLLM,
}


def create_llm(
    vendor: Vendor,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **vendor_kwargs: Any,
) -> BaseAsyncLLM:
    """
    Factory for creating any supported LLM.

    Args:
        vendor: Which vendor to use (ANTHROPIC, OPENAI, GEMINI).
        model: Model identifier (e.g. "claude-sonnet-4-20250514").
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured SDK client to wrap.
            - For Vendor.ANTHROPIC: an AsyncAnthropic instance
            - For Vendor.OPENAI and Vendor.GEMINI: an AsyncOpenAI instance
        logger: Optional custom logger.
        **vendor_kwargs: Extra args passed through (timeout, params, max_retries).
    """
    try:
        llm_cls = _LLM_REGISTRY[vendor]
    except KeyError as exc:
        raise ValueError(f"Unsupported vendor: {vendor}") from exc

    if client is not None:  # use caller-supplied client verbatim
        vendor_kwargs.pop("max_retries", None)
        return llm_cls.from_client(model, client, logger=logger, **vendor_kwargs)

    key = api_key or get_api_key(vendor)
    return llm_cls(model, api_key=key, logger=logger, **vendor_kwargs)
