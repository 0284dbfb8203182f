"""Connection to one MCP tool provider over stdio."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from enum import Enum
from typing import Any, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError
from mcp.types import CONNECTION_CLOSED

from agent_pipeline._exceptions import (
    ConnectError,
    ProviderUnavailable,
    ToolCallError,
    ToolCallTimeout,
)
from agent_pipeline.config import ProviderConfig
from agent_pipeline.types import ToolOutcome, ToolSpec

DEFAULT_TOOL_TIMEOUT = 30.0


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    FAILED = "failed"
    CLOSED = "closed"


class ProviderConnection:
    """
    Owns the transport to one tool provider process.

    The session multiplexes requests by id, so concurrent `call`s are safe;
    the transport is the only serialization point.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        timeout: float = DEFAULT_TOOL_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.name = config.name
        self.timeout = timeout
        self.status = ConnectionStatus.PENDING
        self.logger = logger or logging.getLogger(__name__)
        self._stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    async def connect(self) -> None:
        """Launch the provider and run the initialize handshake. Raises ConnectError."""
        resolved = self.config.resolve()
        params = StdioServerParameters(
            command=resolved.command,
            args=list(resolved.args),
            env=self.config.launch_env(),
        )
        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read, write))
            await asyncio.wait_for(session.initialize(), timeout=self.timeout)
        except Exception as exc:
            self.status = ConnectionStatus.FAILED
            await self._close_quietly(stack)
            raise ConnectError(self.name, _describe(exc)) from exc

        self._stack = stack
        self._session = session
        self.status = ConnectionStatus.CONNECTED
        self._log(f"Connected ({resolved.command})")

    async def list_tools(self) -> list[ToolSpec]:
        """Enumerate the provider's tools, in the order it reports them."""
        session = self._require_session()
        try:
            result = await asyncio.wait_for(session.list_tools(), timeout=self.timeout)
        except Exception as exc:
            raise ConnectError(self.name, f"listing tools failed: {_describe(exc)}") from exc
        return [
            ToolSpec(
                local_name=tool.name,
                description=tool.description or "",
                input_schema=dict(tool.inputSchema or {}),
            )
            for tool in result.tools
        ]

    async def call(self, local_name: str, arguments: dict[str, Any]) -> ToolOutcome:
        """Invoke one tool and return its outcome.

        Raises:
            ProviderUnavailable: the connection is not live.
            ToolCallTimeout: no answer within `timeout` seconds.
            ToolCallError: the provider reported an error or the transport broke.
        """
        if not self.is_connected or self._session is None:
            raise ProviderUnavailable(self.name)

        try:
            result = await asyncio.wait_for(
                self._session.call_tool(local_name, arguments=arguments or {}),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ToolCallTimeout(
                f"{self.name}: {local_name} timed out after {self.timeout:g}s"
            ) from exc
        except McpError as exc:
            if exc.error.code == CONNECTION_CLOSED:
                self.status = ConnectionStatus.FAILED
                self._log(f"Provider closed the connection: {exc}", logging.ERROR)
            raise ToolCallError(f"{self.name}: {exc}") from exc
        except Exception as exc:
            self.status = ConnectionStatus.FAILED
            self._log(f"Transport failure, marking provider failed: {_describe(exc)}", logging.ERROR)
            raise ToolCallError(f"{self.name}: {_describe(exc)}") from exc

        outcome = ToolOutcome.from_segments(result.content or [], raw=result)
        if result.isError:
            raise ToolCallError(outcome.render())
        return outcome

    async def aclose(self) -> None:
        """Close the session and stop the provider process. Safe to call multiple times."""
        stack, self._stack, self._session = self._stack, None, None
        if self.status is not ConnectionStatus.FAILED:
            self.status = ConnectionStatus.CLOSED
        if stack is not None:
            await self._close_quietly(stack)

    async def _close_quietly(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as exc:
            self._log(f"Error while closing: {_describe(exc)}", logging.WARNING)

    def _require_session(self) -> ClientSession:
        if self._session is None or not self.is_connected:
            raise ConnectError(self.name, "not connected")
        return self._session

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, status={self.status.value})"


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__
