"""Process-wide catalog of tools gathered from every connected provider."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol

from agent_pipeline._exceptions import (
    ConfigError,
    ConnectError,
    ProviderUnavailable,
    ToolNotFound,
)
from agent_pipeline.config import ProviderConfig
from agent_pipeline.tools.connection import DEFAULT_TOOL_TIMEOUT, ProviderConnection
from agent_pipeline.types import ToolDescriptor, ToolOutcome, ToolSpec


class Connection(Protocol):
    """What the registry needs from a provider connection."""

    name: str

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def list_tools(self) -> list[ToolSpec]: ...

    async def call(self, local_name: str, arguments: dict[str, Any]) -> ToolOutcome: ...

    async def aclose(self) -> None: ...


Connector = Callable[..., Connection]


class ToolRegistry:
    """
    Aggregates tools from all providers under ``<provider>__<tool>`` names.

    Built once at startup and then only read, apart from providers marking
    themselves failed. A provider that cannot be connected is recorded in
    `errors` and skipped.
    """

    def __init__(
        self,
        connector: Connector = ProviderConnection,
        *,
        timeout: float = DEFAULT_TOOL_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._connector = connector
        self._timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._connections: dict[str, Connection] = {}
        self._tools: dict[str, ToolDescriptor] = {}
        self._errors: list[ConnectError] = []

    @classmethod
    async def from_config(
        cls,
        configs: Mapping[str, ProviderConfig] | Iterable[ProviderConfig],
        *,
        connector: Connector = ProviderConnection,
        timeout: float = DEFAULT_TOOL_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> tuple["ToolRegistry", list[ConnectError]]:
        """Connect every configured provider in order; return the registry and the failures."""
        registry = cls(connector, timeout=timeout, logger=logger)
        items = configs.values() if isinstance(configs, Mapping) else configs
        for config in items:
            await registry.register(config)
        registry._log(
            f"{len(registry._tools)} tools from {len(registry._connections)} providers"
            f" ({len(registry._errors)} failed)"
        )
        return registry, list(registry._errors)

    @property
    def errors(self) -> list[ConnectError]:
        return list(self._errors)

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    async def register(self, config: ProviderConfig) -> Connection | ConnectError:
        """
        Connect one provider and add its tools.

        Failure is not fatal: the ConnectError is logged, recorded and returned,
        and the provider contributes no tools.
        """
        if config.name in self._connections or any(
            e.provider == config.name for e in self._errors
        ):
            raise ConfigError(f"Provider {config.name!r} registered twice")

        self._log(f"Connecting to tool provider: {config.name}...")
        connection = self._connector(config, timeout=self._timeout, logger=self.logger)
        try:
            await connection.connect()
            descriptors = await self.discover_tools(connection)
        except ConnectError as exc:
            return await self._record_failure(connection, exc)
        except Exception as exc:
            return await self._record_failure(connection, ConnectError(config.name, str(exc)))

        self._connections[config.name] = connection
        for descriptor in descriptors:
            self._tools[descriptor.qualified_name] = descriptor
        self._log(f"Connected to {config.name}, loaded {len(descriptors)} tools")
        return connection

    async def discover_tools(self, connection: Connection) -> list[ToolDescriptor]:
        """List a connected provider's tools, namespaced by the provider name."""
        specs = await connection.list_tools()
        descriptors: list[ToolDescriptor] = []
        seen: set[str] = set()
        for spec in specs:
            descriptor = ToolDescriptor.from_spec(connection.name, spec)
            if descriptor.qualified_name in seen or descriptor.qualified_name in self._tools:
                # only reachable when a provider lists the same tool twice or
                # its name contains the separator and shadows another provider
                self._log(f"Skipping duplicate tool {descriptor.qualified_name}", logging.WARNING)
                continue
            seen.add(descriptor.qualified_name)
            descriptors.append(descriptor)
        return descriptors

    def list_all(self) -> list[ToolDescriptor]:
        """Snapshot of every tool, in provider registration then discovery order."""
        return list(self._tools.values())

    def lookup(self, qualified_name: str) -> ToolDescriptor | None:
        return self._tools.get(qualified_name)

    async def invoke(self, qualified_name: str, arguments: dict[str, Any]) -> ToolOutcome:
        """
        Call a tool by qualified name.

        Raises:
            ToolNotFound: no such tool.
            ProviderUnavailable: the owning provider is no longer connected.
            ToolCallError: the call itself failed (ToolCallTimeout on timeout).
        """
        descriptor = self._tools.get(qualified_name)
        if descriptor is None:
            raise ToolNotFound(qualified_name)
        connection = self._connections.get(descriptor.provider_name)
        if connection is None or not connection.is_connected:
            raise ProviderUnavailable(descriptor.provider_name)
        return await connection.call(descriptor.local_name, arguments)

    async def aclose(self) -> None:
        """Disconnect every provider, newest first, and drop their tools."""
        for connection in reversed(list(self._connections.values())):
            await connection.aclose()
        self._connections.clear()
        self._tools.clear()

    async def __aenter__(self) -> "ToolRegistry":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, qualified_name: object) -> bool:
        return qualified_name in self._tools

    async def _record_failure(self, connection: Connection, error: ConnectError) -> ConnectError:
        self._log(f"Failed to connect to tool provider {error}", logging.ERROR)
        self._errors.append(error)
        await connection.aclose()
        return error

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[ToolRegistry] {message}")
