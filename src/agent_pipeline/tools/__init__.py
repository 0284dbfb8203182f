"""Tool providers and the registry that namespaces their tools."""

from .connection import ConnectionStatus, ProviderConnection
from .registry import Connection, ToolRegistry

__all__ = [
    "Connection",
    "ConnectionStatus",
    "ProviderConnection",
    "ToolRegistry",
]
