"""Tests for the MCP provider connection, using a stand-in session."""

import asyncio
import json
from types import SimpleNamespace

import pytest
from mcp.shared.exceptions import McpError
from mcp.types import (
    CONNECTION_CLOSED,
    CallToolResult,
    ErrorData,
    ImageContent,
    TextContent,
    Tool,
)

from agent_pipeline._exceptions import (
    ConnectError,
    ProviderUnavailable,
    ToolCallError,
    ToolCallTimeout,
)
from agent_pipeline.config import ProviderConfig
from agent_pipeline.tools.connection import ConnectionStatus, ProviderConnection
from agent_pipeline.types import ToolOutcome


class FakeSession:
    def __init__(self, result=None, error=None, delay=0.0, tools=()):
        self.result = result
        self.error = error
        self.delay = delay
        self.tools = list(tools)
        self.calls = []

    async def call_tool(self, name, arguments=None):
        self.calls.append((name, arguments))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def list_tools(self):
        return SimpleNamespace(tools=self.tools)


def connected(session, timeout=1.0):
    conn = ProviderConnection(ProviderConfig("svc", "unused"), timeout=timeout)
    conn._session = session
    conn.status = ConnectionStatus.CONNECTED
    return conn


def test_text_segments_concatenated():
    session = FakeSession(
        CallToolResult(
            content=[
                TextContent(type="text", text="alpha "),
                ImageContent(type="image", data="AAAA", mimeType="image/png"),
                TextContent(type="text", text="beta"),
            ]
        )
    )

    outcome = asyncio.run(connected(session).call("lookup", {"q": "x"}))

    assert outcome.render() == "alpha beta"
    assert session.calls == [("lookup", {"q": "x"})]


def test_no_text_falls_back_to_serialized_response():
    session = FakeSession(
        CallToolResult(content=[ImageContent(type="image", data="AAAA", mimeType="image/png")])
    )

    outcome = asyncio.run(connected(session).call("snap", {}))

    assert outcome.text_content is None
    assert json.loads(outcome.render())["content"][0]["type"] == "image"


def test_provider_reported_error():
    session = FakeSession(
        CallToolResult(content=[TextContent(type="text", text="quota exceeded")], isError=True)
    )

    with pytest.raises(ToolCallError, match="quota exceeded"):
        asyncio.run(connected(session).call("lookup", {}))


def test_protocol_error_keeps_connection():
    session = FakeSession(error=McpError(ErrorData(code=-32602, message="bad arguments")))
    conn = connected(session)

    with pytest.raises(ToolCallError, match="bad arguments"):
        asyncio.run(conn.call("lookup", {}))
    assert conn.status is ConnectionStatus.CONNECTED


def test_transport_failure_marks_provider_failed():
    conn = connected(FakeSession(error=BrokenPipeError("pipe closed")))

    with pytest.raises(ToolCallError):
        asyncio.run(conn.call("lookup", {}))
    assert conn.status is ConnectionStatus.FAILED

    with pytest.raises(ProviderUnavailable):
        asyncio.run(conn.call("lookup", {}))


def test_timeout():
    conn = connected(FakeSession(CallToolResult(content=[]), delay=1.0), timeout=0.01)

    with pytest.raises(ToolCallTimeout) as info:
        asyncio.run(conn.call("lookup", {}))
    assert info.value.retryable is True


def test_unconnected_provider_unavailable():
    conn = ProviderConnection(ProviderConfig("svc", "unused"))

    with pytest.raises(ProviderUnavailable):
        asyncio.run(conn.call("lookup", {}))


def test_list_tools():
    session = FakeSession(
        tools=[
            Tool(name="lookup", description="Search", inputSchema={"type": "object"}),
            Tool(name="fetch", inputSchema={"type": "object"}),
        ]
    )

    specs = asyncio.run(connected(session).list_tools())

    assert [(s.local_name, s.description) for s in specs] == [
        ("lookup", "Search"),
        ("fetch", ""),
    ]


def test_missing_command_fails_to_connect():
    conn = ProviderConnection(
        ProviderConfig("ghost", "agent-pipeline-no-such-binary"), timeout=5.0
    )

    with pytest.raises(ConnectError) as info:
        asyncio.run(conn.connect())
    assert info.value.provider == "ghost"
    assert conn.status is ConnectionStatus.FAILED


def test_aclose_idempotent():
    conn = connected(FakeSession())

    asyncio.run(conn.aclose())
    asyncio.run(conn.aclose())

    assert conn.status is ConnectionStatus.CLOSED


def test_closed_connection_marks_provider_failed():
    error = McpError(ErrorData(code=CONNECTION_CLOSED, message="Connection closed"))
    conn = connected(FakeSession(error=error))

    with pytest.raises(ToolCallError, match="Connection closed"):
        asyncio.run(conn.call("crash", {}))
    assert conn.status is ConnectionStatus.FAILED

    with pytest.raises(ProviderUnavailable):
        asyncio.run(conn.call("echo", {}))


def test_text_segment_without_text():
    outcome = ToolOutcome.from_segments([{"type": "text"}, {"type": "text", "text": "ok"}])

    assert outcome.render() == "ok"
