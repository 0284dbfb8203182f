"""Tests for the HTTP front end."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from agent_pipeline.agents import ANALYZER_PROMPT, RESEARCHER_PROMPT, WRITER_PROMPT
from agent_pipeline.config import Settings
from agent_pipeline.server import create_app
from agent_pipeline.tools.registry import ToolRegistry
from agent_pipeline.types import ToolSpec

from helpers import (
    FakeConnection,
    ScriptedLLM,
    configs_for,
    connector_for,
    error_response,
    text_response,
)


@pytest.fixture
def registry():
    fake = FakeConnection(
        "search", [ToolSpec("lookup", "Search the web"), ToolSpec("fetch", "Fetch a page")]
    )
    built, _ = asyncio.run(
        ToolRegistry.from_config(configs_for("search"), connector=connector_for(fake))
    )
    return built


def client_for(llm, registry):
    return TestClient(create_app(Settings(), llm=llm, registry=registry))


def test_tools_listing(registry):
    with client_for(ScriptedLLM(), registry) as client:
        response = client.get("/api/tools")

    assert response.status_code == 200
    assert response.json() == {
        "tools": [
            {"name": "search__lookup", "description": "Search the web"},
            {"name": "search__fetch", "description": "Fetch a page"},
        ]
    }


def test_agent_endpoint(registry):
    llm = ScriptedLLM([text_response("insights")])

    with client_for(llm, registry) as client:
        response = client.post(
            "/api/agent", json={"agent": "analyzer", "message": "notes", "context": "notes"}
        )

    assert response.status_code == 200
    assert response.json() == {"result": "insights"}
    assert llm.calls[0]["system_prompt"] == ANALYZER_PROMPT


@pytest.mark.parametrize(
    "body, error",
    [
        ({"message": "hi"}, "Missing agent or message"),
        ({"agent": "researcher"}, "Missing agent or message"),
        ({"agent": "poet", "message": "hi"}, "Invalid agent type"),
    ],
)
def test_agent_endpoint_rejects_bad_requests(registry, body, error):
    llm = ScriptedLLM()

    with client_for(llm, registry) as client:
        response = client.post("/api/agent", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": error}
    assert llm.calls == []


def test_malformed_body_is_400(registry):
    with client_for(ScriptedLLM(), registry) as client:
        response = client.post(
            "/api/agent", content="not json", headers={"Content-Type": "application/json"}
        )

    assert response.status_code == 400


def test_model_failure_is_500(registry):
    llm = ScriptedLLM([error_response("API error (529): overloaded")])

    with client_for(llm, registry) as client:
        response = client.post("/api/agent", json={"agent": "writer", "message": "go"})

    assert response.status_code == 500
    assert response.json() == {"error": "API error (529): overloaded"}


def test_pipeline_endpoint(registry):
    canned = {RESEARCHER_PROMPT: "r", ANALYZER_PROMPT: "a", WRITER_PROMPT: "the report"}
    llm = ScriptedLLM(lambda system_prompt, *_: text_response(canned[system_prompt]))

    with client_for(llm, registry) as client:
        response = client.post("/api/pipeline", json={"topic": "quantum computing"})

    assert response.status_code == 200
    assert response.json() == {"report": "the report"}


def test_health(registry):
    with client_for(ScriptedLLM(), registry) as client:
        response = client.get("/health")

    assert response.json() == {"status": "ok", "tools": 2}


def test_lifespan_builds_registry_from_config(tmp_path):
    settings = Settings(mcp_config_path=tmp_path / "absent.json")

    with TestClient(create_app(settings, llm=ScriptedLLM())) as client:
        response = client.get("/api/tools")

    assert response.json() == {"tools": []}


def test_unexpected_error_is_500_with_message(registry, caplog):
    def broken(*_):
        raise ValueError("model adapter exploded")

    with client_for(ScriptedLLM(broken), registry) as client:
        response = client.post("/api/agent", json={"agent": "writer", "message": "go"})

    assert response.status_code == 500
    assert response.json() == {"error": "model adapter exploded"}
    assert sum("model adapter exploded" in r.getMessage() for r in caplog.records) == 1
