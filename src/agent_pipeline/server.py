"""
HTTP front end.

    POST /api/agent     {agent, message, context?} -> {result}
    POST /api/pipeline  {topic}                    -> {report}
    GET  /api/tools                                -> {tools: [{name, description}]}
    GET  /health

The tool registry is connected once in the app lifespan and shared by all
requests; each request runs its own agent loops.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from agent_pipeline._exceptions import AgentPipelineError, InvalidRequest
from agent_pipeline.client import ModelClient, create_llm
from agent_pipeline.config import Settings
from agent_pipeline.pipeline import Pipeline
from agent_pipeline.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class AgentRequest(BaseModel):
    agent: Optional[str] = None
    message: Optional[str] = None
    context: Optional[str] = None


class PipelineRequest(BaseModel):
    topic: Optional[str] = None


def _failure(exc: Exception) -> JSONResponse:
    logger.error(f"Error calling agent: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    llm: Optional[ModelClient] = None,
    registry: Optional[ToolRegistry] = None,
) -> FastAPI:
    """
    Build the app. `llm` and `registry` are created in the lifespan unless
    given; only what the lifespan created is closed on shutdown.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned_registry: Optional[ToolRegistry] = None
        owned_llm = None
        active_registry = registry
        active_llm = llm

        if active_registry is None:
            active_registry, errors = await ToolRegistry.from_config(
                settings.provider_configs(), timeout=settings.tool_timeout
            )
            owned_registry = active_registry
            for error in errors:
                logger.warning(f"Tool provider skipped: {error}")
        if active_llm is None:
            owned_llm = active_llm = create_llm(
                settings.vendor,
                settings.model,
                timeout=settings.model_timeout,
                params={"max_tokens": settings.max_tokens},
            )

        app.state.registry = active_registry
        app.state.pipeline = Pipeline(
            active_llm, active_registry, max_turns=settings.max_turns
        )
        logger.info(f"Tools available: {len(active_registry)}")
        try:
            yield
        finally:
            if owned_llm is not None:
                await owned_llm.aclose()
            if owned_registry is not None:
                await owned_registry.aclose()

    app = FastAPI(title="Multi-Agent Research", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(InvalidRequest)
    async def _invalid(request: Request, exc: InvalidRequest) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(AgentPipelineError)
    async def _core_failure(request: Request, exc: AgentPipelineError) -> JSONResponse:
        return _failure(exc)

    @app.get("/health")
    async def health(request: Request) -> dict:
        return {"status": "ok", "tools": len(request.app.state.registry)}

    @app.post("/api/agent")
    async def run_agent(body: AgentRequest, request: Request) -> dict:
        pipeline: Pipeline = request.app.state.pipeline
        try:
            result = await pipeline.run_agent(body.agent, body.message, body.context)
        except AgentPipelineError:
            raise
        except Exception as exc:
            return _failure(exc)
        return {"result": result}

    @app.post("/api/pipeline")
    async def run_pipeline(body: PipelineRequest, request: Request) -> dict:
        pipeline: Pipeline = request.app.state.pipeline
        try:
            report = await pipeline.run(body.topic or "")
        except AgentPipelineError:
            raise
        except Exception as exc:
            return _failure(exc)
        return {"report": report}

    @app.get("/api/tools")
    async def list_tools(request: Request) -> dict:
        registry: ToolRegistry = request.app.state.registry
        return {
            "tools": [
                {"name": t.qualified_name, "description": t.description}
                for t in registry.list_all()
            ]
        }

    if settings.static_dir is not None:
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")

    return app


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info(
        f"Multi-Agent Research server starting on http://{settings.host}:{settings.port}"
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
