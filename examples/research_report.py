"""Run the full researcher -> analyzer -> writer pipeline from the command line.

    $ ANTHROPIC_API_KEY=... python examples/research_report.py "quantum computing"

Tool providers are read from ``mcp-config.json`` (or ``--config``).
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from agent_pipeline import Pipeline, Settings, ToolRegistry, Vendor, create_llm
from agent_pipeline.config import load_provider_configs

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(message)s")


async def research(topic: str, settings: Settings) -> None:
    registry, errors = await ToolRegistry.from_config(
        load_provider_configs(settings.mcp_config_path), timeout=settings.tool_timeout
    )
    for error in errors:
        logger.warning("Skipped provider: %s", error)

    async with registry, create_llm(settings.vendor, settings.model) as llm:
        pipeline = Pipeline(llm, registry, max_turns=settings.max_turns)
        report = await pipeline.run(topic)

    print(report)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("topic")
    parser.add_argument("--vendor", choices=[v.value for v in Vendor])
    parser.add_argument("--model")
    parser.add_argument("--config", help="path to the MCP provider config")
    args = parser.parse_args()

    settings = Settings.from_env()
    if args.vendor:
        settings.vendor = Vendor(args.vendor)
    if args.model:
        settings.model = args.model
    if args.config:
        settings.mcp_config_path = args.config

    asyncio.run(research(args.topic, settings))
