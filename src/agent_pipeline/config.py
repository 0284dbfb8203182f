"""
Settings and tool provider configuration.

Settings come from the process environment (a `.env` file is loaded first).
Tool providers are declared in a JSON file shaped like::

    {
      "mcpServers": {
        "search": {
          "command": "npx",
          "args": ["-y", "@modelcontextprotocol/server-brave-search"],
          "env": {"BRAVE_API_KEY": "$BRAVE_API_KEY"}
        }
      }
    }

Any `args` element or `env` value starting with ``$`` names a process
environment variable and is replaced by its value; unknown variables are
left as written.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from agent_pipeline._exceptions import ConfigError
from agent_pipeline.vendors import Vendor

ENV_MARKER = "$"


def substitute_env(value: str, environ: Mapping[str, str]) -> str:
    """Resolve a ``$NAME`` reference against `environ`, or return `value` verbatim."""
    if isinstance(value, str) and value.startswith(ENV_MARKER):
        resolved = environ.get(value[len(ENV_MARKER):])
        if resolved:
            return resolved
    return value


@dataclass(frozen=True)
class ProviderConfig:
    """Launch configuration of one tool provider process."""

    name: str
    command: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def resolve(self, environ: Optional[Mapping[str, str]] = None) -> "ProviderConfig":
        """Return a copy with ``$NAME`` references in args and env substituted."""
        environ = os.environ if environ is None else environ
        return replace(
            self,
            args=tuple(substitute_env(a, environ) for a in self.args),
            env={k: substitute_env(v, environ) for k, v in self.env.items()},
        )

    def launch_env(self, environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        """Environment for the provider process: the parent's, overlaid with the resolved env."""
        environ = os.environ if environ is None else environ
        return {**environ, **self.resolve(environ).env}

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "ProviderConfig":
        if not isinstance(data, dict):
            raise ConfigError(f"Provider {name!r}: expected an object, got {type(data).__name__}")
        command = data.get("command")
        if not command or not isinstance(command, str):
            raise ConfigError(f"Provider {name!r}: 'command' is required")
        args = data.get("args") or []
        env = data.get("env") or {}
        if not isinstance(args, list) or not isinstance(env, dict):
            raise ConfigError(f"Provider {name!r}: 'args' must be a list and 'env' an object")
        return cls(
            name=name,
            command=command,
            args=tuple(str(a) for a in args),
            env={str(k): str(v) for k, v in env.items()},
        )


def load_provider_configs(path: str | Path) -> dict[str, ProviderConfig]:
    """Read provider configs from `path`, keyed by provider name. A missing file means none."""
    path = Path(path)
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON ({exc})") from exc

    servers = data.get("mcpServers") if isinstance(data, dict) else None
    if servers is None:
        return {}
    if not isinstance(servers, dict):
        raise ConfigError(f"{path}: 'mcpServers' must be an object")
    return {name: ProviderConfig.from_dict(name, entry) for name, entry in servers.items()}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class Settings:
    vendor: Vendor = Vendor.ANTHROPIC
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    max_turns: int = 10
    model_timeout: float = 60.0
    tool_timeout: float = 30.0
    mcp_config_path: Path = Path("mcp-config.json")
    host: str = "127.0.0.1"
    port: int = 3000
    static_dir: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        static_dir = os.getenv("STATIC_DIR")
        settings = cls(
            vendor=Vendor.parse(os.getenv("AGENT_VENDOR", Vendor.ANTHROPIC.value)),
            model=os.getenv("AGENT_MODEL", cls.model),
            max_tokens=_env_int("AGENT_MAX_TOKENS", cls.max_tokens),
            max_turns=_env_int("AGENT_MAX_TURNS", cls.max_turns),
            model_timeout=_env_float("AGENT_MODEL_TIMEOUT", cls.model_timeout),
            tool_timeout=_env_float("AGENT_TOOL_TIMEOUT", cls.tool_timeout),
            mcp_config_path=Path(os.getenv("MCP_CONFIG_PATH", str(cls.mcp_config_path))),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            static_dir=Path(static_dir) if static_dir else None,
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
        if settings.max_turns < 1:
            raise ConfigError("AGENT_MAX_TURNS must be at least 1")
        return settings

    def provider_configs(self) -> dict[str, ProviderConfig]:
        return load_provider_configs(self.mcp_config_path)
