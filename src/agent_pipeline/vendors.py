from enum import Enum
import os

from dotenv import load_dotenv

from agent_pipeline._exceptions import ConfigError


class Vendor(str, Enum):
    """Model vendors the agents can run on."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: str) -> "Vendor":
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            choices = ", ".join(v.value for v in cls)
            raise ConfigError(f"Unknown vendor {value!r} (expected one of {choices})") from exc


_ENV_VARS: dict[Vendor, str] = {
    Vendor.ANTHROPIC: "ANTHROPIC_API_KEY",
    Vendor.OPENAI: "OPENAI_API_KEY",
    Vendor.GEMINI: "GEMINI_API_KEY",
}


def get_api_key(vendor: Vendor) -> str:
    load_dotenv()
    env = _ENV_VARS.get(vendor)
    if not env:
        raise ConfigError(f"No config for {vendor}")
    key = os.getenv(env)
    if not key:
        raise ConfigError(f"{env} missing")
    return key
