"""
Request parameter normalization.

Callers pass a plain dict as `params` to `BaseAsyncLLM.complete` (or as the
`params` default of an agent loop). Tools and the system prompt are not
parameters: they travel as their own arguments so the agent loop controls them.

Contract
- Standard keys work across vendors:
  temperature: float
  max_tokens: int       (defaults to DEFAULT_MAX_TOKENS)
  top_p: float
  stop: str | list[str]
  tool_choice: str | dict
  user: str
- Vendor specific keys go under `extra` and pass through unchanged.
  Unknown top-level keys are moved into extra.
"""

from __future__ import annotations

from typing import Any

DEFAULT_MAX_TOKENS = 4096

STANDARD_KEYS = {
    "temperature",
    "max_tokens",
    "top_p",
    "stop",
    "tool_choice",
    "user",
}

# Owned by the agent loop; never accepted through params.
RESERVED_KEYS = {"tools", "system", "messages", "stream"}


def normalize_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """
    Normalize a user-supplied params dict to a single internal shape.

    Returns a dict with only standard keys plus an `extra` dict.

    >>> normalize_params({"temperature": 0.2, "top_k": 5})
    {'temperature': 0.2, 'max_tokens': 4096, 'extra': {'top_k': 5}}
    """
    if params is None:
        return {"max_tokens": DEFAULT_MAX_TOKENS, "extra": {}}
    if not isinstance(params, dict):
        raise TypeError(f"params must be a dict, got {type(params).__name__}")

    reserved = RESERVED_KEYS.intersection(params)
    if reserved:
        raise TypeError(f"params may not set {', '.join(sorted(reserved))}")

    user_extra = params.get("extra") or {}
    if not isinstance(user_extra, dict):
        raise TypeError("params['extra'] must be a dict")

    std: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in params.items():
        if key == "extra":
            continue
        if key in STANDARD_KEYS:
            std[key] = value
        else:
            extra[key] = value

    if std.get("max_tokens") is None:
        std["max_tokens"] = DEFAULT_MAX_TOKENS

    # user-provided extra wins over moved unknowns
    std["extra"] = {**extra, **user_extra}
    return std


def merge_params(
    defaults: dict[str, Any] | None, overrides: dict[str, Any] | None
) -> dict[str, Any]:
    """
    Shallow-merge defaults with per-call overrides, then normalize.

    Top-level keys are overwritten by overrides; `extra` is merged per key.
    """
    base: dict[str, Any] = dict(defaults or {})
    if overrides:
        base_extra = dict(base.get("extra") or {})
        over_extra = dict(overrides.get("extra") or {})
        for k, v in overrides.items():
            if k != "extra":
                base[k] = v
        base["extra"] = {**base_extra, **over_extra}
    return normalize_params(base)
