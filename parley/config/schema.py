"""Checks applied to a merged configuration document."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from pydantic import ValidationError

from parley.agents.config import ChatAgentConfig


class ConfigValidationError(ValueError):
    """A configuration document failed validation; `errors` lists each problem."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Return `base` with `overrides` applied section by section.

    Nested dicts merge recursively and a None override leaves the base
    value alone. Neither input is modified.
    """
    merged = deepcopy(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        elif value is not None or key not in merged:
            merged[key] = deepcopy(value)
    return merged


def agent_errors(exc: ValidationError) -> list[str]:
    """Render agent block validation errors as ``agent.<field>: <message>``."""
    return [
        f"agent.{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]


def parse_agent_config(raw: Any) -> ChatAgentConfig:
    if not isinstance(raw, dict):
        raise ConfigValidationError(["agent: must be an object"])
    try:
        return ChatAgentConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigValidationError(agent_errors(e)) from e


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Return `config` unchanged, or raise ConfigValidationError with every problem."""
    errors: list[str] = []

    try:
        parse_agent_config(config.get("agent", {}))
    except ConfigValidationError as e:
        errors.extend(e.errors)

    port = config.get("server_port")
    if port is not None and (
        isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536
    ):
        errors.append("server_port: must be an integer between 1 and 65535")

    ping = config.get("sse_ping_interval")
    if ping is not None and (
        isinstance(ping, bool) or not isinstance(ping, int | float) or ping < 0
    ):
        errors.append("sse_ping_interval: must be a number of seconds, 0 to disable")

    if errors:
        raise ConfigValidationError(errors)
    return config
