"""Default configuration values for Parley."""

from typing import Any

from parley.agents.config import DEFAULT_OPENAI_MODEL
from parley.config.constants import DEFAULT_DB_FILE_NAME, DEFAULT_SSE_PING_INTERVAL


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dictionary."""
    return {
        # Chat agent attached to every new session (see ChatAgentConfig)
        "agent": {
            "enabled": True,
            "llm_type": "openai",
            "model": DEFAULT_OPENAI_MODEL,
            "api_key": None,
            "base_url": None,
            "temperature": 0.7,
            "remember_history": True,
        },
        # Server Configuration
        "server_host": "localhost",
        "server_port": 8765,
        # History database (relative paths resolve against the .parley directory)
        "database_path": DEFAULT_DB_FILE_NAME,
        # Seconds between SSE keep-alive comments
        "sse_ping_interval": DEFAULT_SSE_PING_INTERVAL,
        # Logging Configuration
        "log_level": "INFO",
        "log_format": "pretty",
        "log_colors": True,
    }
