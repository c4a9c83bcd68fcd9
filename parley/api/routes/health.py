from __future__ import annotations

from fastapi import APIRouter, Depends

from parley import __version__
from parley.agents.factory import AgentFactory
from parley.api.deps import get_agent_factory
from parley.api.schemas import HealthResponse
from parley.config import ConfigValidationError, settings
from parley.utils.logger import api_logger

router = APIRouter()


def agent_enabled(agent_factory: AgentFactory) -> bool:
    try:
        return agent_factory.config.is_usable()
    except ConfigValidationError as e:
        api_logger.warning("Agent configuration is invalid", errors=e.errors)
        return False


@router.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health(
    agent_factory: AgentFactory = Depends(get_agent_factory),  # noqa: B008
):
    """Health check with agent and configuration status.

    - agent_enabled: whether new sessions get a working chat agent
    - config_valid: whether configuration is complete (API key set, etc)
    - config_errors: list of configuration issues if any
    """
    config_valid, config_errors = settings.validation_status()
    return HealthResponse(
        status="ok",
        service="parley-server",
        version=__version__,
        agent_enabled=agent_enabled(agent_factory),
        config_valid=config_valid,
        config_errors=config_errors or None,
    )
