"""Structured logging for Parley.

Everything, including uvicorn and library records that arrive through the
stdlib `logging` module, is rendered by one structlog renderer chosen from
LOG_FORMAT (``pretty`` or ``json``) and LOG_COLORS.
"""

import logging
import os

import structlog
from structlog.types import FilteringBoundLogger, Processor

# Library loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.INFO,
    "sqlalchemy.engine": logging.WARNING,
    "watchdog": logging.WARNING,
}

UVICORN_LOGGER_NAMES = {
    "uvicorn.error": "uvicorn.server",
    "uvicorn.access": "uvicorn.http",
}

# Frame bodies longer than this are truncated in debug output
FRAME_PREVIEW_CHARS = 300


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


def build_renderer() -> Processor:
    if os.getenv("LOG_FORMAT", "pretty").lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=_env_flag("LOG_COLORS", "true"))


def _rename_uvicorn_loggers(logger, name, event_dict):
    logger_name = event_dict.get("logger")
    if logger_name in UVICORN_LOGGER_NAMES:
        event_dict["logger"] = UVICORN_LOGGER_NAMES[logger_name]
    return event_dict


def _foreign_pre_chain() -> list[Processor]:
    return [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _rename_uvicorn_loggers,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_structlog() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=build_renderer(), foreign_pre_chain=_foreign_pre_chain()
        )
    )
    logging.root.handlers = [handler]
    root_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.root.setLevel(getattr(logging, root_level, logging.INFO))
    logging.captureWarnings(True)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def uvicorn_log_config() -> dict:
    """dictConfig for uvicorn that renders through the same structlog renderer."""
    level = os.getenv("UVICORN_LOG_LEVEL", "INFO").upper()
    routed = {"handlers": ["structlog"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": build_renderer(),
                "foreign_pre_chain": _foreign_pre_chain(),
            },
        },
        "handlers": {
            "structlog": {
                "class": "logging.StreamHandler",
                "formatter": "structlog",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {name: dict(routed) for name in ("uvicorn", *UVICORN_LOGGER_NAMES)},
    }


configure_structlog()


def frame_log(
    logger: FilteringBoundLogger,
    session_id: str | None,
    index: int,
    kind: str,
    data: str,
) -> None:
    """Log one outgoing conversation frame at debug level."""
    logger.debug(
        "Frame sent",
        session_id=session_id,
        frame=index,
        kind=kind,
        data=data[:FRAME_PREVIEW_CHARS],
    )


def get_logger(name: str, level: int = logging.INFO) -> FilteringBoundLogger:
    logging.getLogger(name).setLevel(level)
    return structlog.get_logger(name)


api_logger = get_logger("parley.api", level=logging.DEBUG)
agent_logger = get_logger("parley.agents", level=logging.DEBUG)
storage_logger = get_logger("parley.storage", level=logging.DEBUG)
config_logger = get_logger("parley.config")
