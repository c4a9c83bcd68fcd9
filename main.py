#!/usr/bin/env python3
"""Run the Parley server.

    python main.py --workdir ~/chats --port 8765

The working directory holds `.parley/config.json` (created with defaults on
first start and reloaded when edited), the history database and an optional
`.env` file.
"""

import asyncio
import os
import signal
import sys
from argparse import ArgumentParser
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))


def parse_args():
    parser = ArgumentParser(description="Parley streaming conversation server")
    parser.add_argument(
        "--workdir", default=".", help="Directory holding .parley/ and .env"
    )
    parser.add_argument("--host", help="Bind address (default from config)")
    parser.add_argument("--port", type=int, help="Bind port (default from config)")
    parser.add_argument(
        "--log-format", choices=["pretty", "json"], help="Override log_format"
    )
    parser.add_argument(
        "--log-colors",
        type=lambda value: value.lower() in ("true", "1", "yes", "on"),
        help="Override log_colors (true/false)",
    )
    return parser.parse_args()


def apply_log_options(args, settings) -> None:
    """Re-render logs with the configured format; CLI flags take precedence."""
    from parley.utils.logger import configure_structlog

    log_format = args.log_format or settings.log_format
    log_colors = settings.log_colors if args.log_colors is None else args.log_colors
    os.environ["LOG_FORMAT"] = log_format
    os.environ["LOG_COLORS"] = "true" if log_colors else "false"
    os.environ.setdefault("LOG_LEVEL", settings.log_level)
    configure_structlog()


async def serve(server, config_manager, stop: asyncio.Event, log) -> None:
    from parley.api.server import app

    app.state.config_manager = config_manager
    server_task = asyncio.create_task(server.serve())
    stop_task = asyncio.create_task(stop.wait())
    done, _ = await asyncio.wait(
        {server_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
    )
    if stop_task in done:
        log.info("Shutdown requested, draining open streams")
        server.should_exit = True
        await server_task
    else:
        stop_task.cancel()
    log.info("Server stopped")


def main() -> int:
    args = parse_args()
    workdir = Path(args.workdir).expanduser().resolve()

    from parley.utils.logger import get_logger

    log = get_logger("parley.startup")
    if not workdir.is_dir():
        log.error("Working directory does not exist", path=str(workdir))
        return 1

    from dotenv import load_dotenv

    if load_dotenv(dotenv_path=workdir / ".env", override=False):
        log.debug("Loaded environment file", path=str(workdir / ".env"))

    from parley.config import create_config_manager, get_default_config, settings
    from parley.config.constants import CONFIG_DIR_NAME

    config_dir = workdir / CONFIG_DIR_NAME
    config_manager = create_config_manager(config_dir, defaults=get_default_config())
    try:
        asyncio.run(config_manager.initialize())
    except Exception as e:
        log.error("Could not load configuration", error=str(e), path=str(config_dir))
        return 1
    settings.attach(config_manager, workdir=config_dir)
    apply_log_options(args, settings)

    valid, errors = settings.validation_status()
    if not valid:
        log.warning("Chat agent disabled until configuration is fixed", errors=errors)

    import uvicorn

    from parley import __version__
    from parley.utils.logger import uvicorn_log_config

    host = args.host or settings.server_host
    port = args.port or settings.server_port
    server = uvicorn.Server(
        uvicorn.Config(
            "parley.api.server:app",
            host=host,
            port=port,
            log_config=uvicorn_log_config(),
            lifespan="on",
            timeout_graceful_shutdown=5,
        )
    )
    # SIGINT/SIGTERM are routed through `stop` below
    server.install_signal_handlers = False  # type: ignore[attr-defined]

    stop = asyncio.Event()

    def request_stop(signum, _frame):
        log.info("Signal received", signal=signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    log.info(
        "Starting Parley server",
        version=__version__,
        url=f"http://{host}:{port}",
        workdir=str(workdir),
        database=str(settings.database_path),
    )
    try:
        asyncio.run(serve(server, config_manager, stop, log))
    except Exception as e:
        log.error("Server failed", error=str(e), exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
