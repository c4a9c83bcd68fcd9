from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from parley import __version__
from parley.api.routes.conversation import router as conversation_router
from parley.api.routes.health import router as health_router
from parley.api.routes.history import router as history_router
from parley.config import ConfigChange
from parley.utils.logger import api_logger

# Config sections that agents are built from
AGENT_SECTIONS = frozenset({"agent"})


def on_config_change(change: ConfigChange) -> None:
    from parley.api.deps import invalidate_agents

    if change.changed & AGENT_SECTIONS:
        api_logger.info("Agent configuration changed, new sessions use it")
        invalidate_agents()


@asynccontextmanager
async def lifespan(app: FastAPI):
    from parley.api.deps import dispose_dependencies, get_history_store

    config_manager = getattr(app.state, "config_manager", None)
    report = await get_history_store().reconcile()
    api_logger.info(
        "History reconciled",
        repaired=len(report.repaired),
        orphaned=len(report.orphaned),
    )
    if config_manager is not None:
        config_manager.subscribe(on_config_change)
        await config_manager.start_watching()

    try:
        yield
    finally:
        if config_manager is not None:
            try:
                await config_manager.stop_watching()
            except asyncio.CancelledError:
                api_logger.debug("Config watcher shutdown cancelled")
        dispose_dependencies()
        api_logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Parley Server",
        description="Streaming conversation server with persistent chat history",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(conversation_router)
    app.include_router(history_router)
    app.include_router(health_router)

    @app.middleware("http")
    async def add_request_id_header(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("x-request-id", "parley")
        return response

    return app
