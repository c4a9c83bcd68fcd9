"""Shared pytest fixtures for all tests."""

import pytest
from helpers import ScriptedAgent

from parley.storage import HistoryStore, MemoryDatabase


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a module-level exit event bound to the first loop."""
    import sse_starlette.sse as sse_module

    app_status = getattr(sse_module, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield


@pytest.fixture(autouse=True)
def reset_dependencies(monkeypatch):
    """Give every test fresh API singletons and an unattached Settings."""
    from parley.api import deps
    from parley.config import settings

    monkeypatch.setattr(settings, "_config_manager", None)
    monkeypatch.setattr(settings, "workdir", None)
    deps.dispose_dependencies()
    yield
    deps.dispose_dependencies()


@pytest.fixture
def memory_db():
    return MemoryDatabase()


@pytest.fixture
def history(memory_db):
    return HistoryStore(memory_db)


@pytest.fixture
def agent():
    return ScriptedAgent()
