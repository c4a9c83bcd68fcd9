from __future__ import annotations

from parley.agents.factory import AgentFactory
from parley.config import settings
from parley.domain.messages import Message
from parley.services.conversation_service import ConversationService
from parley.sessions import InMemorySessionStore, SessionManager, UserManager
from parley.storage import Database, HistoryStore, SQLiteDatabase
from parley.utils.logger import api_logger

# Process-wide singletons, created on first access
_database: Database | None = None
_history_store: HistoryStore | None = None
_agent_factory: AgentFactory | None = None
_session_manager: SessionManager | None = None
_user_manager: UserManager | None = None
_conversation_service: ConversationService | None = None


def get_database() -> Database:
    """Singleton history database at `settings.database_path`."""
    global _database
    if _database is None:
        db_path = settings.database_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        _database = SQLiteDatabase(db_path)
    return _database


def set_database(database: Database) -> None:
    """Install a database and drop everything built on the previous one."""
    global _database, _history_store, _conversation_service
    _database = database
    _history_store = None
    _conversation_service = None


def get_history_store() -> HistoryStore:
    global _history_store
    if _history_store is None:
        _history_store = HistoryStore(get_database())
    return _history_store


def get_agent_factory() -> AgentFactory:
    global _agent_factory
    if _agent_factory is None:
        _agent_factory = AgentFactory(lambda: settings.agent_config)
    return _agent_factory


def set_agent_factory(agent_factory) -> None:
    global _agent_factory, _session_manager, _conversation_service
    _agent_factory = agent_factory
    _session_manager = None
    _conversation_service = None


def get_user_manager() -> UserManager:
    global _user_manager
    if _user_manager is None:
        _user_manager = UserManager()
    return _user_manager


async def _load_history(session_id: str) -> list[Message]:
    return await get_history_store().read_session(session_id)


def get_session_manager() -> SessionManager:
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(
            get_agent_factory(),
            store=InMemorySessionStore(),
            history_loader=_load_history,
        )
    return _session_manager


def get_conversation_service() -> ConversationService:
    global _conversation_service
    if _conversation_service is None:
        _conversation_service = ConversationService(
            history=get_history_store(),
            session_manager=get_session_manager(),
            user_manager=get_user_manager(),
        )
    return _conversation_service


def invalidate_agents() -> None:
    """Rebuild agents from fresh configuration on their next creation."""
    if _agent_factory is not None and hasattr(_agent_factory, "invalidate"):
        _agent_factory.invalidate()


def dispose_dependencies() -> None:
    """Release the database and forget every singleton (app shutdown, tests)."""
    global _database, _history_store, _agent_factory
    global _session_manager, _user_manager, _conversation_service
    try:
        if _database is not None:
            _database.close()
            api_logger.debug("History database closed")
    finally:
        _database = None
        _history_store = None
        _agent_factory = None
        _session_manager = None
        _user_manager = None
        _conversation_service = None
