from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from parley.api.deps import get_history_store
from parley.api.schemas import HistoryListResponse, HistorySessionResponse
from parley.storage import HistoryStore

router = APIRouter()


@router.get("/api/history", response_model=HistoryListResponse)
async def list_history(
    limit: int | None = None,
    offset: int = 0,
    history: HistoryStore = Depends(get_history_store),  # noqa: B008
):
    """List history sessions, newest first."""
    sessions = await history.list_sessions()
    total = len(sessions)
    end = offset + limit if limit is not None else None
    return HistoryListResponse(sessions=sessions[offset:end], total=total)


@router.get(
    "/api/history/{session_id}",
    response_model=HistorySessionResponse,
    response_model_exclude_none=True,
)
async def get_history(
    session_id: str,
    history: HistoryStore = Depends(get_history_store),  # noqa: B008
):
    meta = await history.get_meta(session_id)
    if meta is None:
        raise HTTPException(status_code=404, detail="Session not found")
    messages = await history.read_session(session_id)
    return HistorySessionResponse(
        id=meta.id, title=meta.title, dateTime=meta.dateTime, messages=messages
    )
