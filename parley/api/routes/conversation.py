from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from parley.api.deps import get_conversation_service
from parley.api.sse import stream_response
from parley.config import settings
from parley.services.conversation_service import ConversationService
from parley.utils.logger import api_logger

router = APIRouter()


@router.post("/api/conversation")
async def conversation(
    raw_request: Request,
    service: ConversationService = Depends(get_conversation_service),  # noqa: B008
):
    """Stream one conversation turn as SSE.

    The body is validated inside the stream so that every failure, including
    a malformed body, reaches the client as an in-band failure frame.
    """
    body = await raw_request.body()
    api_logger.info(
        "POST /api/conversation",
        client=raw_request.client.host if raw_request.client else "unknown",
        body_bytes=len(body),
        ping_interval=settings.sse_ping_interval or None,
    )
    return stream_response(
        service.stream_conversation(body), ping_interval=settings.sse_ping_interval
    )
