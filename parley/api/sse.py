"""Wrap a conversation event stream in an sse-starlette response."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from sse_starlette.sse import EventSourceResponse

from parley.api.sse_protocol import SSE_SEPARATOR, EventFactory, encode_event
from parley.errors import parse_error
from parley.utils.logger import api_logger

SSE_MEDIA_TYPE = "text/event-stream"

# Content-Type is set explicitly so Starlette does not append a charset
SSE_HEADERS = {
    "Content-Type": SSE_MEDIA_TYPE,
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _fail_on_crash(
    event_stream: AsyncIterator[dict[str, Any]],
) -> AsyncIterator[dict[str, Any]]:
    try:
        async for event in event_stream:
            yield event
    except GeneratorExit:
        api_logger.info("Conversation response closed before completion")
        return
    except asyncio.CancelledError:
        api_logger.info("Conversation response cancelled")
        raise
    except Exception as e:
        api_logger.error("Conversation pipeline crashed", exc_info=True, error=str(e))
        yield encode_event(EventFactory.fail(parse_error(e).reason))


def stream_response(
    event_stream: AsyncIterator[dict[str, Any]],
    ping_interval: float | None = None,
) -> EventSourceResponse:
    """Stream `event_stream` as conversation frames.

    Keep-alive comments are sent only when `ping_interval` is a positive
    number of seconds; otherwise the body holds nothing but frames.
    """
    return EventSourceResponse(
        _fail_on_crash(event_stream),
        headers=dict(SSE_HEADERS),
        media_type=SSE_MEDIA_TYPE,
        sep=SSE_SEPARATOR,
        ping=ping_interval if ping_interval and ping_interval > 0 else 0,
    )
