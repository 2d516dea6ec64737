from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from consumer_insights.api.deps import get_container
from consumer_insights.container import ServiceContainer
from consumer_insights.services.status_events import StatusSubscription

router = APIRouter(prefix="/api/documents", tags=["events"])

DISCONNECT_POLL_SECONDS = 5.0
PING_SECONDS = 15


async def stream_status_events(
    subscription: StatusSubscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_seconds: float = DISCONNECT_POLL_SECONDS,
) -> AsyncIterator[dict[str, str]]:
    """Yield SSE payloads until the subscription closes or the client goes away.

    The client is checked every ``poll_seconds`` even when no event arrives.
    """
    async with subscription:
        while True:
            try:
                event = await asyncio.wait_for(subscription.next(), timeout=poll_seconds)
            except asyncio.TimeoutError:
                if await is_disconnected():
                    break
                continue
            if event is None or await is_disconnected():
                break
            yield {
                "event": event.event.value,
                "data": json.dumps(event.to_dict(), ensure_ascii=False),
            }


@router.get("/events")
async def document_events(
    request: Request,
    keyword: str | None = None,
    container: ServiceContainer = Depends(get_container),
):
    """SSE stream of document status changes, optionally for one keyword."""
    subscription = container.broadcaster.subscribe(keyword)
    return EventSourceResponse(
        stream_status_events(subscription, request.is_disconnected),
        ping=PING_SECONDS,
    )
