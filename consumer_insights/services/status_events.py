"""In-process fan-out of document status changes to subscribers."""
from __future__ import annotations

import asyncio

from consumer_insights.models.events import StatusChangeEvent
from consumer_insights.services import logger as log_service

DEFAULT_QUEUE_SIZE = 100


class StatusSubscription:
    """A cancelable stream of status events for one keyword (or all keywords)."""

    def __init__(self, broadcaster: "StatusBroadcaster", keyword: str | None, maxsize: int):
        self.keyword = keyword
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue[StatusChangeEvent | None] = asyncio.Queue(maxsize=maxsize)
        self.closed = False
        self.dropped = 0

    def matches(self, event: StatusChangeEvent) -> bool:
        return self.keyword is None or event.keyword == self.keyword

    def offer(self, event: StatusChangeEvent) -> None:
        if self.closed:
            return
        if self._queue.full():
            # Slow consumer: keep the most recent events.
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    async def next(self) -> StatusChangeEvent | None:
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._broadcaster.unsubscribe(self)
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    def __aiter__(self) -> "StatusSubscription":
        return self

    async def __anext__(self) -> StatusChangeEvent:
        event = await self.next()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "StatusSubscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class StatusBroadcaster:
    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self._queue_size = queue_size
        self._subscriptions: list[StatusSubscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, keyword: str | None = None) -> StatusSubscription:
        subscription = StatusSubscription(self, keyword, self._queue_size)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: StatusSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, event: StatusChangeEvent) -> int:
        """Deliver to every matching subscriber; returns the delivery count."""
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(event):
                subscription.offer(event)
                delivered += 1
        log_service.logger.debug(
            "status event %s -> %s delivered to %d subscriber(s)",
            event.document_id,
            event.status.value,
            delivered,
        )
        return delivered

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.close()
