"""Bounded broadcast channel used to fan queue events out to subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Generic, TypeVar

from ...domain.music.value_objects import EVENT_CHANNEL_CAPACITY
from ...domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """One subscriber's view of a broadcaster.

    Holds at most ``capacity`` undelivered events. When a slow subscriber
    falls behind, its oldest event is dropped and ``lagged`` is incremented;
    the sender is never blocked. Iterating yields events until the
    broadcaster or the subscription is closed and the backlog is drained.
    """

    def __init__(self, broadcaster: EventBroadcaster[T], capacity: int) -> None:
        self._broadcaster = broadcaster
        self._backlog: deque[T] = deque(maxlen=capacity)
        self._ready = asyncio.Event()
        self._closed = False
        self.lagged = 0

    def _push(self, event: T) -> None:
        if len(self._backlog) == self._backlog.maxlen:
            self.lagged += 1
            logger.debug(LogTemplates.EVENT_SUBSCRIBER_LAGGED, type(self._backlog[0]).__name__)
        self._backlog.append(event)
        self._ready.set()

    def _mark_closed(self) -> None:
        self._closed = True
        self._ready.set()

    def close(self) -> None:
        """Stop receiving events. Already buffered events can still be read."""
        self._broadcaster._unsubscribe(self)
        self._mark_closed()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def try_recv(self) -> T | None:
        """Return the next buffered event without waiting."""
        if self._backlog:
            return self._backlog.popleft()
        return None

    def drain(self) -> list[T]:
        events = list(self._backlog)
        self._backlog.clear()
        return events

    async def recv(self) -> T | None:
        """Wait for the next event; ``None`` once closed and drained."""
        while not self._backlog:
            if self._closed:
                return None
            self._ready.clear()
            await self._ready.wait()
        return self._backlog.popleft()

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T:
        event = await self.recv()
        if event is None:
            raise StopAsyncIteration
        return event


class EventBroadcaster(Generic[T]):
    """Fan-out channel with a bounded backlog per subscriber."""

    def __init__(self, capacity: int = EVENT_CHANNEL_CAPACITY) -> None:
        self._capacity = capacity
        self._subscribers: list[Subscription[T]] = []
        self._closed = False

    def subscribe(self) -> Subscription[T]:
        subscription = Subscription(self, self._capacity)
        if self._closed:
            subscription._mark_closed()
        else:
            self._subscribers.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    @property
    def receiver_count(self) -> int:
        return len(self._subscribers)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def send(self, event: T) -> int:
        """Deliver ``event`` to every subscriber and return how many received it."""
        if not self._subscribers:
            logger.debug(LogTemplates.EVENT_NO_SUBSCRIBERS, type(event).__name__)
            return 0

        for subscription in list(self._subscribers):
            subscription._push(event)
        return len(self._subscribers)

    def close(self) -> None:
        """Close every subscription; subscribers still drain what they hold."""
        self._closed = True
        for subscription in self._subscribers:
            subscription._mark_closed()
        self._subscribers.clear()
