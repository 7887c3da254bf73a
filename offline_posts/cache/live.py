"""
In-process publish/subscribe layer for live cache queries.

Each subscriber owns a queue. Stores push a freshly queried snapshot into
every matching queue after a write commits, so a subscriber sees one
emission per write, in write order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Subscription key for whole-collection queries
ALL_RECORDS = None

_CLOSED = object()


@dataclass(frozen=True)
class _Failure:
    error: BaseException


@dataclass(eq=False)
class Subscription:
    """A single live query registration.

    Attributes:
        key: Post id this subscription watches, or ALL_RECORDS
    """

    key: int | None
    queue: asyncio.Queue[Any] = field(default_factory=asyncio.Queue)

    def deliver(self, snapshot: Any) -> None:
        self.queue.put_nowait(snapshot)

    def fail(self, error: BaseException) -> None:
        self.queue.put_nowait(_Failure(error))

    def end(self) -> None:
        self.queue.put_nowait(_CLOSED)


class SubscriptionRegistry:
    """Tracks active subscriptions for one store."""

    def __init__(self) -> None:
        self._subscriptions: set[Subscription] = set()

    def __len__(self) -> int:
        return len(self._subscriptions)

    @asynccontextmanager
    async def subscribe(self, key: int | None) -> AsyncIterator[Subscription]:
        """Register a subscription for the duration of the context."""
        subscription = Subscription(key=key)
        self._subscriptions.add(subscription)
        logger.debug(f"Live query subscribed: key={key}, active={len(self._subscriptions)}")
        try:
            yield subscription
        finally:
            self._subscriptions.discard(subscription)
            logger.debug(
                f"Live query unsubscribed: key={key}, active={len(self._subscriptions)}"
            )

    def matching(self, affected_ids: set[int] | None) -> list[Subscription]:
        """Subscriptions affected by a write.

        Args:
            affected_ids: Ids touched by the write, or None when every
                record may have changed (e.g. a clear)
        """
        if affected_ids is None:
            return list(self._subscriptions)
        return [
            s
            for s in self._subscriptions
            if s.key is ALL_RECORDS or s.key in affected_ids
        ]

    def end_all(self) -> None:
        """Finish every subscription; their iterators stop cleanly."""
        for subscription in list(self._subscriptions):
            subscription.end()


async def live_query(
    registry: SubscriptionRegistry,
    key: int | None,
    query: Callable[[], Awaitable[T]],
) -> AsyncIterator[T]:
    """Run ``query`` now and yield it, then yield each pushed snapshot.

    The subscription is registered before the initial query runs so no
    write can slip between the first snapshot and the first notification.
    Cancelling the consuming task, or closing the iterator, unregisters it.
    """
    async with registry.subscribe(key) as subscription:
        yield await query()
        while True:
            item = await subscription.queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, _Failure):
                raise item.error
            yield item
