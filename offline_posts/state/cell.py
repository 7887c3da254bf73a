"""
Observable single-value state container.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")

_CLOSED = object()


class StateCell(Generic[S]):
    """Holds the current state of one screen and publishes every change.

    All writers go through ``update()``, which reads the current value,
    computes the next one and publishes it without suspending in between.
    Under asyncio that makes each update atomic, so concurrent tasks can
    share the cell without a lock.

    Equal consecutive values are not republished.
    """

    def __init__(self, initial: S) -> None:
        self._value = initial
        self._watchers: set[asyncio.Queue[Any]] = set()
        self._closed = False

    @property
    def value(self) -> S:
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    def update(self, transform: Callable[[S], S]) -> S:
        """Replace the state with ``transform(current)``.

        Ignored once the cell is closed.

        Returns:
            The state after the update
        """
        if self._closed:
            logger.debug("Ignoring update on closed state cell")
            return self._value

        new_value = transform(self._value)
        if new_value != self._value:
            self._value = new_value
            for queue in self._watchers:
                queue.put_nowait(new_value)
        return self._value

    def set(self, value: S) -> S:
        return self.update(lambda _current: value)

    async def watch(self) -> AsyncIterator[S]:
        """Yield the current state, then every published change."""
        queue: asyncio.Queue[Any] = asyncio.Queue()
        self._watchers.add(queue)
        try:
            yield self._value
            if self._closed:
                return
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            self._watchers.discard(queue)

    async def wait_for(
        self,
        predicate: Callable[[S], bool],
        timeout: float | None = None,
    ) -> S:
        """Wait for the first state that satisfies ``predicate``.

        Raises:
            TimeoutError: If no matching state arrives within ``timeout`` seconds
            RuntimeError: If the cell closes first
        """

        async def _wait() -> S:
            async with aclosing(self.watch()) as states:
                async for state in states:
                    if predicate(state):
                        return state
            raise RuntimeError("State cell closed before the expected state was reached")

        return await asyncio.wait_for(_wait(), timeout)

    def close(self) -> None:
        """Stop accepting updates and finish all watchers."""
        if self._closed:
            return
        self._closed = True
        for queue in self._watchers:
            queue.put_nowait(_CLOSED)
