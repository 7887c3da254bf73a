"""
View state reducers for the post list and post detail screens.

A reducer runs two independent tasks against one StateCell:

- the cache subscription, which turns every cache emission into
  Loading (nothing cached) or Success;
- refreshes (one at startup, one per ``refresh()`` call), whose failures
  flag a Success state as offline, or become an ErrorState when there is
  nothing cached to fall back on.

Only a failed refresh sets ``is_offline``. A Success rebuilt from a cache
emission keeps the flag of the Success it replaces and starts clear
otherwise; a successful refresh clears it. A failed refresh waits for the
first cache snapshot before it decides between offline and error, so
neither task has to run before the other.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import replace
from typing import Any, Generic, TypeVar

from ..exceptions import PostSyncError, RefreshError
from ..logging_utils import StateLoggerAdapter
from ..models import Post
from ..repository import PostRepository
from .cell import StateCell
from .types import (
    CONNECTIVITY_HINT,
    LOADING,
    UNKNOWN_ERROR,
    ErrorState,
    Loading,
    PostDetailState,
    PostDetailSuccess,
    PostListState,
    PostListSuccess,
    is_success,
    mark_offline,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")


def _error_message(error: BaseException) -> str:
    if isinstance(error, PostSyncError):
        return error.message or UNKNOWN_ERROR
    return str(error) or UNKNOWN_ERROR


class _PostStateReducer(ABC, Generic[T, S]):
    """Shared lifecycle for the screen reducers.

    Subclasses provide the cache stream to follow, the refresh to run and
    how a cache emission maps to a Success state.
    """

    screen = "posts"

    def __init__(self, repository: PostRepository) -> None:
        self.repository = repository
        self._cell: StateCell[Any] = StateCell(LOADING)
        self._subscription_task: asyncio.Task[None] | None = None
        self._refresh_tasks: set[asyncio.Task[None]] = set()
        self._started = False
        self._storage_failed = False
        self._cache_loaded = asyncio.Event()
        self.log = StateLoggerAdapter(logger, self._log_context())

    # -- subclass hooks -------------------------------------------------------

    def _log_context(self) -> dict[str, Any]:
        return {"screen": self.screen}

    @abstractmethod
    def _observe(self) -> AsyncIterator[T]:
        """Cache stream the screen follows."""

    @abstractmethod
    async def _fetch(self) -> Any:
        """Refresh the screen's data from the remote."""

    @abstractmethod
    def _success(self, value: T) -> S | None:
        """Success state for a cache emission, or None when nothing is cached."""

    # -- public API -----------------------------------------------------------

    @property
    def state(self) -> S:
        """Current published state."""
        return self._cell.value

    def states(self) -> AsyncIterator[S]:
        """Current state, then every change until the reducer closes."""
        return self._cell.watch()

    async def wait_for(self, predicate: Any, timeout: float | None = None) -> S:
        """Wait for the first state satisfying ``predicate``."""
        return await self._cell.wait_for(predicate, timeout)

    def start(self) -> None:
        """Subscribe to the cache and launch the startup refresh.

        Returns immediately; the state stays Loading until either task
        produces something.
        """
        if self._cell.closed:
            raise RuntimeError(f"{self.screen} reducer is closed")
        if self._started:
            return
        self._started = True

        self._subscription_task = asyncio.create_task(
            self._collect(), name=f"{self.screen}-cache-subscription"
        )
        self.refresh()
        self.log.debug("Reducer started")

    def refresh(self) -> asyncio.Task[None]:
        """Launch a refresh in the background.

        The returned task completes once the refresh outcome has been
        applied to the state. ``is_offline`` is not reset beforehand.
        """
        if self._cell.closed:
            raise RuntimeError(f"{self.screen} reducer is closed")

        task = asyncio.create_task(self._run_refresh(), name=f"{self.screen}-refresh")
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for the first cache emission and for every in-flight refresh.

        Afterwards the state reflects whatever those refreshes wrote.
        """
        if self._started:
            await self._cache_loaded.wait()
        while self._refresh_tasks:
            await asyncio.wait(list(self._refresh_tasks))
        # Let the subscription apply snapshots the refreshes pushed
        await asyncio.sleep(0)

    async def close(self) -> None:
        """Cancel the subscription and in-flight refreshes.

        The state cell is closed first, so nothing cancelled here can
        write to it afterwards.
        """
        self._cell.close()

        tasks = [*self._refresh_tasks]
        if self._subscription_task is not None:
            tasks.append(self._subscription_task)
        for task in tasks:
            task.cancel()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                self.log.error(f"Reducer task failed during shutdown: {result!r}")

        self._subscription_task = None
        self.log.debug("Reducer closed")

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- transitions ----------------------------------------------------------

    def _from_emission(self, current: Any, value: T) -> Any:
        success = self._success(value)
        if success is None:
            return LOADING
        # Staleness survives a rebuild only when it replaces an offline Success
        if is_success(current) and current.is_offline:
            return mark_offline(success)
        return success

    def _on_refresh_failure(self, current: Any) -> Any:
        if is_success(current):
            return mark_offline(current)
        if isinstance(current, Loading):
            return ErrorState(CONNECTIVITY_HINT)
        # An ErrorState already explains why nothing is shown
        return current

    def _on_refresh_success(self, current: Any) -> Any:
        if is_success(current):
            return replace(current, is_offline=False)
        if isinstance(current, ErrorState) and not self._storage_failed:
            # Connectivity is back; wait for the cache to deliver data
            return LOADING
        return current

    async def _collect(self) -> None:
        try:
            async with aclosing(self._observe()) as values:
                async for value in values:
                    self._cell.update(
                        lambda current, value=value: self._from_emission(current, value)
                    )
                    self._cache_loaded.set()
        except Exception as e:
            self.log.error(f"Cache subscription failed: {e}")
            self._storage_failed = True
            self._cell.set(ErrorState(_error_message(e)))
        finally:
            self._cache_loaded.set()

    async def _run_refresh(self) -> None:
        try:
            await self._fetch()
        except RefreshError as e:
            self.log.warning(f"Refresh failed, showing cached data if any: {e}")
            if self._started:
                # Judge the failure against the first cache snapshot, not the initial Loading
                await self._cache_loaded.wait()
            self._cell.update(self._on_refresh_failure)
        except PostSyncError as e:
            self.log.error(f"Refresh could not be stored: {e}")
            self._storage_failed = True
            self._cell.set(ErrorState(_error_message(e)))
        else:
            self._cell.update(self._on_refresh_success)


class PostListReducer(_PostStateReducer[list[Post], PostListSuccess]):
    """State for the post list screen.

    Example:
        >>> async with PostListReducer(repository) as reducer:
        ...     async for state in reducer.states():
        ...         render(state)
    """

    screen = "post_list"

    @property
    def state(self) -> PostListState:
        return self._cell.value

    def _observe(self) -> AsyncIterator[list[Post]]:
        return self.repository.posts()

    async def _fetch(self) -> list[Post]:
        return await self.repository.refresh_all()

    def _success(self, value: list[Post]) -> PostListSuccess | None:
        if not value:
            return None
        return PostListSuccess(posts=tuple(value))


class PostDetailReducer(_PostStateReducer[Post | None, PostDetailSuccess]):
    """State for the post detail screen, keyed by one post id."""

    screen = "post_detail"

    def __init__(self, repository: PostRepository, post_id: int) -> None:
        self.post_id = post_id
        super().__init__(repository)

    @property
    def state(self) -> PostDetailState:
        return self._cell.value

    def _log_context(self) -> dict[str, Any]:
        return {"screen": self.screen, "post_id": self.post_id}

    def _observe(self) -> AsyncIterator[Post | None]:
        return self.repository.post_by_id(self.post_id)

    async def _fetch(self) -> Post:
        return await self.repository.refresh_by_id(self.post_id)

    def _success(self, value: Post | None) -> PostDetailSuccess | None:
        if value is None:
            return None
        return PostDetailSuccess(post=value)
