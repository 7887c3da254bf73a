"""
Composition root.

Builds the process-wide cache store, remote source and repository once
and hands out screen reducers that share them.
"""

from __future__ import annotations

import logging

from .cache.base import CacheStore
from .cache.sqlite import SQLiteCacheStore
from .config import SyncConfig
from .remote.base import RemoteSource
from .remote.http import HttpRemoteSource
from .repository import PostRepository
from .state.reducers import PostDetailReducer, PostListReducer

logger = logging.getLogger(__name__)


class PostViewerApp:
    """Wires the data layer together.

    Example:
        >>> async with await PostViewerApp.create(SyncConfig.load()) as app:
        ...     async with app.post_list() as posts:
        ...         state = await posts.wait_for(lambda s: not isinstance(s, Loading))
    """

    def __init__(self, config: SyncConfig, cache: CacheStore, remote: RemoteSource) -> None:
        self.config = config
        self.cache = cache
        self.remote = remote
        self.repository = PostRepository(cache, remote)

    @classmethod
    async def create(cls, config: SyncConfig | None = None) -> PostViewerApp:
        """Open the SQLite cache and prepare the HTTP remote source."""
        config = config or SyncConfig.load()
        cache = await SQLiteCacheStore.create(config.cache)
        remote = HttpRemoteSource(config.remote)
        logger.info(f"Post viewer ready: remote={config.remote.base_url}")
        return cls(config, cache, remote)

    def post_list(self) -> PostListReducer:
        """Reducer for the post list screen (not started)."""
        return PostListReducer(self.repository)

    def post_detail(self, post_id: int) -> PostDetailReducer:
        """Reducer for one post's detail screen (not started)."""
        return PostDetailReducer(self.repository, post_id)

    async def close(self) -> None:
        await self.remote.close()
        await self.cache.close()

    async def __aenter__(self) -> PostViewerApp:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
