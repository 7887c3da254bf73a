"""
Offline-first post repository.

Combines the local cache and the remote source:

- Reads are live queries over the cache, mapped to Post values. They keep
  emitting for as long as the caller iterates and never fail because of
  the network.
- Refreshes are one-shot remote fetches whose results are upserted into
  the cache, which makes every live query re-emit. A failed refresh raises
  to its caller only; the cache and its subscribers are left untouched.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from .cache.base import CacheStore, PostRecord
from .exceptions import RefreshError
from .models import Post
from .remote.base import RemoteSource

logger = logging.getLogger(__name__)


class PostRepository:
    """Single reactive view of posts over a cache and a remote source.

    The cache store and remote source are shared, process-wide objects; the
    repository holds no locks over them, so several repositories (or
    screens) can read and refresh concurrently.
    """

    def __init__(self, cache: CacheStore, remote: RemoteSource) -> None:
        self.cache = cache
        self.remote = remote

    async def posts(self) -> AsyncIterator[list[Post]]:
        """Live sequence of every cached post, ascending by id."""
        async with aclosing(self.cache.observe_all()) as records:
            async for batch in records:
                yield [record.to_post() for record in batch]

    async def post_by_id(self, post_id: int) -> AsyncIterator[Post | None]:
        """Live view of one cached post; None while it is not cached."""
        async with aclosing(self.cache.observe_by_id(post_id)) as records:
            async for record in records:
                yield record.to_post() if record is not None else None

    async def refresh_all(self) -> list[Post]:
        """Fetch every post from the remote and write them to the cache.

        Returns:
            The posts as returned by the remote

        Raises:
            RefreshError: If the fetch failed; the cache is not modified
            StorageFailureError: If the fetched posts could not be stored
        """
        try:
            posts = await self.remote.fetch_all()
        except RefreshError as e:
            logger.warning(f"Refresh of all posts failed: {e}")
            raise

        await self.cache.upsert_many([PostRecord.from_post(post) for post in posts])
        logger.info(f"Refreshed {len(posts)} posts")
        return posts

    async def refresh_by_id(self, post_id: int) -> Post:
        """Fetch one post from the remote and write it to the cache.

        Raises:
            PostNotFoundError: If the remote has no such post
            NetworkFailureError: If the fetch failed for any other reason
            StorageFailureError: If the fetched post could not be stored
        """
        try:
            post = await self.remote.fetch_by_id(post_id)
        except RefreshError as e:
            logger.warning(f"Refresh of post {post_id} failed: {e}")
            raise

        await self.cache.upsert_one(PostRecord.from_post(post))
        logger.info(f"Refreshed post {post_id}")
        return post

    async def clear_cache(self) -> None:
        """Drop every cached post. Not part of the normal sync flow."""
        await self.cache.clear()
