"""
Shared test configuration and fixtures.

Cache tests run against real SQLite (in-memory). Repository and reducer
tests pair it with an in-memory remote source that can be switched
offline or held mid-request.
"""

import asyncio
import logging
import os

import pytest

from offline_posts.cache import SQLiteCacheStore
from offline_posts.config import CacheConfig
from offline_posts.exceptions import NetworkFailureError, PostNotFoundError
from offline_posts.models import Post
from offline_posts.remote.base import RemoteSource
from offline_posts.repository import PostRepository

logger = logging.getLogger(__name__)


class FakeRemoteSource(RemoteSource):
    """
    In-memory remote source for testing without a network.

    - ``offline = True`` makes every call fail with NetworkFailureError
    - ``gate`` (an asyncio.Event) holds calls until it is set
    - ``order`` controls the order fetch_all returns posts in
    """

    def __init__(self, posts: list[Post] | None = None):
        self.posts: dict[int, Post] = {}
        self.order: list[int] | None = None
        self.offline = False
        self.gate: asyncio.Event | None = None
        self.fetch_all_calls = 0
        self.fetch_by_id_calls: list[int] = []
        for post in posts or []:
            self.posts[post.id] = post

    async def _wait(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    async def fetch_all(self) -> list[Post]:
        self.fetch_all_calls += 1
        await self._wait()
        if self.offline:
            raise NetworkFailureError("fake://posts", reason="offline")
        if self.order is not None:
            return [self.posts[post_id] for post_id in self.order]
        return list(self.posts.values())

    async def fetch_by_id(self, post_id: int) -> Post:
        self.fetch_by_id_calls.append(post_id)
        await self._wait()
        if self.offline:
            raise NetworkFailureError(f"fake://posts/{post_id}", reason="offline")
        if post_id not in self.posts:
            raise PostNotFoundError(post_id)
        return self.posts[post_id]


@pytest.fixture
async def cache_store():
    """Fixture providing an initialized in-memory SQLite cache."""
    store = await SQLiteCacheStore.create(CacheConfig(db_path=":memory:"))
    yield store
    await store.close()


@pytest.fixture
def remote():
    """Fixture providing an online fake remote with no posts."""
    return FakeRemoteSource()


@pytest.fixture
def repository(cache_store, remote):
    """Fixture providing a repository over the in-memory cache and fake remote."""
    return PostRepository(cache_store, remote)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep OFFLINE_POSTS_* settings from the host out of the tests."""
    for name in list(os.environ):
        if name.startswith("OFFLINE_POSTS_"):
            monkeypatch.delenv(name, raising=False)
