"""
Tests for PostRepository.

Pairs a real in-memory SQLite cache with the fake remote from conftest.
"""

import asyncio
from contextlib import aclosing
from unittest.mock import AsyncMock

import pytest

from offline_posts.cache import PostRecord
from offline_posts.exceptions import (
    NetworkFailureError,
    PostNotFoundError,
    RefreshError,
    StorageFailureError,
)
from offline_posts.models import Post
from offline_posts.repository import PostRepository


def post(post_id: int, title: str | None = None) -> Post:
    return Post(id=post_id, author_id=1, title=title or f"Post {post_id}", body=f"Body {post_id}")


async def next_emission(iterator, timeout: float = 1.0):
    return await asyncio.wait_for(anext(iterator), timeout)


class TestRefresh:
    """Tests for refresh_all / refresh_by_id."""

    @pytest.mark.asyncio
    async def test_refresh_all_populates_cache(self, repository, remote, cache_store):
        remote.posts = {p.id: p for p in [post(5), post(2), post(8), post(1)]}
        remote.order = [5, 2, 8, 1]

        returned = await repository.refresh_all()

        assert [p.id for p in returned] == [5, 2, 8, 1]
        assert [r.id for r in await cache_store.get_all()] == [1, 2, 5, 8]

    @pytest.mark.asyncio
    async def test_refresh_replaces_by_id(self, repository, remote, cache_store):
        remote.posts = {1: post(1, "A")}
        await repository.refresh_all()
        remote.posts = {1: post(1, "B")}

        await repository.refresh_all()

        assert await cache_store.get_all() == [PostRecord.from_post(post(1, "B"))]

    @pytest.mark.asyncio
    async def test_refresh_keeps_posts_missing_remotely(self, repository, remote, cache_store):
        """Refresh upserts; it never deletes cached posts."""
        remote.posts = {1: post(1), 2: post(2)}
        await repository.refresh_all()
        remote.posts = {2: post(2, "updated")}

        await repository.refresh_all()

        assert [r.id for r in await cache_store.get_all()] == [1, 2]

    @pytest.mark.asyncio
    async def test_failed_refresh_leaves_cache_untouched(self, repository, remote, cache_store):
        remote.posts = {1: post(1)}
        await repository.refresh_all()
        remote.offline = True

        with pytest.raises(NetworkFailureError):
            await repository.refresh_all()

        assert [r.id for r in await cache_store.get_all()] == [1]

    @pytest.mark.asyncio
    async def test_failed_refresh_does_not_write(self, remote):
        """No cache write is attempted when the fetch fails."""
        cache = AsyncMock()
        repository = PostRepository(cache, remote)
        remote.offline = True

        with pytest.raises(RefreshError):
            await repository.refresh_all()
        with pytest.raises(RefreshError):
            await repository.refresh_by_id(1)

        cache.upsert_many.assert_not_called()
        cache.upsert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_by_id(self, repository, remote, cache_store):
        remote.posts = {3: post(3)}

        returned = await repository.refresh_by_id(3)

        assert returned == post(3)
        assert await cache_store.get_by_id(3) == PostRecord.from_post(post(3))

    @pytest.mark.asyncio
    async def test_refresh_by_id_not_found(self, repository, remote, cache_store):
        with pytest.raises(PostNotFoundError):
            await repository.refresh_by_id(999)

        assert await cache_store.count() == 0

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, remote):
        cache = AsyncMock()
        cache.upsert_many.side_effect = StorageFailureError("upsert")
        remote.posts = {1: post(1)}

        with pytest.raises(StorageFailureError):
            await PostRepository(cache, remote).refresh_all()

    @pytest.mark.asyncio
    async def test_clear_cache(self, repository, remote, cache_store):
        remote.posts = {1: post(1)}
        await repository.refresh_all()

        await repository.clear_cache()

        assert await cache_store.count() == 0


class TestLiveReads:
    """Tests for posts() / post_by_id()."""

    @pytest.mark.asyncio
    async def test_posts_emit_empty_then_refreshed(self, repository, remote):
        remote.posts = {p.id: p for p in [post(5), post(2)]}

        async with aclosing(repository.posts()) as stream:
            assert await next_emission(stream) == []

            await repository.refresh_all()

            assert await next_emission(stream) == [post(2), post(5)]

    @pytest.mark.asyncio
    async def test_reads_survive_failed_refresh(self, repository, remote):
        """A failing refresh raises to its caller only; the stream keeps going."""
        remote.posts = {1: post(1)}
        await repository.refresh_all()

        async with aclosing(repository.posts()) as stream:
            assert await next_emission(stream) == [post(1)]

            remote.offline = True
            with pytest.raises(NetworkFailureError):
                await repository.refresh_all()

            remote.offline = False
            remote.posts = {1: post(1, "again")}
            await repository.refresh_all()

            assert await next_emission(stream) == [post(1, "again")]

    @pytest.mark.asyncio
    async def test_post_by_id_absent_then_present(self, repository, remote):
        remote.posts = {1: post(1)}

        async with aclosing(repository.post_by_id(1)) as stream:
            assert await next_emission(stream) is None

            await repository.refresh_by_id(1)

            assert await next_emission(stream) == post(1)

    @pytest.mark.asyncio
    async def test_bulk_refresh_reaches_single_post_view(self, repository, remote):
        remote.posts = {1: post(1), 2: post(2)}

        async with aclosing(repository.post_by_id(2)) as stream:
            assert await next_emission(stream) is None

            await repository.refresh_all()

            assert await next_emission(stream) == post(2)

    @pytest.mark.asyncio
    async def test_repositories_sharing_a_cache(self, cache_store, remote):
        """A refresh through one repository is seen by the other's readers."""
        writer = PostRepository(cache_store, remote)
        reader = PostRepository(cache_store, remote)
        remote.posts = {7: post(7)}

        async with aclosing(reader.posts()) as stream:
            assert await next_emission(stream) == []

            await writer.refresh_by_id(7)

            assert await next_emission(stream) == [post(7)]

    @pytest.mark.asyncio
    async def test_closing_stream_releases_subscription(self, repository, cache_store):
        stream = repository.posts()
        await next_emission(stream)
        assert cache_store.subscriber_count == 1

        await stream.aclose()

        assert cache_store.subscriber_count == 0
