"""
Abstract cache store interface.

Defines the contract that local post caches must implement: live queries
that keep emitting as the data changes, plus keyed upsert writes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass

from ..models import Post


@dataclass(frozen=True)
class PostRecord:
    """Persisted projection of a post, one row per id."""

    id: int
    user_id: int
    title: str
    body: str

    @classmethod
    def from_post(cls, post: Post) -> PostRecord:
        return cls(id=post.id, user_id=post.author_id, title=post.title, body=post.body)

    def to_post(self) -> Post:
        return Post(id=self.id, author_id=self.user_id, title=self.title, body=self.body)


class CacheStore(ABC):
    """Abstract interface for the local post cache.

    Writes are upserts keyed by id: an existing record is fully replaced,
    never merged field by field. Every committed write is pushed to the
    live queries it affects before the write call returns.

    Failures of the underlying storage raise StorageFailureError.
    """

    @abstractmethod
    def observe_all(self) -> AsyncIterator[list[PostRecord]]:
        """Live query over every record, ascending by id.

        Emits the current snapshot immediately (an empty list for an empty
        store), then a new snapshot after every write.
        """
        ...

    @abstractmethod
    def observe_by_id(self, post_id: int) -> AsyncIterator[PostRecord | None]:
        """Live query for a single record; emits None while it is absent."""
        ...

    @abstractmethod
    async def upsert_many(self, records: list[PostRecord]) -> None:
        """Insert or replace records in a single transaction."""
        ...

    async def upsert_one(self, record: PostRecord) -> None:
        """Insert or replace one record."""
        await self.upsert_many([record])

    @abstractmethod
    async def update_one(self, record: PostRecord) -> bool:
        """Replace an existing record.

        Returns:
            True if the record existed and was updated, False otherwise
        """
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove every record."""
        ...

    @abstractmethod
    async def get_all(self) -> list[PostRecord]:
        """One-shot read of every record, ascending by id."""
        ...

    @abstractmethod
    async def get_by_id(self, post_id: int) -> PostRecord | None:
        """One-shot read of a single record."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of cached records."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release resources and end all live queries."""
        ...
