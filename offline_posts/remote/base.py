"""
Abstract remote source interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import Post


class RemoteSource(ABC):
    """Source of truth for posts.

    Calls are one-shot and never retried internally; retry policy belongs
    to the caller. Failures raise a RefreshError subclass:
    PostNotFoundError when the remote reports no such post, and
    NetworkFailureError for everything else.
    """

    @abstractmethod
    async def fetch_all(self) -> list[Post]:
        """Fetch every post, in the order the remote returns them."""
        ...

    @abstractmethod
    async def fetch_by_id(self, post_id: int) -> Post:
        """Fetch a single post."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None
