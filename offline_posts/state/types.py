"""
UI-facing states for the post screens.

Each screen moves through a closed set of states:

    Loading -> Success(data, is_offline) | ErrorState(message)

``is_offline`` only exists on Success states: it marks data that comes
from the cache after the latest refresh attempt failed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TypeAlias

from ..models import Post

CONNECTIVITY_HINT = "Check your internet connection"
UNKNOWN_ERROR = "Unknown error occurred"


@dataclass(frozen=True)
class Loading:
    """Nothing matching is cached yet."""


LOADING = Loading()


@dataclass(frozen=True)
class PostListSuccess:
    """Cached posts are available, ascending by id."""

    posts: tuple[Post, ...]
    is_offline: bool = False


@dataclass(frozen=True)
class PostDetailSuccess:
    """The requested post is cached."""

    post: Post
    is_offline: bool = False


@dataclass(frozen=True)
class ErrorState:
    """No data can be shown.

    Reached when a refresh fails with nothing cached, or when the cache
    itself fails. Carries no stale data.
    """

    message: str


PostListState: TypeAlias = Loading | PostListSuccess | ErrorState
PostDetailState: TypeAlias = Loading | PostDetailSuccess | ErrorState

SUCCESS_STATES = (PostListSuccess, PostDetailSuccess)


def is_success(state: object) -> bool:
    return isinstance(state, SUCCESS_STATES)


def mark_offline(state: PostListSuccess | PostDetailSuccess) -> PostListSuccess | PostDetailSuccess:
    """Flag a Success state as stale."""
    return replace(state, is_offline=True)
