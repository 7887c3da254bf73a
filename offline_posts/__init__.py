"""
Offline Posts

Offline-first data layer for a remote collection of posts.

Provides:
- A durable SQLite cache with live queries that re-emit on every write
- An HTTP remote source with bounded timeouts
- A repository that keeps showing cached data when refreshes fail
- Screen reducers that derive Loading / Success / Error states

Usage:

    >>> from offline_posts import PostViewerApp, SyncConfig
    >>> async with await PostViewerApp.create(SyncConfig.load()) as app:
    ...     async with app.post_list() as posts:
    ...         async for state in posts.states():
    ...             render(state)
    ...         await posts.refresh()
"""

from .app import PostViewerApp
from .cache import CacheStore, PostRecord, SQLiteCacheStore
from .config import CacheConfig, RemoteConfig, SyncConfig, TimeoutConfig
from .exceptions import (
    ConfigurationError,
    NetworkFailureError,
    PostNotFoundError,
    PostSyncError,
    RefreshError,
    StorageFailureError,
)
from .models import Post
from .remote import HttpRemoteSource, RemoteSource
from .repository import PostRepository
from .state import (
    LOADING,
    ErrorState,
    Loading,
    PostDetailReducer,
    PostDetailState,
    PostDetailSuccess,
    PostListReducer,
    PostListState,
    PostListSuccess,
    StateCell,
)

__version__ = "0.1.0"

__all__ = [
    # Composition
    "PostViewerApp",
    "PostRepository",
    # Configuration
    "SyncConfig",
    "RemoteConfig",
    "CacheConfig",
    "TimeoutConfig",
    # Domain
    "Post",
    "PostRecord",
    # Cache
    "CacheStore",
    "SQLiteCacheStore",
    # Remote
    "RemoteSource",
    "HttpRemoteSource",
    # State
    "PostListReducer",
    "PostDetailReducer",
    "StateCell",
    "Loading",
    "LOADING",
    "PostListSuccess",
    "PostDetailSuccess",
    "ErrorState",
    "PostListState",
    "PostDetailState",
    # Exceptions
    "PostSyncError",
    "RefreshError",
    "NetworkFailureError",
    "PostNotFoundError",
    "StorageFailureError",
    "ConfigurationError",
]
