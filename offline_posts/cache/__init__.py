"""
Local post cache.

Provides the CacheStore contract, the SQLite implementation and the
live-query machinery behind it.

Example:
    >>> from offline_posts.cache import SQLiteCacheStore
    >>> store = await SQLiteCacheStore.create(CacheConfig(db_path=":memory:"))
    >>> async for records in store.observe_all():
    ...     print([r.id for r in records])
"""

from .base import CacheStore, PostRecord
from .live import ALL_RECORDS, Subscription, SubscriptionRegistry, live_query
from .sqlite import SQLiteCacheStore

__all__ = [
    "CacheStore",
    "PostRecord",
    "SQLiteCacheStore",
    # Live queries
    "ALL_RECORDS",
    "Subscription",
    "SubscriptionRegistry",
    "live_query",
]
