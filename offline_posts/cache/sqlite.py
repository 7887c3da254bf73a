"""
SQLite cache store.

Persists posts in a single ``posts`` table through aiosqlite and serves
live queries from the in-process subscription registry. The table layout
is versioned with ``PRAGMA user_version``; a version change drops and
recreates the table.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import aiosqlite

from ..config import CacheConfig
from ..exceptions import StorageFailureError
from .base import CacheStore, PostRecord
from .live import ALL_RECORDS, SubscriptionRegistry, live_query

logger = logging.getLogger(__name__)

T = TypeVar("T")

POST_COLUMNS = ("id", "user_id", "title", "body")

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    body TEXT NOT NULL
)
"""

_UPSERT_SQL = """
INSERT INTO posts (id, user_id, title, body)
VALUES (?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    user_id = excluded.user_id,
    title = excluded.title,
    body = excluded.body
"""

_SELECT_ALL_SQL = f"SELECT {', '.join(POST_COLUMNS)} FROM posts ORDER BY id ASC"
_SELECT_ONE_SQL = f"SELECT {', '.join(POST_COLUMNS)} FROM posts WHERE id = ?"


def _row_to_record(row: Any) -> PostRecord:
    return PostRecord(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        body=row["body"],
    )


def _record_params(record: PostRecord) -> tuple[int, int, str, str]:
    return (record.id, record.user_id, record.title, record.body)


class SQLiteCacheStore(CacheStore):
    """
    SQLite-backed post cache with live queries.

    Writes are serialized by a lock that also covers the notification of
    subscribers, so every subscriber receives snapshots in commit order.
    The first snapshot of a live query waits for that lock; one-shot reads
    share the connection without it.
    """

    def __init__(self, config: CacheConfig | None = None):
        """
        Initialize the store. Call ``initialize()`` (or use ``create()``)
        before any other operation.

        Args:
            config: Cache configuration (defaults to CacheConfig())
        """
        self.config = config or CacheConfig()
        self.conn: aiosqlite.Connection | None = None
        self._initialized = False
        self._write_lock = asyncio.Lock()
        self._registry = SubscriptionRegistry()

    @classmethod
    async def create(cls, config: CacheConfig | None = None) -> SQLiteCacheStore:
        """Create and initialize a store."""
        store = cls(config)
        await store.initialize()
        return store

    @property
    def subscriber_count(self) -> int:
        """Number of active live queries."""
        return len(self._registry)

    async def initialize(self) -> None:
        """Open the database and make sure the table layout is current."""
        if self._initialized:
            return

        try:
            if not self.config.is_memory:
                Path(self.config.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = await aiosqlite.connect(str(self.config.db_path))
            self.conn.row_factory = aiosqlite.Row
            await self._ensure_schema()
        except (sqlite3.Error, OSError) as e:
            logger.error(
                f"Failed to open cache database {self.config.db_path}: {e}",
                extra={"operation": "initialize"},
            )
            if self.conn is not None:
                await self.conn.close()
                self.conn = None
            raise StorageFailureError("initialize", e) from e

        self._initialized = True
        logger.info(
            f"Cache store ready: path={self.config.db_path}, "
            f"schema_version={self.config.schema_version}"
        )

    async def _ensure_schema(self) -> None:
        assert self.conn is not None
        async with self.conn.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
        current_version = row[0] if row else 0
        target_version = int(self.config.schema_version)

        if current_version != target_version:
            if current_version != 0:
                logger.warning(
                    f"Cache schema version changed ({current_version} -> {target_version}), "
                    "recreating posts table"
                )
            await self.conn.execute("DROP TABLE IF EXISTS posts")
            await self.conn.execute(_CREATE_TABLE_SQL)
            # PRAGMA does not accept bound parameters
            await self.conn.execute(f"PRAGMA user_version = {target_version}")
        else:
            await self.conn.execute(_CREATE_TABLE_SQL)
        await self.conn.commit()

    def _connection(self, operation: str) -> aiosqlite.Connection:
        if self.conn is None:
            raise StorageFailureError(operation, RuntimeError("cache store is not open"))
        return self.conn

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_all(self) -> list[PostRecord]:
        conn = self._connection("get_all")
        try:
            async with conn.execute(_SELECT_ALL_SQL) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Cache read failed: {e}", extra={"operation": "get_all"})
            raise StorageFailureError("get_all", e) from e
        return [_row_to_record(row) for row in rows]

    async def get_by_id(self, post_id: int) -> PostRecord | None:
        conn = self._connection("get_by_id")
        try:
            async with conn.execute(_SELECT_ONE_SQL, (post_id,)) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(
                f"Cache read failed for post {post_id}: {e}", extra={"operation": "get_by_id"}
            )
            raise StorageFailureError("get_by_id", e) from e
        return _row_to_record(row) if row else None

    async def count(self) -> int:
        conn = self._connection("count")
        try:
            async with conn.execute("SELECT COUNT(*) FROM posts") as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageFailureError("count", e) from e
        return int(row[0]) if row else 0

    def observe_all(self) -> AsyncIterator[list[PostRecord]]:
        return live_query(self._registry, ALL_RECORDS, lambda: self._snapshot(self.get_all))

    def observe_by_id(self, post_id: int) -> AsyncIterator[PostRecord | None]:
        return live_query(
            self._registry, post_id, lambda: self._snapshot(lambda: self.get_by_id(post_id))
        )

    async def _snapshot(self, read: Callable[[], Awaitable[T]]) -> T:
        """Run the first read of a live query outside any write transaction.

        Writers hold the lock from the first statement until subscribers are
        notified, so the snapshot never includes rows that may still roll back.
        """
        async with self._write_lock:
            return await read()

    # =========================================================================
    # Writes
    # =========================================================================

    async def upsert_many(self, records: list[PostRecord]) -> None:
        if not records:
            return

        async with self._write_lock:
            conn = self._connection("upsert")
            try:
                await conn.executemany(_UPSERT_SQL, [_record_params(r) for r in records])
                await conn.commit()
            except sqlite3.Error as e:
                await self._rollback()
                logger.error(
                    f"Cache upsert of {len(records)} records failed: {e}",
                    extra={"operation": "upsert"},
                )
                raise StorageFailureError("upsert", e) from e

            logger.debug(f"Upserted {len(records)} records")
            await self._notify({r.id for r in records})

    async def update_one(self, record: PostRecord) -> bool:
        async with self._write_lock:
            conn = self._connection("update")
            try:
                cursor = await conn.execute(
                    "UPDATE posts SET user_id = ?, title = ?, body = ? WHERE id = ?",
                    (record.user_id, record.title, record.body, record.id),
                )
                updated = cursor.rowcount > 0
                await cursor.close()
                await conn.commit()
            except sqlite3.Error as e:
                await self._rollback()
                logger.error(
                    f"Cache update of post {record.id} failed: {e}", extra={"operation": "update"}
                )
                raise StorageFailureError("update", e) from e

            if updated:
                await self._notify({record.id})
            return updated

    async def clear(self) -> None:
        async with self._write_lock:
            conn = self._connection("clear")
            try:
                await conn.execute("DELETE FROM posts")
                await conn.commit()
            except sqlite3.Error as e:
                await self._rollback()
                logger.error(f"Cache clear failed: {e}", extra={"operation": "clear"})
                raise StorageFailureError("clear", e) from e

            logger.info("Cache cleared")
            await self._notify(None)

    async def _rollback(self) -> None:
        if self.conn is None:
            return
        try:
            await self.conn.rollback()
        except sqlite3.Error as e:
            logger.error(f"Cache rollback failed: {e}")

    async def _notify(self, affected_ids: set[int] | None) -> None:
        """Push fresh snapshots to every subscription the write touched.

        Must be called with the write lock held.
        """
        subscriptions = self._registry.matching(affected_ids)
        if not subscriptions:
            return

        snapshots: dict[int | None, Any] = {}
        failures: dict[int | None, StorageFailureError] = {}
        for subscription in subscriptions:
            key = subscription.key
            if key not in snapshots and key not in failures:
                try:
                    if key is ALL_RECORDS:
                        snapshots[key] = await self.get_all()
                    else:
                        snapshots[key] = await self.get_by_id(key)
                except StorageFailureError as e:
                    failures[key] = e

            if key in failures:
                subscription.fail(failures[key])
            else:
                subscription.deliver(snapshots[key])

        logger.debug(f"Notified {len(subscriptions)} live queries")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """End live queries and close the database connection."""
        self._registry.end_all()
        if self.conn is not None:
            await self.conn.close()
            self.conn = None
        self._initialized = False

    async def __aenter__(self) -> SQLiteCacheStore:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
