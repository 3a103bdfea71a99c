"""
SQLite backed result cache with sliding expiration.
"""

import asyncio
import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import aiosqlite

from .models import CacheEntry

logger = logging.getLogger(__name__)


def _to_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class SQLiteResultCache:
    """
    Caches query results per (account, query).

    Every hit pushes the expiry ``sliding_expiration`` seconds forward, so
    entries only expire after going unused for that long.
    """

    def __init__(
        self,
        db_path: str,
        sliding_expiration: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.db_path = db_path
        self.sliding_expiration = sliding_expiration
        self._clock = clock
        self._connection: Optional[aiosqlite.Connection] = None
        self._key_locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._key_users: Dict[Tuple[str, str], int] = {}

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            if self.db_path != ":memory:":
                os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    async def initialize(self) -> None:
        """Create cache table."""
        conn = await self._get_connection()

        await conn.executescript("""
            CREATE TABLE IF NOT EXISTS results (
                account TEXT NOT NULL,
                query TEXT NOT NULL,
                payload TEXT NOT NULL,
                created_at REAL NOT NULL,
                expires_at REAL NOT NULL,
                PRIMARY KEY (account, query)
            );

            CREATE INDEX IF NOT EXISTS idx_results_expires_at ON results(expires_at);
        """)
        await conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _row_to_entry(self, row: aiosqlite.Row) -> CacheEntry:
        return CacheEntry(
            account=row["account"],
            query=row["query"],
            payload=json.loads(row["payload"]),
            created_at=_to_datetime(row["created_at"]),
            expires_at=_to_datetime(row["expires_at"]),
        )

    async def get_entry(self, account: str, query: str) -> Optional[CacheEntry]:
        """Return a live entry and slide its expiry, or None."""
        conn = await self._get_connection()
        now = self._clock()

        cursor = await conn.execute(
            "SELECT * FROM results WHERE account = ? AND query = ?",
            (account, query)
        )
        row = await cursor.fetchone()
        if row is None:
            return None

        if row["expires_at"] <= now:
            await conn.execute(
                "DELETE FROM results WHERE account = ? AND query = ?",
                (account, query)
            )
            await conn.commit()
            return None

        expires_at = now + self.sliding_expiration
        await conn.execute(
            "UPDATE results SET expires_at = ? WHERE account = ? AND query = ?",
            (expires_at, account, query)
        )
        await conn.commit()

        entry = self._row_to_entry(row)
        entry.expires_at = _to_datetime(expires_at)
        return entry

    async def get(self, account: str, query: str) -> Optional[Any]:
        """Cached payload or None."""
        entry = await self.get_entry(account, query)
        return entry.payload if entry else None

    async def set(self, account: str, query: str, payload: Any) -> None:
        """Store a payload (must be JSON serializable)."""
        conn = await self._get_connection()
        now = self._clock()
        await conn.execute(
            """
            INSERT OR REPLACE INTO results (account, query, payload, created_at, expires_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (account, query, json.dumps(payload), now, now + self.sliding_expiration)
        )
        await conn.commit()

    async def invalidate(self, account: str, query: Optional[str] = None) -> int:
        """Drop one query, or every query of an account."""
        conn = await self._get_connection()
        if query is None:
            cursor = await conn.execute(
                "DELETE FROM results WHERE account = ?", (account,)
            )
        else:
            cursor = await conn.execute(
                "DELETE FROM results WHERE account = ? AND query = ?",
                (account, query)
            )
        await conn.commit()
        return cursor.rowcount

    async def purge_expired(self) -> int:
        """Delete expired entries. Returns number deleted."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            "DELETE FROM results WHERE expires_at <= ?", (self._clock(),)
        )
        await conn.commit()
        if cursor.rowcount:
            logger.debug(f"Purged {cursor.rowcount} expired cache entries")
        return cursor.rowcount

    async def get_or_fetch(
        self,
        account: str,
        query: str,
        fetch: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Cached payload, or the result of ``fetch`` which is then cached.

        Concurrent callers for the same key wait for a single fetch.
        """
        key = (account, query)
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        self._key_users[key] = self._key_users.get(key, 0) + 1
        try:
            async with lock:
                cached = await self.get(account, query)
                if cached is not None:
                    logger.debug(f"Cache hit for {account}: {query}")
                    return cached

                logger.debug(f"Cache miss for {account}: {query}")
                payload = await fetch()
                await self.set(account, query, payload)
                return payload
        finally:
            # Last user of the key drops its lock
            self._key_users[key] -= 1
            if not self._key_users[key]:
                del self._key_users[key]
                del self._key_locks[key]
