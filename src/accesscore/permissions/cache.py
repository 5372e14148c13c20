"""Decision cache: memoized verdicts per (principal, claim) with a TTL.

Provides:
- ``DecisionCache`` — in-process, thread-safe, injectable clock.
- ``RedisDecisionCache`` — shared cache for multi-process deployments.
- ``CacheStats`` — size / hit-rate snapshot.

Staleness is decided at read time: an entry with ``now - stored_at >= ttl``
is treated as absent. Reads drop the stale entry they hit and writes sweep
the principal's bucket; nothing evicts in the background.

The cache holds no reference to roles or users, so it cannot notice when
they change. Role and user management must call ``invalidate()`` after
every write that affects grants.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..exceptions import CacheBackendError
from .claims import ClaimLike

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0  # 5 minutes

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    oldest_entry_age: float = 0.0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class DecisionCacheBackend(Protocol):
    """What the decision engine needs from a cache."""

    def get(self, principal_id: str, claim: ClaimLike) -> Optional[bool]: ...

    def put(self, principal_id: str, claim: ClaimLike, granted: bool) -> None: ...

    def invalidate(self, principal_id: Optional[str] = None) -> int: ...

    def stats(self) -> CacheStats: ...


class DecisionCache:
    """In-memory decision cache.

    Entries are grouped per principal so invalidating one principal does
    not scan everyone else. A single lock guards all access; the critical
    sections are dict operations only.

    Args:
        ttl_seconds: Entry lifetime.
        clock: Monotonic seconds source; inject a fake one in tests.

    Example::

        cache = DecisionCache(ttl_seconds=300)
        cache.put("u-1", "member:view:all", True)
        cache.get("u-1", "member:view:all")  # True
        cache.invalidate("u-1")
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Clock = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, dict[str, tuple[bool, float]]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, principal_id: str, claim: ClaimLike) -> Optional[bool]:
        key = str(claim)
        now = self._clock()
        with self._lock:
            bucket = self._entries.get(principal_id)
            entry = bucket.get(key) if bucket else None
            if entry is None:
                self._misses += 1
                return None
            granted, stored_at = entry
            if now - stored_at >= self._ttl:
                del bucket[key]
                if not bucket:
                    del self._entries[principal_id]
                self._misses += 1
                return None
            self._hits += 1
            return granted

    def put(self, principal_id: str, claim: ClaimLike, granted: bool) -> None:
        """Store a verdict, dropping the principal's expired entries."""
        now = self._clock()
        with self._lock:
            bucket = self._entries.setdefault(principal_id, {})
            expired = [key for key, (_, stored_at) in bucket.items() if now - stored_at >= self._ttl]
            for key in expired:
                del bucket[key]
            bucket[str(claim)] = (bool(granted), now)

    def invalidate(self, principal_id: Optional[str] = None) -> int:
        """Drop one principal's entries, or everything when no id is given.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            if principal_id is None:
                removed = sum(len(bucket) for bucket in self._entries.values())
                self._entries.clear()
            else:
                removed = len(self._entries.pop(principal_id, {}))
        if removed:
            logger.debug("Invalidated %d cached decisions (principal=%s)", removed, principal_id or "*")
        return removed

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            stored = [ts for bucket in self._entries.values() for _, ts in bucket.values()]
            return CacheStats(
                size=len(stored),
                hits=self._hits,
                misses=self._misses,
                oldest_entry_age=now - min(stored) if stored else 0.0,
            )

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._entries.values())


_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(value: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisDecisionCache:
    """Decision cache stored in Redis, shared between processes.

    Keys are ``{prefix}:{principal_id}:{claim}``; the TTL is enforced by
    Redis (``PX``). Backend errors are raised as CacheBackendError, which
    the engine logs and treats as a miss.

    Args:
        client: A ``redis.Redis`` client created with ``decode_responses=True``.
        ttl_seconds: Entry lifetime.
        prefix: Key namespace.
    """

    def __init__(
        self,
        client,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        prefix: str = "accesscore:decision",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._client = client
        self._ttl_ms = int(ttl_seconds * 1000)
        self._prefix = prefix
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, redis_url: str, **kwargs) -> RedisDecisionCache:
        import redis

        return cls(redis.Redis.from_url(redis_url, decode_responses=True), **kwargs)

    def _key(self, principal_id: str, claim: ClaimLike) -> str:
        return f"{self._prefix}:{principal_id}:{claim}"

    def _count(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def get(self, principal_id: str, claim: ClaimLike) -> Optional[bool]:
        import redis

        try:
            raw = self._client.get(self._key(principal_id, claim))
        except redis.RedisError as e:
            raise CacheBackendError(f"Decision cache read failed: {e}") from e
        self._count(raw is not None)
        if raw is None:
            return None
        return raw == "1"

    def put(self, principal_id: str, claim: ClaimLike, granted: bool) -> None:
        import redis

        try:
            self._client.set(self._key(principal_id, claim), "1" if granted else "0", px=self._ttl_ms)
        except redis.RedisError as e:
            raise CacheBackendError(f"Decision cache write failed: {e}") from e

    def invalidate(self, principal_id: Optional[str] = None) -> int:
        import redis

        if principal_id is None:
            pattern = f"{self._prefix}:*"
        else:
            pattern = f"{self._prefix}:{_escape_glob(principal_id)}:*"
        try:
            keys = list(self._client.scan_iter(match=pattern))
            if keys:
                self._client.delete(*keys)
        except redis.RedisError as e:
            raise CacheBackendError(f"Decision cache invalidation failed: {e}") from e
        return len(keys)

    def stats(self) -> CacheStats:
        import redis

        try:
            size = sum(1 for _ in self._client.scan_iter(match=f"{self._prefix}:*"))
        except redis.RedisError as e:
            raise CacheBackendError(f"Decision cache scan failed: {e}") from e
        with self._lock:
            return CacheStats(size=size, hits=self._hits, misses=self._misses)


__all__ = [
    "CacheStats",
    "DEFAULT_TTL_SECONDS",
    "DecisionCache",
    "DecisionCacheBackend",
    "RedisDecisionCache",
]
