"""Fingerprint-addressed itinerary cache with best-effort semantics.

Read failures (store errors, corrupted payloads, payloads failing validation
or the budget consistency check) are cache misses; write failures are logged
and swallowed. Entries only leave by TTL expiry.
"""

import hashlib
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import redis.asyncio as redis_asyncio
from pydantic import ValidationError

from backend.enrichment.models.itinerary import Itinerary
from backend.enrichment.models.request import GenerationRequest
from backend.enrichment.pipeline.budget import budget_violations
from backend.enrichment.ports import CacheStore
from backend.enrichment.utils.logging import StructuredPipelineLogger
from backend.enrichment.utils.metrics import PipelineMetrics

CACHE_PREFIX = "itinerary"
DEFAULT_CACHE_TTL_SECONDS = 60 * 60


def make_fingerprint(request: GenerationRequest) -> str:
    """Deterministic cache key for a request.

    The caller-supplied credential is excluded so identical trips share an
    entry regardless of whose key generated them.
    """
    data = request.model_dump(mode="json", exclude_none=True, exclude={"user_api_key"})
    sorted_json = json.dumps(data, sort_keys=True, ensure_ascii=False)
    hash_digest = hashlib.sha256(sorted_json.encode("utf-8")).hexdigest()
    return f"{CACHE_PREFIX}:{hash_digest}"


@dataclass
class CacheEntry:
    """Cached payload with metadata."""

    value: bytes
    cached_at: datetime
    ttl_seconds: int

    def is_fresh(self, now: datetime) -> bool:
        """Check if cache entry is still valid."""
        return (now - self.cached_at).total_seconds() < self.ttl_seconds


class InMemoryCacheStore:
    """Process-local cache store, used when no redis is configured and in tests."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._cache: dict[str, CacheEntry] = {}
        self._clock = clock or datetime.now

    async def get(self, key: str) -> bytes | None:
        """Get cached value if fresh, None otherwise."""
        entry = self._cache.get(key)
        now = self._clock()
        if entry and entry.is_fresh(now):
            return entry.value
        elif entry:
            # Expired - remove
            del self._cache[key]
        return None

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Store value with TTL."""
        self._cache[key] = CacheEntry(value=value, cached_at=self._clock(), ttl_seconds=ttl_seconds)

    def expire_all(self, delta: timedelta) -> None:
        """Age every entry by ``delta`` (test helper)."""
        for entry in self._cache.values():
            entry.cached_at -= delta


class RedisCacheStore:
    """Redis-backed cache store using SET ... EX."""

    def __init__(self, client: redis_asyncio.Redis) -> None:
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        """Build a store over a pooled client."""
        return cls(redis_asyncio.from_url(url))

    async def get(self, key: str) -> bytes | None:
        value = await self._redis.get(key)
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        await self._redis.set(key, value, ex=ttl_seconds)

    async def ping(self) -> bool:
        return bool(await self._redis.ping())


def create_cache_store(redis_url: str | None) -> CacheStore | None:
    """Factory: redis when configured, otherwise no store."""
    if redis_url:
        return RedisCacheStore.from_url(redis_url)
    return None


class ItineraryCache:
    """Best-effort itinerary cache keyed by request fingerprint."""

    def __init__(
        self,
        store: CacheStore | None,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        metrics: PipelineMetrics | None = None,
        stage_logger: StructuredPipelineLogger | None = None,
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._metrics = metrics or PipelineMetrics()
        self._logger = stage_logger or StructuredPipelineLogger()

    @property
    def enabled(self) -> bool:
        return self._store is not None

    async def get(self, fingerprint: str) -> Itinerary | None:
        """Return a re-validated cached itinerary, or None on miss or any failure."""
        if self._store is None:
            return None

        try:
            payload = await self._store.get(fingerprint)
        except Exception as e:
            self._metrics.inc_cache_event("read_error")
            self._logger.log_stage(
                fingerprint, "cache_read", "error", error_reason=type(e).__name__
            )
            return None

        if payload is None:
            self._metrics.inc_cache_event("miss")
            self._logger.log_stage(fingerprint, "cache_read", "cache_miss")
            return None

        try:
            itinerary = Itinerary.model_validate_json(payload)
        except ValidationError as e:
            # Corrupted entry - fall through to regeneration
            self._metrics.inc_cache_event("corrupt")
            self._logger.log_stage(
                fingerprint,
                "cache_read",
                "corrupt",
                error_reason=f"{e.error_count()} validation error(s)",
            )
            return None

        violations = budget_violations(itinerary)
        if violations:
            # Schema-valid but inconsistent budget - treat as corrupted
            self._metrics.inc_cache_event("corrupt")
            self._logger.log_stage(
                fingerprint, "cache_read", "corrupt", error_reason="; ".join(violations)
            )
            return None

        self._metrics.inc_cache_event("hit")
        self._logger.log_stage(fingerprint, "cache_read", "cache_hit")
        return itinerary

    async def set(
        self, fingerprint: str, itinerary: Itinerary, ttl_seconds: int | None = None
    ) -> None:
        """Store an itinerary; failures are logged and swallowed."""
        if self._store is None:
            return

        try:
            payload = itinerary.model_dump_json().encode("utf-8")
            await self._store.set(fingerprint, payload, ttl_seconds or self._ttl_seconds)
        except Exception as e:
            self._metrics.inc_cache_event("write_error")
            self._logger.log_stage(
                fingerprint, "cache_write", "error", error_reason=type(e).__name__
            )
            return

        self._metrics.inc_cache_event("write")
