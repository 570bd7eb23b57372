"""TTL-bounded recommendation cache backed by Redis.

Each (user, mood) pair owns one Redis hash whose fields are item ids and
whose values are JSON-encoded cache entries, so a write for the same
(user, item, mood) overwrites the previous entry instead of duplicating
it. Every entry carries an absolute ``expires_at`` that reads filter on;
the hash key itself also gets a Redis expiry so stale data is eventually
purged.

The cache is an optimization, never a correctness dependency: read and
write failures are logged and reported as misses or failed writes.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from sakerec.core.exceptions import CacheError
from sakerec.core.logging import LoggerMixin
from sakerec.core.metrics import track_cache_lookup, track_cache_write
from sakerec.recommendation.schemas import CacheEntry, Mood, RecommendationResult

DEFAULT_TTL = timedelta(hours=12)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RecommendationCache(LoggerMixin):
    """Per-(user, item, mood) recommendation cache.

    Args:
        redis_client: Async Redis client (``decode_responses=True``).
        ttl: Lifetime of written entries.
        clock: Returns the current time; injectable for tests.
        key_prefix: Namespace for cache keys.
    """

    def __init__(
        self,
        redis_client: Any,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
        key_prefix: str = "sakerec",
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.redis = redis_client
        self.ttl = ttl
        self.clock = clock
        self.key_prefix = key_prefix

    def _key(self, user_id: str, mood: Mood) -> str:
        return f"{self.key_prefix}:reccache:{user_id}:{mood.value}"

    async def get(self, user_id: str, mood: Mood | str) -> list[RecommendationResult] | None:
        """Return live cached results in stored rank order, or None on a miss.

        Entries whose ``expires_at`` has passed are treated as absent even
        if still present in Redis.
        """
        mood = Mood.parse(mood)
        key = self._key(user_id, mood)

        try:
            raw_entries: dict[str, str] = await self.redis.hgetall(key)  # type: ignore[misc]
        except RedisError as e:
            self.logger.warning(
                "recommendation_cache_read_failed",
                user_id=user_id,
                mood=mood.value,
                error=str(e),
            )
            track_cache_lookup("error")
            return None

        now = self.clock()
        live: list[CacheEntry] = []
        for item_id, payload in (raw_entries or {}).items():
            try:
                entry = CacheEntry.model_validate_json(payload)
            except PydanticValidationError:
                self.logger.warning(
                    "recommendation_cache_entry_corrupt",
                    user_id=user_id,
                    mood=mood.value,
                    item_id=item_id,
                )
                continue
            if not entry.is_expired(now):
                live.append(entry)

        if not live:
            track_cache_lookup("miss")
            self.logger.debug("recommendation_cache_miss", user_id=user_id, mood=mood.value)
            return None

        live.sort(key=lambda e: (e.rank, e.item_id))
        track_cache_lookup("hit")
        self.logger.debug(
            "recommendation_cache_hit",
            user_id=user_id,
            mood=mood.value,
            num_entries=len(live),
        )
        return [entry.to_result() for entry in live]

    async def put(
        self,
        user_id: str,
        results: Sequence[RecommendationResult],
        mood: Mood | str,
        ttl: timedelta | None = None,
    ) -> bool:
        """Upsert results for (user, mood), one entry per item.

        Returns:
            True if the write reached Redis, False if it failed.

        Raises:
            ValueError: If ``ttl`` is given and not positive.
        """
        mood = Mood.parse(mood)
        if ttl is None:
            ttl = self.ttl
        elif ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        if not results:
            return True

        expires_at = self.clock() + ttl
        key = self._key(user_id, mood)
        mapping = {
            result.item.id: CacheEntry.from_result(
                user_id, mood, rank, result, expires_at
            ).model_dump_json()
            for rank, result in enumerate(results)
        }

        try:
            pipeline = self.redis.pipeline()
            pipeline.hset(key, mapping=mapping)
            pipeline.expire(key, max(int(ttl.total_seconds()), 1))
            await pipeline.execute()
        except RedisError as e:
            self.logger.warning(
                "recommendation_cache_write_failed",
                user_id=user_id,
                mood=mood.value,
                error=str(e),
            )
            track_cache_write("error")
            return False

        track_cache_write("ok")
        self.logger.debug(
            "recommendation_cache_written",
            user_id=user_id,
            mood=mood.value,
            num_entries=len(mapping),
            expires_at=expires_at.isoformat(),
        )
        return True

    async def invalidate(self, user_id: str) -> None:
        """Drop every cached entry for ``user_id`` across all moods.

        Raises:
            CacheError: If Redis rejects the delete.
        """
        keys = [self._key(user_id, mood) for mood in Mood]
        try:
            await self.redis.delete(*keys)
        except RedisError as e:
            self.logger.error("recommendation_cache_invalidate_failed", user_id=user_id, error=str(e))
            raise CacheError(
                "Failed to invalidate recommendation cache",
                user_id=user_id,
                operation="invalidate",
            ) from e

        self.logger.info("recommendation_cache_invalidated", user_id=user_id)
