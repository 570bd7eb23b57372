"""Tests for the Redis-backed recommendation cache."""

from __future__ import annotations

from datetime import timedelta

import pytest

from sakerec.core.exceptions import CacheError
from sakerec.recommendation.cache import RecommendationCache
from sakerec.recommendation.schemas import (
    CacheEntry,
    Mood,
    RecommendationClass,
    RecommendationResult,
)


def _result(item, score: float = 0.8, reason: str = "Very close to your taste") -> RecommendationResult:
    return RecommendationResult(
        item=item,
        score=score,
        recommendation_class=RecommendationClass.SIMILAR,
        reason=reason,
        similarity_score=score,
        predicted_rating=1 + 4 * score,
    )


@pytest.fixture
def cache(redis_client, clock) -> RecommendationCache:
    return RecommendationCache(redis_client, ttl=timedelta(hours=12), clock=clock, key_prefix="test")


class TestRecommendationCache:
    """Tests for RecommendationCache."""

    def test_rejects_non_positive_ttl(self, redis_client) -> None:
        """Test a zero TTL is rejected."""
        with pytest.raises(ValueError):
            RecommendationCache(redis_client, ttl=timedelta(0))

    @pytest.mark.asyncio
    async def test_put_rejects_non_positive_ttl(self, cache, catalog_items) -> None:
        """Test a per-call TTL of zero or less is rejected, not replaced."""
        for ttl in (timedelta(0), timedelta(seconds=-5)):
            with pytest.raises(ValueError):
                await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL, ttl=ttl)

        assert await cache.get("u1", Mood.USUAL) is None

    @pytest.mark.asyncio
    async def test_miss_when_empty(self, cache) -> None:
        """Test an empty cache reports a miss."""
        assert await cache.get("u1", Mood.USUAL) is None

    @pytest.mark.asyncio
    async def test_put_then_get_preserves_rank_order(self, cache, catalog_items) -> None:
        """Test results come back in the order they were stored."""
        results = [_result(catalog_items[i], 0.9 - i * 0.1) for i in (3, 0, 5)]
        assert await cache.put("u1", results, Mood.USUAL) is True

        cached = await cache.get("u1", Mood.USUAL)
        assert cached == results

    @pytest.mark.asyncio
    async def test_moods_are_separate(self, cache, catalog_items) -> None:
        """Test entries for one mood are invisible to another."""
        await cache.put("u1", [_result(catalog_items[0])], "usual")

        assert await cache.get("u1", "discovery") is None
        assert await cache.get("u1", "usual") is not None

    @pytest.mark.asyncio
    async def test_users_are_separate(self, cache, catalog_items) -> None:
        """Test entries are partitioned by user."""
        await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL)
        assert await cache.get("u2", Mood.USUAL) is None

    @pytest.mark.asyncio
    async def test_expired_entries_never_returned(self, cache, clock, catalog_items) -> None:
        """Test entries past expires_at are a miss even while physically present."""
        await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL)

        clock.advance(timedelta(hours=12))
        assert await cache.get("u1", Mood.USUAL) is None
        assert await cache.redis.hgetall("test:reccache:u1:usual")

    @pytest.mark.asyncio
    async def test_live_before_expiry(self, cache, clock, catalog_items) -> None:
        """Test entries are served until their TTL elapses."""
        await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL)

        clock.advance(timedelta(hours=11, minutes=59))
        assert await cache.get("u1", Mood.USUAL) is not None

    @pytest.mark.asyncio
    async def test_only_expired_entries_filtered(self, cache, clock, catalog_items) -> None:
        """Test a later write survives while an earlier one expires."""
        await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL, ttl=timedelta(hours=1))
        await cache.put("u1", [_result(catalog_items[1])], Mood.USUAL, ttl=timedelta(hours=5))

        clock.advance(timedelta(hours=2))
        cached = await cache.get("u1", Mood.USUAL)
        assert [r.item.id for r in cached] == [catalog_items[1].id]

    @pytest.mark.asyncio
    async def test_upsert_leaves_single_latest_entry(self, cache, redis_client, catalog_items) -> None:
        """Test two writes for the same (user, item, mood) leave one live entry."""
        item = catalog_items[0]
        await cache.put("u1", [_result(item, 0.7, "first")], Mood.USUAL)
        await cache.put("u1", [_result(item, 0.9, "second")], Mood.USUAL)

        stored = await redis_client.hgetall("test:reccache:u1:usual")
        assert list(stored) == [item.id]

        cached = await cache.get("u1", Mood.USUAL)
        assert len(cached) == 1
        assert cached[0].reason == "second"
        assert cached[0].score == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_put_sets_key_expiry(self, cache, redis_client, catalog_items) -> None:
        """Test the hash key gets a physical TTL."""
        await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL)
        assert await redis_client.ttl("test:reccache:u1:usual") == 12 * 3600

    @pytest.mark.asyncio
    async def test_put_empty_is_noop(self, cache, redis_client) -> None:
        """Test writing nothing touches nothing."""
        assert await cache.put("u1", [], Mood.USUAL) is True
        assert await redis_client.hgetall("test:reccache:u1:usual") == {}

    @pytest.mark.asyncio
    async def test_corrupt_entries_skipped(self, cache, redis_client, catalog_items) -> None:
        """Test undecodable payloads are ignored."""
        await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL)
        await redis_client.hset("test:reccache:u1:usual", "broken", "{not json")

        cached = await cache.get("u1", Mood.USUAL)
        assert [r.item.id for r in cached] == [catalog_items[0].id]

    @pytest.mark.asyncio
    async def test_entries_serialized_as_cache_entries(self, cache, redis_client, clock, catalog_items) -> None:
        """Test stored payloads decode to CacheEntry with an absolute expiry."""
        await cache.put("u1", [_result(catalog_items[0])], Mood.SPECIAL)

        stored = await redis_client.hgetall("test:reccache:u1:special")
        entry = CacheEntry.model_validate_json(stored[catalog_items[0].id])
        assert entry.user_id == "u1"
        assert entry.mood is Mood.SPECIAL
        assert entry.expires_at == clock.now + timedelta(hours=12)

    @pytest.mark.asyncio
    async def test_invalidate_clears_every_mood(self, cache, catalog_items) -> None:
        """Test invalidation drops the user's entries across moods."""
        for mood in Mood:
            await cache.put("u1", [_result(catalog_items[0])], mood)
        await cache.put("u2", [_result(catalog_items[0])], Mood.USUAL)

        await cache.invalidate("u1")

        for mood in Mood:
            assert await cache.get("u1", mood) is None
        assert await cache.get("u2", Mood.USUAL) is not None


class TestCacheFailures:
    """Tests for cache store failures."""

    @pytest.mark.asyncio
    async def test_read_failure_is_a_miss(self, failing_redis) -> None:
        """Test a Redis read error is reported as a miss."""
        cache = RecommendationCache(failing_redis)
        assert await cache.get("u1", Mood.USUAL) is None

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, failing_redis, catalog_items) -> None:
        """Test a Redis write error returns False instead of raising."""
        cache = RecommendationCache(failing_redis)
        assert await cache.put("u1", [_result(catalog_items[0])], Mood.USUAL) is False

    @pytest.mark.asyncio
    async def test_invalidate_failure_raises(self, failing_redis) -> None:
        """Test a failed invalidation surfaces as CacheError."""
        cache = RecommendationCache(failing_redis)
        with pytest.raises(CacheError) as exc_info:
            await cache.invalidate("u1")
        assert exc_info.value.details["operation"] == "invalidate"
