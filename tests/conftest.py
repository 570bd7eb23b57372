"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from sakerec.core.config import get_settings
from sakerec.recommendation.schemas import (
    CandidateItem,
    Preference,
    SavedItem,
    TasteType,
    TasteVector,
)

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock for TTL tests."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class StatefulRedisMock:
    """A stateful Redis mock covering the hash commands the cache uses."""

    def __init__(self) -> None:
        self._hashes: dict[str, dict[str, str]] = {}
        self._expiry: dict[str, int] = {}
        self.closed = False

    async def hset(
        self,
        name: str,
        key: str | None = None,
        value: str | None = None,
        mapping: dict | None = None,
    ) -> int:
        bucket = self._hashes.setdefault(name, {})
        added = 0
        if mapping:
            for k, v in mapping.items():
                added += k not in bucket
                bucket[k] = v
        if key is not None:
            added += key not in bucket
            bucket[key] = value  # type: ignore[assignment]
        return added

    async def hgetall(self, name: str) -> dict[str, str]:
        return dict(self._hashes.get(name, {}))

    async def hdel(self, name: str, *keys: str) -> int:
        bucket = self._hashes.get(name, {})
        return sum(1 for k in keys if bucket.pop(k, None) is not None)

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self._hashes:
            return False
        self._expiry[key] = seconds
        return True

    async def ttl(self, key: str) -> int:
        return self._expiry.get(key, -1) if key in self._hashes else -2

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            if self._hashes.pop(key, None) is not None:
                count += 1
            self._expiry.pop(key, None)
        return count

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True

    def pipeline(self, transaction: bool = True) -> RedisPipelineMock:
        return RedisPipelineMock(self)


class RedisPipelineMock:
    """Mock Redis pipeline."""

    def __init__(self, redis: StatefulRedisMock) -> None:
        self._redis = redis
        self._commands: list[tuple[str, tuple, dict]] = []

    def hset(self, name: str, key: str | None = None, value: str | None = None, mapping: dict | None = None) -> RedisPipelineMock:
        self._commands.append(("hset", (name, key, value), {"mapping": mapping}))
        return self

    def expire(self, key: str, seconds: int) -> RedisPipelineMock:
        self._commands.append(("expire", (key, seconds), {}))
        return self

    async def execute(self) -> list:
        results = []
        for cmd, args, kwargs in self._commands:
            method = getattr(self._redis, cmd)
            results.append(await method(*args, **kwargs))
        self._commands = []
        return results


class FailingRedisMock:
    """Redis double whose every command fails as if the server were down."""

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        raise RedisConnectionError("Connection refused")

    async def hgetall(self, name: str) -> dict[str, str]:
        return self._fail()

    async def delete(self, *keys: str) -> int:
        return self._fail()

    async def ping(self) -> bool:
        return self._fail()

    def pipeline(self, transaction: bool = True) -> FailingPipelineMock:
        return FailingPipelineMock()


class FailingPipelineMock:
    def hset(self, *args: Any, **kwargs: Any) -> FailingPipelineMock:
        return self

    def expire(self, *args: Any, **kwargs: Any) -> FailingPipelineMock:
        return self

    async def execute(self) -> list:
        raise RedisConnectionError("Connection refused")


def make_item(
    item_id: str,
    *,
    brewery: str = "Brewery A",
    popularity: float = 0.0,
    **vector: float,
) -> CandidateItem:
    """Build a catalog item; unspecified dimensions are neutral."""
    return CandidateItem(
        id=item_id,
        name=f"Sake {item_id}",
        brewery=brewery,
        vector=TasteVector.clamped(**vector),
        popularity=popularity,
    )


def make_preference(
    vector: TasteVector | None = None,
    *,
    adventure_score: float = 0.0,
    diversity_score: float = 0.0,
    sample_size: int = 5,
) -> Preference:
    return Preference(
        vector=vector or TasteVector.neutral(),
        taste_type=TasteType.BALANCED,
        diversity_score=diversity_score,
        adventure_score=adventure_score,
        sample_size=sample_size,
        computed_at=FIXED_NOW,
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    """Settings are cached per process; tests that patch env need a fresh read."""
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def item_factory() -> Callable[..., CandidateItem]:
    return make_item


@pytest.fixture
def preference_factory() -> Callable[..., Preference]:
    return make_preference


@pytest.fixture
def catalog_items() -> list[CandidateItem]:
    """A small catalog spanning the flavor space."""
    return [
        make_item("s01", brewery="Dassai", popularity=120, sweetness=1.0, richness=-1.0, floral=0.9, light=0.7),
        make_item("s02", brewery="Juyondai", popularity=300, sweetness=2.0, richness=0.5, floral=0.8, mellow=0.7),
        make_item("s03", brewery="Kubota", popularity=80, sweetness=-2.5, richness=-1.5, dry=0.9, light=0.8),
        make_item("s04", brewery="Hakkaisan", sweetness=-1.5, richness=-2.0, dry=0.8, light=0.9),
        make_item("s05", brewery="Kokuryu", popularity=40, sweetness=0.5, richness=2.5, heavy=0.8, mellow=0.6),
        make_item("s06", brewery="Tedorigawa", sweetness=3.5, richness=3.0, heavy=0.9, mellow=0.9),
        make_item("s07", brewery="Kamoizumi", sweetness=-4.0, richness=4.0, heavy=1.0, dry=1.0),
        make_item("s08", brewery="Aramasa", popularity=10, sweetness=0.2, richness=0.1),
        make_item("s09", brewery="Jikon", sweetness=1.2, richness=-0.3, floral=0.7, mild=0.6),
        make_item("s10", brewery="Nabeshima", popularity=200, sweetness=0.8, richness=0.8, floral=0.6, mellow=0.6),
    ]


@pytest.fixture
def saved_items(catalog_items: list[CandidateItem]) -> list[SavedItem]:
    """Three saved items, one day apart, newest first."""
    return [
        SavedItem(item=catalog_items[0], created_at=FIXED_NOW - timedelta(days=1)),
        SavedItem(item=catalog_items[1], created_at=FIXED_NOW - timedelta(days=2)),
        SavedItem(item=catalog_items[8], created_at=FIXED_NOW - timedelta(days=3)),
    ]


@pytest_asyncio.fixture(scope="function")
async def redis_client() -> StatefulRedisMock:
    """Create a stateful Redis mock for testing."""
    return StatefulRedisMock()


@pytest_asyncio.fixture(scope="function")
async def failing_redis() -> FailingRedisMock:
    """Create a Redis double that is always unreachable."""
    return FailingRedisMock()
