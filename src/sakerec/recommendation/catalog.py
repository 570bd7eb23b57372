"""Catalog access with a TTL-bounded in-memory cache.

The catalog collaborator is an async loader returning every candidate
item. ``CatalogCache`` calls it lazily on first use, serves the snapshot
until the TTL elapses, and can be invalidated on an external signal.

Catalog rows usually arrive as a polars DataFrame; ``items_from_frame``
turns one into clamped ``CandidateItem`` objects.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime, timedelta

import polars as pl

from sakerec.core.logging import LoggerMixin, get_logger
from sakerec.recommendation.schemas import CandidateItem, SavedItem, TasteVector

logger = get_logger(__name__)

CatalogLoader = Callable[[], Awaitable[list[CandidateItem]]]

DEFAULT_CATALOG_TTL = timedelta(minutes=30)

FLAVOR_COLUMNS: dict[str, str] = {
    "f1_floral": "floral",
    "f2_mellow": "mellow",
    "f3_heavy": "heavy",
    "f4_mild": "mild",
    "f5_dry": "dry",
    "f6_light": "light",
}

REQUIRED_COLUMNS = ("id", "name")


def items_from_frame(frame: pl.DataFrame) -> list[CandidateItem]:
    """Convert catalog rows into candidate items.

    Expected columns are ``id``, ``name``, ``brewery``, ``sweetness``,
    ``richness`` and ``f1_floral`` through ``f6_light``, plus an optional
    ``popularity``. Missing or null flavor values default to 0.5; missing
    axis values default to 0. Null or NaN popularity counts as 0. Every
    value is clamped into range.

    Args:
        frame: Catalog rows.

    Returns:
        One candidate item per row, in row order.

    Raises:
        ValueError: If ``id`` or ``name`` columns are missing.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(f"Catalog frame is missing required columns: {missing}")

    items = []
    for row in frame.iter_rows(named=True):
        raw = {
            "sweetness": row.get("sweetness"),
            "richness": row.get("richness"),
        }
        for column, dimension in FLAVOR_COLUMNS.items():
            raw[dimension] = row.get(column)

        popularity = row.get("popularity")
        if popularity is None or math.isnan(float(popularity)):
            popularity = 0.0
        items.append(
            CandidateItem(
                id=str(row["id"]),
                name=str(row["name"]),
                brewery=str(row.get("brewery") or ""),
                vector=TasteVector.clamped(**raw),
                popularity=max(float(popularity), 0.0),
            )
        )

    logger.debug("catalog_frame_converted", num_rows=frame.height, num_items=len(items))
    return items


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CatalogCache(LoggerMixin):
    """In-memory catalog snapshot with a refresh TTL.

    Args:
        loader: Async callable returning the full catalog.
        ttl: How long a loaded snapshot is served before reloading.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        loader: CatalogLoader,
        ttl: timedelta = DEFAULT_CATALOG_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.loader = loader
        self.ttl = ttl
        self.clock = clock
        self._items: list[CandidateItem] | None = None
        self._loaded_at: datetime | None = None
        self._lock = asyncio.Lock()

    @property
    def is_fresh(self) -> bool:
        if self._items is None or self._loaded_at is None:
            return False
        return self.clock() - self._loaded_at < self.ttl

    async def get_all(self) -> list[CandidateItem]:
        """Return the catalog, loading it on first use or after the TTL.

        Concurrent callers hitting a stale snapshot share a single reload.
        """
        items = self._items
        if items is None or not self.is_fresh:
            async with self._lock:
                # Another caller may have reloaded while this one waited
                items = self._items
                if items is None or not self.is_fresh:
                    items = list(await self.loader())
                    self._items = items
                    self._loaded_at = self.clock()
                    self.logger.info("catalog_loaded", num_items=len(items))
        return list(items)

    def invalidate(self) -> None:
        """Drop the snapshot so the next read reloads."""
        self._items = None
        self._loaded_at = None
        self.logger.info("catalog_invalidated")

    async def get_trending(self, limit: int = 10) -> list[CandidateItem]:
        """Most popular items first; items without popularity are excluded."""
        items = [item for item in await self.get_all() if item.popularity > 0]
        items.sort(key=lambda item: (-item.popularity, item.id))
        return items[:limit]

    async def available_for(self, saved_items: Iterable[SavedItem]) -> list[CandidateItem]:
        """Catalog items the user has not saved yet."""
        saved_ids = {s.item.id for s in saved_items}
        return [item for item in await self.get_all() if item.id not in saved_ids]
