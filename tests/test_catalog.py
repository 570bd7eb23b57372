"""Tests for catalog conversion and the catalog cache."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import polars as pl
import pytest

from sakerec.recommendation.catalog import CatalogCache, items_from_frame
from sakerec.recommendation.schemas import SavedItem


class TestItemsFromFrame:
    """Tests for items_from_frame."""

    def test_converts_rows(self) -> None:
        """Test a full row maps onto a candidate item."""
        frame = pl.DataFrame(
            {
                "id": ["a"],
                "name": ["Dassai 45"],
                "brewery": ["Asahi Shuzo"],
                "sweetness": [1.2],
                "richness": [-0.8],
                "f1_floral": [0.9],
                "f2_mellow": [0.4],
                "f3_heavy": [0.2],
                "f4_mild": [0.5],
                "f5_dry": [0.3],
                "f6_light": [0.7],
                "popularity": [42],
            }
        )
        [item] = items_from_frame(frame)

        assert item.id == "a"
        assert item.brewery == "Asahi Shuzo"
        assert item.vector.sweetness == pytest.approx(1.2)
        assert item.vector.floral == pytest.approx(0.9)
        assert item.vector.light == pytest.approx(0.7)
        assert item.popularity == 42.0

    def test_missing_flavors_default_to_neutral(self) -> None:
        """Test absent or null flavor values become 0.5."""
        frame = pl.DataFrame(
            {
                "id": [1, 2],
                "name": ["One", "Two"],
                "sweetness": [0.5, None],
                "richness": [0.0, 1.0],
                "f1_floral": [None, 0.8],
            }
        )
        first, second = items_from_frame(frame)

        assert first.id == "1"
        assert first.vector.floral == 0.5
        assert first.vector.dry == 0.5
        assert second.vector.sweetness == 0.0
        assert second.vector.floral == pytest.approx(0.8)
        assert first.popularity == 0.0

    def test_out_of_range_values_clamped(self) -> None:
        """Test catalog values outside their ranges are clamped."""
        frame = pl.DataFrame({"id": ["x"], "name": ["X"], "sweetness": [7.5], "f5_dry": [1.4]})
        [item] = items_from_frame(frame)
        assert item.vector.sweetness == 5.0
        assert item.vector.dry == 1.0

    def test_missing_required_columns(self) -> None:
        """Test id and name are required."""
        with pytest.raises(ValueError, match="name"):
            items_from_frame(pl.DataFrame({"id": ["x"]}))

    def test_nan_and_null_popularity_become_zero(self) -> None:
        """Test a NaN or null popularity does not reject the row."""
        frame = pl.DataFrame(
            {
                "id": ["a", "b", "c"],
                "name": ["A", "B", "C"],
                "popularity": [float("nan"), None, 7.0],
            }
        )
        first, second, third = items_from_frame(frame)

        assert first.popularity == 0.0
        assert second.popularity == 0.0
        assert third.popularity == 7.0


class CountingLoader:
    def __init__(self, items) -> None:
        self.items = items
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return list(self.items)


class TestCatalogCache:
    """Tests for CatalogCache."""

    @pytest.mark.asyncio
    async def test_lazy_load_and_reuse(self, catalog_items, clock) -> None:
        """Test the loader runs once on first use and is then reused."""
        loader = CountingLoader(catalog_items)
        catalog = CatalogCache(loader, clock=clock)
        assert loader.calls == 0

        assert len(await catalog.get_all()) == len(catalog_items)
        await catalog.get_all()
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_after_ttl(self, catalog_items, clock) -> None:
        """Test the snapshot reloads after 30 minutes."""
        loader = CountingLoader(catalog_items)
        catalog = CatalogCache(loader, ttl=timedelta(minutes=30), clock=clock)

        await catalog.get_all()
        clock.advance(timedelta(minutes=29))
        await catalog.get_all()
        assert loader.calls == 1

        clock.advance(timedelta(minutes=1))
        await catalog.get_all()
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self, catalog_items, clock) -> None:
        """Test invalidation triggers a reload on next read."""
        loader = CountingLoader(catalog_items)
        catalog = CatalogCache(loader, clock=clock)

        await catalog.get_all()
        catalog.invalidate()
        assert not catalog.is_fresh
        await catalog.get_all()
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_get_trending(self, catalog_items, clock) -> None:
        """Test trending orders by popularity and skips unpopular items."""
        catalog = CatalogCache(CountingLoader(catalog_items), clock=clock)
        trending = await catalog.get_trending(limit=3)

        assert [item.id for item in trending] == ["s02", "s10", "s01"]

    @pytest.mark.asyncio
    async def test_available_for_excludes_saved(self, catalog_items, saved_items, clock) -> None:
        """Test items the user saved are not candidates."""
        catalog = CatalogCache(CountingLoader(catalog_items), clock=clock)
        available = await catalog.available_for(saved_items)

        saved_ids = {s.item.id for s in saved_items}
        assert len(available) == len(catalog_items) - len(saved_ids)
        assert saved_ids.isdisjoint(item.id for item in available)

    @pytest.mark.asyncio
    async def test_returned_list_is_a_copy(self, catalog_items, clock) -> None:
        """Test callers cannot mutate the cached snapshot."""
        catalog = CatalogCache(CountingLoader(catalog_items), clock=clock)
        first = await catalog.get_all()
        first.clear()
        assert len(await catalog.get_all()) == len(catalog_items)

    @pytest.mark.asyncio
    async def test_available_for_without_saved(self, catalog_items, clock) -> None:
        """Test an empty saved set leaves the full catalog."""
        catalog = CatalogCache(CountingLoader(catalog_items), clock=clock)
        empty: list[SavedItem] = []
        assert len(await catalog.available_for(empty)) == len(catalog_items)

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_reload(self, catalog_items, clock) -> None:
        """Test callers racing on an empty snapshot trigger a single load."""
        calls = 0

        async def slow_loader():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return list(catalog_items)

        catalog = CatalogCache(slow_loader, clock=clock)
        results = await asyncio.gather(*(catalog.get_all() for _ in range(3)))

        assert calls == 1
        assert all(len(items) == len(catalog_items) for items in results)
