"""Recommendation service: the caller-facing flow around the engine.

The service owns the request-level sequence the pure components do not:

1. Serve cached results for (user, mood) when available
2. Report ``requires_more_favorites`` when the user has too few saved items
3. Analyze the saved items into a preference
4. Compose over the catalog minus the user's saved items
5. Write the results through to the cache

Cache failures never abort a request; they fall back to recomputation.

Examples:
    >>> service = RecommendationService(catalog=catalog, cache=cache)
    >>> outcome = await service.recommend("user-1", saved_items, mood="discovery")
    >>> outcome.from_cache
    False
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sakerec.core.config import Settings, get_settings
from sakerec.core.exceptions import InvalidInputError
from sakerec.core.logging import LoggerMixin, configure_logging, get_logger
from sakerec.core.redis import get_redis
from sakerec.recommendation.analyzer import PreferenceAnalyzer
from sakerec.recommendation.cache import RecommendationCache
from sakerec.recommendation.catalog import CatalogCache, CatalogLoader
from sakerec.recommendation.composer import compose
from sakerec.recommendation.menu import MenuRestrictedComposer
from sakerec.recommendation.preference_builder import PreferenceBuildOptions
from sakerec.recommendation.schemas import (
    CandidateItem,
    MenuRecommendationResult,
    MenuRecommendationType,
    Mood,
    RecommendationOutcome,
    SavedItem,
)

logger = get_logger(__name__)


class RecommendationService(LoggerMixin):
    """Compose, cache and serve recommendations for users.

    Args:
        catalog: Catalog snapshot provider.
        cache: Recommendation cache, or None to always recompute.
        analyzer: Preference analyzer. Built from settings when omitted.
        menu_composer: Menu-restricted composer. Built from settings when omitted.
        settings: Settings override; defaults to ``get_settings()``.
    """

    def __init__(
        self,
        catalog: CatalogCache,
        cache: RecommendationCache | None = None,
        analyzer: PreferenceAnalyzer | None = None,
        menu_composer: MenuRestrictedComposer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.cache = cache
        self.analyzer = analyzer or PreferenceAnalyzer(
            PreferenceBuildOptions(
                half_life_days=self.settings.preference_half_life_days,
                max_items=self.settings.preference_max_items,
            )
        )
        self.menu_composer = menu_composer or MenuRestrictedComposer(
            min_favorites=self.settings.min_favorites_for_recommendations
        )

    @property
    def min_favorites(self) -> int:
        return self.settings.min_favorites_for_recommendations

    def _more_favorites_message(self, favorites_count: int) -> str:
        return (
            f"Save at least {self.min_favorites} favorites to get personalized "
            f"recommendations (currently {favorites_count})."
        )

    async def recommend(
        self,
        user_id: str,
        saved_items: Sequence[SavedItem],
        mood: Mood | str = Mood.USUAL,
        count: int | None = None,
        use_cache: bool = True,
        now: datetime | None = None,
    ) -> RecommendationOutcome:
        """Recommend catalog items for a user.

        A cache hit is served as stored, truncated to ``count``. Results
        cached by an earlier request with a smaller ``count`` are not topped
        up, so a larger request sees the shorter list until the entries
        expire or the cache is cleared.

        Args:
            user_id: The requesting user.
            saved_items: Consistent snapshot of the user's saved items.
            mood: Mixing strategy.
            count: Maximum results; defaults to the configured count.
            use_cache: Whether to consult and fill the cache.
            now: Reference time for preference decay.

        Returns:
            The outcome, with ``requires_more_favorites`` set when the user
            has fewer saved items than required.

        Raises:
            InvalidMoodError: If ``mood`` is unknown.
            InvalidInputError: If ``count`` is less than 1.
        """
        mood = Mood.parse(mood)
        count = self.settings.default_recommendation_count if count is None else count
        if count < 1:
            raise InvalidInputError(
                f"count must be at least 1, got {count}",
                field="count",
                value=count,
                constraint=">= 1",
            )

        favorites_count = len(saved_items)

        if use_cache and self.cache is not None:
            cached = await self.cache.get(user_id, mood)
            if cached:
                self.logger.info(
                    "recommendations_served_from_cache",
                    user_id=user_id,
                    mood=mood.value,
                    num_results=min(len(cached), count),
                )
                return RecommendationOutcome(
                    recommendations=cached[:count],
                    from_cache=True,
                    favorites_count=favorites_count,
                )

        if favorites_count < self.min_favorites:
            self.logger.info(
                "not_enough_favorites",
                user_id=user_id,
                favorites_count=favorites_count,
                required=self.min_favorites,
            )
            return RecommendationOutcome(
                requires_more_favorites=True,
                favorites_count=favorites_count,
                message=self._more_favorites_message(favorites_count),
            )

        preference = self.analyzer.analyze(saved_items, now=now)
        pool = await self.catalog.available_for(saved_items)
        results = compose(preference, pool, count=count, mood=mood)

        if use_cache and self.cache is not None and results:
            await self.cache.put(user_id, results, mood)

        self.logger.info(
            "recommendations_generated",
            user_id=user_id,
            mood=mood.value,
            pool_size=len(pool),
            num_results=len(results),
        )
        return RecommendationOutcome(recommendations=results, favorites_count=favorites_count)

    async def recommend_for_menu(
        self,
        saved_items: Sequence[SavedItem] | None,
        menu: Sequence[CandidateItem],
        recommendation_type: MenuRecommendationType | str,
        dish_type: str | None = None,
        count: int | None = None,
        now: datetime | None = None,
    ) -> MenuRecommendationResult:
        """Recommend from a venue's menu.

        Args:
            saved_items: The user's saved items, or None for an anonymous user.
            menu: The venue's menu.
            recommendation_type: similarity, pairing or random.
            dish_type: Dish for pairing mode.
            count: Maximum results; defaults to the configured menu count.
            now: Reference time for preference decay.

        Raises:
            EmptyMenuError: If the menu is empty.
            InvalidRecommendationTypeError: If the type is unknown.
        """
        preference = self.analyzer.analyze(saved_items, now=now) if saved_items else None
        return self.menu_composer.compose_for_menu(
            preference,
            menu,
            recommendation_type,
            dish_type=dish_type,
            count=self.settings.menu_default_count if count is None else count,
        )

    async def clear_cache(self, user_id: str) -> None:
        """Invalidate every cached recommendation for ``user_id``.

        Raises:
            CacheError: If the cache store rejects the delete.
        """
        if self.cache is None:
            return
        await self.cache.invalidate(user_id)


async def create_recommendation_service(
    loader: CatalogLoader,
    redis_client: Any | None = None,
    settings: Settings | None = None,
) -> RecommendationService:
    """Wire a service from settings.

    Logging is configured from the same settings: JSON output in
    production or when ``json_logs`` is set, DEBUG level when ``debug`` is
    set.

    Args:
        loader: Async catalog loader.
        redis_client: Redis client for the recommendation cache; the shared
            client from ``sakerec.core.redis`` when omitted.
        settings: Settings override; defaults to ``get_settings()``.

    Returns:
        A service whose catalog and cache TTLs, key prefix and preference
        options come from settings.
    """
    settings = settings or get_settings()
    configure_logging(
        json_logs=settings.json_logs or settings.is_production,
        log_level="DEBUG" if settings.debug else settings.log_level,
    )
    if redis_client is None:
        redis_client = await get_redis()

    catalog = CatalogCache(loader, ttl=timedelta(minutes=settings.catalog_cache_ttl_minutes))
    cache = RecommendationCache(
        redis_client,
        ttl=timedelta(hours=settings.recommendation_cache_ttl_hours),
        key_prefix=settings.cache_key_prefix,
    )
    logger.info(
        "recommendation_service_created",
        app_name=settings.app_name,
        app_env=settings.app_env,
        cache_ttl_hours=settings.recommendation_cache_ttl_hours,
        catalog_ttl_minutes=settings.catalog_cache_ttl_minutes,
    )
    return RecommendationService(catalog=catalog, cache=cache, settings=settings)
