"""Taste-preference modeling and recommendation engine.

This package turns a user's saved items into a time-decayed taste vector,
classifies a taste archetype, scores diversity and adventurousness, and
produces ranked, explained and cached recommendations, including a
restricted variant for a venue's menu.

Key Components:
- preference_builder: Time-decayed preference vector construction
- taste_type: Taste archetype classification
- diversity: Diversity and adventure scoring
- similarity: Bounded inverse-distance similarity and reason banding
- composer: Mood-mixed recommendation composition
- MenuRestrictedComposer: Similarity, pairing and random picks from a menu
- RecommendationCache: Redis-backed per-(user, item, mood) cache
- RecommendationService: Cache-fronted request flow

Examples:
    Complete recommendation pipeline:

    >>> from sakerec.recommendation import (
    ...     CatalogCache,
    ...     RecommendationCache,
    ...     RecommendationService,
    ... )
    >>> from sakerec.core.redis import get_redis
    >>>
    >>> catalog = CatalogCache(loader=load_catalog)
    >>> cache = RecommendationCache(await get_redis())
    >>> service = RecommendationService(catalog=catalog, cache=cache)
    >>> outcome = await service.recommend("user-1", saved_items, mood="usual")
"""

from sakerec.recommendation.analyzer import PreferenceAnalyzer
from sakerec.recommendation.cache import RecommendationCache
from sakerec.recommendation.catalog import CatalogCache, items_from_frame
from sakerec.recommendation.composer import compose
from sakerec.recommendation.diversity import DiversityScores
from sakerec.recommendation.favorites import (
    ChangeKind,
    ConfirmResult,
    FavoriteChange,
    FavoritesCoordinator,
    PendingChange,
    SavedItemsStore,
)
from sakerec.recommendation.menu import MenuRestrictedComposer, compose_for_menu
from sakerec.recommendation.preference_builder import PreferenceBuildOptions, build
from sakerec.recommendation.schemas import (
    CacheEntry,
    CandidateItem,
    MenuRecommendationResult,
    MenuRecommendationType,
    Mood,
    Preference,
    RecommendationClass,
    RecommendationOutcome,
    RecommendationResult,
    SavedItem,
    TasteType,
    TasteVector,
)
from sakerec.recommendation.service import RecommendationService, create_recommendation_service
from sakerec.recommendation.taste_type import classify

__all__ = [
    # Schemas
    "TasteVector",
    "CandidateItem",
    "SavedItem",
    "TasteType",
    "Mood",
    "RecommendationClass",
    "MenuRecommendationType",
    "Preference",
    "RecommendationResult",
    "MenuRecommendationResult",
    "CacheEntry",
    "RecommendationOutcome",
    # Preference analysis
    "PreferenceBuildOptions",
    "build",
    "classify",
    "DiversityScores",
    "PreferenceAnalyzer",
    # Composition
    "compose",
    "MenuRestrictedComposer",
    "compose_for_menu",
    # Caching and catalog
    "RecommendationCache",
    "CatalogCache",
    "items_from_frame",
    # Service
    "RecommendationService",
    "create_recommendation_service",
    # Favorites
    "FavoritesCoordinator",
    "FavoriteChange",
    "ChangeKind",
    "PendingChange",
    "ConfirmResult",
    "SavedItemsStore",
]
