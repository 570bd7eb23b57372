"""Mood-mixed recommendation composition.

This module ranks a candidate pool against a user's preference and mixes
three recommendation classes according to the caller's mood:

- similar: closest to the preference by similarity
- explore: deliberately distant candidates inside an adventure-scaled band
- trending: candidates carrying a popularity signal from the catalog

Each class is ranked independently (score descending, id ascending), the
classes are concatenated in mood order with per-class quotas of
``ceil(count * share)``, duplicates are dropped, any shortfall is filled
from the similar ranking, and the list is truncated to ``count``.

Examples:
    >>> from sakerec.recommendation.composer import compose
    >>> from sakerec.recommendation.schemas import Mood
    >>> results = compose(preference, pool, count=20, mood=Mood.DISCOVERY)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from sakerec.core.exceptions import InvalidInputError
from sakerec.core.logging import get_logger
from sakerec.core.metrics import track_composition
from sakerec.recommendation import similarity as sim
from sakerec.recommendation.schemas import (
    CandidateItem,
    Mood,
    Preference,
    RecommendationClass,
    RecommendationResult,
)

logger = get_logger(__name__)

EXPLORE_BAND_WIDTH = 1.5
EXPLORE_REASON = "Recommended for discovering new flavors"
TOP_TRENDING_REASON = "The most popular pick right now"
TRENDING_REASON = "Popular with other drinkers"

MOOD_MIXES: dict[Mood, tuple[tuple[RecommendationClass, float], ...]] = {
    Mood.USUAL: (
        (RecommendationClass.SIMILAR, 0.7),
        (RecommendationClass.EXPLORE, 0.2),
        (RecommendationClass.TRENDING, 0.1),
    ),
    Mood.ADVENTURE: (
        (RecommendationClass.SIMILAR, 1 / 3),
        (RecommendationClass.EXPLORE, 1 / 3),
        (RecommendationClass.TRENDING, 1 / 3),
    ),
    Mood.DISCOVERY: (
        (RecommendationClass.EXPLORE, 0.6),
        (RecommendationClass.SIMILAR, 0.2),
        (RecommendationClass.TRENDING, 0.2),
    ),
    Mood.SPECIAL: (
        (RecommendationClass.TRENDING, 0.6),
        (RecommendationClass.SIMILAR, 0.3),
        (RecommendationClass.EXPLORE, 0.1),
    ),
}


@dataclass(frozen=True)
class _Scored:
    item: CandidateItem
    score: float
    similarity: float


def exploration_radius(adventure_score: float) -> float:
    """Inner radius of the explore band: 1.0 at adventure 0, 3.0 at adventure 1."""
    return 1.0 + 2.0 * adventure_score


def novelty_score(dist: float, adventure_score: float) -> float:
    return min(dist * (0.5 + 0.5 * adventure_score), 1.0)


def class_quota(count: int, share: float) -> int:
    # Round before ceil so 1/3 shares of multiples of 3 are not pushed up by float error
    return math.ceil(round(count * share, 9))


def _by_score(entries: list[_Scored]) -> list[_Scored]:
    return sorted(entries, key=lambda e: (-e.score, e.item.id))


def _similar_candidates(preference: Preference, pool: Sequence[CandidateItem]) -> list[_Scored]:
    return [_Scored(item, s, s) for item, s in sim.rank(preference.vector, pool)]


def _explore_candidates(preference: Preference, pool: Sequence[CandidateItem]) -> list[_Scored]:
    radius = exploration_radius(preference.adventure_score)
    entries = []
    for item in pool:
        dist = sim.distance(preference.vector, item.vector)
        if radius < dist < radius + EXPLORE_BAND_WIDTH:
            entries.append(
                _Scored(
                    item,
                    novelty_score(dist, preference.adventure_score),
                    sim.similarity_from_distance(dist),
                )
            )
    return _by_score(entries)


def _trending_candidates(
    preference: Preference,
    pool: Sequence[CandidateItem],
    mood: Mood,
) -> list[_Scored]:
    popular = [item for item in pool if item.popularity > 0]
    if not popular:
        return []

    max_popularity = max(item.popularity for item in popular)
    entries = []
    for item in popular:
        similarity = sim.similarity(preference.vector, item.vector)
        popularity = item.popularity / max_popularity
        if mood is Mood.SPECIAL:
            score = 0.5 * popularity + 0.5 * similarity
        else:
            score = popularity
        entries.append(_Scored(item, score, similarity))
    return _by_score(entries)


def _to_result(
    preference: Preference,
    entry: _Scored,
    recommendation_class: RecommendationClass,
    reason: str | None = None,
) -> RecommendationResult:
    if reason is None:
        reason = sim.similarity_reason(preference.vector, entry.item.vector, entry.similarity)
    return RecommendationResult(
        item=entry.item,
        score=entry.score,
        recommendation_class=recommendation_class,
        reason=reason,
        similarity_score=entry.similarity,
        predicted_rating=sim.predicted_rating(entry.similarity),
    )


def compose(
    preference: Preference,
    pool: Sequence[CandidateItem],
    count: int = 20,
    mood: Mood | str = Mood.USUAL,
) -> list[RecommendationResult]:
    """Compose a ranked, explained recommendation list.

    Args:
        preference: The user's derived preference.
        pool: Candidate items eligible for recommendation.
        count: Maximum number of results.
        mood: Mixing strategy across recommendation classes.

    Returns:
        At most ``count`` results, each catalog item appearing once. An
        empty pool yields an empty list.

    Raises:
        InvalidInputError: If ``count`` is less than 1.
        InvalidMoodError: If ``mood`` is not a known mood.
    """
    mood = Mood.parse(mood)
    if count < 1:
        raise InvalidInputError(
            f"count must be at least 1, got {count}",
            field="count",
            value=count,
            constraint=">= 1",
        )

    if not pool:
        logger.debug("empty_candidate_pool", mood=mood.value)
        return []

    with track_composition(mood.value):
        similar = _similar_candidates(preference, pool)
        by_class = {
            RecommendationClass.SIMILAR: similar,
            RecommendationClass.EXPLORE: _explore_candidates(preference, pool),
            RecommendationClass.TRENDING: _trending_candidates(preference, pool, mood),
        }

        results: list[RecommendationResult] = []
        selected: set[str] = set()

        for recommendation_class, share in MOOD_MIXES[mood]:
            quota = class_quota(count, share)
            taken = 0
            for position, entry in enumerate(by_class[recommendation_class]):
                if taken >= quota:
                    break
                if entry.item.id in selected:
                    continue

                reason = None
                if recommendation_class is RecommendationClass.EXPLORE:
                    reason = EXPLORE_REASON
                elif recommendation_class is RecommendationClass.TRENDING:
                    reason = TOP_TRENDING_REASON if position == 0 else TRENDING_REASON

                results.append(_to_result(preference, entry, recommendation_class, reason))
                selected.add(entry.item.id)
                taken += 1

        backfilled = 0
        for entry in similar:
            if len(results) >= count:
                break
            if entry.item.id in selected:
                continue
            results.append(_to_result(preference, entry, RecommendationClass.SIMILAR))
            selected.add(entry.item.id)
            backfilled += 1

        results = results[:count]

    logger.info(
        "recommendations_composed",
        mood=mood.value,
        pool_size=len(pool),
        requested=count,
        returned=len(results),
        backfilled=backfilled,
    )
    return results
