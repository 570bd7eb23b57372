"""Menu-restricted recommendations for a physical venue.

The candidate pool is exactly the venue's menu. Three modes are offered:

- similarity: rank the menu against the user's preference; users with too
  few saved items get a ``requires_more_favorites`` outcome instead
- pairing: rank the menu with a dish-keyed heuristic
- random: a single weighted pick with a playful reason

An empty menu is an error in every mode.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence

from sakerec.core.config import get_settings
from sakerec.core.exceptions import EmptyMenuError, InvalidInputError
from sakerec.core.logging import get_logger
from sakerec.core.metrics import track_menu_recommendation
from sakerec.recommendation import similarity as sim
from sakerec.recommendation.schemas import (
    CandidateItem,
    MenuRecommendationResult,
    MenuRecommendationType,
    Preference,
    RecommendationClass,
    RecommendationResult,
    TasteVector,
)

logger = get_logger(__name__)

BALANCED_BONUS = 0.3
BALANCED_AXIS_LIMIT = 2.0
UNKNOWN_SIMILARITY_RANGE = (0.5, 0.8)

PairingRule = Callable[[TasteVector], float]


def _sashimi(v: TasteVector) -> float:
    return (1.0 if v.richness < 0 else 0.5) + v.light


def _grilled(v: TasteVector) -> float:
    return (1.0 if v.richness > 0 else 0.5) + v.dry


def _fried(v: TasteVector) -> float:
    return (1.0 if v.sweetness < 0 else 0.5) + v.dry


def _soup(v: TasteVector) -> float:
    return v.mellow + v.mild


def _dessert(v: TasteVector) -> float:
    return (1.0 if v.sweetness > 0 else 0.5) + v.floral


def _general(v: TasteVector) -> float:
    # Favors items near the center of the sweetness/richness plane
    spread = min((abs(v.sweetness) + abs(v.richness)) / 10.0, 1.0)
    return 0.5 + 0.5 * (1.0 - spread)


PAIRING_RULES: dict[str, PairingRule] = {
    "sashimi": _sashimi,
    "grilled": _grilled,
    "fried": _fried,
    "soup": _soup,
    "dessert": _dessert,
    "general": _general,
}

PAIRING_REASONS: dict[str, str] = {
    "sashimi": "Brings out the delicate flavor of sashimi",
    "grilled": "A great match for the savory char of grilled dishes",
    "fried": "Cuts cleanly through fried food",
    "soup": "A gentle companion to a warm soup",
    "dessert": "For a luxurious moment with dessert",
    "general": "Versatile enough for a wide range of dishes",
}

RANDOM_REASONS: tuple[str, ...] = (
    "Today's lucky pour",
    "A hidden gem worth discovering",
    "A chance to meet a new flavor",
    "The staff's pick of the night",
    "A special glass for tonight",
    "Could be fate",
    "Perfect for a change of pace",
    "A great conversation starter",
)

SIMILARITY_MENU_REASONS: tuple[tuple[float, str], ...] = (
    (0.9, "A perfect match for your taste"),
    (0.8, "Very close to your taste"),
    (0.7, "Shares traits with your favorites"),
    (0.6, "A nicely balanced choice"),
)
SIMILARITY_MENU_FALLBACK_REASON = "Recommended for discovering new flavors"


def normalize_dish_type(dish_type: str | None) -> str:
    """Map a caller-supplied dish type onto a known pairing rule name."""
    key = (dish_type or "general").strip().lower()
    return key if key in PAIRING_RULES else "general"


def pairing_score(vector: TasteVector, dish_type: str | None) -> float:
    """Score how well a taste vector pairs with a dish; in [0, 2]."""
    return PAIRING_RULES[normalize_dish_type(dish_type)](vector)


def menu_similarity_reason(similarity_score: float) -> str:
    for threshold, reason in SIMILARITY_MENU_REASONS:
        if similarity_score > threshold:
            return reason
    return SIMILARITY_MENU_FALLBACK_REASON


class MenuRestrictedComposer:
    """Recommend from a venue's menu.

    Args:
        rng: Random source for the ``random`` mode. Inject a seeded
            ``random.Random`` for reproducible picks.
        min_favorites: Saved items required before similarity ranking.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        min_favorites: int | None = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.min_favorites = (
            min_favorites
            if min_favorites is not None
            else get_settings().min_favorites_for_recommendations
        )

    def compose_for_menu(
        self,
        preference: Preference | None,
        menu: Sequence[CandidateItem],
        recommendation_type: MenuRecommendationType | str,
        dish_type: str | None = None,
        count: int = 10,
    ) -> MenuRecommendationResult:
        """Recommend items from ``menu``.

        Args:
            preference: The user's preference, or None for an anonymous user.
            menu: The venue's menu; the entire candidate pool.
            recommendation_type: similarity, pairing or random.
            dish_type: Dish to pair with in pairing mode; unknown dishes
                fall back to the general rule.
            count: Maximum results for similarity and pairing modes.

        Returns:
            The menu recommendation result. Random mode returns exactly one
            recommendation.

        Raises:
            EmptyMenuError: If the menu is empty.
            InvalidRecommendationTypeError: If the type is unknown.
            InvalidInputError: If ``count`` is less than 1.
        """
        recommendation_type = MenuRecommendationType.parse(recommendation_type)
        if not menu:
            raise EmptyMenuError(
                "No items to pick from",
                field="menu",
                details={"recommendation_type": recommendation_type.value},
            )
        if count < 1:
            raise InvalidInputError(
                f"count must be at least 1, got {count}",
                field="count",
                value=count,
                constraint=">= 1",
            )

        track_menu_recommendation(recommendation_type.value)

        if recommendation_type is MenuRecommendationType.SIMILARITY:
            result = self._by_similarity(preference, menu, count)
        elif recommendation_type is MenuRecommendationType.PAIRING:
            result = self._by_pairing(menu, dish_type, count)
        else:
            result = self._random_pick(preference, menu)

        logger.info(
            "menu_recommendations_composed",
            recommendation_type=recommendation_type.value,
            menu_size=len(menu),
            returned=len(result.recommendations),
            requires_more_favorites=result.requires_more_favorites,
        )
        return result

    def _by_similarity(
        self,
        preference: Preference | None,
        menu: Sequence[CandidateItem],
        count: int,
    ) -> MenuRecommendationResult:
        favorites_count = preference.sample_size if preference is not None else 0
        if preference is None or favorites_count < self.min_favorites:
            return MenuRecommendationResult(
                total_found=len(menu),
                requires_more_favorites=True,
                favorites_count=favorites_count,
                message=(
                    f"Save at least {self.min_favorites} favorites to get "
                    f"recommendations matched to your taste "
                    f"(currently {favorites_count})."
                ),
            )

        recommendations = [
            RecommendationResult(
                item=item,
                score=similarity_score,
                recommendation_class=RecommendationClass.SIMILAR,
                reason=menu_similarity_reason(similarity_score),
                similarity_score=similarity_score,
                predicted_rating=sim.predicted_rating(similarity_score),
            )
            for item, similarity_score in sim.rank(preference.vector, menu)[:count]
        ]
        return MenuRecommendationResult(
            recommendations=recommendations,
            total_found=len(menu),
            favorites_count=favorites_count,
        )

    def _by_pairing(
        self,
        menu: Sequence[CandidateItem],
        dish_type: str | None,
        count: int,
    ) -> MenuRecommendationResult:
        dish = normalize_dish_type(dish_type)
        rule = PAIRING_RULES[dish]
        scored = sorted(
            ((item, rule(item.vector)) for item in menu),
            key=lambda pair: (-pair[1], pair[0].id),
        )

        recommendations = []
        for item, score in scored[:count]:
            similarity_score = min(max(score / 2.0, 0.0), 1.0)
            recommendations.append(
                RecommendationResult(
                    item=item,
                    score=score,
                    recommendation_class=RecommendationClass.PAIRING,
                    reason=PAIRING_REASONS[dish],
                    similarity_score=similarity_score,
                    predicted_rating=sim.predicted_rating(similarity_score),
                )
            )
        return MenuRecommendationResult(recommendations=recommendations, total_found=len(menu))

    def _random_pick(
        self,
        preference: Preference | None,
        menu: Sequence[CandidateItem],
    ) -> MenuRecommendationResult:
        best_item = menu[0]
        best_weight = -1.0
        for item in menu:
            weight = self.rng.random()
            if (
                abs(item.vector.sweetness) < BALANCED_AXIS_LIMIT
                and abs(item.vector.richness) < BALANCED_AXIS_LIMIT
            ):
                weight += BALANCED_BONUS
            if weight > best_weight:
                best_item, best_weight = item, weight

        reason = self.rng.choice(RANDOM_REASONS)
        if preference is not None:
            similarity_score = sim.similarity(preference.vector, best_item.vector)
        else:
            similarity_score = self.rng.uniform(*UNKNOWN_SIMILARITY_RANGE)

        pick = RecommendationResult(
            item=best_item,
            score=1.0,
            recommendation_class=RecommendationClass.RANDOM,
            reason=reason,
            similarity_score=similarity_score,
            predicted_rating=sim.predicted_rating(similarity_score),
        )
        return MenuRecommendationResult(recommendations=[pick], total_found=len(menu))


def compose_for_menu(
    preference: Preference | None,
    menu: Sequence[CandidateItem],
    recommendation_type: MenuRecommendationType | str,
    dish_type: str | None = None,
    count: int = 10,
    rng: random.Random | None = None,
) -> MenuRecommendationResult:
    """Convenience wrapper around :class:`MenuRestrictedComposer`."""
    return MenuRestrictedComposer(rng=rng).compose_for_menu(
        preference, menu, recommendation_type, dish_type=dish_type, count=count
    )
