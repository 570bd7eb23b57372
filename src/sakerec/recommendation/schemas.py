"""Schemas for the taste-preference and recommendation engine.

This module provides the data structures shared by every stage of the
pipeline, from saved items through preference analysis to ranked and
cached recommendations.

The schemas support:
- An 8-dimensional taste vector with clamped ranges
- Immutable catalog items carrying their own vector and popularity
- Derived preference records and explained recommendation results
- Serializable cache entries with absolute expiry
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from sakerec.core.exceptions import InvalidMoodError, InvalidRecommendationTypeError

AXIS_RANGE = (-5.0, 5.0)
FLAVOR_RANGE = (0.0, 1.0)
NEUTRAL_FLAVOR = 0.5

AXIS_DIMENSIONS: tuple[str, ...] = ("sweetness", "richness")
FLAVOR_DIMENSIONS: tuple[str, ...] = ("floral", "mellow", "heavy", "mild", "dry", "light")
DIMENSIONS: tuple[str, ...] = AXIS_DIMENSIONS + FLAVOR_DIMENSIONS


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class TasteVector(BaseModel):
    """Eight-number taste profile of an item or a user preference.

    Attributes:
        sweetness: Sweet (+) to dry (-) axis, in [-5, 5].
        richness: Rich (+) to light-bodied (-) axis, in [-5, 5].
        floral: Aromatic intensity, in [0, 1].
        mellow: Roundness, in [0, 1].
        heavy: Weight on the palate, in [0, 1].
        mild: Gentleness, in [0, 1].
        dry: Crispness of the finish, in [0, 1].
        light: Lightness, in [0, 1].
    """

    model_config = ConfigDict(frozen=True)

    sweetness: float = Field(default=0.0, ge=AXIS_RANGE[0], le=AXIS_RANGE[1])
    richness: float = Field(default=0.0, ge=AXIS_RANGE[0], le=AXIS_RANGE[1])
    floral: float = Field(default=NEUTRAL_FLAVOR, ge=FLAVOR_RANGE[0], le=FLAVOR_RANGE[1])
    mellow: float = Field(default=NEUTRAL_FLAVOR, ge=FLAVOR_RANGE[0], le=FLAVOR_RANGE[1])
    heavy: float = Field(default=NEUTRAL_FLAVOR, ge=FLAVOR_RANGE[0], le=FLAVOR_RANGE[1])
    mild: float = Field(default=NEUTRAL_FLAVOR, ge=FLAVOR_RANGE[0], le=FLAVOR_RANGE[1])
    dry: float = Field(default=NEUTRAL_FLAVOR, ge=FLAVOR_RANGE[0], le=FLAVOR_RANGE[1])
    light: float = Field(default=NEUTRAL_FLAVOR, ge=FLAVOR_RANGE[0], le=FLAVOR_RANGE[1])

    @classmethod
    def neutral(cls) -> TasteVector:
        """Return the neutral default vector (axes at 0, flavors at 0.5)."""
        return cls()

    @classmethod
    def clamped(cls, **raw: float | None) -> TasteVector:
        """Build a vector from raw values, forcing every field into range.

        Missing, None and NaN values fall back to the neutral default of
        their dimension; infinities clamp to the nearest bound.

        Args:
            **raw: Dimension name to raw value.

        Returns:
            A vector whose fields are all within their declared ranges.

        Examples:
            >>> TasteVector.clamped(sweetness=9.0, floral=float("nan")).sweetness
            5.0
        """
        values: dict[str, float] = {}
        for name in DIMENSIONS:
            low, high = AXIS_RANGE if name in AXIS_DIMENSIONS else FLAVOR_RANGE
            default = 0.0 if name in AXIS_DIMENSIONS else NEUTRAL_FLAVOR
            value = raw.get(name)
            if value is None or math.isnan(value):
                values[name] = default
            else:
                values[name] = _clamp(float(value), low, high)
        return cls(**values)

    @classmethod
    def from_array(cls, values: np.ndarray) -> TasteVector:
        """Build a clamped vector from 8 values in declared dimension order."""
        return cls.clamped(**{name: float(v) for name, v in zip(DIMENSIONS, values, strict=True)})

    def as_array(self) -> np.ndarray:
        """Return the 8 values as a float array in declared order."""
        return np.array([getattr(self, name) for name in DIMENSIONS], dtype=np.float64)

    def flavor_values(self) -> list[float]:
        """Return the six flavor values in declared order."""
        return [getattr(self, name) for name in FLAVOR_DIMENSIONS]


class CandidateItem(BaseModel):
    """An immutable catalog entry.

    Attributes:
        id: Catalog identifier.
        name: Display name.
        brewery: Producer name.
        vector: The item's taste vector.
        popularity: Non-negative trending signal supplied by the catalog.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    brewery: str = ""
    vector: TasteVector = Field(default_factory=TasteVector)
    popularity: float = Field(default=0.0, ge=0.0)


@dataclass(frozen=True)
class SavedItem:
    """A user's saved reference to a catalog item."""

    item: CandidateItem
    created_at: datetime | None = None


class TasteType(str, Enum):
    """Taste archetype.

    ``EXPLORER`` is reserved for the adventure-scoring path and is not
    produced by the classifier.
    """

    FLORAL = "floral"
    MELLOW = "mellow"
    HEAVY = "heavy"
    MILD = "mild"
    DRY = "dry"
    LIGHT = "light"
    BALANCED = "balanced"
    EXPLORER = "explorer"


class Mood(str, Enum):
    """Caller-selected mixing strategy across recommendation classes."""

    USUAL = "usual"
    ADVENTURE = "adventure"
    DISCOVERY = "discovery"
    SPECIAL = "special"

    @classmethod
    def parse(cls, value: str | Mood) -> Mood:
        """Parse a mood name.

        Raises:
            InvalidMoodError: If the value is not a known mood.
        """
        if isinstance(value, Mood):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise InvalidMoodError(
                f"Unknown mood: {value!r}",
                field="mood",
                value=value,
                constraint="one of " + ", ".join(m.value for m in cls),
            ) from e


class RecommendationClass(str, Enum):
    """Scoring method behind a recommendation, which also picks its reason text."""

    SIMILAR = "similar"
    EXPLORE = "explore"
    TRENDING = "trending"
    PAIRING = "pairing"
    RANDOM = "random"


class MenuRecommendationType(str, Enum):
    """Modes of the menu-restricted composer."""

    SIMILARITY = "similarity"
    PAIRING = "pairing"
    RANDOM = "random"

    @classmethod
    def parse(cls, value: str | MenuRecommendationType) -> MenuRecommendationType:
        """Parse a menu recommendation type.

        Raises:
            InvalidRecommendationTypeError: If the value is not a known type.
        """
        if isinstance(value, MenuRecommendationType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise InvalidRecommendationTypeError(
                f"Unknown recommendation type: {value!r}",
                field="recommendation_type",
                value=value,
                constraint="one of " + ", ".join(t.value for t in cls),
            ) from e


class Preference(BaseModel):
    """A user's derived taste profile.

    Recomputed from the saved-item set on demand; never a source of truth.
    """

    model_config = ConfigDict(frozen=True)

    vector: TasteVector
    taste_type: TasteType
    diversity_score: float = Field(ge=0.0, le=1.0)
    adventure_score: float = Field(ge=0.0, le=1.0)
    sample_size: int = Field(ge=0)
    computed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RecommendationResult(BaseModel):
    """One ranked, explained recommendation."""

    model_config = ConfigDict(frozen=True)

    item: CandidateItem
    score: float
    recommendation_class: RecommendationClass
    reason: str
    similarity_score: float = Field(ge=0.0, le=1.0)
    predicted_rating: float = Field(ge=1.0, le=5.0)


class MenuRecommendationResult(BaseModel):
    """Result of a menu-restricted composition.

    ``requires_more_favorites`` is a distinct outcome from an empty
    ``recommendations`` list: it tells the caller to ask the user to save
    more items before similarity ranking is possible.
    """

    recommendations: list[RecommendationResult] = Field(default_factory=list)
    total_found: int = 0
    requires_more_favorites: bool = False
    favorites_count: int | None = None
    message: str | None = None


class CacheEntry(BaseModel):
    """Serialized recommendation held by the cache for one (user, item, mood)."""

    user_id: str
    item_id: str
    mood: Mood
    rank: int
    score: float
    recommendation_class: RecommendationClass
    reason: str
    similarity_score: float
    predicted_rating: float
    item: CandidateItem
    expires_at: datetime

    @classmethod
    def from_result(
        cls,
        user_id: str,
        mood: Mood,
        rank: int,
        result: RecommendationResult,
        expires_at: datetime,
    ) -> CacheEntry:
        """Build an entry from a freshly composed result."""
        return cls(
            user_id=user_id,
            item_id=result.item.id,
            mood=mood,
            rank=rank,
            score=result.score,
            recommendation_class=result.recommendation_class,
            reason=result.reason,
            similarity_score=result.similarity_score,
            predicted_rating=result.predicted_rating,
            item=result.item,
            expires_at=expires_at,
        )

    def is_expired(self, now: datetime) -> bool:
        """Whether the entry is logically gone at ``now``."""
        return self.expires_at <= now

    def to_result(self) -> RecommendationResult:
        return RecommendationResult(
            item=self.item,
            score=self.score,
            recommendation_class=self.recommendation_class,
            reason=self.reason,
            similarity_score=self.similarity_score,
            predicted_rating=self.predicted_rating,
        )


@dataclass
class RecommendationOutcome:
    """What the service hands back to its caller.

    Attributes:
        recommendations: Ranked results, empty when none could be produced.
        from_cache: Whether the results were served from the cache.
        requires_more_favorites: The user has too few saved items to rank.
        favorites_count: Number of saved items considered.
        message: Guidance for the user when ``requires_more_favorites`` is set.
    """

    recommendations: list[RecommendationResult] = field(default_factory=list)
    from_cache: bool = False
    requires_more_favorites: bool = False
    favorites_count: int = 0
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendations": [r.model_dump(mode="json") for r in self.recommendations],
            "from_cache": self.from_cache,
            "requires_more_favorites": self.requires_more_favorites,
            "favorites_count": self.favorites_count,
            "message": self.message,
        }
