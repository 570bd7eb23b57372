"""Preference analysis: saved items to a full Preference record."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from sakerec.core.logging import get_logger
from sakerec.recommendation import diversity, taste_type
from sakerec.recommendation.preference_builder import (
    PreferenceBuildOptions,
    build,
    select_recent,
)
from sakerec.recommendation.schemas import Preference, SavedItem

logger = get_logger(__name__)


class PreferenceAnalyzer:
    """Combine vector building, archetype classification and diversity scoring.

    Attributes:
        options: Half-life and item cap for the vector builder.
    """

    def __init__(self, options: PreferenceBuildOptions | None = None) -> None:
        self.options = options or PreferenceBuildOptions()

    def analyze(
        self,
        saved_items: Sequence[SavedItem],
        now: datetime | None = None,
    ) -> Preference:
        """Derive a preference from the current saved-item snapshot.

        Diversity and adventure are computed over the same recency-selected
        items the vector is built from.

        Args:
            saved_items: The user's saved items.
            now: Reference time for recency decay.

        Returns:
            The derived preference; a neutral, balanced preference with
            zero scores when there are no saved items.
        """
        now = now or datetime.now(UTC)
        recent = select_recent(saved_items, self.options.max_items)

        vector = build(recent, self.options, now)
        scores = diversity.score([s.item for s in recent])
        preference = Preference(
            vector=vector,
            taste_type=taste_type.classify(vector),
            diversity_score=scores.diversity,
            adventure_score=scores.adventure,
            sample_size=len(recent),
            computed_at=now,
        )

        logger.info(
            "preference_analyzed",
            sample_size=preference.sample_size,
            taste_type=preference.taste_type.value,
            diversity_score=round(preference.diversity_score, 4),
            adventure_score=round(preference.adventure_score, 4),
        )
        return preference
