"""Diversity and adventure scoring over a set of items.

Both scores are descriptive statistics in [0, 1]:

- diversity: mean pairwise 8-dimensional Euclidean distance divided by a
  fixed ceiling of 5.0
- adventure: 0.4 * producer spread + 0.6 * diversity, where producer
  spread is the number of distinct breweries over 10, capped at 1
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from sakerec.recommendation.schemas import CandidateItem

DISTANCE_CEILING = 5.0
BREWERY_CEILING = 10
BREWERY_WEIGHT = 0.4
DIVERSITY_WEIGHT = 0.6


@dataclass(frozen=True)
class DiversityScores:
    """Spread and exploratory tendency of a set of items."""

    diversity: float
    adventure: float


def diversity(items: Sequence[CandidateItem]) -> float:
    """Mean pairwise distance normalized to [0, 1]; 0 for fewer than 2 items."""
    if len(items) < 2:
        return 0.0

    vectors = np.vstack([item.vector.as_array() for item in items])
    diffs = vectors[:, None, :] - vectors[None, :, :]
    distances = np.sqrt((diffs**2).sum(axis=-1))
    upper = np.triu_indices(len(items), k=1)
    mean_distance = float(distances[upper].mean())
    return float(np.clip(mean_distance / DISTANCE_CEILING, 0.0, 1.0))


def brewery_diversity(items: Sequence[CandidateItem]) -> float:
    """Distinct producers over 10, capped at 1."""
    unique = {item.brewery for item in items if item.brewery}
    return min(len(unique) / BREWERY_CEILING, 1.0)


def adventure(items: Sequence[CandidateItem], diversity_score: float | None = None) -> float:
    """Blend producer spread and flavor diversity; 0 for no items."""
    if not items:
        return 0.0
    if diversity_score is None:
        diversity_score = diversity(items)
    value = BREWERY_WEIGHT * brewery_diversity(items) + DIVERSITY_WEIGHT * diversity_score
    return float(np.clip(value, 0.0, 1.0))


def score(items: Sequence[CandidateItem]) -> DiversityScores:
    """Compute both scores for ``items``."""
    div = diversity(items)
    return DiversityScores(diversity=div, adventure=adventure(items, div))
