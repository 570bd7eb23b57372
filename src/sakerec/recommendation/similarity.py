"""Similarity scoring between a preference and catalog items.

Similarity is the bounded inverse of the unweighted 8-dimensional
Euclidean distance::

    similarity = 1 / (1 + distance)

It is 1.0 only at zero distance, decreases monotonically with distance and
stays in (0, 1], so ``predicted_rating = 1 + 4 * similarity`` always lies
in [1, 5].

Examples:
    >>> from sakerec.recommendation.similarity import rank
    >>> ranked = rank(preference_vector, candidates)
    >>> best_item, best_similarity = ranked[0]
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from sakerec.recommendation.schemas import DIMENSIONS, CandidateItem, TasteVector

DIMENSION_LABELS: dict[str, str] = {
    "sweetness": "sweetness",
    "richness": "body",
    "floral": "floral aroma",
    "mellow": "mellowness",
    "heavy": "depth",
    "mild": "gentleness",
    "dry": "crisp finish",
    "light": "lightness",
}


def distance(a: TasteVector, b: TasteVector) -> float:
    """Unweighted Euclidean distance over all 8 dimensions."""
    return float(np.linalg.norm(a.as_array() - b.as_array()))


def similarity_from_distance(dist: float) -> float:
    return 1.0 / (1.0 + max(dist, 0.0))


def similarity(pref: TasteVector, candidate: TasteVector) -> float:
    """Similarity in [0, 1] between a preference and a candidate vector."""
    return similarity_from_distance(distance(pref, candidate))


def predicted_rating(similarity_score: float) -> float:
    """Map a similarity to a 1-5 rating estimate."""
    return float(np.clip(1.0 + 4.0 * similarity_score, 1.0, 5.0))


def closest_dimension(pref: TasteVector, candidate: TasteVector) -> str:
    """Name of the dimension on which the candidate best matches the preference."""
    gaps = np.abs(pref.as_array() - candidate.as_array())
    return DIMENSIONS[int(np.argmin(gaps))]


def similarity_reason(pref: TasteVector, candidate: TasteVector, similarity_score: float) -> str:
    """Short justification for a similarity-ranked item, banded by score."""
    if similarity_score > 0.9:
        return "A perfect match for your taste"
    if similarity_score > 0.8:
        return "Very close to your taste"
    if similarity_score > 0.7:
        label = DIMENSION_LABELS[closest_dimension(pref, candidate)]
        return f"Its {label} matches your preference"
    if similarity_score > 0.6:
        return "Shares traits with your favorites"
    return "Could suit your taste"


def rank(
    pref: TasteVector,
    candidates: Sequence[CandidateItem],
) -> list[tuple[CandidateItem, float]]:
    """Score every candidate and order by similarity descending, then id."""
    scored = [(item, similarity(pref, item.vector)) for item in candidates]
    scored.sort(key=lambda pair: (-pair[1], pair[0].id))
    return scored
