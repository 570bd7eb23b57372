"""Taste archetype classification."""

from __future__ import annotations

import numpy as np

from sakerec.recommendation.schemas import FLAVOR_DIMENSIONS, TasteType, TasteVector

BALANCED_STD_THRESHOLD = 0.15


def classify(vector: TasteVector) -> TasteType:
    """Map a taste vector to its archetype.

    When the six flavor values are spread by less than 0.15 (population
    standard deviation) no trait dominates and the vector is ``BALANCED``.
    Otherwise the strongest flavor wins, ties going to the earlier
    dimension in declared order.
    """
    flavors = np.array(vector.flavor_values(), dtype=np.float64)
    if float(np.std(flavors)) < BALANCED_STD_THRESHOLD:
        return TasteType.BALANCED

    # argmax returns the first index on ties
    return TasteType(FLAVOR_DIMENSIONS[int(np.argmax(flavors))])
