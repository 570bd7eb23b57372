"""Preference vector construction from a user's saved items.

A user's saved items are folded into a single taste vector using an
exponentially time-decayed weighted mean, so recent taste shifts dominate
without discarding history.

Examples:
    >>> from sakerec.recommendation.preference_builder import build
    >>> build([])  # neutral default
    TasteVector(sweetness=0.0, richness=0.0, floral=0.5, ...)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import numpy as np

from sakerec.core.logging import get_logger
from sakerec.recommendation.schemas import SavedItem, TasteVector

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400.0


@dataclass
class PreferenceBuildOptions:
    """Options for building a preference vector.

    Attributes:
        half_life_days: Decay constant in days; weight is exp(-age / half_life_days).
        max_items: Maximum number of most recent saved items to consider.
    """

    half_life_days: float = 30.0
    max_items: int = 50

    def __post_init__(self) -> None:
        """Validate build options."""
        if self.half_life_days <= 0:
            raise ValueError(f"half_life_days must be positive, got {self.half_life_days}")

        if self.max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {self.max_items}")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def select_recent(
    saved_items: Sequence[SavedItem],
    max_items: int = 50,
) -> list[SavedItem]:
    """Keep the ``max_items`` most recently saved items, newest first.

    Items without a timestamp sort after every timestamped item, keeping
    their input order.
    """
    timestamped = [s for s in saved_items if s.created_at is not None]
    undated = [s for s in saved_items if s.created_at is None]
    timestamped.sort(key=lambda s: _as_utc(s.created_at), reverse=True)  # type: ignore[arg-type]
    return (timestamped + undated)[:max_items]


def decay_weight(
    saved_item: SavedItem,
    now: datetime,
    half_life_days: float = 30.0,
) -> float:
    """Compute the recency weight of one saved item.

    Args:
        saved_item: The saved item.
        now: Reference time.
        half_life_days: Decay constant in days.

    Returns:
        ``exp(-age_days / half_life_days)``; 1.0 when the item has no
        timestamp. Items saved after ``now`` count as age 0.
    """
    if saved_item.created_at is None:
        return 1.0

    age_days = (_as_utc(now) - _as_utc(saved_item.created_at)).total_seconds() / SECONDS_PER_DAY
    return math.exp(-max(age_days, 0.0) / half_life_days)


def build(
    saved_items: Sequence[SavedItem],
    options: PreferenceBuildOptions | None = None,
    now: datetime | None = None,
) -> TasteVector:
    """Fold saved items into one weighted, time-decayed taste vector.

    Args:
        saved_items: The user's saved items, in any order.
        options: Half-life and item cap. Defaults to 30 days and 50 items.
        now: Reference time for ages. Defaults to the current UTC time.

    Returns:
        The clamped weighted mean vector, or the neutral vector when there
        are no saved items.
    """
    if not saved_items:
        return TasteVector.neutral()

    options = options or PreferenceBuildOptions()
    now = now or datetime.now(UTC)

    kept = select_recent(saved_items, options.max_items)
    weights = np.array(
        [decay_weight(s, now, options.half_life_days) for s in kept],
        dtype=np.float64,
    )
    vectors = np.vstack([s.item.vector.as_array() for s in kept])

    total_weight = float(weights.sum())
    if total_weight <= 0.0:
        # Ages far beyond the half-life underflow to zero weight
        weights = np.ones_like(weights)
        total_weight = float(len(kept))

    mean = (weights[:, None] * vectors).sum(axis=0) / total_weight

    logger.debug(
        "preference_vector_built",
        num_saved=len(saved_items),
        num_used=len(kept),
        total_weight=round(total_weight, 6),
    )

    return TasteVector.from_array(mean)
