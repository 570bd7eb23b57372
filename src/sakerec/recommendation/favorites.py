"""Two-phase save/unsave flow for a user's favorites.

The UI applies a favorite change immediately and reconciles with the
saved-items store afterwards. This module makes both phases explicit:

- ``apply_locally`` returns the optimistic snapshot to render right away
- ``confirm`` persists the change, invalidates the user's cached
  recommendations, and on store failure hands back the original snapshot

The engine itself only ever sees the consistent snapshot returned by
``confirm``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from sakerec.core.exceptions import CacheError
from sakerec.core.logging import LoggerMixin
from sakerec.recommendation.cache import RecommendationCache
from sakerec.recommendation.schemas import CandidateItem, SavedItem


class SavedItemsStore(Protocol):
    """Persistent store of a user's saved items."""

    async def save(self, user_id: str, item_id: str, created_at: datetime) -> None: ...

    async def unsave(self, user_id: str, item_id: str) -> None: ...


class ChangeKind(str, Enum):
    SAVE = "save"
    UNSAVE = "unsave"


@dataclass(frozen=True)
class FavoriteChange:
    """A requested save or unsave of one catalog item."""

    kind: ChangeKind
    item: CandidateItem


@dataclass(frozen=True)
class PendingChange:
    """A change applied locally but not yet confirmed by the store.

    Attributes:
        user_id: Owner of the saved items.
        change: The requested change.
        original: Snapshot before the change.
        optimistic: Snapshot with the change applied.
        created_at: Timestamp a save is recorded with.
    """

    user_id: str
    change: FavoriteChange
    original: tuple[SavedItem, ...]
    optimistic: tuple[SavedItem, ...]
    created_at: datetime

    @property
    def is_noop(self) -> bool:
        return self.original == self.optimistic


@dataclass(frozen=True)
class ConfirmResult:
    """Outcome of confirming a pending change.

    Attributes:
        confirmed: Whether the store accepted the change.
        saved_items: The snapshot to use from now on; the original one
            when the change was reverted.
        cache_invalidated: Whether the user's cached recommendations
            were dropped.
        error: Store error message when the change was reverted.
    """

    confirmed: bool
    saved_items: tuple[SavedItem, ...]
    cache_invalidated: bool = False
    error: str | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FavoritesCoordinator(LoggerMixin):
    """Coordinate optimistic favorite changes with the store and the cache.

    Args:
        store: The saved-items store.
        cache: Recommendation cache to invalidate after a confirmed change.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        store: SavedItemsStore,
        cache: RecommendationCache | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.cache = cache
        self.clock = clock

    def apply_locally(
        self,
        user_id: str,
        saved_items: Sequence[SavedItem],
        change: FavoriteChange,
    ) -> PendingChange:
        """Apply a change to a snapshot without touching the store.

        Saving an item that is already saved, or unsaving one that is not,
        leaves the snapshot unchanged.
        """
        original = tuple(saved_items)
        created_at = self.clock()
        already_saved = any(s.item.id == change.item.id for s in original)

        if change.kind is ChangeKind.SAVE:
            if already_saved:
                optimistic = original
            else:
                optimistic = (SavedItem(item=change.item, created_at=created_at),) + original
        else:
            optimistic = tuple(s for s in original if s.item.id != change.item.id)

        return PendingChange(
            user_id=user_id,
            change=change,
            original=original,
            optimistic=optimistic,
            created_at=created_at,
        )

    async def confirm(self, pending: PendingChange) -> ConfirmResult:
        """Persist a pending change, or revert it if the store fails."""
        if pending.is_noop:
            return ConfirmResult(confirmed=True, saved_items=pending.original)

        change = pending.change
        try:
            if change.kind is ChangeKind.SAVE:
                await self.store.save(pending.user_id, change.item.id, pending.created_at)
            else:
                await self.store.unsave(pending.user_id, change.item.id)
        except Exception as e:
            self.logger.error(
                "favorite_change_reverted",
                user_id=pending.user_id,
                item_id=change.item.id,
                kind=change.kind.value,
                error=str(e),
            )
            return ConfirmResult(confirmed=False, saved_items=pending.original, error=str(e))

        cache_invalidated = False
        if self.cache is not None:
            try:
                await self.cache.invalidate(pending.user_id)
                cache_invalidated = True
            except CacheError as e:
                self.logger.error(
                    "favorite_change_cache_not_invalidated",
                    user_id=pending.user_id,
                    error=str(e),
                )

        self.logger.info(
            "favorite_change_confirmed",
            user_id=pending.user_id,
            item_id=change.item.id,
            kind=change.kind.value,
            num_saved=len(pending.optimistic),
        )
        return ConfirmResult(
            confirmed=True,
            saved_items=pending.optimistic,
            cache_invalidated=cache_invalidated,
        )
