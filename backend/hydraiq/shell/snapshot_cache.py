"""Snapshot Cache - Per-date cache of daily snapshots with a bounded size."""

import logging
from typing import Callable, Optional

from ..core.models import DailyHydrationSnapshot

logger = logging.getLogger(__name__)

MAX_CACHE_DAYS = 10

Persist = Callable[[dict[str, DailyHydrationSnapshot]], object]


class SnapshotCache:
    """Cache of DailyHydrationSnapshot keyed by YYYY-MM-DD.

    Holds at most ``max_days`` dates; the oldest dates are evicted first.
    Every mutation is written through to ``persist`` when one is given, so a
    new session can start from the mirrored entries.
    """

    def __init__(
        self,
        max_days: int = MAX_CACHE_DAYS,
        persist: Optional[Persist] = None,
        entries: Optional[dict[str, DailyHydrationSnapshot]] = None,
    ) -> None:
        if max_days < 1:
            raise ValueError("max_days must be at least 1")
        self.max_days = max_days
        self._persist = persist
        self._entries: dict[str, DailyHydrationSnapshot] = self._prune(dict(entries or {}))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, day: str) -> Optional[DailyHydrationSnapshot]:
        return self._entries.get(day)

    def get_current(self, day: str, version: int) -> Optional[DailyHydrationSnapshot]:
        """Cached snapshot for ``day`` only if it was stamped with ``version``."""
        cached = self._entries.get(day)
        if cached is None or cached.version != version:
            return None
        return cached

    def put(self, snapshot: DailyHydrationSnapshot) -> None:
        """Store a snapshot, evict the oldest dates over the cap, then persist."""
        entries = dict(self._entries)
        entries[snapshot.date] = snapshot
        self._entries = self._prune(entries)
        self._save()

    def invalidate(self, days: list[str]) -> None:
        removed = [d for d in days if self._entries.pop(d, None) is not None]
        if removed:
            self._save()

    def clear(self) -> None:
        self._entries = {}
        self._save()

    def _prune(self, entries: dict[str, DailyHydrationSnapshot]) -> dict[str, DailyHydrationSnapshot]:
        if len(entries) <= self.max_days:
            return entries
        keep = sorted(entries)[-self.max_days:]
        logger.debug("Evicting %d cached snapshot dates", len(entries) - len(keep))
        return {day: entries[day] for day in keep}

    def _save(self) -> None:
        if self._persist is not None:
            self._persist(dict(self._entries))
