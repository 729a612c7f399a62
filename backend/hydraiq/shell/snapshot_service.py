"""Snapshot Service - Orchestrates storage, the wearable and the pure core.

One service instance serves one user for the lifetime of a session. Every
write bumps the user's data version and publishes a DataChange; cached
snapshots stamped with an older version are rebuilt on the next read.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..core.dates import day_bounds, local_date, reference_zone, today
from ..core.models import (
    BeverageType,
    DailyHydrationSnapshot,
    DataChange,
    IntakeEvent,
    IntensityScale,
    Profile,
    ScoreMode,
    SupplementEvent,
    SupplementType,
    TrendReport,
    WorkoutSession,
    utcnow,
)
from ..core.notifications import decide_check_in
from ..core.reports import clamp_trend_days, generate_trend_report, snapshot_to_aggregate
from ..core.snapshot import build_daily_snapshot, score_mode_for
from .events import DataChangeBus
from .firestore_client import HydrationFirestoreClient
from .snapshot_cache import SnapshotCache
from .whoop_client import WhoopClient

logger = logging.getLogger(__name__)

METRICS_TTL = timedelta(minutes=10)

# Today's live score depends on the clock, so it is recomputed this often
LIVE_SNAPSHOT_TTL = timedelta(minutes=5)


class HydrationSnapshotService:
    """Builds, caches and invalidates daily hydration snapshots for a user."""

    def __init__(
        self,
        db: HydrationFirestoreClient,
        user_id: str,
        cache: Optional[SnapshotCache] = None,
        whoop: Optional[WhoopClient] = None,
        bus: Optional[DataChangeBus] = None,
        tz: Optional[ZoneInfo] = None,
        hot_day: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the service.

        Args:
            db: Storage client
            user_id: The user this service acts for
            cache: Snapshot cache (a fresh in-memory one if omitted)
            whoop: Wearable client (biometrics are skipped if omitted)
            bus: Change bus; the service subscribes to it
            tz: Reference timezone for day boundaries
            hot_day: Apply the hot-day adjustment to targets
            clock: Source of the current time
        """
        self.db = db
        self.user_id = user_id
        self.cache = cache if cache is not None else SnapshotCache()
        self.whoop = whoop
        self.bus = bus if bus is not None else DataChangeBus()
        self.tz = tz or reference_zone()
        self.hot_day = hot_day
        self._clock = clock
        self._inflight_metrics: set[str] = set()
        self._unsubscribe = self.bus.subscribe(self._on_change)

    @classmethod
    def for_user(cls, db: HydrationFirestoreClient, user_id: str, **kwargs) -> "HydrationSnapshotService":
        """Create a service whose cache is restored from and mirrored to storage."""
        cache = SnapshotCache(
            persist=lambda snapshots: db.save_snapshots(user_id, snapshots),
            entries=db.load_snapshots(user_id),
        )
        return cls(db, user_id, cache=cache, **kwargs)

    def close(self) -> None:
        """Stop listening for data changes."""
        self._unsubscribe()

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> str:
        return today(self.tz, self.now())

    def day_of(self, ts: datetime) -> str:
        return local_date(ts, self.tz)

    # ==================== Snapshots ====================

    def get_snapshot(self, day: str) -> Optional[DailyHydrationSnapshot]:
        """Cached snapshot for ``day`` without rebuilding (may be stale)."""
        return self.cache.get(day)

    def ensure_snapshot(self, day: str) -> DailyHydrationSnapshot:
        """Return an up-to-date snapshot for ``day``.

        A cached snapshot is reused only if it matches the current data
        version and was scored in the mode the day calls for now. A live
        snapshot is also rebuilt once it is older than LIVE_SNAPSHOT_TTL, so
        open dry gaps keep counting and a day that has ended is rescored
        as final.
        """
        version = self.db.get_data_version(self.user_id)
        cached = self.cache.get_current(day, version)
        if cached is not None and self._still_scored_correctly(cached):
            return cached
        return self._rebuild(day, version)

    def _still_scored_correctly(self, snapshot: DailyHydrationSnapshot) -> bool:
        now = self.now()
        mode = score_mode_for(snapshot.date, now, self.tz)
        if snapshot.score_mode != mode:
            return False
        return mode == ScoreMode.FINAL or now - snapshot.computed_at < LIVE_SNAPSHOT_TTL

    def refresh_snapshot(self, day: str) -> DailyHydrationSnapshot:
        """Rebuild ``day`` from storage regardless of the cached version."""
        return self._rebuild(day, self.db.get_data_version(self.user_id))

    def _rebuild(self, day: str, version: int) -> DailyHydrationSnapshot:
        start, end = day_bounds(day, self.tz)
        snapshot = build_daily_snapshot(
            day=day,
            profile=self.db.get_profile(self.user_id),
            intakes=self.db.list_intakes(self.user_id, start, end),
            workouts=self.db.list_workouts(self.user_id, start, end),
            supplements=self.db.list_supplements(self.user_id, start, end),
            metrics=self.db.get_metrics(self.user_id, day),
            version=version,
            now=self.now(),
            tz=self.tz,
            is_hot_day=self.hot_day,
        )
        self.cache.put(snapshot)
        self.db.upsert_aggregate(self.user_id, snapshot_to_aggregate(snapshot))
        logger.debug("Rebuilt snapshot %s for %s at version %d", day, self.user_id[:8], version)
        return snapshot

    def _on_change(self, change: DataChange) -> None:
        if change.scope == "all":
            self.cache.clear()
            return
        for day in change.dates:
            self.refresh_snapshot(day)

    def _changed(self, change: DataChange) -> None:
        self.db.bump_data_version(self.user_id)
        self.bus.publish(change)

    # ==================== Writes ====================

    def set_profile(self, profile: Profile) -> bool:
        if not self.db.save_profile(self.user_id, profile):
            return False
        # Weight feeds every day's target
        self._changed(DataChange.everything())
        return True

    def log_intake(
        self,
        volume_ml: float,
        beverage_type: BeverageType = BeverageType.WATER,
        timestamp: Optional[datetime] = None,
    ) -> Optional[IntakeEvent]:
        intake = IntakeEvent(volume_ml=volume_ml, beverage_type=beverage_type, timestamp=timestamp or self.now())
        if not self.db.add_intake(self.user_id, intake):
            return None
        self._changed(DataChange.for_dates(self.day_of(intake.timestamp)))
        return intake

    def delete_intake(self, intake_id: str) -> Optional[IntakeEvent]:
        intake = self.db.delete_intake(self.user_id, intake_id)
        if intake is not None:
            self._changed(DataChange.for_dates(self.day_of(intake.timestamp)))
        return intake

    def log_workout(
        self,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        duration_min: Optional[float] = None,
        intensity: Optional[float] = None,
        intensity_scale: IntensityScale = IntensityScale.MANUAL,
        workout_type: Optional[str] = None,
    ) -> Optional[WorkoutSession]:
        workout = WorkoutSession(
            start_time=start_time,
            end_time=end_time,
            duration_min=duration_min,
            intensity=intensity,
            intensity_scale=intensity_scale,
            type=workout_type,
        )
        if not self.db.add_workout(self.user_id, workout):
            return None
        self._changed(DataChange.for_dates(self.day_of(workout.start_time)))
        return workout

    def update_workout(self, workout_id: str, updates: dict) -> Optional[WorkoutSession]:
        """Apply updates to a workout; both its old and new days are refreshed."""
        result = self.db.update_workout(self.user_id, workout_id, updates)
        if result is None:
            return None
        old, new = result
        self._changed(DataChange.for_dates(self.day_of(old.start_time), self.day_of(new.start_time)))
        return new

    def delete_workout(self, workout_id: str) -> Optional[WorkoutSession]:
        workout = self.db.delete_workout(self.user_id, workout_id)
        if workout is not None:
            self._changed(DataChange.for_dates(self.day_of(workout.start_time)))
        return workout

    def log_supplements(
        self,
        types: list[SupplementType],
        timestamp: Optional[datetime] = None,
        grams: Optional[float] = None,
    ) -> list[SupplementEvent]:
        """Log one event per supplement type, all sharing timestamp and grams."""
        ts = timestamp or self.now()
        events = [SupplementEvent(type=t, timestamp=ts, grams=grams) for t in types]
        if not events or not self.db.add_supplements(self.user_id, events):
            return []
        self._changed(DataChange.for_dates(self.day_of(ts)))
        return events

    # ==================== Biometrics ====================

    def metrics_are_fresh(self, day: str) -> bool:
        """True if stored metrics are younger than the TTL and complete."""
        cached = self.db.get_metrics(self.user_id, day)
        if cached is None or cached.sleep_performance_pct is None:
            return False
        return self.now() - cached.fetched_at < METRICS_TTL

    async def request_biometrics(self, day: str) -> bool:
        """Refresh wearable metrics for ``day`` when stale or incomplete.

        At most one refresh per day is in flight; concurrent callers for the
        same day return immediately.

        Returns:
            True if new metrics were fetched and stored
        """
        if self.whoop is None or self.metrics_are_fresh(day):
            return False
        if day in self._inflight_metrics:
            logger.debug("Metrics refresh for %s already in flight", day)
            return False

        self._inflight_metrics.add(day)
        try:
            metrics = await self.whoop.fetch_metrics(day, self.tz)
            if metrics is None:
                return False
            if not self.db.save_metrics(self.user_id, day, metrics):
                return False
            self._changed(DataChange.for_dates(day))
            return True
        finally:
            self._inflight_metrics.discard(day)

    # ==================== Reports ====================

    def trend(self, days: int = 30) -> TrendReport:
        days = clamp_trend_days(days)
        return generate_trend_report(self.db.list_aggregates(self.user_id, days), days)

    def check_in(self) -> Optional[str]:
        """Smart check-in message for today, if one is due.

        The send time is recorded so the next check-in respects the minimum
        interval.
        """
        now = self.now()
        last_sent = self.db.get_last_check_in(self.user_id)
        message = decide_check_in(self.ensure_snapshot(self.today()), now, last_sent)
        if message is not None:
            self.db.set_last_check_in(self.user_id, now)
        return message
