"""Daily Snapshot - Pure composition of target, actual and score for one day.

All functions are pure: the caller supplies the day's records, the data
version and the current time.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from .beverages import sum_effective_ml
from .dates import today
from .models import (
    BiometricMetrics,
    DailyHydrationSnapshot,
    HydrationFlags,
    HydrationPacing,
    IntakeEvent,
    IntakeSeriesItem,
    PacingStatus,
    Profile,
    ScoreMode,
    SupplementEvent,
    WorkoutSession,
)
from .score import calculate_hydration_score
from .target import calculate_hydration_target, creatine_grams


def calculate_pacing(target_ml: int, actual_ml: float) -> HydrationPacing:
    """Pacing status for the day.

    Args:
        target_ml: The computed target
        actual_ml: Weighted intake so far

    Returns:
        HydrationPacing; needs-profile when there is no target
    """
    deficit = max(0.0, target_ml - actual_ml)
    ahead = max(0.0, actual_ml - target_ml)
    if target_ml <= 0:
        status = PacingStatus.NEEDS_PROFILE
    elif deficit <= 0:
        status = PacingStatus.ON_TARGET
    else:
        status = PacingStatus.BEHIND
    return HydrationPacing(status=status, deficit_ml=deficit, ahead_ml=ahead)


def score_mode_for(day: str, now: datetime, tz: ZoneInfo) -> ScoreMode:
    """Today is scored live, every other day as final."""
    return ScoreMode.LIVE if day == today(tz, now) else ScoreMode.FINAL


def build_daily_snapshot(
    day: str,
    profile: Profile | None,
    intakes: list[IntakeEvent],
    workouts: list[WorkoutSession],
    supplements: list[SupplementEvent],
    metrics: BiometricMetrics | None,
    version: int,
    now: datetime,
    tz: ZoneInfo,
    is_hot_day: bool = False,
) -> DailyHydrationSnapshot:
    """Build the hydration snapshot for one reference-zone day.

    Args:
        day: Date in YYYY-MM-DD format
        profile: User profile (None when never saved)
        intakes: Intake events bucketed into ``day``
        workouts: Workouts starting on ``day``
        supplements: Supplements taken on ``day``
        metrics: Cached wearable metrics for ``day``
        version: Data version the snapshot is stamped with
        now: Current time, used for live scoring and ``computed_at``
        tz: Reference timezone
        is_hot_day: Apply the heat adjustment

    Returns:
        DailyHydrationSnapshot
    """
    weight = profile.weight_kg if profile else None
    creatine_g = creatine_grams(supplements)

    target = calculate_hydration_target(
        weight_kg=weight,
        workouts=workouts,
        creatine_g=creatine_g,
        metrics=metrics,
        is_hot_day=is_hot_day,
    )
    actual_ml = sum_effective_ml(intakes)

    mode = score_mode_for(day, now, tz)
    score = calculate_hydration_score(
        target_ml=target.target_ml,
        actual_ml=actual_ml,
        intakes=intakes,
        workouts=workouts,
        mode=mode,
        now=now,
        tz=tz,
    )

    ordered = sorted(intakes, key=lambda i: i.timestamp)
    intake_series = [
        IntakeSeriesItem(timestamp=i.timestamp, volume_ml=i.volume_ml, beverage_type=i.beverage_type)
        for i in ordered
    ]

    return DailyHydrationSnapshot(
        date=day,
        target_ml=target.target_ml,
        actual_ml=actual_ml,
        score=score,
        intakes=intakes,
        workouts=workouts,
        supplements=supplements,
        metrics=metrics,
        flags=HydrationFlags(
            workouts=len(workouts) > 0,
            creatine=creatine_g > 0,
            biometrics=metrics is not None and metrics.has_signal,
        ),
        pacing=calculate_pacing(target.target_ml, actual_ml),
        target_drivers=target.drivers,
        intake_series=intake_series,
        score_mode=mode,
        computed_at=now,
        version=version,
    )
