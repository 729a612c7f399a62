"""Hydration Score - Pure function scoring a day's intake against its target.

Starts at 100 and applies deductions:
    - under target: (1 - ratio) * 40
    - over 130% of target: (ratio - 1.3) * 20
    - more than 30% of target drunk at or after 22:00: flat 10
    - any gap longer than 3 hours between drinks: flat 10, once
The result is clamped to [0, 100] and rounded.
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from .dates import local_hour, reference_zone
from .models import IntakeEvent, ScoreMode, WorkoutSession, utcnow
from .target import round_half_up

UNDER_TARGET_WEIGHT = 40
OVERHYDRATION_RATIO = 1.3
OVERHYDRATION_WEIGHT = 20
LATE_NIGHT_HOUR = 22
LATE_NIGHT_SHARE = 0.3
LATE_NIGHT_PENALTY = 10
DRY_GAP = timedelta(hours=3)
DRY_GAP_PENALTY = 10


def late_night_volume_ml(intakes: list[IntakeEvent], tz: ZoneInfo) -> float:
    return sum(i.volume_ml for i in intakes if local_hour(i.timestamp, tz) >= LATE_NIGHT_HOUR)


def has_dry_gap(checkpoints: list[datetime]) -> bool:
    """True if any two adjacent checkpoints are more than 3 hours apart."""
    ordered = sorted(checkpoints)
    for earlier, later in zip(ordered, ordered[1:]):
        if later - earlier > DRY_GAP:
            return True
    return False


def calculate_hydration_score(
    target_ml: float,
    actual_ml: float,
    intakes: list[IntakeEvent],
    workouts: list[WorkoutSession] | None = None,
    mode: ScoreMode = ScoreMode.FINAL,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> int:
    """Score actual intake against the target.

    In live mode the evaluation window ends at ``now``: drinks logged for later
    are ignored and the open gap since the last drink counts as a dry gap. In
    final mode the whole day is evaluated and the stretch between the last
    drink and midnight is not penalized.

    Args:
        target_ml: Daily target in milliliters
        actual_ml: Weighted intake in milliliters
        intakes: The day's intake events (raw volumes are used for lateness)
        workouts: The day's workouts; accepted for callers passing the full
            day, no deduction depends on them
        mode: LIVE for the day in progress, FINAL for a completed day
        now: Right edge of the live window (defaults to the current time)
        tz: Reference timezone for the late-night hour

    Returns:
        Integer score in [0, 100]; 0 when there is no target
    """
    if not target_ml or target_ml <= 0:
        return 0

    tz = tz or reference_zone()
    score = 100.0

    ratio = max(0.0, actual_ml) / target_ml
    if ratio < 1:
        score -= (1 - ratio) * UNDER_TARGET_WEIGHT
    elif ratio > OVERHYDRATION_RATIO:
        score -= (ratio - OVERHYDRATION_RATIO) * OVERHYDRATION_WEIGHT

    window = list(intakes)
    checkpoints = [i.timestamp for i in window]
    if mode == ScoreMode.LIVE:
        now = now or utcnow()
        window = [i for i in intakes if i.timestamp <= now]
        checkpoints = [i.timestamp for i in window]
        if checkpoints:
            checkpoints.append(now)

    if late_night_volume_ml(window, tz) > target_ml * LATE_NIGHT_SHARE:
        score -= LATE_NIGHT_PENALTY

    if has_dry_gap(checkpoints):
        score -= DRY_GAP_PENALTY

    return max(0, min(100, round_half_up(score)))
