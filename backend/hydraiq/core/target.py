"""Hydration Target - Pure functions for the daily fluid target.

All functions are pure: same input always produces same output, no side effects.

The target is built up from:
    base need   = weight_kg * 35 ml
    workouts    = duration_min * 8 ml * (0.5 + intensity / scale_max)
    creatine    = grams * 70 ml
    heat        = 10% of base need on hot days
and then scaled by an additive sleep/recovery percentage.
"""

import math

from .models import (
    BiometricMetrics,
    HydrationTarget,
    IntensityScale,
    SupplementEvent,
    SupplementType,
    TargetDriver,
    WorkoutSession,
)

BASE_ML_PER_KG = 35
WORKOUT_ML_PER_MIN = 8
CREATINE_ML_PER_GRAM = 70
HEAT_MULTIPLIER = 1.1

SCALE_MAX = {
    IntensityScale.MANUAL: 10.0,
    IntensityScale.STRAIN: 21.0,
}
# Strain assumed for workouts logged without an intensity
DEFAULT_STRAIN = 5.0

SLEEP_LOW_HOURS = 7.5
SLEEP_HIGH_HOURS = 8.5
SLEEP_SHORT_PCT_PER_HOUR = 0.03
SLEEP_LONG_PCT_PER_HOUR = 0.02


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


def intensity_factor(workout: WorkoutSession) -> float:
    """Workout multiplier in [0.5, 1.5], normalized by the session's own scale."""
    if workout.intensity is None:
        return 0.5 + DEFAULT_STRAIN / SCALE_MAX[IntensityScale.STRAIN]
    scale_max = SCALE_MAX[workout.intensity_scale]
    clamped = max(0.0, min(scale_max, workout.intensity))
    return 0.5 + clamped / scale_max


def workout_adjustment_ml(workouts: list[WorkoutSession]) -> float:
    """Extra fluid needed for the day's workouts (unrounded)."""
    return sum(
        (w.duration_min or 0) * WORKOUT_ML_PER_MIN * intensity_factor(w)
        for w in workouts
    )


def creatine_grams(supplements: list[SupplementEvent]) -> float:
    """Total positive creatine grams among the day's supplements."""
    return sum(
        s.grams
        for s in supplements
        if s.type == SupplementType.CREATINE and s.grams and s.grams > 0
    )


def sleep_modifier_pct(sleep_hours: float | None) -> float:
    """Target modifier for last night's sleep: short sleep raises it, long sleep lowers it."""
    if sleep_hours is None:
        return 0.0
    if sleep_hours < SLEEP_LOW_HOURS:
        return (SLEEP_LOW_HOURS - sleep_hours) * SLEEP_SHORT_PCT_PER_HOUR
    if sleep_hours > SLEEP_HIGH_HOURS:
        return -(sleep_hours - SLEEP_HIGH_HOURS) * SLEEP_LONG_PCT_PER_HOUR
    return 0.0


def recovery_modifier_pct(recovery_pct: float | None) -> float:
    if recovery_pct is None:
        return 0.0
    if recovery_pct < 33:
        return 0.05
    if recovery_pct < 66:
        return 0.02
    return 0.0


def calculate_hydration_target(
    weight_kg: float | None,
    workouts: list[WorkoutSession] | None = None,
    creatine_g: float = 0.0,
    metrics: BiometricMetrics | None = None,
    is_hot_day: bool = False,
) -> HydrationTarget:
    """Calculate the daily hydration target with its driver breakdown.

    Missing or invalid inputs contribute nothing; an unknown weight yields a
    zero target because there is nothing to scale from.

    Args:
        weight_kg: Body weight in kilograms (None or <= 0 means unknown)
        workouts: The day's workout sessions
        creatine_g: Total creatine grams taken that day
        metrics: Optional wearable sleep/recovery metrics
        is_hot_day: Adds 10% of the base need when True

    Returns:
        HydrationTarget with the rounded target and non-zero drivers in
        computation order
    """
    if weight_kg is None or weight_kg <= 0:
        return HydrationTarget(target_ml=0)

    base_need = weight_kg * BASE_ML_PER_KG
    workout_ml = workout_adjustment_ml(workouts or [])
    creatine_ml = max(0.0, creatine_g or 0.0) * CREATINE_ML_PER_GRAM
    heat_ml = base_need * (HEAT_MULTIPLIER - 1) if is_hot_day else 0.0

    base_target = base_need + workout_ml + creatine_ml + heat_ml

    drivers: list[TargetDriver] = []
    for label, ml in (
        ("Base Need", base_need),
        ("Workouts", workout_ml),
        ("Creatine", creatine_ml),
        ("Heat", heat_ml),
    ):
        added = round_half_up(ml)
        if added != 0:
            drivers.append(TargetDriver(label=label, added_ml=added))

    sleep_pct = recovery_pct = 0.0
    if metrics is not None:
        sleep_pct = sleep_modifier_pct(metrics.sleep_hours)
        recovery_pct = recovery_modifier_pct(metrics.recovery_score_pct)

        sleep_ml = round_half_up(base_target * sleep_pct)
        if sleep_ml != 0:
            drivers.append(TargetDriver(label=f"Sleep ({metrics.sleep_hours:.1f} h)", added_ml=sleep_ml))

        recovery_ml = round_half_up(base_target * recovery_pct)
        if recovery_ml != 0:
            drivers.append(
                TargetDriver(label=f"Recovery ({round_half_up(metrics.recovery_score_pct)}%)", added_ml=recovery_ml)
            )

    modifier_pct = sleep_pct + recovery_pct
    target = max(0, round_half_up(base_target * (1 + modifier_pct)))

    return HydrationTarget(
        target_ml=target,
        base_need_ml=round_half_up(base_need),
        workout_adjustment_ml=round_half_up(workout_ml),
        creatine_ml=round_half_up(creatine_ml),
        heat_adjustment_ml=round_half_up(heat_ml),
        modifier_pct=modifier_pct,
        drivers=drivers,
    )
