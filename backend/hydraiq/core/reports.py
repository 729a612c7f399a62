"""Report Generation - Pure functions for history rows and trends.

All functions are pure: same input always produces same output, no side effects.
"""

from .models import DailyAggregate, DailyHydrationSnapshot, TrendPoint, TrendReport

MIN_TREND_DAYS = 1
MAX_TREND_DAYS = 90

# Driver labels are prefixes; sleep and recovery labels carry their reading.
_DRIVER_COLUMNS = (
    ("base need", "base_need_ml"),
    ("workouts", "workouts_ml"),
    ("creatine", "creatine_ml"),
    ("heat", "heat_ml"),
    ("sleep", "sleep_ml"),
    ("recovery", "recovery_ml"),
)


def clamp_trend_days(days: int | None, default: int = 30) -> int:
    """Clamp a requested trend window to 1-90 days."""
    if days is None:
        days = default
    return max(MIN_TREND_DAYS, min(MAX_TREND_DAYS, int(days)))


def snapshot_to_aggregate(snapshot: DailyHydrationSnapshot) -> DailyAggregate:
    """Flatten a snapshot into the history row stored for its day.

    Args:
        snapshot: The computed daily snapshot

    Returns:
        DailyAggregate with one column per target driver
    """
    columns = {column: 0 for _, column in _DRIVER_COLUMNS}
    for driver in snapshot.target_drivers:
        label = driver.label.lower()
        for prefix, column in _DRIVER_COLUMNS:
            if label.startswith(prefix):
                columns[column] += driver.added_ml
                break

    metrics = snapshot.metrics
    return DailyAggregate(
        day=snapshot.date,
        hydration_score=snapshot.score,
        target_ml=snapshot.target_ml,
        actual_ml=round(snapshot.actual_ml, 1),
        sleep_hours=metrics.sleep_hours if metrics else None,
        recovery_pct=metrics.recovery_score_pct if metrics else None,
        updated_at=snapshot.computed_at,
        **columns,
    )


def generate_trend_report(aggregates: list[DailyAggregate], days: int) -> TrendReport:
    """Generate a trend report from stored history rows.

    Args:
        aggregates: History rows (any order, may contain more than ``days``)
        days: Number of most recent days to include

    Returns:
        TrendReport with points newest first and averages over logged days
    """
    days = clamp_trend_days(days)
    recent = sorted(aggregates, key=lambda a: a.day, reverse=True)[:days]

    points = [
        TrendPoint(
            day=a.day,
            hydration_score=a.hydration_score,
            target_ml=a.target_ml,
            actual_ml=a.actual_ml,
        )
        for a in recent
    ]

    count = len(points)
    avg_score = sum(p.hydration_score for p in points) / count if count > 0 else 0
    avg_actual = sum(p.actual_ml for p in points) / count if count > 0 else 0
    on_target = sum(1 for p in points if p.target_ml > 0 and p.actual_ml >= p.target_ml)

    return TrendReport(
        days=days,
        points=points,
        avg_score=round(avg_score, 1),
        avg_actual_ml=round(avg_actual, 1),
        days_on_target=on_target,
    )
