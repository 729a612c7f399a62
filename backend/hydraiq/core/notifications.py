"""Smart Check-ins - Pure decision of whether to nudge the user to drink.

Delivery is someone else's job; this module only picks the message.
"""

from datetime import datetime, timedelta

from .models import DailyHydrationSnapshot
from .units import ml_to_oz

MIN_INTERVAL = timedelta(hours=2)
POST_WORKOUT_WINDOW = timedelta(minutes=90)
IDLE_WINDOW = timedelta(minutes=90)
BEHIND_THRESHOLD_OZ = 20

POST_WORKOUT_MESSAGE = "Workout logged. Hydrate soon to recover well."


def decide_check_in(
    snapshot: DailyHydrationSnapshot,
    now: datetime,
    last_sent: datetime | None = None,
) -> str | None:
    """Decide whether a check-in should be sent for today's snapshot.

    Args:
        snapshot: Today's snapshot
        now: Current time
        last_sent: When the previous check-in went out, if ever

    Returns:
        Notification body, or None when no check-in is due
    """
    if last_sent is not None and now - last_sent < MIN_INTERVAL:
        return None
    if snapshot.target_ml <= 0:
        return None

    past_drinks = [i.timestamp for i in snapshot.intakes if i.timestamp <= now]
    last_drink = max(past_drinks, default=None)
    past_workouts = [w.start_time for w in snapshot.workouts if w.start_time <= now]
    last_workout = max(past_workouts, default=None)

    if last_workout is not None and now - last_workout <= POST_WORKOUT_WINDOW:
        if last_drink is None or last_drink < last_workout:
            return POST_WORKOUT_MESSAGE

    deficit_oz = ml_to_oz(max(0.0, snapshot.target_ml - snapshot.actual_ml))
    idle = last_drink is None or now - last_drink >= IDLE_WINDOW
    if deficit_oz >= BEHIND_THRESHOLD_OZ and idle:
        return f"You're behind by ~{round(deficit_oz)} oz. Small steady sips help."

    return None
