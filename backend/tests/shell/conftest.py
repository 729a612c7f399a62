"""Shared fixtures for shell tests: an in-memory store and a fixed clock."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from hydraiq.core.models import WorkoutSession
from hydraiq.shell.snapshot_service import HydrationSnapshotService

NY = ZoneInfo("America/New_York")
NOW = datetime(2025, 6, 3, 15, 0, tzinfo=NY)


class InMemoryStore:
    """Dict-backed stand-in for HydrationFirestoreClient with the same methods."""

    def __init__(self):
        self.profiles = {}
        self.intakes = {}
        self.workouts = {}
        self.supplements = {}
        self.metrics = {}
        self.history = {}
        self.versions = {}
        self.last_check_in = {}
        self.snapshots = {}
        self.list_calls = 0

    def get_profile(self, user_id):
        return self.profiles.get(user_id)

    def save_profile(self, user_id, profile):
        self.profiles[user_id] = profile
        return True

    def add_intake(self, user_id, intake):
        self.intakes[intake.id] = intake
        return True

    def delete_intake(self, user_id, intake_id):
        return self.intakes.pop(intake_id, None)

    def list_intakes(self, user_id, start, end):
        self.list_calls += 1
        return sorted(
            (i for i in self.intakes.values() if start <= i.timestamp < end),
            key=lambda i: i.timestamp,
        )

    def add_workout(self, user_id, workout):
        self.workouts[workout.id] = workout
        return True

    def update_workout(self, user_id, workout_id, updates):
        old = self.workouts.get(workout_id)
        if old is None:
            return None
        new = WorkoutSession(**{**old.model_dump(), **updates})
        self.workouts[workout_id] = new
        return old, new

    def delete_workout(self, user_id, workout_id):
        return self.workouts.pop(workout_id, None)

    def list_workouts(self, user_id, start, end):
        return [w for w in self.workouts.values() if start <= w.start_time < end]

    def add_supplements(self, user_id, events):
        for event in events:
            self.supplements[event.id] = event
        return True

    def list_supplements(self, user_id, start, end):
        return [s for s in self.supplements.values() if start <= s.timestamp < end]

    def get_metrics(self, user_id, day):
        return self.metrics.get(day)

    def save_metrics(self, user_id, day, metrics):
        self.metrics[day] = metrics
        return True

    def upsert_aggregate(self, user_id, aggregate):
        self.history[aggregate.day] = aggregate
        return True

    def list_aggregates(self, user_id, limit):
        return sorted(self.history.values(), key=lambda a: a.day, reverse=True)[:limit]

    def get_data_version(self, user_id):
        return self.versions.get(user_id, 0)

    def bump_data_version(self, user_id):
        self.versions[user_id] = self.versions.get(user_id, 0) + 1
        return self.versions[user_id]

    def get_last_check_in(self, user_id):
        return self.last_check_in.get(user_id)

    def set_last_check_in(self, user_id, sent_at):
        self.last_check_in[user_id] = sent_at
        return True

    def load_snapshots(self, user_id):
        return dict(self.snapshots.get(user_id, {}))

    def save_snapshots(self, user_id, snapshots):
        self.snapshots[user_id] = dict(snapshots)
        return True


class Clock:
    """Settable clock for services under test."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def service(store, clock):
    """Snapshot service for user-1 with a persisted cache and no wearable."""
    svc = HydrationSnapshotService.for_user(store, "user-1", tz=NY, clock=clock)
    yield svc
    svc.close()
