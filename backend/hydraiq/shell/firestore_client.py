"""Firestore Client - Persistence for hydration records and user data.

This module handles all database I/O for hydration tracking.
All I/O is contained here; business logic is in the core module.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from google.cloud import firestore
from pydantic import BaseModel, ValidationError

from ..core.models import (
    BiometricMetrics,
    DailyAggregate,
    DailyHydrationSnapshot,
    IntakeEvent,
    Profile,
    SupplementEvent,
    WorkoutSession,
    utcnow,
)


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """

    project_id: str | None = None
    database: str | None = None


class HydrationFirestoreClient:
    """Client for persisting hydration records to Firestore.

    Document structure per user:
        users/{user_id}/
            profile/config: { weight_kg, sex, units, ... }
            intakes/{id}: { timestamp, volume_ml, beverage_type }
            workouts/{id}: { start_time, end_time, duration_min, intensity, ... }
            supplements/{id}: { timestamp, type, grams }
            metrics/{YYYY-MM-DD}: { sleep_hours, recovery_score_pct, fetched_at, ... }
            history/{YYYY-MM-DD}: { hydration_score, target_ml, actual_ml, ... }
            state/version: { data_version }
            state/snapshots: { snapshots: {YYYY-MM-DD: {...}} }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _user_ref(self, user_id: str) -> firestore.DocumentReference:
        """Get reference to user document."""
        return self.client.collection("users").document(user_id)

    def _collection(self, user_id: str, name: str) -> firestore.CollectionReference:
        return self._user_ref(user_id).collection(name)

    def _state_ref(self, user_id: str, name: str) -> firestore.DocumentReference:
        return self._collection(user_id, "state").document(name)

    @staticmethod
    def _parse(model: type[RecordT], data: dict | None) -> RecordT | None:
        """Build a typed record from a document, skipping malformed ones."""
        if data is None:
            return None
        try:
            return model(**data)
        except ValidationError as e:
            logger.warning("Skipping malformed %s document: %s", model.__name__, e.errors()[:1])
            return None

    def _list_range(
        self,
        user_id: str,
        collection: str,
        field: str,
        start: datetime,
        end: datetime,
        model: type[RecordT],
    ) -> list[RecordT]:
        """Fetch records with ``start <= field < end`` ordered by ``field``."""
        query = (
            self._collection(user_id, collection)
            .where(field, ">=", start)
            .where(field, "<", end)
            .order_by(field)
        )
        records: list[RecordT] = []
        for doc in query.stream():
            record = self._parse(model, doc.to_dict())
            if record is not None:
                records.append(record)
        return records

    # ==================== Profile Operations ====================

    def get_profile(self, user_id: str) -> Profile | None:
        """Fetch the user's profile.

        Args:
            user_id: The user's ID

        Returns:
            Profile if found, None otherwise
        """
        logger.debug("Fetching profile for user: %s", user_id[:8])
        try:
            doc = self._collection(user_id, "profile").document("config").get()
            if not doc.exists:
                return None
            return self._parse(Profile, doc.to_dict())
        except Exception as e:
            logger.error("Failed to fetch profile: %s", str(e))
            return None

    def save_profile(self, user_id: str, profile: Profile) -> bool:
        """Save the user's profile.

        Args:
            user_id: The user's ID
            profile: Profile to save

        Returns:
            True if successful
        """
        logger.info("Saving profile for user: %s", user_id[:8])
        try:
            data = profile.model_dump()
            data["updated_at"] = utcnow()
            self._collection(user_id, "profile").document("config").set(data)
            return True
        except Exception as e:
            logger.error("Failed to save profile: %s", str(e))
            return False

    # ==================== Intake Operations ====================

    def add_intake(self, user_id: str, intake: IntakeEvent) -> bool:
        logger.info("Adding intake for %s at %s", user_id[:8], intake.timestamp.isoformat())
        try:
            self._collection(user_id, "intakes").document(intake.id).set(intake.model_dump())
            return True
        except Exception as e:
            logger.error("Failed to add intake: %s", str(e))
            return False

    def get_intake(self, user_id: str, intake_id: str) -> IntakeEvent | None:
        try:
            doc = self._collection(user_id, "intakes").document(intake_id).get()
            if not doc.exists:
                return None
            return self._parse(IntakeEvent, doc.to_dict())
        except Exception as e:
            logger.error("Failed to fetch intake: %s", str(e))
            return None

    def delete_intake(self, user_id: str, intake_id: str) -> IntakeEvent | None:
        """Delete an intake.

        Args:
            user_id: The user's ID
            intake_id: ID of the intake to delete

        Returns:
            The deleted intake if it existed, None otherwise
        """
        intake = self.get_intake(user_id, intake_id)
        if intake is None:
            logger.warning("Intake not found: %s", intake_id)
            return None
        try:
            self._collection(user_id, "intakes").document(intake_id).delete()
            return intake
        except Exception as e:
            logger.error("Failed to delete intake: %s", str(e))
            return None

    def list_intakes(self, user_id: str, start: datetime, end: datetime) -> list[IntakeEvent]:
        """Fetch intakes with timestamps in [start, end).

        Args:
            user_id: The user's ID
            start: Start of range (inclusive)
            end: End of range (exclusive)

        Returns:
            Intakes ordered by timestamp (may be empty)
        """
        logger.debug("Fetching intakes for %s from %s to %s", user_id[:8], start, end)
        try:
            return self._list_range(user_id, "intakes", "timestamp", start, end, IntakeEvent)
        except Exception as e:
            logger.error("Failed to fetch intakes: %s", str(e))
            return []

    # ==================== Workout Operations ====================

    def add_workout(self, user_id: str, workout: WorkoutSession) -> bool:
        logger.info("Adding workout for %s at %s", user_id[:8], workout.start_time.isoformat())
        try:
            self._collection(user_id, "workouts").document(workout.id).set(workout.model_dump())
            return True
        except Exception as e:
            logger.error("Failed to add workout: %s", str(e))
            return False

    def get_workout(self, user_id: str, workout_id: str) -> WorkoutSession | None:
        try:
            doc = self._collection(user_id, "workouts").document(workout_id).get()
            if not doc.exists:
                return None
            return self._parse(WorkoutSession, doc.to_dict())
        except Exception as e:
            logger.error("Failed to fetch workout: %s", str(e))
            return None

    def update_workout(
        self, user_id: str, workout_id: str, updates: dict
    ) -> tuple[WorkoutSession, WorkoutSession] | None:
        """Update a workout.

        Args:
            user_id: The user's ID
            workout_id: ID of the workout to update
            updates: Fields to update

        Returns:
            Tuple of (old, new) workout if successful, None otherwise
        """
        old = self.get_workout(user_id, workout_id)
        if old is None:
            logger.warning("Workout not found: %s", workout_id)
            return None

        data = old.model_dump()
        data.update(updates)
        # Re-derive duration from the new times unless it was given explicitly
        if "duration_min" not in updates and ("start_time" in updates or "end_time" in updates):
            data["duration_min"] = None
        try:
            new = WorkoutSession(**data)
        except ValidationError as e:
            logger.warning("Rejected workout update %s: %s", workout_id, e.errors()[:1])
            return None

        try:
            self._collection(user_id, "workouts").document(workout_id).set(new.model_dump())
            return old, new
        except Exception as e:
            logger.error("Failed to update workout: %s", str(e))
            return None

    def delete_workout(self, user_id: str, workout_id: str) -> WorkoutSession | None:
        workout = self.get_workout(user_id, workout_id)
        if workout is None:
            logger.warning("Workout not found: %s", workout_id)
            return None
        try:
            self._collection(user_id, "workouts").document(workout_id).delete()
            return workout
        except Exception as e:
            logger.error("Failed to delete workout: %s", str(e))
            return None

    def list_workouts(self, user_id: str, start: datetime, end: datetime) -> list[WorkoutSession]:
        """Fetch workouts starting in [start, end)."""
        try:
            return self._list_range(user_id, "workouts", "start_time", start, end, WorkoutSession)
        except Exception as e:
            logger.error("Failed to fetch workouts: %s", str(e))
            return []

    # ==================== Supplement Operations ====================

    def add_supplements(self, user_id: str, events: list[SupplementEvent]) -> bool:
        """Add supplement events in one batch.

        Args:
            user_id: The user's ID
            events: Supplement events to add

        Returns:
            True if successful
        """
        logger.info("Adding %d supplements for %s", len(events), user_id[:8])
        try:
            batch = self.client.batch()
            for event in events:
                batch.set(self._collection(user_id, "supplements").document(event.id), event.model_dump())
            batch.commit()
            return True
        except Exception as e:
            logger.error("Failed to add supplements: %s", str(e))
            return False

    def list_supplements(self, user_id: str, start: datetime, end: datetime) -> list[SupplementEvent]:
        try:
            return self._list_range(user_id, "supplements", "timestamp", start, end, SupplementEvent)
        except Exception as e:
            logger.error("Failed to fetch supplements: %s", str(e))
            return []

    # ==================== Biometric Operations ====================

    def get_metrics(self, user_id: str, day: str) -> BiometricMetrics | None:
        try:
            doc = self._collection(user_id, "metrics").document(day).get()
            if not doc.exists:
                return None
            return self._parse(BiometricMetrics, doc.to_dict())
        except Exception as e:
            logger.error("Failed to fetch metrics: %s", str(e))
            return None

    def save_metrics(self, user_id: str, day: str, metrics: BiometricMetrics) -> bool:
        logger.info("Saving metrics for %s on %s", user_id[:8], day)
        try:
            self._collection(user_id, "metrics").document(day).set(metrics.model_dump())
            return True
        except Exception as e:
            logger.error("Failed to save metrics: %s", str(e))
            return False

    # ==================== History Operations ====================

    def upsert_aggregate(self, user_id: str, aggregate: DailyAggregate) -> bool:
        """Insert or replace the history row for a day."""
        try:
            self._collection(user_id, "history").document(aggregate.day).set(aggregate.model_dump())
            return True
        except Exception as e:
            logger.error("Failed to upsert history for %s: %s", aggregate.day, str(e))
            return False

    def list_aggregates(self, user_id: str, limit: int) -> list[DailyAggregate]:
        """Fetch the most recent history rows, newest first."""
        try:
            query = (
                self._collection(user_id, "history")
                .order_by("day", direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            rows = [self._parse(DailyAggregate, doc.to_dict()) for doc in query.stream()]
            return [r for r in rows if r is not None]
        except Exception as e:
            logger.error("Failed to fetch history: %s", str(e))
            return []

    # ==================== State Operations ====================

    def get_data_version(self, user_id: str) -> int:
        """Current data version (0 if never bumped or unreadable)."""
        try:
            doc = self._state_ref(user_id, "version").get()
            if not doc.exists:
                return 0
            return int((doc.to_dict() or {}).get("data_version", 0))
        except Exception as e:
            logger.error("Failed to fetch data version: %s", str(e))
            return 0

    def bump_data_version(self, user_id: str) -> int:
        """Increment the data version and return the new value."""
        try:
            self._state_ref(user_id, "version").set(
                {"data_version": firestore.Increment(1), "updated_at": utcnow()}, merge=True
            )
        except Exception as e:
            logger.error("Failed to bump data version: %s", str(e))
        return self.get_data_version(user_id)

    def get_last_check_in(self, user_id: str) -> datetime | None:
        try:
            doc = self._state_ref(user_id, "notifications").get()
            if not doc.exists:
                return None
            return (doc.to_dict() or {}).get("last_sent")
        except Exception as e:
            logger.error("Failed to fetch check-in state: %s", str(e))
            return None

    def set_last_check_in(self, user_id: str, sent_at: datetime) -> bool:
        try:
            self._state_ref(user_id, "notifications").set({"last_sent": sent_at}, merge=True)
            return True
        except Exception as e:
            logger.error("Failed to save check-in state: %s", str(e))
            return False

    def load_snapshots(self, user_id: str) -> dict[str, DailyHydrationSnapshot]:
        """Load the persisted snapshot cache mirror."""
        try:
            doc = self._state_ref(user_id, "snapshots").get()
            if not doc.exists:
                return {}
            raw = (doc.to_dict() or {}).get("snapshots", {})
            snapshots = {}
            for day, data in raw.items():
                snapshot = self._parse(DailyHydrationSnapshot, data)
                if snapshot is not None:
                    snapshots[day] = snapshot
            return snapshots
        except Exception as e:
            logger.error("Failed to load snapshot cache: %s", str(e))
            return {}

    def save_snapshots(self, user_id: str, snapshots: dict[str, DailyHydrationSnapshot]) -> bool:
        """Replace the persisted snapshot cache mirror."""
        try:
            self._state_ref(user_id, "snapshots").set(
                {"snapshots": {day: s.model_dump(mode="json") for day, s in snapshots.items()}}
            )
            return True
        except Exception as e:
            logger.error("Failed to save snapshot cache: %s", str(e))
            return False
