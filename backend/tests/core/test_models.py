"""Unit tests for data models - validation and defaults."""

import math
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from hydraiq.core.models import (
    BeverageType,
    BiometricMetrics,
    DailyAggregate,
    DataChange,
    IntakeEvent,
    Profile,
    Units,
    WorkoutSession,
)

START = datetime(2025, 6, 3, 14, 0, tzinfo=timezone.utc)


class TestProfile:
    """Tests for Profile model."""

    def test_defaults(self):
        """Profile defaults to imperial units and no weight."""
        profile = Profile()
        assert profile.units == Units.IMPERIAL
        assert profile.weight_kg is None
        assert profile.is_complete is False

    def test_complete_with_weight(self):
        assert Profile(weight_kg=70).is_complete is True

    def test_zero_weight_is_incomplete(self):
        """Zero weight is stored but treated as unknown."""
        assert Profile(weight_kg=0).is_complete is False


class TestIntakeEvent:
    """Tests for IntakeEvent model."""

    def test_valid_intake(self):
        """Valid intake gets an id and defaults to water."""
        intake = IntakeEvent(timestamp=START, volume_ml=250)
        assert intake.id is not None
        assert intake.beverage_type == BeverageType.WATER

    def test_zero_volume_rejected(self):
        with pytest.raises(ValidationError):
            IntakeEvent(timestamp=START, volume_ml=0)

    def test_negative_volume_rejected(self):
        with pytest.raises(ValidationError):
            IntakeEvent(timestamp=START, volume_ml=-100)

    def test_unknown_beverage_becomes_other(self):
        """Unrecognized beverage names fall back to other."""
        intake = IntakeEvent(timestamp=START, volume_ml=250, beverage_type="kombucha")
        assert intake.beverage_type == BeverageType.OTHER

    def test_beverage_name_case_insensitive(self):
        intake = IntakeEvent(timestamp=START, volume_ml=250, beverage_type="Coffee")
        assert intake.beverage_type == BeverageType.COFFEE

    def test_naive_timestamp_is_utc(self):
        """Naive timestamps from older documents are read as UTC."""
        intake = IntakeEvent(timestamp=datetime(2025, 6, 3, 14, 0), volume_ml=250)
        assert intake.timestamp == START

    def test_ids_are_unique(self):
        assert IntakeEvent(volume_ml=1).id != IntakeEvent(volume_ml=1).id


class TestWorkoutSession:
    """Tests for WorkoutSession model."""

    def test_duration_from_times(self):
        workout = WorkoutSession(start_time=START, end_time=START + timedelta(minutes=62))
        assert workout.duration_min == 62

    def test_explicit_duration_wins(self):
        """An explicit duration is not overwritten by the time range."""
        workout = WorkoutSession(start_time=START, end_time=START + timedelta(minutes=62), duration_min=45)
        assert workout.duration_min == 45

    def test_end_before_start_is_zero(self):
        workout = WorkoutSession(start_time=START, end_time=START - timedelta(minutes=30))
        assert workout.duration_min == 0

    def test_no_end_no_duration(self):
        assert WorkoutSession(start_time=START).duration_min is None

    def test_negative_intensity_rejected(self):
        with pytest.raises(ValidationError):
            WorkoutSession(start_time=START, duration_min=30, intensity=-1)


class TestBiometricMetrics:
    """Tests for BiometricMetrics model."""

    def test_non_finite_values_dropped(self):
        """NaN and infinity become missing readings."""
        metrics = BiometricMetrics(sleep_hours=math.nan, recovery_score_pct=math.inf)
        assert metrics.sleep_hours is None
        assert metrics.recovery_score_pct is None
        assert metrics.has_signal is False

    def test_garbage_values_dropped(self):
        metrics = BiometricMetrics(sleep_hours="lots", sleep_performance_pct=True)
        assert metrics.sleep_hours is None
        assert metrics.sleep_performance_pct is None

    def test_numeric_strings_accepted(self):
        assert BiometricMetrics(sleep_hours="7.5").sleep_hours == 7.5

    def test_has_signal(self):
        assert BiometricMetrics(recovery_score_pct=50).has_signal is True


class TestDailyAggregate:
    """Tests for DailyAggregate model."""

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            DailyAggregate(day="2025-06-03", hydration_score=101, target_ml=2000, actual_ml=0)


class TestDataChange:
    """Tests for DataChange payloads."""

    def test_for_dates_sorted_and_unique(self):
        change = DataChange.for_dates("2025-06-04", "2025-06-03", "2025-06-04")
        assert change.scope == "dates"
        assert change.dates == ["2025-06-03", "2025-06-04"]

    def test_everything(self):
        change = DataChange.everything()
        assert change.scope == "all"
        assert change.dates == []

    def test_invalid_scope_rejected(self):
        with pytest.raises(ValidationError):
            DataChange(scope="some")
