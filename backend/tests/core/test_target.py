"""Unit tests for the hydration target - pure functions, no mocks needed."""

from datetime import datetime, timedelta, timezone

from hydraiq.core.models import (
    BiometricMetrics,
    IntensityScale,
    SupplementEvent,
    SupplementType,
    WorkoutSession,
)
from hydraiq.core.target import (
    calculate_hydration_target,
    creatine_grams,
    intensity_factor,
    recovery_modifier_pct,
    round_half_up,
    sleep_modifier_pct,
    workout_adjustment_ml,
)

START = datetime(2025, 6, 3, 14, 0, tzinfo=timezone.utc)


def workout(duration_min=60, intensity=None, scale=IntensityScale.MANUAL):
    return WorkoutSession(
        start_time=START,
        duration_min=duration_min,
        intensity=intensity,
        intensity_scale=scale,
    )


class TestBaseNeed:
    """Tests for the weight-only target."""

    def test_seventy_kg(self):
        """70kg with nothing else is 2450ml."""
        target = calculate_hydration_target(70)
        assert target.target_ml == 2450
        assert [(d.label, d.added_ml) for d in target.drivers] == [("Base Need", 2450)]

    def test_weight_times_35(self):
        """Target is round(weight * 35) for any weight."""
        for weight in (45, 55.5, 82.3, 120, 150.7):
            assert calculate_hydration_target(weight).target_ml == round_half_up(weight * 35)

    def test_unknown_weight_is_zero(self):
        """No weight means no target and no drivers."""
        target = calculate_hydration_target(None)
        assert target.target_ml == 0
        assert target.drivers == []

    def test_zero_weight_ignores_other_inputs(self):
        """Zero weight stays zero even with workouts and creatine."""
        target = calculate_hydration_target(0, workouts=[workout(60, 10)], creatine_g=5)
        assert target.target_ml == 0
        assert target.drivers == []

    def test_idempotent(self):
        """Same inputs give the same result."""
        metrics = BiometricMetrics(sleep_hours=6.0, recovery_score_pct=20)
        args = dict(weight_kg=80, workouts=[workout(45, 7)], creatine_g=3, metrics=metrics)
        assert calculate_hydration_target(**args) == calculate_hydration_target(**args)


class TestWorkouts:
    """Tests for workout contributions."""

    def test_manual_intensity_ten(self):
        """60 min at manual 10 adds 60 * 8 * 1.5 = 720ml."""
        target = calculate_hydration_target(70, workouts=[workout(60, 10)])
        assert target.workout_adjustment_ml == 720
        assert target.target_ml == 3170
        assert ("Workouts", 720) in [(d.label, d.added_ml) for d in target.drivers]

    def test_strain_scale(self):
        """Strain is normalized by 21, not 10."""
        assert intensity_factor(workout(60, 21, IntensityScale.STRAIN)) == 1.5
        assert intensity_factor(workout(60, 10.5, IntensityScale.STRAIN)) == 1.0
        assert workout_adjustment_ml([workout(60, 21, IntensityScale.STRAIN)]) == 720

    def test_intensity_clamped_to_scale(self):
        """Manual intensity above 10 counts as 10."""
        assert intensity_factor(workout(60, 15)) == 1.5

    def test_missing_intensity_uses_default_strain(self):
        """Missing intensity counts as strain 5."""
        assert intensity_factor(workout(60, None)) == 0.5 + 5 / 21
        assert round_half_up(workout_adjustment_ml([workout(60, None)])) == 354

    def test_duration_derived_from_end_time(self):
        """A 45 minute session without duration uses end - start."""
        session = WorkoutSession(start_time=START, end_time=START + timedelta(minutes=45), intensity=10)
        assert session.duration_min == 45
        assert workout_adjustment_ml([session]) == 45 * 8 * 1.5

    def test_workouts_are_summed(self):
        """Multiple workouts add up."""
        target = calculate_hydration_target(70, workouts=[workout(60, 10), workout(30, 5)])
        # 720 + 30 * 8 * 1.0 = 960
        assert target.workout_adjustment_ml == 960
        assert target.target_ml == 2450 + 960


class TestCreatineAndHeat:
    """Tests for creatine and hot-day adjustments."""

    def test_creatine(self):
        """Each creatine gram adds 70ml."""
        target = calculate_hydration_target(70, creatine_g=5)
        assert target.creatine_ml == 350
        assert target.target_ml == 2800
        assert ("Creatine", 350) in [(d.label, d.added_ml) for d in target.drivers]

    def test_creatine_grams_only_counts_creatine(self):
        """Other supplements and missing grams are ignored."""
        supplements = [
            SupplementEvent(type=SupplementType.CREATINE, grams=5),
            SupplementEvent(type=SupplementType.CREATINE, grams=None),
            SupplementEvent(type=SupplementType.PROTEIN, grams=30),
            SupplementEvent(type=SupplementType.CREATINE, grams=2.5),
        ]
        assert creatine_grams(supplements) == 7.5

    def test_hot_day_adds_ten_percent_of_base_need(self):
        """Heat adds 10% of base need, not of the whole target."""
        target = calculate_hydration_target(70, workouts=[workout(60, 10)], is_hot_day=True)
        assert target.heat_adjustment_ml == 245
        assert target.target_ml == 2450 + 720 + 245
        assert [d.label for d in target.drivers] == ["Base Need", "Workouts", "Heat"]


class TestBiometricModifiers:
    """Tests for sleep and recovery modifiers."""

    def test_sleep_modifier_bands(self):
        assert sleep_modifier_pct(None) == 0
        assert sleep_modifier_pct(8.0) == 0
        assert sleep_modifier_pct(7.5) == 0
        assert sleep_modifier_pct(8.5) == 0
        assert abs(sleep_modifier_pct(6.0) - 0.045) < 1e-9
        assert abs(sleep_modifier_pct(9.5) + 0.02) < 1e-9

    def test_recovery_modifier_bands(self):
        assert recovery_modifier_pct(None) == 0
        assert recovery_modifier_pct(20) == 0.05
        assert recovery_modifier_pct(33) == 0.02
        assert recovery_modifier_pct(65.9) == 0.02
        assert recovery_modifier_pct(66) == 0

    def test_short_sleep_raises_target(self):
        """6h sleep adds 4.5%."""
        target = calculate_hydration_target(70, metrics=BiometricMetrics(sleep_hours=6.0))
        assert target.target_ml == 2560
        assert [(d.label, d.added_ml) for d in target.drivers] == [
            ("Base Need", 2450),
            ("Sleep (6.0 h)", 110),
        ]

    def test_long_sleep_lowers_target(self):
        """9.5h sleep removes 2%."""
        target = calculate_hydration_target(70, metrics=BiometricMetrics(sleep_hours=9.5))
        assert target.target_ml == 2401
        assert ("Sleep (9.5 h)", -49) in [(d.label, d.added_ml) for d in target.drivers]

    def test_low_recovery(self):
        """Recovery under 33% adds 5%."""
        target = calculate_hydration_target(80, metrics=BiometricMetrics(recovery_score_pct=20))
        assert target.target_ml == 2940
        assert ("Recovery (20%)", 140) in [(d.label, d.added_ml) for d in target.drivers]

    def test_moderate_recovery(self):
        """Recovery under 66% adds 2%."""
        target = calculate_hydration_target(80, metrics=BiometricMetrics(recovery_score_pct=50))
        assert target.target_ml == 2856

    def test_good_recovery_has_no_driver(self):
        """High recovery and normal sleep add nothing and are omitted."""
        target = calculate_hydration_target(
            80, metrics=BiometricMetrics(sleep_hours=8.0, recovery_score_pct=80)
        )
        assert target.target_ml == 2800
        assert [d.label for d in target.drivers] == ["Base Need"]

    def test_modifiers_are_additive(self):
        """Sleep and recovery percentages add before scaling."""
        target = calculate_hydration_target(
            80, metrics=BiometricMetrics(sleep_hours=6.0, recovery_score_pct=20)
        )
        assert target.target_ml == 3066
        assert [(d.label, d.added_ml) for d in target.drivers] == [
            ("Base Need", 2800),
            ("Sleep (6.0 h)", 126),
            ("Recovery (20%)", 140),
        ]

    def test_driver_order(self):
        """Drivers follow computation order."""
        target = calculate_hydration_target(
            70,
            workouts=[workout(60, 10)],
            creatine_g=5,
            metrics=BiometricMetrics(sleep_hours=6.0, recovery_score_pct=20),
            is_hot_day=True,
        )
        labels = [d.label.split(" (")[0] for d in target.drivers]
        assert labels == ["Base Need", "Workouts", "Creatine", "Heat", "Sleep", "Recovery"]
