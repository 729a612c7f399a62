"""Core Data Models - Pydantic models for type safety.

All models are value objects with no behavior beyond validation and
defaulting. Records read from storage are rebuilt through these models so the
calculators never see a raw document.
"""

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class BeverageType(str, Enum):
    """Beverages a user can log."""

    WATER = "water"
    ELECTROLYTE = "electrolyte"
    MILK = "milk"
    COFFEE = "coffee"
    BEER = "beer"
    WINE = "wine"
    COCKTAIL = "cocktail"
    SODA = "soda"
    JUICE = "juice"
    OTHER = "other"


class SupplementType(str, Enum):
    """Supplements a user can log. Only creatine affects the target."""

    CREATINE = "creatine"
    PROTEIN = "protein"
    MULTIVITAMIN = "multivitamin"
    FISH_OIL = "fish_oil"
    ELECTROLYTE_TABLET = "electrolyte_tablet"
    OTHER = "other"


class IntensityScale(str, Enum):
    """Scale a workout intensity was recorded on."""

    MANUAL = "manual"  # 1-10, entered by hand
    STRAIN = "strain"  # 0-21, WHOOP strain


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Units(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class PacingStatus(str, Enum):
    NEEDS_PROFILE = "needs-profile"
    BEHIND = "behind"
    ON_TARGET = "on-target"


class ScoreMode(str, Enum):
    """Whether a day is still in progress or complete."""

    LIVE = "live"
    FINAL = "final"


def _ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Naive datetimes from older documents are read as UTC.
AwareDatetime = Annotated[datetime, AfterValidator(_ensure_aware)]


class Profile(BaseModel):
    """User attributes used for target computation."""

    name: Optional[str] = None
    sex: Optional[Sex] = None
    height_cm: Optional[float] = Field(default=None, gt=0)
    weight_kg: Optional[float] = Field(default=None, description="Body weight; unknown when None or <= 0")
    units: Units = Units.IMPERIAL
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_complete(self) -> bool:
        return self.weight_kg is not None and self.weight_kg > 0


class IntakeEvent(BaseModel):
    """A single logged drink."""

    id: str = Field(default_factory=_new_id)
    timestamp: AwareDatetime = Field(default_factory=utcnow)
    volume_ml: float = Field(gt=0, description="Volume actually drunk")
    beverage_type: BeverageType = BeverageType.WATER

    @field_validator("beverage_type", mode="before")
    @classmethod
    def _unknown_beverage_is_other(cls, value):
        if isinstance(value, BeverageType):
            return value
        try:
            return BeverageType(str(value or "other").lower())
        except ValueError:
            return BeverageType.OTHER


class WorkoutSession(BaseModel):
    """A workout. Duration is derived from start/end when not given."""

    id: str = Field(default_factory=_new_id)
    start_time: AwareDatetime
    end_time: Optional[AwareDatetime] = None
    duration_min: Optional[float] = Field(default=None, ge=0)
    intensity: Optional[float] = Field(default=None, ge=0)
    intensity_scale: IntensityScale = IntensityScale.MANUAL
    type: Optional[str] = None

    @model_validator(mode="after")
    def _derive_duration(self) -> "WorkoutSession":
        if self.duration_min is None and self.end_time is not None:
            minutes = (self.end_time - self.start_time).total_seconds() / 60
            self.duration_min = float(max(0, round(minutes)))
        return self


class SupplementEvent(BaseModel):
    """A logged supplement dose."""

    id: str = Field(default_factory=_new_id)
    timestamp: AwareDatetime = Field(default_factory=utcnow)
    type: SupplementType
    grams: Optional[float] = Field(default=None, ge=0)


class BiometricMetrics(BaseModel):
    """Wearable metrics for one day."""

    sleep_hours: Optional[float] = None
    sleep_performance_pct: Optional[float] = None
    recovery_score_pct: Optional[float] = None
    fetched_at: AwareDatetime = Field(default_factory=utcnow)

    @field_validator("sleep_hours", "sleep_performance_pct", "recovery_score_pct", mode="before")
    @classmethod
    def _finite_or_none(cls, value):
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None

    @property
    def has_signal(self) -> bool:
        return self.sleep_hours is not None or self.recovery_score_pct is not None


class TargetDriver(BaseModel):
    """A labeled contribution to the daily target."""

    label: str
    added_ml: int


class HydrationTarget(BaseModel):
    """Result of the target calculation with its breakdown."""

    target_ml: int = Field(ge=0)
    base_need_ml: int = 0
    workout_adjustment_ml: int = 0
    creatine_ml: int = 0
    heat_adjustment_ml: int = 0
    modifier_pct: float = 0.0
    drivers: list[TargetDriver] = Field(default_factory=list)


class HydrationFlags(BaseModel):
    workouts: bool = False
    creatine: bool = False
    biometrics: bool = False


class HydrationPacing(BaseModel):
    status: PacingStatus
    deficit_ml: float = Field(ge=0)
    ahead_ml: float = Field(ge=0)


class IntakeSeriesItem(BaseModel):
    timestamp: datetime
    volume_ml: float
    beverage_type: BeverageType


class DailyHydrationSnapshot(BaseModel):
    """Read-optimized summary of one reference-zone calendar day."""

    date: str = Field(description="YYYY-MM-DD in the reference timezone")
    target_ml: int = Field(ge=0)
    actual_ml: float = Field(ge=0)
    score: int = Field(ge=0, le=100)
    intakes: list[IntakeEvent] = Field(default_factory=list)
    workouts: list[WorkoutSession] = Field(default_factory=list)
    supplements: list[SupplementEvent] = Field(default_factory=list)
    metrics: Optional[BiometricMetrics] = None
    flags: HydrationFlags
    pacing: HydrationPacing
    target_drivers: list[TargetDriver] = Field(default_factory=list)
    intake_series: list[IntakeSeriesItem] = Field(default_factory=list)
    score_mode: ScoreMode = Field(default=ScoreMode.LIVE, description="Mode the score was computed in")
    computed_at: AwareDatetime = Field(default_factory=utcnow)
    version: int = Field(ge=0)


class DailyAggregate(BaseModel):
    """History row stored once per user and day."""

    day: str
    hydration_score: int = Field(ge=0, le=100)
    target_ml: int = Field(ge=0)
    actual_ml: float = Field(ge=0)
    base_need_ml: int = 0
    workouts_ml: int = 0
    creatine_ml: int = 0
    heat_ml: int = 0
    sleep_ml: int = 0
    recovery_ml: int = 0
    sleep_hours: Optional[float] = None
    recovery_pct: Optional[float] = None
    updated_at: datetime = Field(default_factory=utcnow)


class TrendPoint(BaseModel):
    day: str
    hydration_score: int
    target_ml: int
    actual_ml: float


class TrendReport(BaseModel):
    """Score and intake trend over the most recent days."""

    days: int = Field(ge=1)
    points: list[TrendPoint] = Field(default_factory=list, description="Newest first")
    avg_score: float = 0.0
    avg_actual_ml: float = 0.0
    days_on_target: int = 0


class DataChange(BaseModel):
    """Payload published whenever user data changes."""

    scope: Literal["all", "dates"]
    dates: list[str] = Field(default_factory=list)

    @classmethod
    def for_dates(cls, *dates: str) -> "DataChange":
        return cls(scope="dates", dates=sorted(set(dates)))

    @classmethod
    def everything(cls) -> "DataChange":
        return cls(scope="all")
