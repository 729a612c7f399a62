"""MCP Server - Tool definitions for hydration logging.

Defines all MCP tools an assistant can invoke to log drinks, workouts and
supplements and to read the daily hydration snapshot. The acting user comes
from the request context set by the HTTP layer.
"""

import logging
import os
from collections import OrderedDict
from contextvars import ContextVar
from datetime import datetime

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from pydantic import ValidationError

from ..core.dates import is_valid_day, reference_zone
from ..core.models import (
    BeverageType,
    DailyHydrationSnapshot,
    IntensityScale,
    Profile,
    Sex,
    SupplementType,
    Units,
)
from ..core.units import format_volume
from .config import HydraConfig
from .events import DataChangeBus
from .firestore_client import FirestoreConfig, HydrationFirestoreClient
from .snapshot_service import HydrationSnapshotService
from .whoop_client import WhoopClient


logger = logging.getLogger(__name__)

# Context variable to store current user_id per request
current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)

transport_security = TransportSecuritySettings(
    enable_dns_rebinding_protection=True,
    allowed_hosts=[
        "localhost:*",
        "127.0.0.1:*",
        "*.run.app:*",
        "*.run.app",
    ],
)

mcp = FastMCP(
    "hydraiq",
    instructions="""HydraIQ - Personal hydration tracker.

Use these tools to log drinks, workouts and supplements and to report the
user's daily hydration target, intake and 0-100 hydration score.

On first use, call set_profile with the user's weight; without it there is no
target. After logging, show the updated day (target, actual, score, pacing).
Volumes are in milliliters unless stated otherwise.""",
    stateless_http=True,
    transport_security=transport_security,
)

# Lazy-initialized collaborators
_config: HydraConfig | None = None
_firestore_client: HydrationFirestoreClient | None = None

# Most recently used services, one per user
MAX_SERVICES = 64
_services: "OrderedDict[str, HydrationSnapshotService]" = OrderedDict()


def get_config() -> HydraConfig:
    global _config
    if _config is None:
        _config = HydraConfig.from_env()
    return _config


def get_firestore_client() -> HydrationFirestoreClient:
    """Get or create Firestore client."""
    global _firestore_client
    if _firestore_client is None:
        config = FirestoreConfig(
            project_id=os.environ.get("FIRESTORE_PROJECT") or None,
            database=os.environ.get("FIRESTORE_DATABASE", "hydraiq"),
        )
        _firestore_client = HydrationFirestoreClient(config)
    return _firestore_client


def get_service(user_id: str) -> HydrationSnapshotService:
    """Get or create the snapshot service for a user.

    Each service has its own change bus, so changes never reach another
    user's cache. At most MAX_SERVICES are kept; the least recently used one
    is closed and dropped, and a later request restores it from the
    persisted snapshot mirror.
    """
    service = _services.get(user_id)
    if service is not None:
        _services.move_to_end(user_id)
        return service

    config = get_config()
    service = HydrationSnapshotService.for_user(
        get_firestore_client(),
        user_id,
        whoop=WhoopClient(config.whoop_access_token, base_url=config.whoop_api_base),
        bus=DataChangeBus(),
        tz=reference_zone(config.timezone),
        hot_day=config.hot_day,
    )
    _services[user_id] = service

    while len(_services) > MAX_SERVICES:
        evicted_id, evicted = _services.popitem(last=False)
        evicted.close()
        logger.debug("Closed idle service for %s", evicted_id[:8])
    return service


def get_user_id() -> str:
    """Get current user ID.

    Raises:
        RuntimeError: If no user is identified
    """
    user_id = current_user_id.get()
    if user_id is None:
        raise RuntimeError("No user identified. Ensure the X-User-Id header is provided.")
    return user_id


def parse_timestamp(value: str | None, service: HydrationSnapshotService) -> datetime | None:
    """Parse an ISO timestamp; naive values are read in the reference zone.

    Raises:
        ValueError: If the value is not ISO 8601
    """
    if value is None:
        return None
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=service.tz)
    return ts


def day_view(snapshot: DailyHydrationSnapshot, imperial: bool = False) -> dict:
    """Compact JSON view of a snapshot."""
    return {
        "date": snapshot.date,
        "target_ml": snapshot.target_ml,
        "actual_ml": round(snapshot.actual_ml),
        "target": format_volume(snapshot.target_ml, imperial),
        "actual": format_volume(snapshot.actual_ml, imperial),
        "score": snapshot.score,
        "pacing": snapshot.pacing.model_dump(mode="json"),
        "flags": snapshot.flags.model_dump(),
        "target_drivers": [d.model_dump() for d in snapshot.target_drivers],
        "intakes": [
            {
                "id": i.id,
                "timestamp": i.timestamp.isoformat(),
                "volume_ml": i.volume_ml,
                "beverage_type": i.beverage_type.value,
            }
            for i in sorted(snapshot.intakes, key=lambda i: i.timestamp)
        ],
        "workouts": [w.model_dump(mode="json") for w in snapshot.workouts],
        "supplements": [s.model_dump(mode="json") for s in snapshot.supplements],
        "metrics": snapshot.metrics.model_dump(mode="json") if snapshot.metrics else None,
        "version": snapshot.version,
    }


def uses_imperial(service: HydrationSnapshotService) -> bool:
    """Ounces unless the user chose metric."""
    profile = service.db.get_profile(service.user_id)
    return profile is None or profile.units == Units.IMPERIAL


# ==================== Profile Tools ====================


@mcp.tool()
def set_profile(
    weight_kg: float,
    sex: str | None = None,
    height_cm: float | None = None,
    units: str = "imperial",
    name: str | None = None,
) -> dict:
    """Save the user's profile. Weight is required to compute a target.

    Args:
        weight_kg: Body weight in kilograms (e.g., 70)
        sex: "male", "female" or "other"
        height_cm: Height in centimeters
        units: Display units, "imperial" (oz) or "metric" (ml)
        name: Display name

    Returns:
        The saved profile, or an error
    """
    service = get_service(get_user_id())
    try:
        profile = Profile(
            weight_kg=weight_kg,
            sex=Sex(sex) if sex else None,
            height_cm=height_cm,
            units=Units(units),
            name=name,
        )
    except (ValueError, ValidationError) as e:
        return {"error": f"Invalid profile: {e}"}

    if not service.set_profile(profile):
        return {"error": "Failed to save profile. Please try again."}
    return {"profile": profile.model_dump(mode="json")}


@mcp.tool()
def get_profile() -> dict:
    """Retrieve the user's profile.

    Returns:
        The profile, or an error message if not set up
    """
    service = get_service(get_user_id())
    profile = service.db.get_profile(service.user_id)
    if profile is None:
        return {"error": "No profile found. Please use set_profile first."}
    return {"profile": profile.model_dump(mode="json")}


# ==================== Logging Tools ====================


@mcp.tool()
def log_intake(
    volume_ml: float,
    beverage_type: str = "water",
    timestamp: str | None = None,
) -> dict:
    """Log a drink.

    Args:
        volume_ml: Volume drunk in milliliters (e.g., 500)
        beverage_type: water, electrolyte, milk, coffee, beer, wine, cocktail,
            soda, juice or other
        timestamp: ISO 8601 time of the drink (defaults to now)

    Returns:
        The logged intake and the updated day
    """
    service = get_service(get_user_id())
    try:
        ts = parse_timestamp(timestamp, service)
        beverage = BeverageType(beverage_type.lower())
        intake = service.log_intake(volume_ml, beverage, ts)
    except (ValueError, ValidationError) as e:
        return {"error": f"Invalid intake: {e}"}

    if intake is None:
        return {"error": "Failed to log intake. Please try again."}

    snapshot = service.ensure_snapshot(service.day_of(intake.timestamp))
    return {
        "intake": intake.model_dump(mode="json"),
        "day": day_view(snapshot, uses_imperial(service)),
    }


@mcp.tool()
def delete_intake(intake_id: str) -> dict:
    """Delete a logged drink.

    Args:
        intake_id: The ID of the intake to delete

    Returns:
        Confirmation and the updated day
    """
    service = get_service(get_user_id())
    intake = service.delete_intake(intake_id)
    if intake is None:
        return {"error": "Intake not found or delete failed."}

    snapshot = service.ensure_snapshot(service.day_of(intake.timestamp))
    return {"success": True, "day": day_view(snapshot, uses_imperial(service))}


@mcp.tool()
def log_workout(
    start_time: str,
    end_time: str | None = None,
    duration_min: float | None = None,
    intensity: float | None = None,
    intensity_scale: str = "manual",
    workout_type: str | None = None,
) -> dict:
    """Log a workout.

    Args:
        start_time: ISO 8601 start time
        end_time: ISO 8601 end time (duration is derived from it if not given)
        duration_min: Duration in minutes
        intensity: Effort, 1-10 for "manual" or 0-21 for WHOOP "strain"
        intensity_scale: "manual" or "strain"
        workout_type: Free-form label (e.g., "run")

    Returns:
        The logged workout and the updated day
    """
    service = get_service(get_user_id())
    try:
        workout = service.log_workout(
            start_time=parse_timestamp(start_time, service),
            end_time=parse_timestamp(end_time, service),
            duration_min=duration_min,
            intensity=intensity,
            intensity_scale=IntensityScale(intensity_scale),
            workout_type=workout_type,
        )
    except (ValueError, ValidationError) as e:
        return {"error": f"Invalid workout: {e}"}

    if workout is None:
        return {"error": "Failed to log workout. Please try again."}

    snapshot = service.ensure_snapshot(service.day_of(workout.start_time))
    return {
        "workout": workout.model_dump(mode="json"),
        "day": day_view(snapshot, uses_imperial(service)),
    }


@mcp.tool()
def update_workout(
    workout_id: str,
    start_time: str | None = None,
    end_time: str | None = None,
    duration_min: float | None = None,
    intensity: float | None = None,
    intensity_scale: str | None = None,
    workout_type: str | None = None,
) -> dict:
    """Update an existing workout. Only provided fields are updated.

    Args:
        workout_id: The ID of the workout to update
        start_time: New ISO 8601 start time (optional)
        end_time: New ISO 8601 end time (optional)
        duration_min: New duration in minutes (optional)
        intensity: New intensity (optional)
        intensity_scale: New scale, "manual" or "strain" (optional)
        workout_type: New label (optional)

    Returns:
        Updated workout and the day it now falls on
    """
    service = get_service(get_user_id())

    try:
        updates = {}
        if start_time is not None:
            updates["start_time"] = parse_timestamp(start_time, service)
        if end_time is not None:
            updates["end_time"] = parse_timestamp(end_time, service)
        if duration_min is not None:
            updates["duration_min"] = duration_min
        if intensity is not None:
            updates["intensity"] = intensity
        if intensity_scale is not None:
            updates["intensity_scale"] = IntensityScale(intensity_scale)
        if workout_type is not None:
            updates["type"] = workout_type
    except ValueError as e:
        return {"error": f"Invalid update: {e}"}

    if not updates:
        return {"error": "No updates provided."}

    workout = service.update_workout(workout_id, updates)
    if workout is None:
        return {"error": "Workout not found or update failed."}

    snapshot = service.ensure_snapshot(service.day_of(workout.start_time))
    return {
        "workout": workout.model_dump(mode="json"),
        "day": day_view(snapshot, uses_imperial(service)),
    }


@mcp.tool()
def delete_workout(workout_id: str) -> dict:
    """Delete a workout.

    Args:
        workout_id: The ID of the workout to delete

    Returns:
        Confirmation and the updated day
    """
    service = get_service(get_user_id())
    workout = service.delete_workout(workout_id)
    if workout is None:
        return {"error": "Workout not found or delete failed."}

    snapshot = service.ensure_snapshot(service.day_of(workout.start_time))
    return {"success": True, "day": day_view(snapshot, uses_imperial(service))}


@mcp.tool()
def log_supplements(
    types: list[str],
    grams: float | None = None,
    timestamp: str | None = None,
) -> dict:
    """Log supplements taken together. Creatine grams raise the target.

    Args:
        types: Any of creatine, protein, multivitamin, fish_oil,
            electrolyte_tablet, other
        grams: Dose in grams (used for creatine)
        timestamp: ISO 8601 time taken (defaults to now)

    Returns:
        The logged events and the updated day
    """
    service = get_service(get_user_id())
    try:
        supplement_types = [SupplementType(t.lower()) for t in types]
        events = service.log_supplements(supplement_types, parse_timestamp(timestamp, service), grams)
    except (ValueError, ValidationError) as e:
        return {"error": f"Invalid supplements: {e}"}

    if not events:
        return {"error": "No supplements logged."}

    snapshot = service.ensure_snapshot(service.day_of(events[0].timestamp))
    return {
        "supplements": [e.model_dump(mode="json") for e in events],
        "day": day_view(snapshot, uses_imperial(service)),
    }


# ==================== Query Tools ====================


@mcp.tool()
def get_day(date_str: str | None = None) -> dict:
    """Get a day's hydration snapshot: target, actual, score, pacing, drivers.

    Args:
        date_str: Date in YYYY-MM-DD format (defaults to today)

    Returns:
        The day's snapshot
    """
    service = get_service(get_user_id())
    day = date_str or service.today()
    if not is_valid_day(day):
        return {"error": "Invalid date format. Use YYYY-MM-DD."}
    return day_view(service.ensure_snapshot(day), uses_imperial(service))


@mcp.tool()
def get_trend(days: int = 30) -> dict:
    """Hydration score trend over recent days.

    Args:
        days: Number of days (1-90)

    Returns:
        Daily points (newest first) with averages and days on target
    """
    service = get_service(get_user_id())
    return service.trend(days).model_dump(mode="json")


@mcp.tool()
async def refresh_biometrics(date_str: str | None = None) -> dict:
    """Pull sleep and recovery from WHOOP for a day and update its target.

    Args:
        date_str: Date in YYYY-MM-DD format (defaults to today)

    Returns:
        Whether new metrics were fetched, and the day
    """
    service = get_service(get_user_id())
    day = date_str or service.today()
    if not is_valid_day(day):
        return {"error": "Invalid date format. Use YYYY-MM-DD."}

    fetched = await service.request_biometrics(day)
    return {
        "fetched": fetched,
        "connected": service.whoop is not None and service.whoop.connected,
        "day": day_view(service.ensure_snapshot(day), uses_imperial(service)),
    }


@mcp.tool()
def check_in() -> dict:
    """Check whether the user should be nudged to drink right now.

    Returns:
        {"notify": bool, "message": str | None}
    """
    service = get_service(get_user_id())
    message = service.check_in()
    return {"notify": message is not None, "message": message}
