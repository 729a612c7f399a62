"""Configuration - Settings read from the environment."""

import os
from dataclasses import dataclass

from ..core.dates import DEFAULT_TIMEZONE

WHOOP_API_BASE = "https://api.prod.whoop.com/developer/v2"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class HydraConfig:
    """Service configuration.

    Attributes:
        timezone: Reference timezone for day boundaries
        default_user: User id to act as when no X-User-Id header is present
        whoop_access_token: Bearer token for the WHOOP API (None = not connected)
        whoop_api_base: WHOOP developer API base URL
        hot_day: Apply the hot-day adjustment to every target
        host: Bind address
        port: Bind port
    """

    timezone: str = DEFAULT_TIMEZONE
    default_user: str | None = None
    whoop_access_token: str | None = None
    whoop_api_base: str = WHOOP_API_BASE
    hot_day: bool = False
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls) -> "HydraConfig":
        return cls(
            timezone=os.environ.get("HYDRAIQ_TIMEZONE", DEFAULT_TIMEZONE),
            default_user=os.environ.get("HYDRAIQ_DEFAULT_USER") or None,
            whoop_access_token=os.environ.get("WHOOP_ACCESS_TOKEN") or None,
            whoop_api_base=os.environ.get("WHOOP_API_BASE", WHOOP_API_BASE),
            hot_day=os.environ.get("HYDRAIQ_HOT_DAY", "").strip().lower() in _TRUTHY,
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", 8080)),
        )
