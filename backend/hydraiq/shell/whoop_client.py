"""WHOOP API client for daily sleep and recovery metrics."""

import logging
import math
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

import httpx

from ..core.dates import day_bounds
from ..core.models import BiometricMetrics
from .config import WHOOP_API_BASE

logger = logging.getLogger(__name__)

MS_PER_HOUR = 1000 * 60 * 60


def _number(value: Any) -> Optional[float]:
    """Finite float or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_time(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class WhoopClient:
    """Client for the WHOOP developer API (v2).

    The client is handed an access token; obtaining and refreshing it is the
    OAuth layer's job. No token means the user is not connected.
    """

    def __init__(
        self,
        access_token: Optional[str],
        base_url: str = WHOOP_API_BASE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            access_token: WHOOP OAuth access token (None when not connected)
            base_url: API base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def connected(self) -> bool:
        return bool(self.access_token)

    async def fetch_metrics(self, day: str, tz: ZoneInfo) -> Optional[BiometricMetrics]:
        """
        Fetch sleep and recovery for a reference-zone day.

        Args:
            day: Date in YYYY-MM-DD format
            tz: Reference timezone defining the day

        Returns:
            Metrics, or None if not connected or the request failed
        """
        if not self.connected:
            logger.info("WHOOP not connected; skipping metrics for %s", day)
            return None

        start, end = day_bounds(day, tz)
        params = {
            "start": start.isoformat().replace("+00:00", "Z"),
            "end": end.isoformat().replace("+00:00", "Z"),
            "limit": 25,
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                sleep_res = await client.get(f"{self.base_url}/activity/sleep", params=params, headers=headers)
                recovery_res = await client.get(f"{self.base_url}/recovery", params=params, headers=headers)
            except httpx.HTTPError as e:
                logger.error("HTTP error fetching WHOOP metrics for %s: %s", day, e)
                return None

        if sleep_res.status_code == 401 or recovery_res.status_code == 401:
            logger.warning("WHOOP token rejected; treating as not connected")
            return None

        sleep_hours = sleep_performance = recovery = None
        if sleep_res.is_success:
            sleep_hours, sleep_performance = self._parse_sleep(self._records(sleep_res))
        else:
            logger.warning("WHOOP sleep request failed with %d", sleep_res.status_code)
        if recovery_res.is_success:
            recovery = self._parse_recovery(self._records(recovery_res))
        else:
            logger.warning("WHOOP recovery request failed with %d", recovery_res.status_code)

        return BiometricMetrics(
            sleep_hours=sleep_hours,
            sleep_performance_pct=sleep_performance,
            recovery_score_pct=recovery,
        )

    @staticmethod
    def _records(response: httpx.Response) -> list[dict]:
        try:
            payload = response.json()
        except ValueError:
            return []
        records = payload.get("records") if isinstance(payload, dict) else None
        return records if isinstance(records, list) else []

    @staticmethod
    def _parse_sleep(records: list[dict]) -> tuple[Optional[float], Optional[float]]:
        """
        Parse sleep records.

        Time asleep is the sum of light, slow wave and REM stages; records
        without stage data fall back to end - start.

        Returns:
            Tuple of (hours asleep rounded to 0.1, best sleep performance %)
        """
        if not records:
            return None, None

        total_ms = 0.0
        performances = []
        for record in records:
            score = record.get("score") or {}
            stages = score.get("stage_summary") or {}
            asleep = sum(
                _number(stages.get(key)) or 0
                for key in (
                    "total_light_sleep_time_milli",
                    "total_slow_wave_sleep_time_milli",
                    "total_rem_sleep_time_milli",
                )
            )
            if asleep > 0:
                total_ms += asleep
            else:
                start = _parse_time(record.get("start"))
                end = _parse_time(record.get("end"))
                if start is not None and end is not None:
                    total_ms += max(0.0, (end - start).total_seconds() * 1000)

            performance = _number(score.get("sleep_performance_percentage"))
            if performance is not None:
                performances.append(performance)

        hours = round(total_ms / MS_PER_HOUR, 1)
        best = float(round(max(performances))) if performances else None
        return hours, best

    @staticmethod
    def _parse_recovery(records: list[dict]) -> Optional[float]:
        """Recovery score of the first record, if scored."""
        if not records:
            return None
        score = records[0].get("score") or {}
        return _number(score.get("recovery_score"))
