"""
Weather provider (OpenWeather).

- get_current(location): current conditions as a WeatherSnapshot.
- get_forecast(location): daily forecast aggregated from the 3-hourly API.

Notes:
- Metric units throughout (°C, m/s), which is what the weather rules expect.
- Every call has a timeout. Any failure (no location, no API key, timeout,
  HTTP error, unparsable body) raises UpstreamUnavailable; the engine turns
  that into the "weather unavailable" candidate.
"""

from __future__ import annotations
import logging
import os
import re
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from flask import current_app, has_app_context

from ..models import ForecastDay, Location, WeatherSnapshot
from ..utils.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"

_US_STATE_LIKE = re.compile(r"^\s*([^,]+),\s*([A-Za-z]{2})\s*$")
_US_ZIP = re.compile(r"^\s*(\d{5})(?:-\d{4})?\s*$")


def _normalize_city_query(city: str) -> str:
    m = _US_STATE_LIKE.match(city)
    if m:
        return f"{m.group(1).strip()}, {m.group(2).upper()}, US"
    return city.strip()


def _get_api_key() -> str | None:
    key = os.getenv("OPENWEATHER_API_KEY")
    if not key and has_app_context():
        key = current_app.config.get("OPENWEATHER_API_KEY")
    return key or None


def _number(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {value!r}")
    return value


def _first_condition(item: Dict[str, Any]) -> Dict[str, Any]:
    return (item.get("weather") or [{}])[0]


class OpenWeatherProvider:
    """WeatherProvider backed by the OpenWeather 2.5 API."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 6,
                 session: Optional[requests.Session] = None) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _key(self) -> str:
        key = self.api_key or _get_api_key()
        if not key:
            raise UpstreamUnavailable("OPENWEATHER_API_KEY not configured")
        return key

    def _location_params(self, location: Optional[Location]) -> Dict[str, str]:
        query = location.query if location else None
        if not query:
            raise UpstreamUnavailable("No location available for weather lookup")
        mzip = _US_ZIP.match(location.city or "")
        if mzip:
            return {"zip": f"{mzip.group(1)},US"}
        if location.city and location.country:
            return {"q": f"{location.city.strip()},{location.country.strip()}"}
        return {"q": _normalize_city_query(query)}

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        params = dict(params, appid=self._key(), units="metric")
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"[Weather] Request to {url} failed: {e}")
            raise UpstreamUnavailable("Weather service request failed", detail={"error": str(e)}) from e
        if not isinstance(data, dict):
            logger.warning(f"[Weather] Unexpected response body from {url}: {type(data).__name__}")
            raise UpstreamUnavailable("Unexpected weather service response")
        return data

    def get_current(self, location: Optional[Location]) -> WeatherSnapshot:
        """
        Fetch current conditions.

        Raises:
            UpstreamUnavailable: On any failure
        """
        data = self._get(CURRENT_URL, self._location_params(location))
        try:
            return self._snapshot_from(data, location)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Weather] Could not parse current conditions: {e}")
            raise UpstreamUnavailable("Unexpected weather service response", detail={"error": str(e)}) from e

    @staticmethod
    def _snapshot_from(data: Dict[str, Any], location: Optional[Location]) -> WeatherSnapshot:
        main = data.get("main") or {}
        condition = _first_condition(data)
        return WeatherSnapshot(
            temperature=_number(main.get("temp")),
            humidity=_number(main.get("humidity")),
            wind_speed=_number((data.get("wind") or {}).get("speed")),
            description=condition.get("description") or condition.get("main") or "",
            timestamp=datetime.now(timezone.utc),
            location=data.get("name") or (location.query if location else None),
        )

    def get_forecast(self, location: Optional[Location], days: int = 5) -> List[ForecastDay]:
        """
        Daily forecast: min/max temperature, mean humidity and wind, most common description.

        Raises:
            UpstreamUnavailable: On any failure
        """
        data = self._get(FORECAST_URL, self._location_params(location))
        try:
            return self._forecast_from(data, days)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Weather] Could not parse forecast: {e}")
            raise UpstreamUnavailable("Unexpected weather service response", detail={"error": str(e)}) from e

    @staticmethod
    def _forecast_from(data: Dict[str, Any], days: int) -> List[ForecastDay]:
        tz_offset = (data.get("city") or {}).get("timezone", 0)

        by_date: dict[str, list[dict]] = defaultdict(list)
        for it in data.get("list") or []:
            dt_utc = datetime.fromtimestamp(it["dt"], tz=timezone.utc)
            local_date = (dt_utc + timedelta(seconds=tz_offset)).strftime("%Y-%m-%d")
            by_date[local_date].append(it)

        daily: List[ForecastDay] = []
        for date_str, bucket in sorted(by_date.items()):
            temps = [x.get("main", {}).get("temp") for x in bucket if isinstance(x.get("main", {}).get("temp"), (int, float))]
            hums = [x.get("main", {}).get("humidity") for x in bucket if isinstance(x.get("main", {}).get("humidity"), (int, float))]
            winds = [x.get("wind", {}).get("speed") for x in bucket if isinstance(x.get("wind", {}).get("speed"), (int, float))]
            if not temps:
                continue
            desc_counts = Counter(_first_condition(x).get("description", "") for x in bucket)
            desc_counts.pop("", None)
            daily.append(ForecastDay(
                date=date_str,
                temp_min=round(min(temps), 1),
                temp_max=round(max(temps), 1),
                humidity=round(sum(hums) / len(hums)) if hums else None,
                wind_speed=round(sum(winds) / len(winds), 1) if winds else None,
                description=desc_counts.most_common(1)[0][0] if desc_counts else "clear sky",
            ))

        return daily[:days]
