"""Open-Meteo clients: geocoding search, weather forecast and marine conditions.

All three services are free and need no API key.  Each client catches its
own failures, logs them and returns an empty value instead of raising:

* ``search_locations`` returns an empty list.
* ``fetch_weather`` returns ``None`` (the weather panel stays on placeholders).
* ``fetch_marine`` returns ``MARINE_UNAVAILABLE``, the same value used when a
  location has no marine coverage at all.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from config import get_settings
from display import format_number
from models import (
    MARINE_UNAVAILABLE,
    Location,
    MarineResult,
    MarineSnapshot,
    WeatherSnapshot,
)

LOGGER = logging.getLogger(__name__)

WEATHER_CURRENT_VARS = "temperature_2m,weather_code,wind_speed_10m"
WEATHER_DAILY_VARS = "temperature_2m_max,temperature_2m_min"
MARINE_CURRENT_VARS = "wave_height,sea_surface_temperature"

_FETCH_ERRORS = (requests.RequestException, ValueError, KeyError, TypeError, IndexError)


def _get_json(url: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """GET ``url`` and decode the JSON body.

    Raises requests.RequestException on network or HTTP-status failures and
    ValueError when the body is not a JSON object.
    """
    resp = requests.get(url, params=params, timeout=get_settings().http_timeout)
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object from {url}, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------

def search_locations(query: str) -> List[Location]:
    """Search places matching ``query``, in the order the geocoder ranks them.

    A blank query returns an empty list without touching the network.  At
    most ``max_results`` candidates are returned.
    """
    if not query or not query.strip():
        return []
    max_results = get_settings().max_results
    params = {
        "name": query,
        "count": max_results,
        "language": "en",
        "format": "json",
    }
    try:
        data = _get_json(get_settings().geocoding_url, params)
        results = data.get("results") or []
        return [Location.from_api(r) for r in results[:max_results]]
    except _FETCH_ERRORS:
        LOGGER.error("Error searching locations for %r", query, exc_info=True)
        return []


# ---------------------------------------------------------------------------
# Weather forecast
# ---------------------------------------------------------------------------

def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def fetch_weather(latitude: float, longitude: float) -> Optional[WeatherSnapshot]:
    """Fetch current temperature and wind plus today's high and low.

    Returns None when the request fails or the payload is missing any of
    the fields the weather panel needs.  A field that is present but null
    comes back as None on the snapshot.
    """
    params = {
        "latitude": format_number(latitude),
        "longitude": format_number(longitude),
        "current": WEATHER_CURRENT_VARS,
        "daily": WEATHER_DAILY_VARS,
        "timezone": "auto",
    }
    try:
        data = _get_json(get_settings().forecast_url, params)
        current = data["current"]
        daily = data["daily"]
        code = current.get("weather_code")
        return WeatherSnapshot(
            temperature=_optional_float(current["temperature_2m"]),
            wind_speed=_optional_float(current["wind_speed_10m"]),
            temperature_max=_optional_float(daily["temperature_2m_max"][0]),
            temperature_min=_optional_float(daily["temperature_2m_min"][0]),
            weather_code=int(code) if code is not None else None,
        )
    except _FETCH_ERRORS:
        LOGGER.error(
            "Error fetching weather data for %s,%s", latitude, longitude, exc_info=True,
        )
        return None


# ---------------------------------------------------------------------------
# Marine conditions
# ---------------------------------------------------------------------------

def fetch_marine(latitude: float, longitude: float) -> MarineResult:
    """Fetch current wave height and sea-surface temperature.

    Returns ``MARINE_UNAVAILABLE`` when the request fails, when the payload
    has no ``current`` block, or when both readings are null (typically an
    inland point).  Callers cannot tell the two cases apart.
    """
    params = {
        "latitude": format_number(latitude),
        "longitude": format_number(longitude),
        "current": MARINE_CURRENT_VARS,
    }
    try:
        data = _get_json(get_settings().marine_url, params)
        current = data.get("current")
        if not current:
            return MARINE_UNAVAILABLE
        wave_height = _optional_float(current.get("wave_height"))
        sea_temp = _optional_float(current.get("sea_surface_temperature"))
        if wave_height is None and sea_temp is None:
            return MARINE_UNAVAILABLE
        return MarineSnapshot(
            wave_height=wave_height,
            sea_surface_temperature=sea_temp,
            observed_at=current.get("time"),
        )
    except _FETCH_ERRORS:
        LOGGER.error(
            "Error fetching marine data for %s,%s", latitude, longitude, exc_info=True,
        )
        return MARINE_UNAVAILABLE
