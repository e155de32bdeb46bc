"""Value types shared by the Open-Meteo clients and the view state.

All types are immutable.  A new search, weather fetch or marine fetch
produces new instances that replace the previous ones wholesale.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class Location:
    """A place returned by the geocoding search."""

    name: str
    latitude: float
    longitude: float
    country: str = ""
    admin1: Optional[str] = None
    feature_code: Optional[str] = None
    elevation: Optional[float] = None
    timezone: Optional[str] = None

    @property
    def key(self) -> Tuple[float, float]:
        """Identity used when rendering candidate lists."""
        return self.latitude, self.longitude

    @property
    def region_line(self) -> str:
        """``"admin1, country"``, or just the country when admin1 is absent."""
        if self.admin1:
            return f"{self.admin1}, {self.country}"
        return self.country

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Location":
        """Build a Location from one entry of the geocoding ``results`` array.

        Raises KeyError, TypeError or ValueError when the entry lacks a name
        or usable coordinates.
        """
        elevation = raw.get("elevation")
        return cls(
            name=str(raw["name"]),
            latitude=float(raw["latitude"]),
            longitude=float(raw["longitude"]),
            country=raw.get("country") or "",
            admin1=raw.get("admin1") or None,
            feature_code=raw.get("feature_code") or None,
            elevation=float(elevation) if elevation is not None else None,
            timezone=raw.get("timezone") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WeatherSnapshot:
    """Current conditions plus today's forecast range.

    Any reading the forecast reports as null is kept as None and renders
    as ``N/A``.
    """

    temperature: Optional[float]
    wind_speed: Optional[float]
    temperature_max: Optional[float]
    temperature_min: Optional[float]
    weather_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MarineSnapshot:
    """Current sea state.  Either reading may be missing, but not both."""

    wave_height: Optional[float]
    sea_surface_temperature: Optional[float]
    observed_at: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class _MarineUnavailable:
    """Marker for a location without marine coverage (or a failed fetch)."""

    _instance: Optional["_MarineUnavailable"] = None

    def __new__(cls) -> "_MarineUnavailable":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MARINE_UNAVAILABLE"

    def to_dict(self) -> Dict[str, Any]:
        return {"noData": True}


MARINE_UNAVAILABLE = _MarineUnavailable()

MarineResult = Union[MarineSnapshot, _MarineUnavailable]
