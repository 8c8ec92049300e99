"""Weather providers consumed as optional enrichment for packing suggestions."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

import requests
from pydantic import BaseModel, ValidationError

LOGGER = logging.getLogger(__name__)

FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"


class _Main(BaseModel):
    temp_min: float
    temp_max: float


class _Condition(BaseModel):
    description: str = "unknown"


class _ForecastEntry(BaseModel):
    dt_txt: str
    main: _Main
    pop: float = 0.0
    weather: List[_Condition] = []


class _ForecastResponse(BaseModel):
    list: List[_ForecastEntry] = []


@dataclass
class WeatherProfile:
    """Forecast summary over a trip's days."""

    temp_min: float
    temp_max: float
    precipitation_probability: float
    weather_condition: str = "unknown"

    @property
    def average_temperature(self) -> float:
        return (self.temp_min + self.temp_max) / 2


class WeatherProvider(ABC):
    """Looks up the expected weather for a destination and date range."""

    @abstractmethod
    def get_trip_forecast(self, location: str, start: date, end: date) -> Optional[WeatherProfile]:
        """Return a forecast summary, or ``None`` when none is available."""


class OpenWeatherProvider(WeatherProvider):
    """OpenWeather 5-day forecast client.

    Only days covered by the forecast window contribute; trips further out than
    the window get ``None`` and keep their declared climate.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout_seconds: float = 5.0,
        units: str = "metric",
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.units = units
        self.session = session or requests.Session()

    @staticmethod
    def _entries_in_range(entries: List[_ForecastEntry], start: date, end: date) -> List[_ForecastEntry]:
        first, last = start.isoformat(), end.isoformat()
        return [entry for entry in entries if first <= entry.dt_txt[:10] <= last]

    def get_trip_forecast(self, location: str, start: date, end: date) -> Optional[WeatherProfile]:
        if not location:
            raise ValueError("location is required for weather lookups")
        if not self.api_key:
            LOGGER.debug("Weather lookup skipped", extra={"reason": "missing_api_key"})
            return None

        params = {"q": location, "appid": self.api_key, "units": self.units}
        try:
            response = self.session.get(FORECAST_URL, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
            parsed = _ForecastResponse.model_validate(response.json())
        except requests.RequestException as exc:
            LOGGER.warning("Weather API unreachable", extra={"error": str(exc)})
            return None
        except (ValueError, ValidationError) as exc:
            LOGGER.warning("Weather payload schema validation failed", extra={"error": str(exc)})
            return None

        entries = self._entries_in_range(parsed.list, start, end)
        if not entries:
            LOGGER.info("Trip dates fall outside the forecast window")
            return None
        conditions = [entry.weather[0].description for entry in entries if entry.weather]
        return WeatherProfile(
            temp_min=min(entry.main.temp_min for entry in entries),
            temp_max=max(entry.main.temp_max for entry in entries),
            precipitation_probability=max(entry.pop for entry in entries),
            weather_condition=max(set(conditions), key=conditions.count) if conditions else "unknown",
        )


class MockWeatherProvider(WeatherProvider):
    """Returns a fixed profile; handy offline and in tests."""

    def __init__(self, profile: WeatherProfile | None = None) -> None:
        self.profile = profile

    def get_trip_forecast(self, location: str, start: date, end: date) -> Optional[WeatherProfile]:
        return self.profile


def build_weather_provider(api_key: str | None, timeout_seconds: float = 5.0) -> WeatherProvider:
    if api_key:
        return OpenWeatherProvider(api_key=api_key, timeout_seconds=timeout_seconds)
    return MockWeatherProvider()


__all__ = [
    "WeatherProfile",
    "WeatherProvider",
    "OpenWeatherProvider",
    "MockWeatherProvider",
    "build_weather_provider",
]
