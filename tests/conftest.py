"""Shared test fixtures for weatherdash."""

from __future__ import annotations

import asyncio
import os
from datetime import date, datetime, timedelta, timezone
from typing import Any

import pytest

from weatherdash.adapters.geolocation import GeolocationPositionError, PositionOptions
from weatherdash.domain.errors import WeatherError
from weatherdash.domain.models import (
    CurrentWeather,
    DailyEntry,
    GeolocationCoordinates,
    HourlyEntry,
    Location,
    WeatherSnapshot,
)

# Keep a developer's real .env out of the test run.
os.environ.setdefault("WEATHERDASH_ENV", "test")
os.environ.setdefault("WEATHERAPI_KEY", "test-key")

NOW = datetime(2024, 12, 4, 14, 30, tzinfo=timezone.utc)


class FakeGateway:
    """In-memory weather gateway with call recording and optional gates."""

    def __init__(self) -> None:
        self.search_calls: list[str] = []
        self.weather_calls: list[tuple[float, float]] = []
        self.search_results: dict[str, list[Location] | WeatherError | Exception] = {}
        self.default_search_result: list[Location] | WeatherError | Exception = []
        self.weather_result: WeatherSnapshot | WeatherError | Exception = WeatherSnapshot.empty()
        self.search_gates: dict[str, asyncio.Event] = {}
        self.weather_gate: asyncio.Event | None = None
        self.closed = False

    async def search_locations(self, query: str) -> list[Location] | WeatherError:
        self.search_calls.append(query)
        gate = self.search_gates.get(query)
        if gate is not None:
            await gate.wait()
        result = self.search_results.get(query, self.default_search_result)
        if isinstance(result, Exception):
            raise result
        return result

    async def get_weather_by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot | WeatherError:
        self.weather_calls.append((lat, lon))
        if self.weather_gate is not None:
            await self.weather_gate.wait()
        if isinstance(self.weather_result, Exception):
            raise self.weather_result
        return self.weather_result

    async def close(self) -> None:
        self.closed = True


class FakeGeolocation:
    """Geolocation capability returning a fixed position or raising a fixed error."""

    def __init__(
        self,
        coordinates: GeolocationCoordinates | None = None,
        error: Exception | None = None,
    ) -> None:
        self.coordinates = coordinates
        self.error = error
        self.calls: list[PositionOptions] = []
        self.gate: asyncio.Event | None = None

    async def get_current_position(self, options: PositionOptions) -> GeolocationCoordinates:
        self.calls.append(options)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.coordinates is None:
            raise GeolocationPositionError(2, "no fix")
        return self.coordinates


@pytest.fixture
def seattle() -> Location:
    return Location(name="Seattle", region="Washington", country="USA", lat=47.61, lon=-122.33)


@pytest.fixture
def woodinville() -> Location:
    return Location(name="Woodinville", region="Washington", country="USA", lat=47.75, lon=-122.16)


@pytest.fixture
def snapshot(seattle: Location) -> WeatherSnapshot:
    return WeatherSnapshot(
        current=CurrentWeather(
            location=seattle,
            temperature=22.22,
            condition="Partly cloudy",
            condition_icon="https://cdn.weatherapi.com/weather/64x64/day/116.png",
            humidity=65,
            wind_speed=16.0,
            last_updated=NOW,
        ),
        hourly=[
            HourlyEntry(
                time=NOW + timedelta(hours=offset),
                temperature=10.0 + offset,
                condition="Cloudy",
                wind_speed=8.0,
                humidity=70,
                precipitation_chance=20,
            )
            for offset in range(1, 4)
        ],
        daily=[
            DailyEntry(
                date=date(2024, 12, 4) + timedelta(days=offset),
                high_temperature=15.0,
                low_temperature=5.0,
                condition="Light rain",
                precipitation_chance=80,
            )
            for offset in range(3)
        ],
    )


@pytest.fixture
def fake_gateway(snapshot: WeatherSnapshot) -> FakeGateway:
    gateway = FakeGateway()
    gateway.weather_result = snapshot
    return gateway


def _condition(text: str) -> dict[str, Any]:
    return {"text": text, "icon": "//cdn.weatherapi.com/weather/64x64/day/116.png", "code": 1003}


def build_forecast_payload(*, days: int = 3, start: date = date(2024, 12, 4)) -> dict[str, Any]:
    forecastday = []
    for day_offset in range(days):
        day = start + timedelta(days=day_offset)
        midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        hours = []
        for hour in range(24):
            moment = midnight + timedelta(hours=hour)
            hours.append(
                {
                    "time_epoch": int(moment.timestamp()),
                    "time": moment.strftime("%Y-%m-%d %H:%M"),
                    "temp_c": 10.0 + hour * 0.5,
                    "temp_f": 999.0,
                    "is_day": 1,
                    "condition": _condition("Partly cloudy"),
                    "wind_kph": 12.0,
                    "wind_mph": 999.0,
                    "humidity": 60,
                    "chance_of_rain": 30,
                }
            )
        forecastday.append(
            {
                "date": day.isoformat(),
                "day": {
                    "maxtemp_c": 18.0 + day_offset,
                    "maxtemp_f": 999.0,
                    "mintemp_c": 6.0 + day_offset,
                    "mintemp_f": 999.0,
                    "avgtemp_c": 12.0,
                    "avgtemp_f": 999.0,
                    "condition": _condition("Sunny"),
                    "daily_chance_of_rain": 10 * day_offset,
                    "daily_chance_of_snow": 0,
                },
                "hour": hours,
            }
        )

    return {
        "location": {
            "name": "Seattle",
            "region": "Washington",
            "country": "United States of America",
            "lat": 47.61,
            "lon": -122.33,
            "tz_id": "UTC",
            "localtime_epoch": int(NOW.timestamp()),
            "localtime": "2024-12-04 14:30",
        },
        "current": {
            "temp_c": 22.22,
            "temp_f": 999.0,
            "is_day": 1,
            "condition": _condition("Partly cloudy"),
            "wind_kph": 16.0,
            "wind_mph": 999.0,
            "humidity": 65,
            "precip_mm": 0.0,
            "precip_in": 0.0,
        },
        "forecast": {"forecastday": forecastday},
    }


@pytest.fixture
def forecast_payload() -> dict[str, Any]:
    return build_forecast_payload()


@pytest.fixture
def search_payload() -> list[dict[str, Any]]:
    return [
        {
            "id": 2801268,
            "name": "London",
            "region": "City of London, Greater London",
            "country": "United Kingdom",
            "lat": 51.52,
            "lon": -0.11,
            "url": "london-city-of-london-greater-london-united-kingdom",
        },
        {
            "id": 315398,
            "name": "London",
            "region": "Ontario",
            "country": "Canada",
            "lat": 42.98,
            "lon": -81.25,
            "url": "london-ontario-canada",
        },
    ]
