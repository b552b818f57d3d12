from __future__ import annotations

from typing import Protocol

from ...domain.errors import WeatherError
from ...domain.models import Location, WeatherSnapshot


class WeatherAdapterError(RuntimeError):
    """Raised when a weather provider response cannot be turned into domain models."""


class WeatherGateway(Protocol):
    async def search_locations(self, query: str) -> list[Location] | WeatherError:
        """Find locations matching a free-text query."""

    async def get_weather_by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot | WeatherError:
        """Fetch current conditions and forecasts for the provided coordinates."""

    async def close(self) -> None:
        """Release any network resources held by the gateway."""
