"""Session state and actions for the weather dashboard.

``WeatherSession`` is the only writer of ``SessionState``. Every action runs on
the event loop and suspends only while awaiting the gateway or the location
provider, so plain flags and generation counters are enough to keep
concurrent callers from interleaving their state changes:

* searches take a generation token and drop responses that arrive after a
  newer search started;
* ``refresh_weather`` is single-flight, extra calls are dropped;
* ``try_detect_location`` runs once per session, the flag is set before the
  first await.

Display values are derived on every read from the metric data and the
current temperature unit.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo

from .adapters.weather import WeatherGateway
from .domain.errors import WeatherError, classify_exception
from .domain.models import (
    CurrentWeather,
    DailyEntry,
    HourlyEntry,
    Location,
    TemperatureUnit,
    WeatherSnapshot,
)
from .domain.units import to_display_temperature, to_display_wind_speed
from .location.service import LocationProvider

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionState:
    weather_data: WeatherSnapshot = field(default_factory=WeatherSnapshot.empty)
    current_location: Location | None = None
    temperature_unit: TemperatureUnit = TemperatureUnit.FAHRENHEIT
    searching: bool = False
    loading_weather: bool = False
    refreshing: bool = False
    search_error: WeatherError | None = None
    weather_error: WeatherError | None = None
    search_results: list[Location] = field(default_factory=list)
    last_search_query: str = ""
    last_updated: datetime | None = None
    location_detection_attempted: bool = False


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherSession:
    def __init__(
        self,
        gateway: WeatherGateway,
        location_provider: LocationProvider,
        *,
        timezone: tzinfo | None = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._gateway = gateway
        self._location_provider = location_provider
        self._timezone = timezone
        self._now = now
        self._state = SessionState()
        self._search_token = 0

    # --- State (read-only) ---

    @property
    def weather_data(self) -> WeatherSnapshot:
        return self._state.weather_data

    @property
    def current_location(self) -> Location | None:
        return self._state.current_location

    @property
    def temperature_unit(self) -> TemperatureUnit:
        return self._state.temperature_unit

    @property
    def is_searching(self) -> bool:
        return self._state.searching

    @property
    def is_loading_weather(self) -> bool:
        return self._state.loading_weather

    @property
    def is_refreshing(self) -> bool:
        return self._state.refreshing

    @property
    def search_error(self) -> WeatherError | None:
        return self._state.search_error

    @property
    def weather_error(self) -> WeatherError | None:
        return self._state.weather_error

    @property
    def search_results(self) -> list[Location]:
        return list(self._state.search_results)

    @property
    def last_search_query(self) -> str:
        return self._state.last_search_query

    @property
    def last_updated(self) -> datetime | None:
        return self._state.last_updated

    @property
    def location_detection_attempted(self) -> bool:
        return self._state.location_detection_attempted

    # --- Derived views ---

    @property
    def current_weather_for_display(self) -> CurrentWeather | None:
        current = self._state.weather_data.current
        if current is None:
            return None
        unit = self._state.temperature_unit
        return current.model_copy(
            update={
                "temperature": to_display_temperature(current.temperature, unit),
                "wind_speed": to_display_wind_speed(current.wind_speed, unit),
            }
        )

    @property
    def hourly_forecast_for_display(self) -> list[HourlyEntry]:
        unit = self._state.temperature_unit
        return [
            entry.model_copy(
                update={
                    "temperature": to_display_temperature(entry.temperature, unit),
                    "wind_speed": to_display_wind_speed(entry.wind_speed, unit),
                }
            )
            for entry in self._state.weather_data.hourly
        ]

    @property
    def daily_forecast_for_display(self) -> list[DailyEntry]:
        unit = self._state.temperature_unit
        return [
            entry.model_copy(
                update={
                    "high_temperature": to_display_temperature(entry.high_temperature, unit),
                    "low_temperature": to_display_temperature(entry.low_temperature, unit),
                }
            )
            for entry in self._state.weather_data.daily
        ]

    @property
    def formatted_last_updated(self) -> str:
        updated = self._state.last_updated
        if updated is None:
            return ""
        local = updated.astimezone(self._timezone)
        suffix = "AM" if local.hour < 12 else "PM"
        return f"{local.hour % 12 or 12}:{local.minute:02d} {suffix}"

    @property
    def is_loading(self) -> bool:
        return self._state.searching or self._state.loading_weather or self._state.refreshing

    # --- Actions ---

    async def search_locations(self, query: str) -> None:
        state = self._state
        self._search_token += 1
        token = self._search_token

        if not query.strip():
            state.search_results = []
            state.last_search_query = ""
            state.search_error = None
            state.searching = False
            return

        state.searching = True
        state.search_error = None
        state.last_search_query = query

        try:
            result = await self._gateway.search_locations(query)
        except asyncio.CancelledError:
            if token == self._search_token:
                state.searching = False
            raise
        except Exception as exc:
            result = classify_exception(exc)
            LOGGER.exception("Location search for %r raised unexpectedly", query)

        if token != self._search_token:
            LOGGER.debug("Discarding stale search response for %r", query)
            return

        if isinstance(result, WeatherError):
            state.search_error = result
            state.search_results = []
        else:
            state.search_results = list(result)
            state.search_error = None
        state.searching = False

    async def select_location(self, result: Location) -> None:
        state = self._state
        # A search still in flight must not repopulate the cleared results.
        self._search_token += 1
        state.searching = False
        state.current_location = Location(
            name=result.name,
            region=result.region,
            country=result.country,
            lat=result.lat,
            lon=result.lon,
        )
        state.search_results = []
        state.search_error = None
        LOGGER.info("Selected location %s", state.current_location.label)
        await self.fetch_weather(result.lat, result.lon)

    async def fetch_weather(self, lat: float, lon: float) -> None:
        state = self._state
        state.loading_weather = True
        state.weather_error = None

        try:
            result = await self._gateway.get_weather_by_coordinates(lat, lon)
        except Exception as exc:
            result = classify_exception(exc)
            LOGGER.exception("Weather fetch for %s,%s raised unexpectedly", lat, lon)
        finally:
            state.loading_weather = False

        if isinstance(result, WeatherError):
            state.weather_error = result
            state.weather_data = WeatherSnapshot.empty()
            return

        state.weather_data = result
        state.last_updated = self._now()
        state.weather_error = None
        self._backfill_location(result, lat, lon)

    async def refresh_weather(self) -> None:
        state = self._state
        location = state.current_location
        if location is None or state.refreshing:
            LOGGER.debug("Refresh skipped (location=%s, refreshing=%s)", location is not None, state.refreshing)
            return

        state.refreshing = True
        state.weather_error = None

        try:
            result = await self._gateway.get_weather_by_coordinates(location.lat, location.lon)
        except Exception as exc:
            result = classify_exception(exc)
            LOGGER.exception("Weather refresh for %s raised unexpectedly", location.label)
        finally:
            state.refreshing = False

        if isinstance(result, WeatherError):
            # Keep the previous snapshot on screen.
            state.weather_error = result
            return

        state.weather_data = result
        state.last_updated = self._now()
        state.weather_error = None
        self._backfill_location(result, location.lat, location.lon)

    def toggle_temperature_unit(self) -> TemperatureUnit:
        state = self._state
        if state.temperature_unit is TemperatureUnit.FAHRENHEIT:
            state.temperature_unit = TemperatureUnit.CELSIUS
        else:
            state.temperature_unit = TemperatureUnit.FAHRENHEIT
        return state.temperature_unit

    async def try_detect_location(self) -> bool:
        """Detect the user's location once per session and load its weather.

        Geolocation problems are never surfaced; the user can always search.
        """
        state = self._state
        if state.location_detection_attempted:
            return False
        state.location_detection_attempted = True

        try:
            result = await self._location_provider.get_location()
            if not result.success or result.coordinates is None:
                LOGGER.debug("Location detection unavailable: %s", result.error)
                return False

            coordinates = result.coordinates
            state.current_location = Location(lat=coordinates.latitude, lon=coordinates.longitude)
            await self.fetch_weather(coordinates.latitude, coordinates.longitude)
        except Exception:
            LOGGER.debug("Location detection failed", exc_info=True)
            return False

        return True

    def reset_search(self) -> None:
        self._search_token += 1
        state = self._state
        state.search_results = []
        state.last_search_query = ""
        state.search_error = None
        state.searching = False

    def reset(self) -> None:
        self.reset_search()
        state = self._state
        state.weather_data = WeatherSnapshot.empty()
        state.current_location = None
        state.weather_error = None
        state.last_updated = None
        state.location_detection_attempted = False

    def _backfill_location(self, snapshot: WeatherSnapshot, lat: float, lon: float) -> None:
        location = self._state.current_location
        current = snapshot.current
        if location is None or current is None or location.name:
            return
        if (location.lat, location.lon) != (lat, lon):
            return
        self._state.current_location = location.model_copy(
            update={
                "name": current.location.name,
                "region": current.location.region,
                "country": current.location.country,
            }
        )
